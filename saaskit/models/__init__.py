"""
Data Models
===========

Pydantic models shared across modules.
"""

from .schemas import SuccessResponse, ErrorResponse

__all__ = ["SuccessResponse", "ErrorResponse"]
