"""
Shared Schemas
==============

Pydantic models for the JSON envelopes returned by every module.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SuccessResponse(BaseModel):
    """Standard success envelope."""

    success: bool = Field(True, description="Always true for successful responses")
    data: Optional[Any] = Field(None, description="Response payload")
    message: Optional[str] = Field(None, description="Optional human-readable message")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    success: bool = Field(False, description="Always false for error responses")
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Error timestamp"
    )
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
