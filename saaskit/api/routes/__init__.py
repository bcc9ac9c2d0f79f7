"""
Kit modules exposing the HTTP API.
"""

from .health import HealthModule
from .sse import SSEModule

__all__ = ["HealthModule", "SSEModule"]
