"""
Server-Sent Events (SSE) Infrastructure
======================================

SSE implementation for real-time delivery of events to connected users.

Components:
- Hub: Single-owner event loop managing clients and fan-out
- Client: One streaming connection with a bounded outbound buffer
- Service: Hub lifecycle and HTTP streaming
- Event System: Defines event types and formatting for SSE protocol
- Models: Pydantic models for SSE-specific data structures
"""

from .client import SSEClient
from .events import SSEEventType, SSEEvent, format_sse_event
from .hub import HubState, SSEHub
from .models import BroadcastMessage, BroadcastRequest, EventRequest, HubConfig, HubStats
from .service import SSEService

__all__ = [
    "SSEClient",
    "SSEEventType",
    "SSEEvent",
    "format_sse_event",
    "HubState",
    "SSEHub",
    "BroadcastMessage",
    "BroadcastRequest",
    "EventRequest",
    "HubConfig",
    "HubStats",
    "SSEService",
]
