"""
SSE Events
==========

Server-Sent Events type definitions and formatting functions.
Defines event types and handles SSE protocol formatting.
"""

from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from enum import Enum
import json
import uuid

from pydantic import BaseModel, Field


class SSEEventType(str, Enum):
    """Server-Sent Events event types."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    HEARTBEAT = "heartbeat"
    ERROR = "error"
    MESSAGE = "message"
    NOTIFICATION = "notification"
    UPDATE = "update"


class SSEEvent(BaseModel):
    """
    A single Server-Sent Event.

    Events are transient: they live for the duration of one broadcast.
    Empty `id` and `created` are filled in by `with_defaults()`.
    """

    id: str = Field(default="", description="Event ID, generated when empty")
    type: str = Field(default="", description="Event type tag")
    data: Any = Field(default=None, description="JSON-serializable payload")
    retry: int = Field(default=0, ge=0, description="Client retry interval in milliseconds")
    created: Optional[datetime] = Field(default=None, description="Creation timestamp")

    def with_defaults(self) -> "SSEEvent":
        """Fill in a generated ID and the current time when unset."""
        if not self.id:
            self.id = str(uuid.uuid4())
        if self.created is None:
            self.created = datetime.now(timezone.utc)
        return self

    def format_sse(self) -> str:
        """Format event for SSE protocol."""
        return format_sse_event(
            data=self.data,
            event_type=self.type or None,
            event_id=self.id or None,
            retry=self.retry or None,
        )


def format_sse_event(
    data: Any,
    event_type: Optional[str] = None,
    event_id: Optional[str] = None,
    retry: Optional[int] = None,
) -> str:
    """
    Format data for Server-Sent Events protocol.

    Args:
        data: JSON-serializable payload
        event_type: Optional event type line
        event_id: Optional event ID for client-side event tracking
        retry: Optional retry interval in milliseconds

    Returns:
        Formatted SSE message string
    """
    lines: List[str] = []

    if event_id:
        lines.append(f"id: {event_id}")

    if event_type:
        lines.append(f"event: {event_type}")

    if retry and retry > 0:
        lines.append(f"retry: {retry}")

    data_json = json.dumps(data, default=str, separators=(",", ":"))
    lines.append(f"data: {data_json}")

    # SSE protocol requires double newline at end
    lines.append("")
    lines.append("")

    return "\n".join(lines)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _build(event_type: SSEEventType, data: Dict[str, Any], retry: int = 0) -> SSEEvent:
    return SSEEvent(type=event_type.value, data=data, retry=retry).with_defaults()


def create_connected_event(client_id: str) -> SSEEvent:
    """Create the first event sent on a new stream."""
    return _build(SSEEventType.CONNECTED, {"client_id": client_id, "timestamp": _now_iso()})


def create_disconnected_event(client_id: str, reason: str) -> SSEEvent:
    """Create connection closed event."""
    return _build(
        SSEEventType.DISCONNECTED,
        {"client_id": client_id, "reason": reason, "timestamp": _now_iso()},
    )


def create_heartbeat_event() -> SSEEvent:
    """Create heartbeat event to keep connections alive."""
    return _build(SSEEventType.HEARTBEAT, {"timestamp": _now_iso()})


def create_error_event(error: str, code: int) -> SSEEvent:
    """Create error event."""
    return _build(SSEEventType.ERROR, {"error": error, "code": code, "timestamp": _now_iso()})


def create_message_event(message: str, sender: str) -> SSEEvent:
    """Create chat-style message event."""
    return _build(
        SSEEventType.MESSAGE, {"message": message, "sender": sender, "timestamp": _now_iso()}
    )


def create_notification_event(title: str, body: str, priority: str = "normal") -> SSEEvent:
    """Create user notification event."""
    return _build(
        SSEEventType.NOTIFICATION,
        {"title": title, "body": body, "priority": priority, "timestamp": _now_iso()},
    )


def create_update_event(resource: str, action: str, data: Any = None) -> SSEEvent:
    """Create resource update event."""
    return _build(
        SSEEventType.UPDATE,
        {"resource": resource, "action": action, "data": data, "timestamp": _now_iso()},
    )
