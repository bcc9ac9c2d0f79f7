"""
SSE Models
==========

Pydantic models for Server-Sent Events infrastructure.
Defines hub configuration, broadcast targeting, statistics and API requests.
"""

from typing import Optional, Dict, Any, List, TYPE_CHECKING
from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator

from .events import SSEEvent

if TYPE_CHECKING:
    from saaskit.config.settings import Settings

DEFAULT_BUFFER_SIZE = 10
DEFAULT_HEARTBEAT_INTERVAL = 30.0


class HubConfig(BaseModel):
    """Fixed configuration of an SSE hub."""

    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, description="Outbound buffer per client")
    heartbeat_interval: float = Field(
        default=DEFAULT_HEARTBEAT_INTERVAL, description="Heartbeat interval in seconds"
    )
    enable_heartbeat: bool = Field(default=True, description="Send periodic heartbeats")
    max_clients: int = Field(default=1000, ge=0, description="Global client cap (0 = unlimited)")
    max_clients_per_user: int = Field(
        default=5, ge=0, description="Per-user client cap (0 = unlimited)"
    )
    register_queue_size: int = Field(default=100, gt=0, description="Pending registrations")
    unregister_queue_size: int = Field(default=100, gt=0, description="Pending unregistrations")
    broadcast_queue_size: int = Field(default=1000, gt=0, description="Pending broadcasts")

    @field_validator("buffer_size")
    @classmethod
    def default_buffer_size(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_BUFFER_SIZE

    @field_validator("heartbeat_interval")
    @classmethod
    def default_heartbeat_interval(cls, v: float) -> float:
        return v if v > 0 else DEFAULT_HEARTBEAT_INTERVAL

    @classmethod
    def from_settings(cls, settings: "Settings") -> "HubConfig":
        """Build hub configuration from application settings."""
        return cls(
            buffer_size=settings.sse_buffer_size,
            heartbeat_interval=settings.sse_heartbeat_interval,
            enable_heartbeat=settings.sse_enable_heartbeat,
            max_clients=settings.sse_max_clients,
            max_clients_per_user=settings.sse_max_clients_per_user,
            register_queue_size=settings.sse_register_queue_size,
            unregister_queue_size=settings.sse_unregister_queue_size,
            broadcast_queue_size=settings.sse_broadcast_queue_size,
        )


class BroadcastMessage(BaseModel):
    """
    Request to deliver one event to a set of clients.

    Targeting precedence: `client_ids`, then `user_ids`, then every
    connected client when both are empty.
    """

    client_ids: List[str] = Field(default_factory=list, description="Target client IDs")
    user_ids: List[str] = Field(default_factory=list, description="Target user IDs")
    event: SSEEvent = Field(..., description="Event to deliver")


class HubStats(BaseModel):
    """Point-in-time statistics of an SSE hub."""

    total_clients: int = Field(default=0, description="Currently registered clients")
    connected_users: int = Field(default=0, description="Distinct users with a client")
    clients_per_user: Dict[str, int] = Field(default_factory=dict, description="Clients by user")
    events_sent: int = Field(default=0, description="Events delivered to client buffers")
    events_dropped: int = Field(default=0, description="Events dropped on full buffers")
    connections_opened: int = Field(default=0, description="Clients registered so far")
    connections_closed: int = Field(default=0, description="Clients unregistered so far")
    uptime: float = Field(default=0.0, description="Seconds since the event loop started")
    last_heartbeat: Optional[datetime] = Field(None, description="Last heartbeat timestamp")


class ClientInfo(BaseModel):
    """Information about a connected client for API responses."""

    id: str
    user_id: str
    connected: bool
    connected_at: datetime
    connected_for: float = Field(..., description="Seconds since connection")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    channel_size: int = Field(..., description="Events waiting in the buffer")
    channel_capacity: int = Field(..., description="Buffer capacity")


class EventRequest(BaseModel):
    """Event descriptor accepted by the broadcast endpoints."""

    id: Optional[str] = Field(None, description="Optional event ID")
    type: str = Field(..., min_length=1, description="Event type")
    data: Any = Field(..., description="Event payload")
    retry: int = Field(default=0, ge=0, description="Client retry interval in milliseconds")

    def to_event(self) -> SSEEvent:
        """Convert to an event with ID and timestamp set."""
        return SSEEvent(
            id=self.id or "",
            type=self.type,
            data=self.data,
            retry=self.retry,
            created=datetime.now(timezone.utc),
        ).with_defaults()


class BroadcastRequest(BaseModel):
    """Request to broadcast an event to several users or clients."""

    user_ids: List[str] = Field(default_factory=list, description="Target user IDs")
    client_ids: List[str] = Field(default_factory=list, description="Target client IDs")
    event: EventRequest = Field(..., description="Event to broadcast")
