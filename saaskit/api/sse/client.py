"""
SSE Client
==========

One long-lived streaming connection owned by a user.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import SSEEvent
from .models import ClientInfo


class SSEClient:
    """
    A connected SSE client.

    Events are delivered through a bounded outbound buffer with
    non-blocking sends. `disconnect()` ends the client's lifetime: the
    `closed` event is set and a pending `receive()` returns None.
    """

    def __init__(
        self,
        user_id: str,
        buffer_size: int,
        client_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.id = client_id or str(uuid.uuid4())
        self.user_id = user_id
        self.buffer_size = buffer_size
        self.connected_at = datetime.now(timezone.utc)
        self.connected = True
        self.closed = asyncio.Event()
        self._metadata: Dict[str, Any] = dict(metadata or {})
        # Capacity is enforced in try_send so the close sentinel always fits.
        self._queue: "asyncio.Queue[Optional[SSEEvent]]" = asyncio.Queue()

    def __repr__(self) -> str:
        return f"SSEClient(id={self.id!r}, user_id={self.user_id!r}, connected={self.connected})"

    @property
    def pending(self) -> int:
        """Number of events waiting in the outbound buffer."""
        return self._queue.qsize() - (0 if self.connected else 1)

    @property
    def connected_for(self) -> float:
        """Seconds since the client connected."""
        return (datetime.now(timezone.utc) - self.connected_at).total_seconds()

    def try_send(self, event: SSEEvent) -> bool:
        """
        Offer an event to the outbound buffer without blocking.

        Returns:
            False if the client is disconnected or its buffer is full
        """
        if not self.connected or self._queue.qsize() >= self.buffer_size:
            return False
        self._queue.put_nowait(event)
        return True

    async def receive(self) -> Optional[SSEEvent]:
        """Wait for the next event; None once the client has been closed."""
        if not self.connected and self._queue.empty():
            return None
        event = await self._queue.get()
        if event is None:
            # Keep the sentinel for any later receiver.
            self._queue.put_nowait(None)
        return event

    def disconnect(self) -> None:
        """Close the client. Repeated calls have no effect."""
        if not self.connected:
            return
        self.connected = False
        self.closed.set()
        self._queue.put_nowait(None)

    def get_metadata(self) -> Dict[str, Any]:
        return dict(self._metadata)

    def set_metadata(self, key: str, value: Any) -> None:
        self._metadata[key] = value

    def to_info(self) -> ClientInfo:
        return ClientInfo(
            id=self.id,
            user_id=self.user_id,
            connected=self.connected,
            connected_at=self.connected_at,
            connected_for=self.connected_for,
            metadata=self.get_metadata(),
            channel_size=max(self.pending, 0),
            channel_capacity=self.buffer_size,
        )
