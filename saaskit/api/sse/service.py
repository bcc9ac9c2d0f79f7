"""
SSE Service
===========

Owns an SSE hub and its event loop task, and turns HTTP requests into
event streams.
"""

import asyncio
from typing import Any, AsyncGenerator, Callable, Iterable, List, Optional

from fastapi import Request
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from saaskit.config.logging import get_logger
from saaskit.core.errors import (
    SSEServiceAlreadyRunningError,
    SSEServiceNotRunningError,
    SSEUnauthorizedError,
    UnregistrationQueueFullError,
)

from .client import SSEClient
from .events import SSEEvent, create_connected_event
from .hub import HubState, SSEHub
from .models import BroadcastMessage, HubConfig, HubStats

logger = get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable Nginx buffering
}


class SSEStreamingResponse(StreamingResponse):
    """Event stream response that runs `on_close` however the response ends."""

    media_type = "text/event-stream"

    def __init__(self, content: Any, on_close: Callable[[], None], **kwargs: Any) -> None:
        super().__init__(content, **kwargs)
        self.on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.on_close()


class SSEService:
    """
    Lifecycle and delivery facade over an `SSEHub`.

    The hub runs as a background task between `start()` and `stop()`.
    A stopped service can be started again with a fresh hub.
    """

    def __init__(self, config: Optional[HubConfig] = None) -> None:
        self.config = config or HubConfig()
        self.hub = SSEHub(self.config)
        self._task: Optional["asyncio.Task[None]"] = None
        self.logger = logger.bind(component="sse_service")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """
        Start the hub event loop.

        Raises:
            SSEServiceAlreadyRunningError: If the service is already running
        """
        if self.is_running:
            raise SSEServiceAlreadyRunningError()

        if self.hub.state != HubState.CREATED:
            self.hub = SSEHub(self.config)

        self._task = asyncio.create_task(self.hub.run(), name="sse-hub")
        self.logger.info("SSE service started")

    async def stop(self) -> None:
        """
        Shut the hub down and wait for its loop to exit.

        Raises:
            SSEServiceNotRunningError: If the service is not running
        """
        if not self.is_running or self._task is None:
            raise SSEServiceNotRunningError()

        task, self._task = self._task, None
        self.hub.shutdown()
        await task
        self.logger.info("SSE service stopped")

    # Delivery

    def _broadcast(
        self,
        event: SSEEvent,
        client_ids: Iterable[str] = (),
        user_ids: Iterable[str] = (),
    ) -> SSEEvent:
        if not self.is_running:
            raise SSEServiceNotRunningError()
        event.with_defaults()
        self.hub.broadcast(
            BroadcastMessage(client_ids=list(client_ids), user_ids=list(user_ids), event=event)
        )
        return event

    def send_to_user(self, user_id: str, event: SSEEvent) -> SSEEvent:
        """Send an event to every client of a user."""
        return self._broadcast(event, user_ids=[user_id])

    def send_to_users(self, user_ids: Iterable[str], event: SSEEvent) -> SSEEvent:
        """Send an event to every client of several users."""
        return self._broadcast(event, user_ids=user_ids)

    def send_to_client(self, client_id: str, event: SSEEvent) -> SSEEvent:
        """Send an event to a single client."""
        return self._broadcast(event, client_ids=[client_id])

    def send_to_all(self, event: SSEEvent) -> SSEEvent:
        """Send an event to every connected client."""
        return self._broadcast(event)

    # Statistics

    def get_stats(self) -> HubStats:
        return self.hub.get_stats()

    def get_connected_users(self) -> List[str]:
        return self.hub.get_connected_users()

    def get_user_client_count(self, user_id: str) -> int:
        return self.hub.get_user_client_count(user_id)

    def get_total_client_count(self) -> int:
        return self.hub.get_total_client_count()

    def get_client(self, client_id: str) -> Optional[SSEClient]:
        return self.hub.get_client(client_id)

    def get_user_clients(self, user_id: str) -> List[SSEClient]:
        return self.hub.get_user_clients(user_id)

    # Streaming

    @staticmethod
    def extract_user_id(request: Request) -> str:
        """
        Resolve the authenticated user of a request.

        Raises:
            SSEUnauthorizedError: If no user is attached to the request
        """
        user_id = getattr(request.state, "user_id", None) or getattr(
            request.state, "account_id", None
        )
        if not user_id:
            raise SSEUnauthorizedError()
        return str(user_id)

    def open_stream(self, request: Request) -> StreamingResponse:
        """
        Register a client for the requesting user and stream its events.

        Raises:
            SSEServiceNotRunningError: If the service is not running
            SSEUnauthorizedError: If the request carries no user
            MaxClientsReachedError: If the hub is at capacity
        """
        if not self.is_running:
            raise SSEServiceNotRunningError()

        user_id = self.extract_user_id(request)
        client = SSEClient(
            user_id=user_id,
            buffer_size=self.config.buffer_size,
            metadata={
                "remote_addr": request.client.host if request.client else "unknown",
                "user_agent": request.headers.get("user-agent", "unknown"),
            },
        )
        self.hub.register_client(client)
        client.try_send(create_connected_event(client.id))

        self.logger.info("SSE stream opened", client_id=client.id, user_id=user_id)

        def on_close() -> None:
            # The body iterator may never start if the peer drops early.
            if client.connected:
                self.release_client(client)

        return SSEStreamingResponse(
            self.event_stream(client),
            on_close=on_close,
            headers={**SSE_HEADERS, "X-Client-ID": client.id},
        )

    async def event_stream(self, client: SSEClient) -> AsyncGenerator[str, None]:
        """Yield a client's events in wire format until it is closed."""
        try:
            while True:
                event = await client.receive()
                if event is None:
                    break
                yield event.format_sse()
        finally:
            self.release_client(client)

    def release_client(self, client: SSEClient) -> None:
        """Close a streaming client and remove it from the hub."""
        client.disconnect()
        try:
            self.hub.unregister_client(client.id)
        except UnregistrationQueueFullError:
            self.logger.warning("Could not unregister client", client_id=client.id)
        self.logger.info("SSE stream closed", client_id=client.id, user_id=client.user_id)
