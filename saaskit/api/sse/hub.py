"""
SSE Hub
=======

Broadcast engine owning every connected SSE client.

A single task running `SSEHub.run()` owns all mutation of the client maps.
Other callers hand requests to it through bounded queues that fail fast
when full. Statistics and lookups read the maps under the hub lock and
are safe from any thread; the remaining methods must be called from the
event loop running the hub.
"""

import asyncio
import threading
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from saaskit.config.logging import get_logger
from saaskit.core.errors import (
    BroadcastQueueFullError,
    MaxClientsReachedError,
    RegistrationQueueFullError,
    SSEServiceNotRunningError,
    UnregistrationQueueFullError,
)

from .client import SSEClient
from .events import create_heartbeat_event
from .models import BroadcastMessage, HubConfig, HubStats

logger = get_logger(__name__)


class HubState(str, Enum):
    """Lifecycle states of a hub."""

    CREATED = "created"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class SSEHub:
    """
    Manages SSE clients and event fan-out.

    Handles:
    - Client registration with global and per-user admission control
    - Best-effort broadcast to clients, users or everyone
    - Periodic heartbeats
    - Shutdown that disconnects every client
    """

    def __init__(self, config: Optional[HubConfig] = None) -> None:
        self.config = config or HubConfig()
        self.logger = logger.bind(component="sse_hub")

        self._lock = threading.RLock()
        self._clients: Dict[str, SSEClient] = {}
        self._user_clients: Dict[str, List[str]] = {}

        self._register_queue: "asyncio.Queue[SSEClient]" = asyncio.Queue(
            maxsize=self.config.register_queue_size
        )
        self._unregister_queue: "asyncio.Queue[str]" = asyncio.Queue(
            maxsize=self.config.unregister_queue_size
        )
        self._broadcast_queue: "asyncio.Queue[BroadcastMessage]" = asyncio.Queue(
            maxsize=self.config.broadcast_queue_size
        )
        self._wakeup = asyncio.Event()

        self._state = HubState.CREATED
        self._shutdown_requested = False
        self._started_at: Optional[float] = None
        self._last_heartbeat: Optional[datetime] = None

        self._events_sent = 0
        self._events_dropped = 0
        self._connections_opened = 0
        self._connections_closed = 0

    @property
    def state(self) -> HubState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state == HubState.RUNNING

    def _ensure_accepting(self) -> None:
        with self._lock:
            if self._shutdown_requested or self._state in (
                HubState.SHUTTING_DOWN,
                HubState.STOPPED,
            ):
                raise SSEServiceNotRunningError()

    # Producer side

    def register_client(self, client: SSEClient) -> None:
        """
        Admit a client and hand it to the event loop.

        Raises:
            MaxClientsReachedError: If the global client cap is reached
            RegistrationQueueFullError: If the registration queue is full
            SSEServiceNotRunningError: If the hub is shutting down
        """
        self._ensure_accepting()

        with self._lock:
            if not self._admit(client):
                raise MaxClientsReachedError()

        try:
            self._register_queue.put_nowait(client)
        except asyncio.QueueFull:
            raise RegistrationQueueFullError() from None
        self._wakeup.set()

    def unregister_client(self, client_id: str) -> None:
        """
        Ask the event loop to remove a client. Unknown IDs are ignored.

        Raises:
            UnregistrationQueueFullError: If the unregistration queue is full
        """
        try:
            self._unregister_queue.put_nowait(client_id)
        except asyncio.QueueFull:
            raise UnregistrationQueueFullError() from None
        self._wakeup.set()

    def broadcast(self, message: BroadcastMessage) -> None:
        """
        Queue an event for delivery.

        Raises:
            BroadcastQueueFullError: If the broadcast queue is full
            SSEServiceNotRunningError: If the hub is shutting down
        """
        self._ensure_accepting()
        try:
            self._broadcast_queue.put_nowait(message)
        except asyncio.QueueFull:
            raise BroadcastQueueFullError() from None
        self._wakeup.set()

    def shutdown(self) -> None:
        """Ask the hub to stop. Repeated calls have no effect."""
        with self._lock:
            if self._shutdown_requested:
                return
            self._shutdown_requested = True
            never_started = self._state == HubState.CREATED
            if self._state == HubState.RUNNING:
                self._state = HubState.SHUTTING_DOWN

        self.logger.info("SSE hub shutdown requested")
        if never_started:
            self._close_all()
        self._wakeup.set()

    # Event loop

    async def run(self) -> None:
        """
        Run the event loop until shutdown or cancellation.

        Drains registrations, then unregistrations, then broadcasts, and
        sends heartbeats on the configured interval.
        """
        with self._lock:
            if self._state == HubState.STOPPED:
                return
            if self._state != HubState.CREATED:
                raise RuntimeError("SSE hub is already running")
            self._state = HubState.RUNNING
            self._started_at = time.monotonic()

        loop = asyncio.get_running_loop()
        interval = self.config.heartbeat_interval
        next_heartbeat = loop.time() + interval

        self.logger.info(
            "SSE hub started",
            heartbeat_interval=interval,
            heartbeat_enabled=self.config.enable_heartbeat,
            max_clients=self.config.max_clients,
            max_clients_per_user=self.config.max_clients_per_user,
        )

        try:
            while not self._shutdown_requested:
                self._wakeup.clear()
                self._drain()
                if self._shutdown_requested:
                    break

                timeout: Optional[float] = None
                if self.config.enable_heartbeat:
                    now = loop.time()
                    if now >= next_heartbeat:
                        self._send_heartbeat()
                        next_heartbeat = now + interval
                    timeout = max(next_heartbeat - loop.time(), 0.0)

                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=timeout)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._close_all()

    def _drain(self) -> None:
        while not self._register_queue.empty():
            self._add_client(self._register_queue.get_nowait())
        while not self._unregister_queue.empty():
            client_id = self._unregister_queue.get_nowait()
            with self._lock:
                removed = self._remove_client(client_id)
            if removed:
                self.logger.debug("Client unregistered", client_id=client_id)
        while not self._broadcast_queue.empty():
            self._dispatch(self._broadcast_queue.get_nowait())

    def _admit(self, client: SSEClient) -> bool:
        """
        Apply admission control for a client. Caller holds the lock.

        Evicts the user's oldest clients while the per-user cap is reached.

        Returns:
            False if the global client cap is reached
        """
        max_clients = self.config.max_clients
        if max_clients > 0 and len(self._clients) >= max_clients:
            self.logger.warning(
                "Rejecting client, hub at capacity",
                client_id=client.id,
                user_id=client.user_id,
                max_clients=max_clients,
            )
            return False

        max_per_user = self.config.max_clients_per_user
        if max_per_user > 0:
            user_client_ids = self._user_clients.get(client.user_id, [])
            while len(user_client_ids) >= max_per_user:
                oldest_id = user_client_ids[0]
                self.logger.info(
                    "Evicting oldest client for user",
                    user_id=client.user_id,
                    evicted_client_id=oldest_id,
                    new_client_id=client.id,
                )
                if not self._remove_client(oldest_id):
                    user_client_ids.pop(0)
                user_client_ids = self._user_clients.get(client.user_id, [])
        return True

    def _add_client(self, client: SSEClient) -> None:
        if not client.connected:
            self.logger.debug("Skipping closed client", client_id=client.id)
            return
        with self._lock:
            # Registrations queued together were admitted against the same snapshot.
            if not self._admit(client):
                client.disconnect()
                return
            self._clients[client.id] = client
            self._user_clients.setdefault(client.user_id, []).append(client.id)
            self._connections_opened += 1
            total = len(self._clients)
        self.logger.info(
            "Client registered",
            client_id=client.id,
            user_id=client.user_id,
            total_clients=total,
        )

    def _remove_client(self, client_id: str) -> bool:
        """Remove a client from both maps. Caller holds the lock."""
        client = self._clients.pop(client_id, None)
        if client is None:
            return False

        user_client_ids = self._user_clients.get(client.user_id, [])
        if client_id in user_client_ids:
            user_client_ids.remove(client_id)
        if not user_client_ids:
            self._user_clients.pop(client.user_id, None)

        client.disconnect()
        self._connections_closed += 1
        return True

    def _dispatch(self, message: BroadcastMessage) -> None:
        event = message.event.with_defaults()

        with self._lock:
            if message.client_ids:
                targets = [
                    self._clients[cid]
                    for cid in dict.fromkeys(message.client_ids)
                    if cid in self._clients
                ]
            elif message.user_ids:
                targets = [
                    self._clients[cid]
                    for uid in dict.fromkeys(message.user_ids)
                    for cid in self._user_clients.get(uid, [])
                ]
            else:
                targets = list(self._clients.values())

            sent = dropped = 0
            for client in targets:
                if client.try_send(event):
                    sent += 1
                else:
                    dropped += 1
            self._events_sent += sent
            self._events_dropped += dropped

        if dropped:
            self.logger.debug(
                "Dropped events for slow clients",
                event_id=event.id,
                event_type=event.type,
                dropped=dropped,
            )

    def _send_heartbeat(self) -> None:
        self._dispatch(BroadcastMessage(event=create_heartbeat_event()))
        with self._lock:
            self._last_heartbeat = datetime.now(timezone.utc)

    def _close_all(self) -> None:
        with self._lock:
            self._state = HubState.SHUTTING_DOWN
            clients = list(self._clients.values())
            for client in clients:
                client.disconnect()
            self._connections_closed += len(clients)
            self._clients.clear()
            self._user_clients.clear()

            # Clients still waiting for registration would otherwise never close.
            while not self._register_queue.empty():
                self._register_queue.get_nowait().disconnect()

            self._state = HubState.STOPPED

        self.logger.info("SSE hub stopped", disconnected_clients=len(clients))

    # Readers

    def get_client(self, client_id: str) -> Optional[SSEClient]:
        with self._lock:
            return self._clients.get(client_id)

    def get_user_clients(self, user_id: str) -> List[SSEClient]:
        with self._lock:
            return [self._clients[cid] for cid in self._user_clients.get(user_id, [])]

    def get_user_client_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._user_clients.get(user_id, []))

    def get_connected_users(self) -> List[str]:
        with self._lock:
            return list(self._user_clients)

    def get_total_client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def get_stats(self) -> HubStats:
        """Snapshot of hub statistics."""
        with self._lock:
            uptime = 0.0
            if self._started_at is not None:
                uptime = time.monotonic() - self._started_at
            return HubStats(
                total_clients=len(self._clients),
                connected_users=len(self._user_clients),
                clients_per_user={
                    user_id: len(ids) for user_id, ids in self._user_clients.items()
                },
                events_sent=self._events_sent,
                events_dropped=self._events_dropped,
                connections_opened=self._connections_opened,
                connections_closed=self._connections_closed,
                uptime=uptime,
                last_heartbeat=self._last_heartbeat,
            )
