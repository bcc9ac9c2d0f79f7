"""
SSE Routes
==========

Kit module exposing Server-Sent Events streaming, broadcasting,
introspection and lifecycle endpoints.
"""

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse, StreamingResponse

from saaskit.api.auth import identify_user, validate_api_key
from saaskit.api.sse.models import BroadcastRequest, EventRequest, HubConfig
from saaskit.api.sse.service import SSEService
from saaskit.config.logging import get_logger
from saaskit.config.settings import Settings, get_settings
from saaskit.core.errors import BadRequestError, ClientNotFoundError
from saaskit.core.kit import BaseModule, Route
from saaskit.core.responses import success

logger = get_logger(__name__)


class SSEModule(BaseModule):
    """
    Server-Sent Events module.

    Owns an `SSEService`; the hub starts with the application and stops
    with it. Administrative routes require an API key.
    """

    def __init__(self, settings: Optional[Settings] = None, service: Optional[SSEService] = None):
        super().__init__("sse")
        self.settings = settings or get_settings()
        self.service = service or SSEService(HubConfig.from_settings(self.settings))
        self.prefix = self.settings.sse_route_prefix

        admin = (validate_api_key,)
        self.add_routes(
            [
                Route("GET", self._path("/stream"), self.stream, (identify_user,),
                      name="sse.stream", description="Open an event stream"),
                Route("POST", self._path("/broadcast"), self.broadcast, admin,
                      name="sse.broadcast", description="Broadcast to all clients"),
                Route("POST", self._path("/broadcast/user/{user_id}"), self.broadcast_user, admin,
                      name="sse.broadcast_user", description="Broadcast to one user"),
                Route("POST", self._path("/broadcast/users"), self.broadcast_users, admin,
                      name="sse.broadcast_users", description="Broadcast to several users"),
                Route("POST", self._path("/broadcast/client/{client_id}"), self.broadcast_client,
                      admin, name="sse.broadcast_client", description="Send to one client"),
                Route("GET", self._path("/stats"), self.stats,
                      name="sse.stats", description="Hub statistics"),
                Route("GET", self._path("/users"), self.users,
                      name="sse.users", description="Connected users"),
                Route("GET", self._path("/users/{user_id}/clients"), self.user_clients,
                      name="sse.user_clients", description="Clients of a user"),
                Route("GET", self._path("/clients/{client_id}"), self.client,
                      name="sse.client", description="Client details"),
                Route("POST", self._path("/start"), self.start, admin,
                      name="sse.start", description="Start the SSE service"),
                Route("POST", self._path("/stop"), self.stop, admin,
                      name="sse.stop", description="Stop the SSE service"),
                Route("GET", self._path("/status"), self.status,
                      name="sse.status", description="SSE service status"),
            ]
        )

    def _path(self, path: str) -> str:
        return self.prefix + path

    async def startup(self) -> None:
        if not self.service.is_running:
            await self.service.start()

    async def shutdown(self) -> None:
        if self.service.is_running:
            await self.service.stop()

    # Streaming

    async def stream(self, request: Request) -> StreamingResponse:
        """Establish an SSE stream for the authenticated user."""
        return self.service.open_stream(request)

    # Broadcasting

    async def broadcast(self, body: EventRequest) -> JSONResponse:
        event = self.service.send_to_all(body.to_event())
        return success({"event_id": event.id}, "Event broadcast to all clients")

    async def broadcast_user(self, user_id: str, body: EventRequest) -> JSONResponse:
        event = self.service.send_to_user(user_id, body.to_event())
        return success({"event_id": event.id, "user_id": user_id}, "Event sent to user")

    async def broadcast_users(self, body: BroadcastRequest) -> JSONResponse:
        if not body.user_ids:
            raise BadRequestError("user_ids must not be empty")
        event = self.service.send_to_users(body.user_ids, body.event.to_event())
        return success({"event_id": event.id, "user_ids": body.user_ids}, "Event sent to users")

    async def broadcast_client(self, client_id: str, body: EventRequest) -> JSONResponse:
        event = self.service.send_to_client(client_id, body.to_event())
        return success({"event_id": event.id, "client_id": client_id}, "Event sent to client")

    # Introspection

    async def stats(self) -> JSONResponse:
        return success(self.service.get_stats())

    async def users(self) -> JSONResponse:
        users = self.service.get_connected_users()
        return success({"users": users, "count": len(users)})

    async def user_clients(self, user_id: str) -> JSONResponse:
        clients = [client.to_info() for client in self.service.get_user_clients(user_id)]
        return success({"user_id": user_id, "clients": clients, "count": len(clients)})

    async def client(self, client_id: str) -> JSONResponse:
        client = self.service.get_client(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        return success(client.to_info())

    # Lifecycle

    async def start(self) -> JSONResponse:
        await self.service.start()
        logger.info("SSE service started via API")
        return success({"running": True}, "SSE service started")

    async def stop(self) -> JSONResponse:
        await self.service.stop()
        logger.info("SSE service stopped via API")
        return success({"running": False}, "SSE service stopped")

    async def status(self) -> JSONResponse:
        return success(
            {
                "running": self.service.is_running,
                "total_clients": self.service.get_total_client_count(),
                "connected_users": len(self.service.get_connected_users()),
            }
        )
