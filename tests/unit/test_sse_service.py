"""
SSE Service Tests
=================

Service lifecycle, targeted delivery and the per-client event stream.
"""

import asyncio
from types import SimpleNamespace

import pytest
from starlette.requests import ClientDisconnect

from saaskit.api.sse.client import SSEClient
from saaskit.api.sse.events import SSEEvent
from saaskit.api.sse.hub import HubState
from saaskit.api.sse.models import HubConfig
from saaskit.api.sse.service import SSEService
from saaskit.core.errors import (
    SSEServiceAlreadyRunningError,
    SSEServiceNotRunningError,
    SSEUnauthorizedError,
)
from tests.utils.helpers import parse_sse_message, wait_for_condition


def fake_request(**state) -> SimpleNamespace:
    return SimpleNamespace(
        state=SimpleNamespace(**state),
        client=SimpleNamespace(host="127.0.0.1"),
        headers={"user-agent": "pytest"},
    )


async def connect(service: SSEService, user_id: str) -> SSEClient:
    client = SSEClient(user_id, service.config.buffer_size)
    service.hub.register_client(client)
    await wait_for_condition(lambda: service.get_client(client.id) is not None)
    return client


@pytest.mark.unit
@pytest.mark.sse
class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        service = SSEService(HubConfig(enable_heartbeat=False))
        assert not service.is_running

        await service.start()
        assert service.is_running

        await service.stop()
        assert not service.is_running
        assert service.hub.state == HubState.STOPPED

    @pytest.mark.asyncio
    async def test_start_twice_fails(self, sse_service: SSEService):
        with pytest.raises(SSEServiceAlreadyRunningError):
            await sse_service.start()

    @pytest.mark.asyncio
    async def test_stop_when_stopped_fails(self):
        service = SSEService()

        with pytest.raises(SSEServiceNotRunningError):
            await service.stop()

    @pytest.mark.asyncio
    async def test_restart_uses_fresh_hub(self, sse_service: SSEService):
        old_hub = sse_service.hub
        await sse_service.stop()

        await sse_service.start()

        assert sse_service.hub is not old_hub
        assert sse_service.is_running

    @pytest.mark.asyncio
    async def test_stop_disconnects_clients(self, sse_service: SSEService):
        client = await connect(sse_service, "u1")

        await sse_service.stop()

        assert not client.connected


@pytest.mark.unit
@pytest.mark.sse
class TestDelivery:
    @pytest.mark.asyncio
    async def test_send_requires_running_service(self):
        service = SSEService()

        with pytest.raises(SSEServiceNotRunningError):
            service.send_to_all(SSEEvent(type="ping"))

    @pytest.mark.asyncio
    async def test_send_to_user_defaults_event(self, sse_service: SSEService):
        client = await connect(sse_service, "u1")

        event = sse_service.send_to_user("u1", SSEEvent(type="ping"))
        await wait_for_condition(lambda: client.pending == 1)

        assert event.id
        assert (await client.receive()).id == event.id

    @pytest.mark.asyncio
    async def test_send_to_users_and_client(self, sse_service: SSEService):
        a = await connect(sse_service, "a")
        b = await connect(sse_service, "b")
        c = await connect(sse_service, "c")

        sse_service.send_to_users(["a", "b"], SSEEvent(type="group"))
        sse_service.send_to_client(c.id, SSEEvent(type="direct"))
        await wait_for_condition(lambda: sse_service.get_stats().events_sent == 3)

        assert (await a.receive()).type == "group"
        assert (await b.receive()).type == "group"
        assert (await c.receive()).type == "direct"

    @pytest.mark.asyncio
    async def test_statistics(self, sse_service: SSEService):
        await connect(sse_service, "a")
        await connect(sse_service, "a")
        await connect(sse_service, "b")

        assert sse_service.get_total_client_count() == 3
        assert sse_service.get_user_client_count("a") == 2
        assert sorted(sse_service.get_connected_users()) == ["a", "b"]
        assert len(sse_service.get_user_clients("a")) == 2


@pytest.mark.unit
@pytest.mark.sse
class TestStreaming:
    def test_extract_user_id(self):
        assert SSEService.extract_user_id(fake_request(user_id="u1")) == "u1"
        assert SSEService.extract_user_id(fake_request(account_id="acct")) == "acct"

    @pytest.mark.parametrize("state", [{}, {"user_id": ""}, {"user_id": None}])
    def test_extract_user_id_missing(self, state):
        with pytest.raises(SSEUnauthorizedError):
            SSEService.extract_user_id(fake_request(**state))

    @pytest.mark.asyncio
    async def test_open_stream_requires_running_service(self):
        service = SSEService()

        with pytest.raises(SSEServiceNotRunningError):
            service.open_stream(fake_request(user_id="u1"))

    @pytest.mark.asyncio
    async def test_open_stream_requires_user(self, sse_service: SSEService):
        with pytest.raises(SSEUnauthorizedError):
            sse_service.open_stream(fake_request())

        assert sse_service.get_total_client_count() == 0

    @pytest.mark.asyncio
    async def test_open_stream_headers(self, sse_service: SSEService):
        response = sse_service.open_stream(fake_request(user_id="u1"))
        client_id = response.headers["x-client-id"]

        assert response.media_type == "text/event-stream"
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["connection"] == "keep-alive"
        assert response.headers["x-accel-buffering"] == "no"
        await wait_for_condition(lambda: sse_service.get_client(client_id) is not None)

        client = sse_service.get_client(client_id)
        assert client.user_id == "u1"
        assert client.get_metadata()["user_agent"] == "pytest"
        client.disconnect()

    @pytest.mark.asyncio
    async def test_event_stream_yields_wire_format(self, sse_service: SSEService):
        response = sse_service.open_stream(fake_request(user_id="u1"))
        client_id = response.headers["x-client-id"]
        stream = response.body_iterator

        connected = parse_sse_message(await stream.__anext__())
        assert connected["event"] == "connected"
        assert connected["data"]["client_id"] == client_id

        await wait_for_condition(lambda: sse_service.get_client(client_id) is not None)
        sse_service.send_to_client(client_id, SSEEvent(type="ping", data={"n": 1}))
        ping = parse_sse_message(await asyncio.wait_for(stream.__anext__(), timeout=2))

        assert ping["event"] == "ping"
        assert ping["data"] == {"n": 1}
        assert ping["id"]
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_stream_closed_by_client_unregisters(self, sse_service: SSEService):
        client = await connect(sse_service, "u1")
        stream = sse_service.event_stream(client)
        client.try_send(SSEEvent(type="hello").with_defaults())
        await stream.__anext__()

        await stream.aclose()

        assert not client.connected
        await wait_for_condition(lambda: sse_service.get_client(client.id) is None)

    @pytest.mark.asyncio
    async def test_stream_ends_on_hub_shutdown(self, sse_service: SSEService):
        client = await connect(sse_service, "u1")
        chunks = []

        async def consume():
            async for chunk in sse_service.event_stream(client):
                chunks.append(chunk)

        consumer = asyncio.create_task(consume())
        await sse_service.stop()

        await asyncio.wait_for(consumer, timeout=2)
        assert chunks == []

    @pytest.mark.asyncio
    async def test_peer_dropping_before_body_releases_client(self, sse_service: SSEService):
        response = sse_service.open_stream(fake_request(user_id="u1"))
        client_id = response.headers["x-client-id"]
        await wait_for_condition(lambda: sse_service.get_client(client_id) is not None)
        client = sse_service.get_client(client_id)

        async def receive():
            return {"type": "http.disconnect"}

        async def send(message):
            raise OSError("connection reset by peer")

        scope = {"type": "http", "asgi": {"spec_version": "2.4"}}
        with pytest.raises((ClientDisconnect, OSError)):
            await response(scope, receive, send)

        assert not client.connected
        await wait_for_condition(lambda: sse_service.get_client(client_id) is None)
        assert sse_service.get_user_client_count("u1") == 0
