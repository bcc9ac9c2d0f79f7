"""
Test Helpers
============

Helper functions for common testing operations.
"""

import asyncio
import json
import time
from typing import Any, Callable, Dict, List

from saaskit.api.sse.client import SSEClient
from saaskit.api.sse.events import SSEEvent
from saaskit.config.settings import Settings

TEST_API_KEY = "test-api-key-123"


def make_settings(**overrides) -> Settings:
    """Settings for tests: no banner, no heartbeats, API keys enforced."""
    values = dict(
        environment="testing",
        debug=True,
        disable_startup_banner=True,
        skip_api_key_validation=False,
        api_keys=[TEST_API_KEY],
        sse_enable_heartbeat=False,
        log_level="DEBUG",
    )
    values.update(overrides)
    return Settings(**values)


async def wait_for_condition(
    condition: Callable[[], bool],
    timeout: float = 5.0,
    interval: float = 0.01,
    error_message: str = "Condition not met within timeout",
) -> None:
    """Wait for a condition to become true."""
    start_time = time.time()

    while time.time() - start_time < timeout:
        if condition():
            return
        await asyncio.sleep(interval)

    raise TimeoutError(error_message)


async def drain_events(client: SSEClient) -> List[SSEEvent]:
    """Collect the events currently buffered for a client without blocking."""
    events: List[SSEEvent] = []
    while client.pending > 0:
        event = await client.receive()
        if event is None:
            break
        events.append(event)
    return events


def parse_sse_message(message: str) -> Dict[str, Any]:
    """Parse one wire-format SSE message into its fields."""
    fields: Dict[str, Any] = {}
    for line in message.strip("\n").split("\n"):
        key, _, value = line.partition(": ")
        fields[key] = json.loads(value) if key == "data" else value
    return fields


def wait_until(condition: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> None:
    """Blocking variant of wait_for_condition for threads outside the event loop."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return
        time.sleep(interval)
    raise TimeoutError("Condition not met within timeout")
