"""
Health Checkers
===============

Checker interface and the built-in checkers.
"""

import inspect
import shutil
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TYPE_CHECKING

from .models import CheckResult, HealthStatus

if TYPE_CHECKING:
    from saaskit.api.sse.service import SSEService


class Checker(ABC):
    """Abstract base class for health checkers."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    def critical(self) -> bool:
        """A critical checker that is down takes the whole application down."""
        return False

    @abstractmethod
    async def check(self) -> CheckResult:
        pass

    def result(self, status: HealthStatus, message: Optional[str] = None, **details: Any) -> CheckResult:
        return CheckResult(
            name=self.name,
            status=status,
            message=message,
            critical=self.critical,
            details=details,
        )


class CustomChecker(Checker):
    """
    Checker backed by a plain callable.

    The callable may be sync or async. Returning normally (or True) means
    ok, returning False means down and raising means down with the error
    as message.
    """

    def __init__(self, name: str, func: Callable[[], Any], critical: bool = False):
        self._name = name
        self._func = func
        self._critical = critical

    @property
    def name(self) -> str:
        return self._name

    @property
    def critical(self) -> bool:
        return self._critical

    async def check(self) -> CheckResult:
        try:
            outcome = self._func()
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            return self.result(HealthStatus.DOWN, str(e))

        if outcome is False:
            return self.result(HealthStatus.DOWN, "check failed")
        return self.result(HealthStatus.OK)


class DiskChecker(Checker):
    """Reports down when free disk space drops below a percentage."""

    def __init__(self, path: str = "/", min_free_percent: float = 10.0, critical: bool = False):
        self.path = path
        self.min_free_percent = min_free_percent
        self._critical = critical

    @property
    def name(self) -> str:
        return "disk"

    @property
    def critical(self) -> bool:
        return self._critical

    async def check(self) -> CheckResult:
        try:
            usage = shutil.disk_usage(self.path)
        except OSError as e:
            return self.result(HealthStatus.DOWN, str(e), path=self.path)

        free_percent = usage.free / usage.total * 100 if usage.total else 0.0
        details = {
            "path": self.path,
            "total_bytes": usage.total,
            "free_bytes": usage.free,
            "free_percent": round(free_percent, 2),
        }
        if free_percent < self.min_free_percent:
            return self.result(HealthStatus.DOWN, "low disk space", **details)
        return self.result(HealthStatus.OK, **details)


class SSEHubChecker(Checker):
    """Reports on the SSE service: down when stopped, degraded at capacity."""

    def __init__(self, service: "SSEService", critical: bool = False):
        self.service = service
        self._critical = critical

    @property
    def name(self) -> str:
        return "sse"

    @property
    def critical(self) -> bool:
        return self._critical

    async def check(self) -> CheckResult:
        if not self.service.is_running:
            return self.result(HealthStatus.DOWN, "SSE service is not running")

        stats = self.service.get_stats()
        max_clients = self.service.config.max_clients
        details = {
            "total_clients": stats.total_clients,
            "connected_users": stats.connected_users,
            "max_clients": max_clients,
            "events_dropped": stats.events_dropped,
        }
        if max_clients > 0 and stats.total_clients >= max_clients:
            return self.result(HealthStatus.DEGRADED, "SSE hub at client capacity", **details)
        return self.result(HealthStatus.OK, **details)
