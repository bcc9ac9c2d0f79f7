"""
Health Service
==============

Runs registered health checkers and aggregates their results.
"""

import asyncio
import time
from typing import Dict, List, Optional

from saaskit.config.logging import get_logger
from saaskit.core.errors import NotFoundError

from .checkers import Checker
from .models import CheckResult, HealthReport, HealthStatus

logger = get_logger(__name__)


class HealthService:
    """
    Registry of health checkers.

    Every check runs under `timeout` seconds; a check that times out or
    raises is reported as down. The overall status is down when a
    critical check is down, degraded when any other check is not ok.
    """

    def __init__(self, version: str, timeout: float = 5.0):
        self.version = version
        self.timeout = timeout
        self._checkers: Dict[str, Checker] = {}
        self._last_report: Optional[HealthReport] = None
        self._started_at = time.monotonic()
        self.logger = logger.bind(component="health")

    @property
    def checkers(self) -> List[str]:
        return list(self._checkers)

    @property
    def last_report(self) -> Optional[HealthReport]:
        return self._last_report

    @property
    def uptime(self) -> float:
        return time.monotonic() - self._started_at

    def register_checker(self, checker: Checker) -> None:
        """Add or replace a checker by name."""
        self._checkers[checker.name] = checker

    def unregister_checker(self, name: str) -> None:
        self._checkers.pop(name, None)

    async def check(self, name: str) -> CheckResult:
        """
        Run a single checker.

        Raises:
            NotFoundError: If no checker has that name
        """
        checker = self._checkers.get(name)
        if checker is None:
            raise NotFoundError(f"health checker {name} not found")
        return await self._run(checker)

    async def _run(self, checker: Checker) -> CheckResult:
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(checker.check(), timeout=self.timeout)
        except asyncio.TimeoutError:
            result = checker.result(HealthStatus.DOWN, f"check timed out after {self.timeout}s")
        except Exception as e:
            self.logger.error("Health check failed", checker=checker.name, error=str(e))
            result = checker.result(HealthStatus.DOWN, str(e))

        result.duration_ms = (time.perf_counter() - started) * 1000
        if result.status != HealthStatus.OK:
            self.logger.warning(
                "Health check not ok",
                checker=checker.name,
                status=result.status.value,
                message=result.message,
            )
        return result

    async def check_all(self) -> HealthReport:
        """Run every checker concurrently and aggregate the results."""
        checkers = list(self._checkers.values())
        results = await asyncio.gather(*(self._run(checker) for checker in checkers))

        status = HealthStatus.OK
        for result in results:
            if result.status == HealthStatus.OK:
                continue
            if result.critical and result.status == HealthStatus.DOWN:
                status = HealthStatus.DOWN
                break
            status = HealthStatus.DEGRADED

        report = HealthReport(
            status=status,
            version=self.version,
            uptime=self.uptime,
            checks={result.name: result for result in results},
        )
        self._last_report = report
        return report

    def is_healthy(self) -> bool:
        """True when the last report exists and is not down."""
        return self._last_report is not None and self._last_report.status != HealthStatus.DOWN
