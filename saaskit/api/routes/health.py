"""
Health Routes
=============

Kit module exposing health check endpoints.
"""

from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from fastapi import Request
from fastapi.responses import JSONResponse

from saaskit.config.settings import Settings, get_settings
from saaskit.core.health import Checker, DiskChecker, HealthService, HealthStatus, SSEHubChecker
from saaskit.core.kit import BaseModule, Module, Route
from saaskit.core.responses import error_response, success


class HealthModule(BaseModule):
    """
    Health check module.

    With `use_sse` the module depends on the `sse` module and registers a
    checker for its hub during initialization.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        use_sse: bool = False,
        checkers: Sequence[Checker] = (),
    ):
        super().__init__("health")
        self.settings = settings or get_settings()
        self.service = HealthService(
            version=self.settings.app_version, timeout=self.settings.health_check_timeout
        )
        self.service.register_checker(DiskChecker())
        for checker in checkers:
            self.service.register_checker(checker)

        if use_sse:
            self.add_dependency("sse")

        prefix = self.settings.health_route_prefix or "/health"
        self.add_route(Route("GET", prefix, self.check, name="health.check",
                             description="Basic health check"))
        self.add_route(Route("GET", f"{prefix}/live", self.live, name="health.live",
                             description="Liveness probe"))
        self.add_route(Route("GET", f"{prefix}/ready", self.ready, name="health.ready",
                             description="Readiness probe"))
        if self.settings.health_detailed:
            self.add_route(Route("GET", f"{prefix}/detailed", self.detailed,
                                 name="health.detailed", description="Detailed health report"))

    def init(self, deps: Mapping[str, Module]) -> None:
        sse = deps.get("sse")
        if sse is not None:
            self.service.register_checker(SSEHubChecker(getattr(sse, "service")))

    async def check(self) -> JSONResponse:
        """Basic health check endpoint."""
        return success(
            {
                "status": HealthStatus.OK.value,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "version": self.settings.app_version,
                "uptime": self.service.uptime,
            }
        )

    async def live(self) -> JSONResponse:
        return success({"status": HealthStatus.OK.value})

    async def ready(self, request: Request) -> JSONResponse:
        report = await self.service.check_all()
        if not self.service.is_healthy():
            return error_response(
                request,
                503,
                "Service not ready",
                "SERVICE_NOT_READY",
                report.model_dump(mode="json"),
            )
        return success(report)

    async def detailed(self) -> JSONResponse:
        return success(await self.service.check_all())
