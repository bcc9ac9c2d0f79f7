"""
FastAPI Application
===================

Application factory assembling the kit modules, and the development
server entry point.
"""

from typing import List, Optional, Sequence

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from saaskit.config.settings import get_settings, Settings
from saaskit.config.logging import get_logger
from saaskit.core.kit import Builder, Module

from saaskit.api.routes.health import HealthModule
from saaskit.api.routes.sse import SSEModule

logger = get_logger(__name__)


def default_modules(settings: Settings) -> List[Module]:
    """Modules mounted when the caller does not supply its own."""
    modules: List[Module] = []
    if settings.sse_enabled:
        modules.append(SSEModule(settings))
    modules.append(HealthModule(settings, use_sse=settings.sse_enabled))
    return modules


def create_app(
    settings: Optional[Settings] = None, modules: Optional[Sequence[Module]] = None
) -> FastAPI:
    """
    Application factory function for creating FastAPI app instance.

    Args:
        settings: Settings to build with, the global settings when omitted
        modules: Modules to mount, `default_modules(settings)` when omitted

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()
    if modules is None:
        modules = default_modules(settings)

    app = Builder(settings).with_modules(*modules).build()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    logger.info(
        "Application created",
        environment=settings.environment,
        modules=app.state.kit.mount_order,
    )
    return app


app = create_app()


def main() -> None:
    """Run development server."""
    settings = get_settings()
    uvicorn.run(
        "saaskit.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=None if settings.debug else settings.workers,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
