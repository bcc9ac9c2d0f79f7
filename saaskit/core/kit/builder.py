"""
Fluent builder that assembles a FastAPI application from kit modules.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, List, Optional, Type

from fastapi import FastAPI

from saaskit.config.logging import get_logger
from saaskit.config.settings import Settings, get_settings
from saaskit.core.responses import DEFAULT_ERROR_HANDLERS, request_id_middleware

from .kit import Kit, KitConfig
from .module import Middleware, Module
from .router import FastAPIRouter

logger = get_logger(__name__)


@asynccontextmanager
async def kit_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Run the startup and shutdown hooks of the modules mounted on `app`."""
    kit: Kit = app.state.kit
    logger.info("Starting application modules", modules=kit.mount_order)
    try:
        await kit.startup()
        yield
    finally:
        logger.info("Shutting down application modules")
        await kit.shutdown()


class Builder:
    """
    Fluent interface for building a kit-backed application.

    Example:
        app = Builder().with_route_prefix("/api").with_module(HealthModule()).build()
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.config = KitConfig(
            debug=self.settings.debug,
            route_prefix=self.settings.route_prefix,
            disable_startup_banner=self.settings.disable_startup_banner,
            error_handlers=dict(DEFAULT_ERROR_HANDLERS),
        )
        self.modules: List[Module] = []
        self.middleware: List[Middleware] = [request_id_middleware]

    def with_settings(self, settings: Settings) -> "Builder":
        self.settings = settings
        self.config.debug = settings.debug
        self.config.route_prefix = settings.route_prefix
        self.config.disable_startup_banner = settings.disable_startup_banner
        return self

    def with_debug(self, debug: bool) -> "Builder":
        self.config.debug = debug
        return self

    def with_route_prefix(self, prefix: str) -> "Builder":
        self.config.route_prefix = prefix
        return self

    def with_startup_banner(self, enabled: bool) -> "Builder":
        self.config.disable_startup_banner = not enabled
        return self

    def with_module(self, module: Module) -> "Builder":
        self.modules.append(module)
        return self

    def with_modules(self, *modules: Module) -> "Builder":
        self.modules.extend(modules)
        return self

    def with_middleware(self, *middleware: Middleware) -> "Builder":
        """Add global middleware ahead of any module middleware."""
        self.middleware.extend(middleware)
        return self

    def with_error_handler(
        self, exc_class: Type[BaseException], handler: Callable[..., Any]
    ) -> "Builder":
        self.config.error_handlers[exc_class] = handler
        return self

    def build(self) -> FastAPI:
        """
        Register and mount all modules and return the application.

        Raises:
            KitError: If registration or mounting fails
        """
        app = FastAPI(
            title=self.settings.app_name,
            version=self.settings.app_version,
            lifespan=kit_lifespan,
            docs_url="/docs" if self.config.debug else None,
            redoc_url="/redoc" if self.config.debug else None,
        )

        router = FastAPIRouter(app)
        for mw in self.middleware:
            router.use(mw)

        kit = Kit(router, self.config)
        for module in self.modules:
            kit.register(module)
        kit.mount()

        app.state.kit = kit
        return app
