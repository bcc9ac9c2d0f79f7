"""
Module Kit
==========

Process-wide registry that validates, orders, initializes and mounts
modules onto a shared router.

Registration and mounting happen once, sequentially, during startup before
any request is served; the kit does no internal locking.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type

from saaskit.config.logging import get_logger
from saaskit.core.errors import (
    AlreadyMountedError,
    CircularDependencyError,
    DuplicateModuleError,
    ModuleInitError,
    UnresolvedDependencyError,
    UnsupportedMethodError,
)

from .module import HTTP_METHODS, Module, resolve_dependencies
from .router import Router

logger = get_logger(__name__)

BANNER_VERSION = "1.0.0"


@dataclass
class KitConfig:
    """Configuration for a kit instance."""

    # Log registrations and mounted routes
    debug: bool = False
    # Prefix prepended to every route path
    route_prefix: str = ""
    disable_startup_banner: bool = False
    # Exception class -> handler installed on the router
    error_handlers: Dict[Type[BaseException], Callable[..., Any]] = field(default_factory=dict)


class Kit:
    """
    Manages modules and their lifecycle.

    Handles:
    - Registration with dependency validation
    - Topological ordering of modules
    - Initialization, middleware installation and route binding
    - Startup and shutdown hooks of mounted modules
    """

    def __init__(self, router: Router, config: Optional[KitConfig] = None):
        self.router = router
        self.config = config or KitConfig()
        self._modules: Dict[str, Module] = {}
        self._registered: List[str] = []
        self._mount_order: List[str] = []
        self._started: List[str] = []
        self._mounted = False
        self.logger = logger.bind(component="kit")

        add_handler = getattr(self.router, "add_exception_handler", None)
        if add_handler is not None:
            for exc_class, handler in self.config.error_handlers.items():
                add_handler(exc_class, handler)

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def modules(self) -> Mapping[str, Module]:
        """Read-only view of registered modules keyed by name."""
        return MappingProxyType(self._modules)

    @property
    def registered(self) -> List[str]:
        """Module names in registration order."""
        return list(self._registered)

    @property
    def mount_order(self) -> List[str]:
        """Module names in the order they were mounted (empty before mount)."""
        return list(self._mount_order)

    def register(self, module: Module) -> None:
        """
        Register a module.

        Args:
            module: Module whose dependencies are all already registered

        Raises:
            AlreadyMountedError: If the kit has been mounted
            DuplicateModuleError: If a module with the same name exists
            UnresolvedDependencyError: If a dependency is not registered yet
        """
        if self._mounted:
            raise AlreadyMountedError("cannot register module after mounting")

        name = module.name
        if not name:
            raise ValueError("module name must not be empty")
        if name in self._modules:
            raise DuplicateModuleError(name)

        for dep in module.dependencies:
            if dep not in self._modules:
                raise UnresolvedDependencyError(name, dep)

        self._modules[name] = module
        self._registered.append(name)

        if self.config.debug:
            self.logger.debug("Registered module", module=name)

    def get(self, name: str) -> Optional[Module]:
        """Return a registered module, or None if unknown."""
        return self._modules.get(name)

    def mount(self) -> None:
        """
        Mount all registered modules.

        Modules are initialized in dependency order. Initialization of all
        modules completes before any middleware or route is bound, so a
        failed mount leaves the router untouched.

        Raises:
            AlreadyMountedError: If called twice
            CircularDependencyError: If the dependency graph has a cycle
            UnsupportedMethodError: If a route uses an unknown HTTP verb
            ModuleInitError: If a module's init raises
        """
        if self._mounted:
            raise AlreadyMountedError()

        order = self._sort_modules()

        for name in order:
            for route in self._modules[name].routes:
                if route.method not in HTTP_METHODS:
                    raise UnsupportedMethodError(route.method, self.config.route_prefix + route.path)

        for name in order:
            module = self._modules[name]
            try:
                module.init(resolve_dependencies(module, self._modules))
            except Exception as e:
                self.logger.error("Module initialization failed", module=name, error=str(e))
                raise ModuleInitError(name, e) from e

        for name in order:
            self._bind(self._modules[name])

        self._mount_order = order
        self._mounted = True

        if not self.config.disable_startup_banner:
            print(render_banner(self._modules.keys()))

    def _bind(self, module: Module) -> None:
        for mw in module.middleware:
            self.router.use(mw)

        binders = {
            "GET": self.router.get,
            "POST": self.router.post,
            "PUT": self.router.put,
            "DELETE": self.router.delete,
            "PATCH": self.router.patch,
            "HEAD": self.router.head,
            "OPTIONS": self.router.options,
        }
        for route in module.routes:
            path = self.config.route_prefix + route.path
            binders[route.method](
                path,
                route.handler,
                *route.middleware,
                name=route.name or None,
                description=route.description or None,
            )
            if self.config.debug:
                self.logger.debug("Mounted route", method=route.method, path=path, route=route.name)

        if self.config.debug:
            self.logger.debug("Mounted module", module=module.name)

    def _sort_modules(self) -> List[str]:
        """
        Depth-first topological sort.

        Roots are visited in registration order and dependencies in the
        order each module declares them, so the result is deterministic.
        """
        visited: set = set()
        in_progress: set = set()
        result: List[str] = []

        def visit(name: str) -> None:
            if name in in_progress:
                raise CircularDependencyError(name)
            if name in visited:
                return

            in_progress.add(name)
            for dep in self._modules[name].dependencies:
                if dep not in self._modules:
                    raise UnresolvedDependencyError(name, dep)
                visit(dep)
            in_progress.discard(name)

            visited.add(name)
            result.append(name)

        for name in self._registered:
            visit(name)

        return result

    async def startup(self) -> None:
        """
        Run module startup hooks in mount order.

        If a hook raises, modules that already started are shut down
        before the error propagates.
        """
        for name in self._mount_order:
            try:
                await self._modules[name].startup()
            except Exception as e:
                self.logger.error("Module startup failed", module=name, error=str(e))
                await self.shutdown()
                raise
            self._started.append(name)
            self.logger.info("Module started", module=name)

    async def shutdown(self) -> None:
        """Run shutdown hooks of started modules in reverse start order."""
        started, self._started = self._started, []
        for name in reversed(started):
            try:
                await self._modules[name].shutdown()
            except Exception as e:
                self.logger.error("Error shutting down module", module=name, error=str(e))


def render_banner(names: Sequence[str]) -> str:
    """Render the startup banner listing module names alphabetically."""
    lines = [
        "╔═══════════════════════════════════════╗",
        f"║ {f'SaaS Kit v{BANNER_VERSION}':^37} ║",
        "╠═══════════════════════════════════════╣",
        "║ Loaded Modules:                       ║",
    ]
    for name in sorted(names):
        lines.append(f"║   • {name:<33} ║")
    lines.append("╚═══════════════════════════════════════╝")
    return "\n".join(lines)
