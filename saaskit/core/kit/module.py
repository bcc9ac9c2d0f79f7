"""
Module abstraction for the kit.

A module bundles routes, global middleware and initialization logic, and
names the other modules it depends on. Modules are constructed by the
caller, registered once, initialized once at mount time and live for the
whole process.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

HTTP_METHODS: Tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")

Handler = Callable[..., Any]
Middleware = Callable[..., Any]


@dataclass(frozen=True)
class Route:
    """
    A single route definition.

    `middleware` holds per-route hooks; with the FastAPI router they are
    bound as route dependencies. `name` follows the dotted `module.action`
    convention and `description` is for documentation only.
    """

    method: str
    path: str
    handler: Handler
    middleware: Tuple[Middleware, ...] = field(default_factory=tuple)
    name: str = ""
    description: str = ""


class Module(ABC):
    """
    Abstract base class for all kit modules.

    Subclasses must provide a unique `name`. Everything else has an empty
    default so simple modules only override what they use.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique module name within a kit."""
        pass

    @property
    def routes(self) -> Sequence[Route]:
        """Routes to bind on the shared router."""
        return ()

    @property
    def middleware(self) -> Sequence[Middleware]:
        """Global middleware appended to the router chain."""
        return ()

    @property
    def dependencies(self) -> Sequence[str]:
        """Names of modules that must be registered and initialized first."""
        return ()

    def init(self, deps: Mapping[str, "Module"]) -> None:
        """
        Initialize the module with its resolved dependencies.

        Args:
            deps: Mapping of dependency name to the already initialized module
        """
        pass

    async def startup(self) -> None:
        """Optional hook awaited once the application event loop is running."""
        pass

    async def shutdown(self) -> None:
        """Optional hook awaited on application shutdown."""
        pass


class BaseModule(Module):
    """Basic module implementation holding mutable route/middleware/dependency lists."""

    def __init__(self, name: str):
        self._name = name
        self._routes: List[Route] = []
        self._middleware: List[Middleware] = []
        self._dependencies: List[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def routes(self) -> List[Route]:
        return list(self._routes)

    @property
    def middleware(self) -> List[Middleware]:
        return list(self._middleware)

    @property
    def dependencies(self) -> List[str]:
        return list(self._dependencies)

    def add_route(self, route: Route) -> None:
        self._routes.append(route)

    def add_routes(self, routes: Sequence[Route]) -> None:
        self._routes.extend(routes)

    def add_middleware(self, middleware: Middleware) -> None:
        self._middleware.append(middleware)

    def add_dependency(self, dependency: str) -> None:
        self._dependencies.append(dependency)


def resolve_dependencies(module: Module, modules: Dict[str, Module]) -> Dict[str, Module]:
    """Build the `{name: module}` mapping passed to `Module.init`."""
    return {dep: modules[dep] for dep in module.dependencies}
