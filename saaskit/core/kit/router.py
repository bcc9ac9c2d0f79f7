"""
Router abstraction consumed by the kit.

The kit only needs verb-based route registration, a mutable global
middleware chain and exception handler installation. `FastAPIRouter`
provides those on top of a FastAPI application.
"""

from typing import Any, Callable, Optional, Protocol, Type

from fastapi import Depends, FastAPI
from starlette.middleware import Middleware as StarletteMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from .module import Handler, Middleware


class Router(Protocol):
    """Verb-based route registration plus a global middleware chain."""

    def get(self, path: str, handler: Handler, *middleware: Middleware, name: Optional[str] = None, description: Optional[str] = None) -> None: ...

    def post(self, path: str, handler: Handler, *middleware: Middleware, name: Optional[str] = None, description: Optional[str] = None) -> None: ...

    def put(self, path: str, handler: Handler, *middleware: Middleware, name: Optional[str] = None, description: Optional[str] = None) -> None: ...

    def delete(self, path: str, handler: Handler, *middleware: Middleware, name: Optional[str] = None, description: Optional[str] = None) -> None: ...

    def patch(self, path: str, handler: Handler, *middleware: Middleware, name: Optional[str] = None, description: Optional[str] = None) -> None: ...

    def head(self, path: str, handler: Handler, *middleware: Middleware, name: Optional[str] = None, description: Optional[str] = None) -> None: ...

    def options(self, path: str, handler: Handler, *middleware: Middleware, name: Optional[str] = None, description: Optional[str] = None) -> None: ...

    def use(self, middleware: Middleware) -> None: ...

    def add_exception_handler(self, exc_class: Type[BaseException], handler: Callable[..., Any]) -> None: ...


class FastAPIRouter:
    """
    Router backed by a FastAPI application.

    Per-route middleware are bound as FastAPI dependencies. Global
    middleware are `async def dispatch(request, call_next)` callables and
    keep the order they were added in: the first one used is the outermost.
    """

    def __init__(self, app: FastAPI):
        self.app = app

    def _add(
        self,
        method: str,
        path: str,
        handler: Handler,
        middleware: tuple,
        name: Optional[str],
        description: Optional[str],
    ) -> None:
        self.app.add_api_route(
            path,
            handler,
            methods=[method],
            name=name or None,
            description=description or None,
            dependencies=[Depends(mw) for mw in middleware],
        )

    def get(self, path, handler, *middleware, name=None, description=None) -> None:
        self._add("GET", path, handler, middleware, name, description)

    def post(self, path, handler, *middleware, name=None, description=None) -> None:
        self._add("POST", path, handler, middleware, name, description)

    def put(self, path, handler, *middleware, name=None, description=None) -> None:
        self._add("PUT", path, handler, middleware, name, description)

    def delete(self, path, handler, *middleware, name=None, description=None) -> None:
        self._add("DELETE", path, handler, middleware, name, description)

    def patch(self, path, handler, *middleware, name=None, description=None) -> None:
        self._add("PATCH", path, handler, middleware, name, description)

    def head(self, path, handler, *middleware, name=None, description=None) -> None:
        self._add("HEAD", path, handler, middleware, name, description)

    def options(self, path, handler, *middleware, name=None, description=None) -> None:
        self._add("OPTIONS", path, handler, middleware, name, description)

    def use(self, middleware: Middleware) -> None:
        if self.app.middleware_stack is not None:
            raise RuntimeError("Cannot add middleware after an application has started")
        # app.add_middleware prepends; appending keeps first-used outermost
        self.app.user_middleware.append(StarletteMiddleware(BaseHTTPMiddleware, dispatch=middleware))

    def add_exception_handler(self, exc_class: Type[BaseException], handler: Callable[..., Any]) -> None:
        self.app.add_exception_handler(exc_class, handler)
