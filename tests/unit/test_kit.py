"""
Module Kit Tests
================

Registration, dependency ordering, initialization and mounting.
"""

from typing import List, Mapping, Sequence

import pytest
from fastapi import FastAPI

from saaskit.core.errors import (
    AlreadyMountedError,
    CircularDependencyError,
    DuplicateModuleError,
    ModuleInitError,
    UnresolvedDependencyError,
    UnsupportedMethodError,
)
from saaskit.core.kit import BaseModule, FastAPIRouter, Kit, KitConfig, Module, Route, render_banner


async def ok_handler() -> dict:
    return {"ok": True}


class RecordingModule(BaseModule):
    """Module that records init, startup and shutdown calls into a shared log."""

    def __init__(self, name: str, log: List[str], deps: Sequence[str] = (), fail: bool = False):
        super().__init__(name)
        self.log = log
        self.fail = fail
        self.init_deps: Mapping[str, Module] = {}
        for dep in deps:
            self.add_dependency(dep)
        self.add_route(Route("GET", f"/{name}", ok_handler, name=f"{name}.get"))

    def init(self, deps: Mapping[str, Module]) -> None:
        if self.fail:
            raise RuntimeError(f"{self.name} exploded")
        # Every dependency must already be initialized
        for dep in self.dependencies:
            assert f"init:{dep}" in self.log
        self.init_deps = deps
        self.log.append(f"init:{self.name}")

    async def startup(self) -> None:
        self.log.append(f"startup:{self.name}")

    async def shutdown(self) -> None:
        self.log.append(f"shutdown:{self.name}")


def new_app() -> FastAPI:
    return FastAPI(docs_url=None, redoc_url=None, openapi_url=None)


def route_paths(app: FastAPI) -> List[str]:
    return [route.path for route in app.routes]


def make_kit(app: FastAPI = None, **config) -> Kit:
    config.setdefault("disable_startup_banner", True)
    return Kit(FastAPIRouter(app or new_app()), KitConfig(**config))


@pytest.mark.unit
@pytest.mark.kit
class TestRegistration:
    def test_register_in_order(self):
        log: List[str] = []
        kit = make_kit()
        kit.register(RecordingModule("a", log))
        kit.register(RecordingModule("b", log, deps=["a"]))

        assert kit.registered == ["a", "b"]
        assert set(kit.modules) == {"a", "b"}
        assert kit.get("a").name == "a"
        assert kit.get("missing") is None

    def test_duplicate_module(self):
        kit = make_kit()
        kit.register(RecordingModule("a", []))
        with pytest.raises(DuplicateModuleError) as exc_info:
            kit.register(RecordingModule("a", []))
        assert exc_info.value.module == "a"

    def test_empty_name_rejected(self):
        kit = make_kit()
        with pytest.raises(ValueError):
            kit.register(BaseModule(""))

    def test_unresolved_dependency_leaves_kit_unchanged(self):
        kit = make_kit()
        kit.register(RecordingModule("a", []))

        with pytest.raises(UnresolvedDependencyError) as exc_info:
            kit.register(RecordingModule("b", [], deps=["a", "billing"]))

        assert exc_info.value.module == "b"
        assert exc_info.value.dependency == "billing"
        assert kit.registered == ["a"]
        assert set(kit.modules) == {"a"}

    def test_dependency_must_be_registered_first(self):
        kit = make_kit()
        with pytest.raises(UnresolvedDependencyError):
            kit.register(RecordingModule("b", [], deps=["a"]))

    def test_modules_view_is_read_only(self):
        kit = make_kit()
        kit.register(RecordingModule("a", []))
        with pytest.raises(TypeError):
            kit.modules["b"] = RecordingModule("b", [])  # type: ignore[index]


@pytest.mark.unit
@pytest.mark.kit
class TestMount:
    def test_chain_initialized_after_dependencies(self):
        log: List[str] = []
        kit = make_kit()
        kit.register(RecordingModule("a", log))
        kit.register(RecordingModule("b", log, deps=["a"]))
        kit.register(RecordingModule("c", log, deps=["b"]))

        kit.mount()

        assert log == ["init:a", "init:b", "init:c"]
        assert kit.mount_order == ["a", "b", "c"]
        assert kit.mounted

    def test_diamond_initializes_each_module_once(self):
        log: List[str] = []
        kit = make_kit()
        modules = {
            "core": RecordingModule("core", log),
            "auth": RecordingModule("auth", log, deps=["core"]),
            "billing": RecordingModule("billing", log, deps=["core"]),
            "admin": RecordingModule("admin", log, deps=["auth", "billing"]),
        }
        for module in modules.values():
            kit.register(module)

        kit.mount()

        assert log == ["init:core", "init:auth", "init:billing", "init:admin"]
        assert set(modules["admin"].init_deps) == {"auth", "billing"}
        assert modules["admin"].init_deps["auth"] is modules["auth"]

    def test_independent_modules_mount_in_registration_order(self):
        log: List[str] = []
        kit = make_kit()
        for name in ["zeta", "alpha", "mid"]:
            kit.register(RecordingModule(name, log))

        kit.mount()

        assert kit.mount_order == ["zeta", "alpha", "mid"]

    def test_routes_bound_with_prefix(self):
        app = new_app()
        kit = make_kit(app, route_prefix="/api")
        kit.register(RecordingModule("a", []))
        kit.mount()

        assert "/api/a" in route_paths(app)
        named = {route.name: route for route in app.routes}
        assert named["a.get"].methods == {"GET"}

    def test_all_http_methods_bound(self):
        app = new_app()
        module = BaseModule("verbs")
        for method in ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]:
            module.add_route(Route(method, f"/{method.lower()}", ok_handler))
        kit = make_kit(app)
        kit.register(module)
        kit.mount()

        methods = {route.path: route.methods for route in app.routes}
        assert methods["/put"] == {"PUT"}
        assert methods["/options"] == {"OPTIONS"}

    def test_module_middleware_installed(self):
        app = new_app()

        async def passthrough(request, call_next):
            return await call_next(request)

        module = BaseModule("mw")
        module.add_middleware(passthrough)
        kit = make_kit(app)
        kit.register(module)
        kit.mount()

        assert any(mw.kwargs.get("dispatch") is passthrough for mw in app.user_middleware)

    def test_mount_twice_fails(self):
        kit = make_kit()
        kit.register(RecordingModule("a", []))
        kit.mount()

        with pytest.raises(AlreadyMountedError):
            kit.mount()

    def test_register_after_mount_fails(self):
        kit = make_kit()
        kit.mount()

        with pytest.raises(AlreadyMountedError):
            kit.register(RecordingModule("late", []))

    def test_cycle_detected_without_initialization(self):
        log: List[str] = []
        app = new_app()
        kit = make_kit(app)
        a = RecordingModule("a", log)
        kit.register(a)
        kit.register(RecordingModule("b", log, deps=["a"]))
        kit.register(RecordingModule("c", log, deps=["b"]))
        a.add_dependency("c")

        with pytest.raises(CircularDependencyError):
            kit.mount()

        assert log == []
        assert not kit.mounted
        assert route_paths(app) == []

    def test_self_dependency_detected(self):
        log: List[str] = []
        kit = make_kit()
        a = RecordingModule("a", log)
        kit.register(a)
        a.add_dependency("a")

        with pytest.raises(CircularDependencyError) as exc_info:
            kit.mount()

        assert exc_info.value.module == "a"
        assert log == []

    def test_dependency_added_after_registration_unresolved(self):
        kit = make_kit()
        a = RecordingModule("a", [])
        kit.register(a)
        a.add_dependency("ghost")

        with pytest.raises(UnresolvedDependencyError):
            kit.mount()

    def test_unsupported_method_fails_before_init(self):
        log: List[str] = []
        app = new_app()
        kit = make_kit(app, route_prefix="/api")
        kit.register(RecordingModule("a", log))
        bad = RecordingModule("b", log)
        bad.add_route(Route("FETCH", "/things", ok_handler))
        kit.register(bad)

        with pytest.raises(UnsupportedMethodError) as exc_info:
            kit.mount()

        assert exc_info.value.method == "FETCH"
        assert exc_info.value.path == "/api/things"
        assert log == []
        assert route_paths(app) == []

    def test_methods_are_case_sensitive(self):
        module = BaseModule("lower")
        module.add_route(Route("get", "/x", ok_handler))
        kit = make_kit()
        kit.register(module)

        with pytest.raises(UnsupportedMethodError):
            kit.mount()

    def test_init_failure_aborts_mount(self):
        log: List[str] = []
        app = new_app()
        kit = make_kit(app)
        kit.register(RecordingModule("a", log))
        kit.register(RecordingModule("b", log, deps=["a"], fail=True))
        kit.register(RecordingModule("c", log, deps=["b"]))

        with pytest.raises(ModuleInitError) as exc_info:
            kit.mount()

        assert exc_info.value.module == "b"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "b exploded" in str(exc_info.value)
        assert log == ["init:a"]
        assert route_paths(app) == []
        assert not kit.mounted

    def test_banner_printed_after_mount(self, capsys):
        kit = make_kit(disable_startup_banner=False)
        kit.register(RecordingModule("sse", []))
        kit.register(RecordingModule("health", []))
        kit.mount()

        out = capsys.readouterr().out
        assert "Loaded Modules:" in out
        assert out.index("health") < out.index("sse")

    def test_banner_disabled(self, capsys):
        kit = make_kit(disable_startup_banner=True)
        kit.register(RecordingModule("a", []))
        kit.mount()

        assert capsys.readouterr().out == ""


@pytest.mark.unit
@pytest.mark.kit
class TestLifecycle:
    @pytest.mark.asyncio
    async def test_startup_and_shutdown_order(self):
        log: List[str] = []
        kit = make_kit()
        kit.register(RecordingModule("a", log))
        kit.register(RecordingModule("b", log, deps=["a"]))
        kit.mount()
        log.clear()

        await kit.startup()
        await kit.shutdown()

        assert log == ["startup:a", "startup:b", "shutdown:b", "shutdown:a"]

    @pytest.mark.asyncio
    async def test_shutdown_continues_after_error(self):
        log: List[str] = []

        class Broken(RecordingModule):
            async def shutdown(self) -> None:
                raise RuntimeError("boom")

        kit = make_kit()
        kit.register(RecordingModule("a", log))
        kit.register(Broken("b", log, deps=["a"]))
        kit.mount()
        await kit.startup()
        log.clear()

        await kit.shutdown()

        assert log == ["shutdown:a"]

    @pytest.mark.asyncio
    async def test_startup_failure_shuts_down_started_modules(self):
        log: List[str] = []

        class FailsToStart(RecordingModule):
            async def startup(self) -> None:
                raise RuntimeError("no database")

        kit = make_kit()
        kit.register(RecordingModule("a", log))
        kit.register(RecordingModule("b", log, deps=["a"]))
        kit.register(FailsToStart("c", log, deps=["b"]))
        kit.mount()
        log.clear()

        with pytest.raises(RuntimeError, match="no database"):
            await kit.startup()

        assert log == ["startup:a", "startup:b", "shutdown:b", "shutdown:a"]

        await kit.shutdown()
        assert log == ["startup:a", "startup:b", "shutdown:b", "shutdown:a"]

    @pytest.mark.asyncio
    async def test_shutdown_without_startup_is_noop(self):
        log: List[str] = []
        kit = make_kit()
        kit.register(RecordingModule("a", log))
        kit.mount()
        log.clear()

        await kit.shutdown()

        assert log == []


@pytest.mark.unit
@pytest.mark.kit
def test_render_banner_sorted():
    banner = render_banner(["sse", "auth", "health"])
    lines = banner.splitlines()

    assert "SaaS Kit v1.0.0" in lines[1]
    assert [line.split("•")[1].strip(" ║") for line in lines if "•" in line] == [
        "auth",
        "health",
        "sse",
    ]
    assert len({len(line) for line in lines}) == 1
