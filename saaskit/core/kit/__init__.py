"""
Module Kit
==========

Registration, dependency ordering, initialization and route mounting of
pluggable modules.

Components:
- module: Module ABC, BaseModule and Route
- router: Router protocol and the FastAPI-backed implementation
- kit: Kit registry and mount sequence
- builder: Fluent application builder
"""

from .module import HTTP_METHODS, BaseModule, Module, Route
from .router import FastAPIRouter, Router
from .kit import Kit, KitConfig, render_banner
from .builder import Builder, kit_lifespan

__all__ = [
    "HTTP_METHODS",
    "BaseModule",
    "Module",
    "Route",
    "FastAPIRouter",
    "Router",
    "Kit",
    "KitConfig",
    "render_banner",
    "Builder",
    "kit_lifespan",
]
