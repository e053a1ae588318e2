"""CineStream catalog and profile service package."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "app": "app.main",
    "create_app": "app.main",
    "build_services": "app.main",
    "Settings": "app.config",
    "settings": "app.config",
}

__all__ = list(_EXPORTS)


def __getattr__(name: str) -> Any:
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module 'app' has no attribute {name}")
    return getattr(import_module(module_name), name)
