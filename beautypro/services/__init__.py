"""Service package public API definitions.

Service implementations depend on ``beautypro.clients.supabase``, which in
turn imports ``beautypro.services.exceptions``. Importing the implementations
eagerly here would make that a circular import, so they are resolved lazily
on first attribute access.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "AppointmentService",
    "AuthService",
    "CatalogService",
]

_SERVICE_MODULES = {
    "AppointmentService": "appointment",
    "AuthService": "auth",
    "CatalogService": "catalog",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .appointment import AppointmentService as AppointmentService
    from .auth import AuthService as AuthService
    from .catalog import CatalogService as CatalogService
