"""Service package public API definitions.

Service implementations depend on ``app.clients.backend``, which in turn
imports ``app.services.exceptions``. Importing the implementations eagerly
here would therefore create a circular import, so they are resolved lazily
on first attribute access.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "BusinessDirectoryService",
    "ClientDirectoryService",
    "InvoiceService",
    "InvoiceSessionToolkit",
]

_SERVICE_MODULES = {
    "BusinessDirectoryService": "business",
    "ClientDirectoryService": "clients",
    "InvoiceService": "invoice",
    "InvoiceSessionToolkit": "invoice_session",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .business import BusinessDirectoryService as BusinessDirectoryService
    from .clients import ClientDirectoryService as ClientDirectoryService
    from .invoice import InvoiceService as InvoiceService
    from .invoice_session import InvoiceSessionToolkit as InvoiceSessionToolkit
