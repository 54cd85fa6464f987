from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from app.clients.backend import BackendServiceClient
from app.config import Settings, get_settings
from app.schemas.session import InvoiceSessionData
from app.services import (
    BusinessDirectoryService,
    ClientDirectoryService,
    InvoiceService,
    InvoiceSessionToolkit,
)
from app.services.session_store import InvoiceSessionStore, invoice_sessions


@lru_cache(maxsize=1)
def get_backend_client_cached() -> BackendServiceClient:
    settings = get_settings()
    return BackendServiceClient(
        settings.backend_base_url,
        timeout=settings.backend_timeout,
        use_mock_data=settings.use_mock_data,
        token=settings.backend_token,
    )


def get_backend_client(settings: Settings = Depends(get_settings)) -> BackendServiceClient:
    return get_backend_client_cached()


def get_session_store() -> InvoiceSessionStore:
    return invoice_sessions


def build_session_toolkit(
    session: InvoiceSessionData,
    client: BackendServiceClient | None = None,
    settings: Settings | None = None,
) -> InvoiceSessionToolkit:
    """Wire one session's state to the persistence services."""

    settings = settings or get_settings()
    client = client or get_backend_client_cached()
    return InvoiceSessionToolkit(
        session,
        clients=ClientDirectoryService(client),
        businesses=BusinessDirectoryService(client),
        invoices=InvoiceService(client),
        currency=settings.currency,
        lookup_limit=settings.customer_lookup_limit,
    )
