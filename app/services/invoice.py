from __future__ import annotations

import logging
from typing import Optional

from app.clients.backend import BackendServiceClient
from app.schemas.records import InvoiceCreate, InvoiceRecord
from app.services.exceptions import ServiceError
from app.services.mock_store import InvoiceRepository, get_mock_store

logger = logging.getLogger(__name__)


class InvoiceService:
    def __init__(
        self,
        client: BackendServiceClient,
        *,
        repository: InvoiceRepository | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().invoices

    async def create(self, payload: InvoiceCreate) -> InvoiceRecord:
        """Persist an invoice and its items in one write.

        The store allocates the workspace sequence and the ``INV-NNNNN``
        number as part of the same write.
        """

        logger.debug(
            "Creating invoice for client %s in workspace %s",
            payload.client_id,
            payload.workspace_id,
        )
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock invoice repository not configured")
            return await self._repository.create(payload)

        try:
            data = await self._client.post(
                "/invoices", payload.model_dump(mode="json", by_alias=True)
            )
            return InvoiceRecord(**data)
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected error while creating invoice")
            raise ServiceError("Failed to create invoice", cause=exc)

    async def get(self, workspace_id: int, invoice_id: int) -> Optional[InvoiceRecord]:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock invoice repository not configured")
            return await self._repository.get(workspace_id, invoice_id)

        try:
            data = await self._client.get_optional(
                f"/invoices/{invoice_id}", {"workspaceId": workspace_id}
            )
            return InvoiceRecord(**data) if data else None
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected error while fetching invoice %s", invoice_id)
            raise ServiceError("Failed to fetch invoice", cause=exc)

    async def count(self, workspace_id: int) -> int:
        logger.info("Counting invoices for workspace %s", workspace_id)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock invoice repository not configured")
            return await self._repository.count(workspace_id)

        try:
            data = await self._client.get("/invoices/count", {"workspaceId": workspace_id})
            return int(data["count"])
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected error while counting invoices")
            raise ServiceError("Failed to count invoices", cause=exc)
