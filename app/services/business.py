from __future__ import annotations

import logging
from typing import List, Optional

from app.clients.backend import BackendServiceClient
from app.schemas.records import BusinessRecord
from app.services.exceptions import ServiceError
from app.services.mock_store import BusinessRepository, get_mock_store

logger = logging.getLogger(__name__)


class BusinessDirectoryService:
    """Service responsible for the businesses (issuers) of a workspace."""

    def __init__(
        self,
        client: BackendServiceClient,
        *,
        repository: BusinessRepository | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().businesses

    async def list(self, workspace_id: int) -> List[BusinessRecord]:
        """Return every business, default business first then by sequence."""

        logger.info("Listing businesses for workspace %s", workspace_id)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock business repository not configured")
            return await self._repository.list(workspace_id)

        try:
            data = await self._client.get("/businesses", {"workspaceId": workspace_id})
            businesses = [BusinessRecord(**entry) for entry in data]
            businesses.sort(key=lambda b: (not b.is_default, b.sequence))
            return businesses
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected error while listing businesses")
            raise ServiceError("Failed to list businesses", cause=exc)

    async def get(self, workspace_id: int, business_id: int) -> Optional[BusinessRecord]:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock business repository not configured")
            return await self._repository.get(workspace_id, business_id)

        try:
            data = await self._client.get_optional(
                f"/businesses/{business_id}", {"workspaceId": workspace_id}
            )
            return BusinessRecord(**data) if data else None
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected error while fetching business %s", business_id)
            raise ServiceError("Failed to fetch business", cause=exc)
