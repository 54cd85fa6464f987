from __future__ import annotations

import logging
from typing import List, Optional

from app.clients.backend import BackendServiceClient
from app.schemas.records import ClientRecord
from app.services.exceptions import ServiceError
from app.services.mock_store import ClientRepository, get_mock_store

logger = logging.getLogger(__name__)


class ClientDirectoryService:
    """Workspace-scoped reads of the client (customer) directory."""

    def __init__(
        self,
        client: BackendServiceClient,
        *,
        repository: ClientRepository | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().clients

    async def search(self, workspace_id: int, query: str, limit: int = 5) -> List[ClientRecord]:
        logger.info("Searching clients in workspace %s for '%s'", workspace_id, query)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock client repository not configured")
            return await self._repository.search(workspace_id, query, limit)

        try:
            data = await self._client.get(
                "/clients",
                {"workspaceId": workspace_id, "query": query, "limit": limit},
            )
            return [ClientRecord(**entry) for entry in data][:limit]
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected error while searching clients")
            raise ServiceError("Failed to search clients", cause=exc)

    async def get(self, workspace_id: int, client_id: int) -> Optional[ClientRecord]:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock client repository not configured")
            return await self._repository.get(workspace_id, client_id)

        try:
            data = await self._client.get_optional(
                f"/clients/{client_id}", {"workspaceId": workspace_id}
            )
            return ClientRecord(**data) if data else None
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected error while fetching client %s", client_id)
            raise ServiceError("Failed to fetch client", cause=exc)

    async def count(self, workspace_id: int) -> int:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock client repository not configured")
            return await self._repository.count(workspace_id)

        try:
            data = await self._client.get("/clients/count", {"workspaceId": workspace_id})
            return int(data["count"])
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected error while counting clients")
            raise ServiceError("Failed to count clients", cause=exc)
