"""Read-only run store backed by the external document API."""

from __future__ import annotations

from core.client.api_client import DocumentApiClient
from core.runs.models import DocumentKind, Run, RunPage, RunStatus, RunSummary
from core.runs.repository import DEFAULT_PAGE_SIZE
from core.utils.errors import DocumentNotFoundError, RunNotFoundError, RunStoreError


class ApiRunRepository:
    """Serve runs from the API; the server owns every status change."""

    def __init__(self, client: DocumentApiClient) -> None:
        self._client = client

    @property
    def client(self) -> DocumentApiClient:
        return self._client

    async def get(self, kind: DocumentKind, run_id: str) -> Run:
        try:
            return await self._client.fetch_run(kind, run_id)
        except DocumentNotFoundError as exc:
            raise RunNotFoundError(run_id, kind=kind) from exc

    async def list_runs(
        self,
        kind: DocumentKind,
        *,
        status: RunStatus | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
        q: str | None = None,
    ) -> RunPage:
        return await self._client.list_runs(kind, status=status, limit=limit, cursor=cursor, q=q)

    async def summary(self, kind: DocumentKind) -> RunSummary:
        return await self._client.fetch_summary(kind)

    async def save(self, run: Run) -> Run:
        raise RunStoreError("The API run store is read-only; runs change on the server")

    async def aclose(self) -> None:
        await self._client.aclose()
