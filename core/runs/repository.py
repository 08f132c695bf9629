"""Run stores behind a single async interface."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError

from core.runs.models import DocumentKind, Run, RunPage, RunStatus, RunSummary
from core.runs.state import ensure_transition
from core.utils.errors import RunNotFoundError, RunStoreError

if TYPE_CHECKING:
    from core.config.settings_loader import ClientSettings

_STORE_VERSION = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class RunRepository(Protocol):
    """Read and write run snapshots for one or more document kinds."""

    async def get(self, kind: DocumentKind, run_id: str) -> Run: ...

    async def list_runs(
        self,
        kind: DocumentKind,
        *,
        status: RunStatus | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
        q: str | None = None,
    ) -> RunPage: ...

    async def summary(self, kind: DocumentKind) -> RunSummary: ...

    async def save(self, run: Run) -> Run: ...

    async def aclose(self) -> None: ...


class InMemoryRunRepository:
    """Process-local store used by tests and the ``memory`` store option."""

    def __init__(self, runs: list[Run] | None = None) -> None:
        self._runs: dict[tuple[str, str], Run] = {}
        for run in runs or []:
            self._runs[(run.kind, run.run_id)] = run

    async def get(self, kind: DocumentKind, run_id: str) -> Run:
        run = self._runs.get((kind, run_id))
        if run is None:
            raise RunNotFoundError(run_id, kind=kind)
        return run

    async def list_runs(
        self,
        kind: DocumentKind,
        *,
        status: RunStatus | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
        q: str | None = None,
    ) -> RunPage:
        return paginate_runs(
            [run for run in self._runs.values() if run.kind == kind],
            status=status,
            limit=limit,
            cursor=cursor,
            q=q,
        )

    async def summary(self, kind: DocumentKind) -> RunSummary:
        return summarize_runs([run for run in self._runs.values() if run.kind == kind])

    async def save(self, run: Run) -> Run:
        existing = self._runs.get((run.kind, run.run_id))
        if existing is not None:
            ensure_transition(run.run_id, existing.status, run.status)
        self._runs[(run.kind, run.run_id)] = run
        return run

    async def aclose(self) -> None:
        return None


class JsonFileRunRepository:
    """Persist runs in one JSON file, rewritten atomically on every save."""

    def __init__(self, store_path: Path) -> None:
        self._store_path = store_path

    async def get(self, kind: DocumentKind, run_id: str) -> Run:
        for run in self._read_runs():
            if run.kind == kind and run.run_id == run_id:
                return run
        raise RunNotFoundError(run_id, kind=kind)

    async def list_runs(
        self,
        kind: DocumentKind,
        *,
        status: RunStatus | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
        q: str | None = None,
    ) -> RunPage:
        return paginate_runs(
            [run for run in self._read_runs() if run.kind == kind],
            status=status,
            limit=limit,
            cursor=cursor,
            q=q,
        )

    async def summary(self, kind: DocumentKind) -> RunSummary:
        return summarize_runs([run for run in self._read_runs() if run.kind == kind])

    async def save(self, run: Run) -> Run:
        runs = self._read_runs()
        replaced = False
        for index, existing in enumerate(runs):
            if existing.kind == run.kind and existing.run_id == run.run_id:
                ensure_transition(run.run_id, existing.status, run.status)
                runs[index] = run
                replaced = True
                break
        if not replaced:
            runs.append(run)
        self._write_runs(runs)
        return run

    async def aclose(self) -> None:
        return None

    def _read_runs(self) -> list[Run]:
        if not self._store_path.exists():
            return []

        try:
            raw = json.loads(self._store_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise RunStoreError(f"Invalid run store JSON: {self._store_path}") from exc

        if not isinstance(raw, dict) or not isinstance(raw.get("runs", []), list):
            raise RunStoreError(f"Run store must contain a 'runs' list: {self._store_path}")

        try:
            return [Run.model_validate(item) for item in raw.get("runs", [])]
        except ValidationError as exc:
            raise RunStoreError(f"Invalid run entry in store: {self._store_path}") from exc

    def _write_runs(self, runs: list[Run]) -> None:
        self._store_path.parent.mkdir(parents=True, exist_ok=True)
        payload: dict[str, Any] = {
            "version": _STORE_VERSION,
            "runs": [
                run.model_dump(mode="json")
                for run in sorted(runs, key=lambda item: (item.kind, item.run_id))
            ],
        }

        fd, raw_tmp_path = tempfile.mkstemp(
            dir=self._store_path.parent,
            prefix=f"{self._store_path.name}.",
            suffix=".tmp",
        )
        os.close(fd)
        tmp_path = Path(raw_tmp_path)
        try:
            tmp_path.write_text(
                json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False),
                encoding="utf-8",
            )
            tmp_path.replace(self._store_path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise RunStoreError(f"Failed to write run store: {self._store_path}") from exc


def paginate_runs(
    runs: list[Run],
    *,
    status: RunStatus | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    cursor: str | None = None,
    q: str | None = None,
) -> RunPage:
    """Filter, order newest first and cut one page after ``cursor``.

    The cursor is the run id of the last item on the previous page.
    """

    if limit < 1:
        raise ValueError("limit must be a positive integer")
    limit = min(limit, MAX_PAGE_SIZE)

    selected = [run for run in runs if status is None or run.status == status]
    needle = (q or "").strip().lower()
    if needle:
        selected = [
            run
            for run in selected
            if needle in run.run_id.lower() or needle in (run.file_name or "").lower()
        ]
    selected.sort(key=lambda run: (run.created_at, run.run_id), reverse=True)

    start = 0
    if cursor:
        ids = [run.run_id for run in selected]
        if cursor not in ids:
            raise ValueError(f"Unknown cursor: {cursor}")
        start = ids.index(cursor) + 1

    page = selected[start : start + limit]
    has_more = start + limit < len(selected)
    next_cursor = page[-1].run_id if page and has_more else None
    return RunPage(items=page, next_cursor=next_cursor)


def summarize_runs(runs: list[Run]) -> RunSummary:
    """Count totals and terminal outcomes; ``last_run_at`` is the newest creation time."""

    return RunSummary(
        total=len(runs),
        completed=sum(1 for run in runs if run.status is RunStatus.COMPLETED),
        failed=sum(1 for run in runs if run.status is RunStatus.FAILED),
        last_run_at=max((run.created_at for run in runs), default=None),
    )


def create_repository(settings: ClientSettings) -> RunRepository:
    """Build the store selected by ``settings.store``."""

    if settings.store == "memory":
        return InMemoryRunRepository()
    if settings.store == "file":
        return JsonFileRunRepository(settings.store_path)
    if settings.store == "api":
        from core.client.api_client import DocumentApiClient
        from core.runs.remote import ApiRunRepository

        return ApiRunRepository(DocumentApiClient.from_settings(settings))
    raise ValueError(f"Unsupported run store: {settings.store}")
