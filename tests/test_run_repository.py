from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from core.config.settings_loader import ClientSettings
from core.runs.models import Run, RunOutput, RunStatus
from core.runs.remote import ApiRunRepository
from core.runs.repository import (
    InMemoryRunRepository,
    JsonFileRunRepository,
    create_repository,
    paginate_runs,
)
from core.utils.errors import InvalidTransitionError, RunNotFoundError, RunStoreError

_BASE_TIME = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


def _run(
    run_id: str,
    status: RunStatus = RunStatus.COMPLETED,
    *,
    kind: str = "trp",
    minutes: int = 0,
    file_name: str | None = None,
) -> Run:
    return Run.model_validate(
        {
            "run_id": run_id,
            "kind": kind,
            "status": status,
            "created_at": _BASE_TIME + timedelta(minutes=minutes),
            "file_name": file_name,
        }
    )


@pytest.mark.anyio
async def test_in_memory_get_and_missing_run() -> None:
    repository = InMemoryRunRepository([_run("a")])

    assert (await repository.get("trp", "a")).run_id == "a"
    with pytest.raises(RunNotFoundError, match="TRP run b not found"):
        await repository.get("trp", "b")
    with pytest.raises(RunNotFoundError):
        await repository.get("trd", "a")


@pytest.mark.anyio
async def test_in_memory_save_enforces_transitions() -> None:
    repository = InMemoryRunRepository()

    await repository.save(_run("a", RunStatus.PENDING))
    await repository.save(_run("a", RunStatus.RUNNING))
    await repository.save(_run("a", RunStatus.COMPLETED))

    with pytest.raises(InvalidTransitionError):
        await repository.save(_run("a", RunStatus.FAILED))
    assert (await repository.get("trp", "a")).status is RunStatus.COMPLETED


@pytest.mark.anyio
async def test_summary_counts_terminal_runs() -> None:
    repository = InMemoryRunRepository(
        [
            _run("a", RunStatus.COMPLETED, minutes=1),
            _run("b", RunStatus.FAILED, minutes=5),
            _run("c", RunStatus.RUNNING, minutes=3),
            _run("d", RunStatus.COMPLETED, kind="trd", minutes=9),
        ]
    )

    summary = await repository.summary("trp")

    assert (summary.total, summary.completed, summary.failed) == (3, 1, 1)
    assert summary.last_run_at == _BASE_TIME + timedelta(minutes=5)


def test_paginate_newest_first_with_cursor() -> None:
    runs = [_run(f"run-{index}", minutes=index) for index in range(5)]

    first = paginate_runs(runs, limit=2)
    assert [run.run_id for run in first.items] == ["run-4", "run-3"]
    assert first.next_cursor == "run-3"

    second = paginate_runs(runs, limit=2, cursor=first.next_cursor)
    assert [run.run_id for run in second.items] == ["run-2", "run-1"]

    last = paginate_runs(runs, limit=2, cursor=second.next_cursor)
    assert [run.run_id for run in last.items] == ["run-0"]
    assert last.next_cursor is None


def test_paginate_filters_by_status_and_query() -> None:
    runs = [
        _run("a", RunStatus.COMPLETED, file_name="TRP Contract 058"),
        _run("b", RunStatus.FAILED, file_name="TRP Contract 059"),
        _run("c", RunStatus.COMPLETED, file_name="Other"),
    ]

    assert [run.run_id for run in paginate_runs(runs, status=RunStatus.FAILED).items] == ["b"]
    assert sorted(run.run_id for run in paginate_runs(runs, q="contract").items) == ["a", "b"]


def test_paginate_rejects_unknown_cursor_and_bad_limit() -> None:
    with pytest.raises(ValueError, match="Unknown cursor"):
        paginate_runs([_run("a")], cursor="zzz")
    with pytest.raises(ValueError, match="limit"):
        paginate_runs([_run("a")], limit=0)


@pytest.mark.anyio
async def test_json_file_repository_round_trip(tmp_path: Path) -> None:
    store_path = tmp_path / "store" / "runs.json"
    repository = JsonFileRunRepository(store_path)

    run = Run(
        run_id="a",
        kind="trp",
        status=RunStatus.COMPLETED,
        created_at=_BASE_TIME,
        output=RunOutput(document_markdown="# TRP", fields={"numero_contrato": "058/2025"}),
    )
    await repository.save(run)

    reloaded = await JsonFileRunRepository(store_path).get("trp", "a")
    assert reloaded == run
    assert list(store_path.parent.glob("*.tmp")) == []

    payload = json.loads(store_path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert payload["runs"][0]["status"] == "COMPLETED"


@pytest.mark.anyio
async def test_json_file_repository_rejects_corrupt_store(tmp_path: Path) -> None:
    store_path = tmp_path / "runs.json"
    store_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(RunStoreError, match="Invalid run store JSON"):
        await JsonFileRunRepository(store_path).get("trp", "a")


@pytest.mark.anyio
async def test_json_file_repository_missing_file_is_empty(tmp_path: Path) -> None:
    repository = JsonFileRunRepository(tmp_path / "absent.json")

    assert (await repository.list_runs("trp")).items == []
    assert (await repository.summary("trp")).total == 0


def test_create_repository_selects_store(tmp_path: Path) -> None:
    base = {"api_url": "http://api.test"}

    assert isinstance(
        create_repository(ClientSettings(**base, store="memory")), InMemoryRunRepository
    )
    assert isinstance(
        create_repository(ClientSettings(**base, store="file", store_path=tmp_path / "r.json")),
        JsonFileRunRepository,
    )
    assert isinstance(create_repository(ClientSettings(**base, store="api")), ApiRunRepository)


@pytest.mark.anyio
async def test_naive_timestamps_are_read_as_utc() -> None:
    aware = Run.model_validate(
        {
            "run_id": "aware",
            "kind": "trp",
            "status": "COMPLETED",
            "created_at": "2025-01-10T12:00:00Z",
        }
    )
    naive = Run.model_validate(
        {"run_id": "naive", "kind": "trp", "status": "FAILED", "created_at": "2025-01-11T12:00:00"}
    )
    repository = InMemoryRunRepository([aware, naive])

    page = await repository.list_runs("trp")
    summary = await repository.summary("trp")

    assert [run.run_id for run in page.items] == ["naive", "aware"]
    assert naive.created_at.tzinfo is timezone.utc
    assert summary.last_run_at == datetime(2025, 1, 11, 12, 0, tzinfo=timezone.utc)
