"""Typer CLI entrypoint for termos-agent."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, TypeVar, cast

import typer
from pydantic import ValidationError

from apps.cli.format_human import render_run_page, render_run_view, render_sections, render_summary
from apps.cli.io import load_json_file, write_bytes_atomic, write_docx_atomic, write_json_atomic
from core.client.api_client import ATTACHMENT_PARTS, DocumentApiClient, DownloadFormat
from core.client.requests import TrdGenerateRequest, TrpGenerateRequest
from core.config.settings_loader import ClientSettings, load_settings
from core.fields.catalog import supported_kinds
from core.fields.models import SectionView
from core.orchestrator.pipeline import build_display_sections, build_run_view
from core.render.docx_exporter import export_sections_docx
from core.runs.models import DocumentKind, Run, RunStatus
from core.runs.repository import RunRepository, create_repository
from core.utils.errors import (
    ApiError,
    DownloadInProgressError,
    InvalidTransitionError,
    RunNotFoundError,
    RunStoreError,
)

EXIT_USAGE = 1
EXIT_API_ERROR = 2
EXIT_RUN_FAILED = 3
EXIT_RUN_NOT_FINISHED = 4

T = TypeVar("T")

app = typer.Typer(help="TRP/TRD receipt document CLI", rich_markup_mode=None)
runs_app = typer.Typer(help="Inspect runs in the configured store.", rich_markup_mode=None)
generate_app = typer.Typer(help="Request document generation from the API.", rich_markup_mode=None)
app.add_typer(runs_app, name="runs")
app.add_typer(generate_app, name="generate")

KindOption = Annotated[str, typer.Option("--kind", help="Document kind: trp or trd.")]


@app.callback()
def cli_callback(
    ctx: typer.Context,
    settings: Annotated[
        Path | None,
        typer.Option("--settings", help="Settings YAML; defaults to the bundled file."),
    ] = None,
) -> None:
    """CLI root callback; resolves the settings file for subcommands."""

    ctx.obj = {"settings_path": settings}


@app.command("display")
def display_command(
    input_path: Annotated[
        Path, typer.Option("--input", exists=True, dir_okay=False, file_okay=True)
    ],
    kind: KindOption = "trp",
    as_json: Annotated[bool, typer.Option("--json", help="Print sections as JSON.")] = False,
) -> None:
    """Organize a field record JSON file into display sections."""

    document_kind = _resolve_kind(kind)
    sections = _load_sections(input_path, document_kind)
    if as_json:
        typer.echo(_dump_json([section.model_dump(mode="json") for section in sections]))
        return
    typer.echo(render_sections(sections))


@app.command("export")
def export_command(
    input_path: Annotated[
        Path, typer.Option("--input", exists=True, dir_okay=False, file_okay=True)
    ],
    out: Annotated[Path, typer.Option("--out", help="Target .docx path.")],
    kind: KindOption = "trp",
    sections_json: Annotated[
        Path | None,
        typer.Option("--sections-json", help="Also write the sections as JSON."),
    ] = None,
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite outputs when they already exist.")
    ] = False,
) -> None:
    """Export a field record as a numbered .docx document."""

    document_kind = _resolve_kind(kind)
    targets = [out] + ([sections_json] if sections_json is not None else [])
    existing = [path for path in targets if path.exists()]
    if existing and not force:
        names = ", ".join(str(path) for path in existing)
        typer.echo(f"ERROR: output already exists: {names}. Use --force to overwrite.")
        raise typer.Exit(code=EXIT_USAGE)

    sections = _load_sections(input_path, document_kind)
    write_docx_atomic(out, export_sections_docx(sections, document_kind))
    if sections_json is not None:
        write_json_atomic(sections_json, [section.model_dump(mode="json") for section in sections])
    typer.echo(f"wrote {out}")


@runs_app.command("list")
def runs_list_command(
    ctx: typer.Context,
    kind: KindOption = "trp",
    status: Annotated[str, typer.Option("--status", help="ALL or a run status.")] = "ALL",
    limit: Annotated[int, typer.Option("--limit", min=1, max=100)] = 20,
    cursor: Annotated[str | None, typer.Option("--cursor")] = None,
    q: Annotated[str | None, typer.Option("--q", help="Search run id or file name.")] = None,
    as_json: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    """List runs newest first."""

    document_kind = _resolve_kind(kind)
    status_filter = _resolve_status_filter(status)
    page = _with_repository(
        _settings(ctx),
        lambda repository: repository.list_runs(
            document_kind, status=status_filter, limit=limit, cursor=cursor, q=q
        ),
    )
    typer.echo(_dump_json(page.model_dump(mode="json")) if as_json else render_run_page(page))


@runs_app.command("show")
def runs_show_command(
    ctx: typer.Context,
    run_id: Annotated[str, typer.Argument()],
    kind: KindOption = "trp",
    refresh: Annotated[
        bool, typer.Option("--refresh", help="Fetch the run from the API and update the store.")
    ] = False,
    as_json: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    """Show one run; exits 3 when it failed and 4 when it is still in progress."""

    document_kind = _resolve_kind(kind)
    settings = _settings(ctx)

    async def _show(repository: RunRepository) -> Run:
        if not refresh or settings.store == "api":
            return await repository.get(document_kind, run_id)
        async with build_api_client(settings) as client:
            fetched = await client.fetch_run(document_kind, run_id, refresh=True)
        return await repository.save(fetched)

    run = _with_repository(settings, _show)
    view = build_run_view(run)
    typer.echo(_dump_json(view.model_dump(mode="json")) if as_json else render_run_view(view))

    if view.status is RunStatus.FAILED:
        raise typer.Exit(code=EXIT_RUN_FAILED)
    if not view.terminal:
        raise typer.Exit(code=EXIT_RUN_NOT_FINISHED)


@runs_app.command("summary")
def runs_summary_command(
    ctx: typer.Context,
    kind: KindOption = "trp",
    as_json: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    """Show total, completed and failed counts."""

    document_kind = _resolve_kind(kind)
    summary = _with_repository(
        _settings(ctx), lambda repository: repository.summary(document_kind)
    )
    typer.echo(_dump_json(summary.model_dump(mode="json")) if as_json else render_summary(summary))


@runs_app.command("download")
def runs_download_command(
    ctx: typer.Context,
    run_id: Annotated[str, typer.Argument()],
    kind: KindOption = "trp",
    file_format: Annotated[str, typer.Option("--format", help="pdf or docx.")] = "pdf",
    out_dir: Annotated[Path, typer.Option("--out-dir")] = Path("."),
) -> None:
    """Download the rendered document from the API."""

    document_kind = _resolve_kind(kind)
    normalized_format = file_format.lower().strip()
    if normalized_format not in {"pdf", "docx"}:
        typer.echo("ERROR: --format must be one of: pdf, docx.")
        raise typer.Exit(code=EXIT_USAGE)

    settings = _settings(ctx)

    async def _download() -> Any:
        async with build_api_client(settings) as client:
            return await client.download(
                document_kind, run_id, cast(DownloadFormat, normalized_format)
            )

    downloaded = _run_async(_download)
    target = out_dir / downloaded.file_name
    write_bytes_atomic(target, downloaded.content)
    typer.echo(f"wrote {target}")


@generate_app.command("trp")
def generate_trp_command(
    ctx: typer.Context,
    input_path: Annotated[
        Path,
        typer.Option("--input", exists=True, dir_okay=False, help="Receipt data JSON."),
    ],
    attach: Annotated[
        list[str] | None,
        typer.Option("--attach", help="Attachment as PART=PATH; repeatable."),
    ] = None,
) -> None:
    """Submit receipt data to generate a TRP."""

    try:
        request = TrpGenerateRequest.model_validate(load_json_file(input_path))
    except (ValidationError, ValueError) as exc:
        typer.echo(f"ERROR: {_first_error(exc)}")
        raise typer.Exit(code=EXIT_USAGE) from exc

    attachments = _parse_attachments(attach or [])
    settings = _settings(ctx)

    async def _generate() -> Run:
        async with build_api_client(settings) as client:
            run = await client.generate_trp(request, attachments)
        return await _record_run(settings, run)

    run = _run_async(_generate)
    typer.echo(f"run_id={run.run_id} status={run.status.value}")


@generate_app.command("trd")
def generate_trd_command(
    ctx: typer.Context,
    trp_run_id: Annotated[str, typer.Option("--trp-run-id")],
    reservations: Annotated[
        bool, typer.Option("--reservations/--no-reservations", help="Were there reservations?")
    ] = False,
    reservations_text: Annotated[str | None, typer.Option("--reservations-text")] = None,
) -> None:
    """Request a TRD derived from a completed TRP run."""

    try:
        request = TrdGenerateRequest(
            trp_run_id=trp_run_id,
            houve_ressalvas=reservations,
            ressalvas_texto=reservations_text,
        )
    except ValidationError as exc:
        typer.echo(f"ERROR: {_first_error(exc)}")
        raise typer.Exit(code=EXIT_USAGE) from exc

    settings = _settings(ctx)

    async def _generate() -> Run:
        async with build_api_client(settings) as client:
            run = await client.generate_trd(request)
        return await _record_run(settings, run)

    run = _run_async(_generate)
    typer.echo(f"run_id={run.run_id} status={run.status.value}")


@app.command("serve")
def serve_command(
    host: Annotated[str, typer.Option("--host")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", min=1, max=65535)] = 8000,
) -> None:
    """Run the display API service with uvicorn."""

    import uvicorn

    uvicorn.run("apps.api.main:app", host=host, port=port)


def build_api_client(settings: ClientSettings) -> DocumentApiClient:
    return DocumentApiClient.from_settings(settings)


def _settings(ctx: typer.Context) -> ClientSettings:
    obj = ctx.find_root().obj or {}
    try:
        return load_settings(obj.get("settings_path"))
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_USAGE) from exc


def _resolve_kind(kind: str) -> DocumentKind:
    normalized = kind.lower().strip()
    if normalized not in supported_kinds():
        typer.echo(f"ERROR: --kind must be one of: {', '.join(supported_kinds())}.")
        raise typer.Exit(code=EXIT_USAGE)
    return cast(DocumentKind, normalized)


def _resolve_status_filter(status: str) -> RunStatus | None:
    if status.strip().upper() == "ALL":
        return None
    try:
        return RunStatus(status)
    except ValueError as exc:
        allowed = ", ".join(["ALL", *(item.value for item in RunStatus)])
        typer.echo(f"ERROR: --status must be one of: {allowed}.")
        raise typer.Exit(code=EXIT_USAGE) from exc


def _load_sections(input_path: Path, kind: DocumentKind) -> list[SectionView]:
    try:
        return build_display_sections(load_json_file(input_path), kind)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_USAGE) from exc


def _parse_attachments(values: list[str]) -> dict[str, Path]:
    attachments: dict[str, Path] = {}
    for value in values:
        part_name, separator, raw_path = value.partition("=")
        if not separator or part_name not in ATTACHMENT_PARTS:
            allowed = ", ".join(ATTACHMENT_PARTS)
            typer.echo(f"ERROR: --attach must be PART=PATH with PART in: {allowed}.")
            raise typer.Exit(code=EXIT_USAGE)
        path = Path(raw_path)
        if not path.is_file():
            typer.echo(f"ERROR: attachment not found: {path}")
            raise typer.Exit(code=EXIT_USAGE)
        attachments[part_name] = path
    return attachments


async def _record_run(settings: ClientSettings, run: Run) -> Run:
    """Keep a local snapshot of a run the API just accepted."""

    if settings.store == "api":
        return run
    repository = create_repository(settings)
    try:
        return await repository.save(run)
    finally:
        await repository.aclose()


def _with_repository(
    settings: ClientSettings, action: Callable[[RunRepository], Awaitable[T]]
) -> T:
    async def _call() -> T:
        repository = create_repository(settings)
        try:
            return await action(repository)
        finally:
            await repository.aclose()

    return _run_async(_call)


def _run_async(factory: Callable[[], Awaitable[T]]) -> T:
    async def _call() -> T:
        return await factory()

    try:
        return asyncio.run(_call())
    except (
        RunNotFoundError,
        ApiError,
        RunStoreError,
        DownloadInProgressError,
        InvalidTransitionError,
    ) as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_API_ERROR) from exc
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_USAGE) from exc


def _first_error(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        errors = exc.errors()
        if errors:
            return str(errors[0].get("msg", exc))
    return str(exc)


def _dump_json(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2)


if __name__ == "__main__":
    app()
