"""FastAPI display service for TRP/TRD runs."""

from __future__ import annotations

import importlib.metadata
import io
import json
import logging
import os
import time
import uuid
from functools import lru_cache
from typing import Annotated, Any, cast
from urllib.parse import quote

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response

from core.config.settings_loader import load_settings
from core.fields.catalog import get_catalog, supported_kinds
from core.orchestrator.pipeline import build_display_sections, build_run_view
from core.render.docx_exporter import export_sections_docx
from core.runs.models import DocumentKind, RunStatus
from core.runs.repository import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, RunRepository, create_repository
from core.utils.errors import (
    ApiError,
    InvalidTransitionError,
    RunNotFoundError,
    RunStoreError,
    SessionExpiredError,
)

app = FastAPI(title="termos-agent API", version="0.1.0")
logger = logging.getLogger("termos.api")

REQUEST_ID_HEADER = "X-Termos-Request-Id"
_DEFAULT_MAX_BODY_BYTES = 1024 * 1024
_DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


@lru_cache(maxsize=1)
def _default_repository() -> RunRepository:
    return create_repository(load_settings())


def get_repository() -> RunRepository:
    """Run store dependency; tests replace it through ``dependency_overrides``."""

    return _default_repository()


RepositoryDep = Annotated[RunRepository, Depends(get_repository)]


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Supported document kinds and their section layout."""

    request_id = _request_id_from_request(request)
    kinds: dict[str, Any] = {}
    for kind in supported_kinds():
        catalog = get_catalog(kind)
        kinds[kind] = {
            "sections": [section.title for section in catalog.sections],
            "always_show": sorted(catalog.always_show),
        }

    payload = {
        "supported_kinds": supported_kinds(),
        "kinds": kinds,
        "run_statuses": [status.value for status in RunStatus],
        "version": _package_version(),
    }
    return JSONResponse(status_code=200, headers={REQUEST_ID_HEADER: request_id}, content=payload)


@app.post("/v1/{kind}/display", response_model=None)
async def display_v1(request: Request, kind: str) -> JSONResponse:
    """Organize a raw field record into display sections."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "validate_kind"

    try:
        document_kind = _resolve_kind(kind)

        failure_stage = "read_body"
        max_body_bytes = _max_body_bytes()
        body = await request.body()
        if len(body) > max_body_bytes:
            raise ApiRequestError(
                status_code=413,
                error_code="PAYLOAD_TOO_LARGE",
                message="request body too large",
                detail={"max_body_bytes": max_body_bytes},
            )
        try:
            record = json.loads(body or b"null")
        except json.JSONDecodeError as exc:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_JSON",
                message="request body must be valid JSON",
                detail={"error": str(exc)},
            ) from exc

        _log_event(logging.INFO, "start", request_id, kind=document_kind, body_bytes=len(body))

        failure_stage = "build_sections"
        try:
            sections = build_display_sections(record, document_kind)
        except ValueError as exc:
            raise ApiRequestError(
                status_code=422,
                error_code="INVALID_FIELD_RECORD",
                message=str(exc),
            ) from exc

        failure_stage = "respond"
        _log_event(
            logging.INFO,
            "done",
            request_id,
            kind=document_kind,
            section_count=len(sections),
            timing={"total_ms": _elapsed_ms(request_started)},
        )
        return JSONResponse(
            status_code=200,
            headers={REQUEST_ID_HEADER: request_id},
            content={
                "kind": document_kind,
                "sections": [section.model_dump(mode="json") for section in sections],
            },
        )
    except Exception as exc:  # noqa: BLE001
        return _failure_response(exc, request_id, failure_stage)


@app.get("/v1/{kind}/runs", response_model=None)
async def list_runs_v1(
    request: Request,
    kind: str,
    repository: RepositoryDep,
    status: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
    cursor: Annotated[str | None, Query()] = None,
    q: Annotated[str | None, Query()] = None,
) -> JSONResponse:
    """List runs newest first, one page at a time."""

    request_id = _request_id_from_request(request)
    failure_stage = "validate_kind"
    try:
        document_kind = _resolve_kind(kind)
        failure_stage = "validate_query"
        status_filter = _resolve_status_filter(status)

        failure_stage = "list_runs"
        try:
            page = await repository.list_runs(
                document_kind, status=status_filter, limit=limit, cursor=cursor, q=q
            )
        except ValueError as exc:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_QUERY",
                message=str(exc),
                detail={"field": "cursor"},
            ) from exc

        return JSONResponse(
            status_code=200,
            headers={REQUEST_ID_HEADER: request_id},
            content=page.model_dump(mode="json"),
        )
    except Exception as exc:  # noqa: BLE001
        return _failure_response(exc, request_id, failure_stage)


@app.get("/v1/{kind}/runs/summary", response_model=None)
async def runs_summary_v1(request: Request, kind: str, repository: RepositoryDep) -> JSONResponse:
    """Total, completed and failed counts for one document kind."""

    request_id = _request_id_from_request(request)
    failure_stage = "validate_kind"
    try:
        document_kind = _resolve_kind(kind)
        failure_stage = "summary"
        summary = await repository.summary(document_kind)
        return JSONResponse(
            status_code=200,
            headers={REQUEST_ID_HEADER: request_id},
            content=summary.model_dump(mode="json"),
        )
    except Exception as exc:  # noqa: BLE001
        return _failure_response(exc, request_id, failure_stage)


@app.get("/v1/{kind}/runs/{run_id}", response_model=None)
async def run_view_v1(
    request: Request, kind: str, run_id: str, repository: RepositoryDep
) -> JSONResponse:
    """One run projected into display sections."""

    request_id = _request_id_from_request(request)
    failure_stage = "validate_kind"
    try:
        document_kind = _resolve_kind(kind)
        failure_stage = "load_run"
        run = await repository.get(document_kind, run_id)
        failure_stage = "build_sections"
        view = build_run_view(run)
        return JSONResponse(
            status_code=200,
            headers={REQUEST_ID_HEADER: request_id},
            content=view.model_dump(mode="json"),
        )
    except Exception as exc:  # noqa: BLE001
        return _failure_response(exc, request_id, failure_stage)


@app.get("/v1/{kind}/runs/{run_id}/export", response_model=None)
async def run_export_v1(
    request: Request, kind: str, run_id: str, repository: RepositoryDep
) -> Response:
    """Export the sections of a completed run as .docx."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "validate_kind"
    try:
        document_kind = _resolve_kind(kind)
        failure_stage = "load_run"
        run = await repository.get(document_kind, run_id)
        if run.status is not RunStatus.COMPLETED:
            raise ApiRequestError(
                status_code=409,
                error_code="RUN_NOT_COMPLETED",
                message="run has not completed",
                detail={"run_id": run.run_id, "status": run.status.value},
            )

        failure_stage = "render_docx"
        view = build_run_view(run)
        document = export_sections_docx(view.sections, document_kind, file_name=run.file_name)
        buffer = io.BytesIO()
        document.save(buffer)

        file_name = f"{run.file_name or f'{document_kind.upper()}_{run.run_id}'}.docx"
        _log_event(
            logging.INFO,
            "done",
            request_id,
            kind=document_kind,
            run_id=run.run_id,
            timing={"total_ms": _elapsed_ms(request_started)},
        )
        return Response(
            content=buffer.getvalue(),
            media_type=_DOCX_MEDIA_TYPE,
            headers={
                REQUEST_ID_HEADER: request_id,
                "Content-Disposition": f"attachment; filename*=UTF-8''{quote(file_name)}",
            },
        )
    except Exception as exc:  # noqa: BLE001
        return _failure_response(exc, request_id, failure_stage)


def _resolve_kind(kind: str) -> DocumentKind:
    try:
        catalog = get_catalog(kind)
    except ValueError as exc:
        raise ApiRequestError(
            status_code=404,
            error_code="UNSUPPORTED_KIND",
            message=str(exc),
            detail={"kind": kind, "supported_kinds": supported_kinds()},
        ) from exc
    return cast(DocumentKind, catalog.kind)


def _resolve_status_filter(status: str | None) -> RunStatus | None:
    if status is None or not status.strip() or status.strip().upper() == "ALL":
        return None
    try:
        return RunStatus(status)
    except ValueError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="unsupported status filter",
            detail={"field": "status", "value": status},
        ) from exc


def _as_request_error(exc: Exception) -> ApiRequestError:
    if isinstance(exc, ApiRequestError):
        return exc
    if isinstance(exc, RunNotFoundError):
        return ApiRequestError(
            status_code=404,
            error_code="RUN_NOT_FOUND",
            message=str(exc),
            detail={"run_id": exc.run_id},
        )
    if isinstance(exc, InvalidTransitionError):
        return ApiRequestError(status_code=409, error_code="INVALID_TRANSITION", message=str(exc))
    if isinstance(exc, SessionExpiredError):
        return ApiRequestError(
            status_code=502,
            error_code="UPSTREAM_UNAUTHORIZED",
            message=exc.message,
            detail={"upstream_status": exc.status},
        )
    if isinstance(exc, ApiError):
        return ApiRequestError(
            status_code=502,
            error_code="UPSTREAM_ERROR",
            message=exc.message,
            detail={"upstream_status": exc.status},
        )
    if isinstance(exc, RunStoreError):
        return ApiRequestError(status_code=500, error_code="STORE_ERROR", message=str(exc))
    return ApiRequestError(
        status_code=500,
        error_code="INTERNAL_ERROR",
        message="internal server error",
        detail={"error": str(exc)},
    )


def _failure_response(exc: Exception, request_id: str, failure_stage: str) -> JSONResponse:
    error = _as_request_error(exc)
    _log_event(
        logging.ERROR,
        "error",
        request_id,
        error_code=error.error_code,
        status_code=error.status_code,
        failure_stage=failure_stage,
    )
    return _error_response(
        status_code=error.status_code,
        error_code=error.error_code,
        message=error.message,
        request_id=request_id,
        detail=error.detail,
    )


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return uuid.uuid4().hex


def _max_body_bytes() -> int:
    raw = os.getenv("TERMOS_MAX_BODY_BYTES")
    if raw is None:
        return _DEFAULT_MAX_BODY_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_BODY_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_BODY_BYTES


def _package_version() -> str:
    try:
        return importlib.metadata.version("termos-agent")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
