"""Parse external API envelopes into run models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.fields.models import parse_field_record
from core.runs.models import DocumentKind, Run, RunOutput, RunPage, RunStatus, RunSummary
from core.utils.errors import ApiResponseError


class ApiEnvelope(BaseModel):
    """``{success, data, message}`` wrapper used by every endpoint."""

    model_config = ConfigDict(extra="ignore")

    success: bool = False
    data: Any = None
    message: str | None = None


class _WireRun(BaseModel):
    model_config = ConfigDict(extra="ignore")

    run_id: str = Field(alias="runId", min_length=1)
    status: RunStatus
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    file_name: str | None = Field(default=None, alias="fileName")
    error_message: str | None = Field(default=None, alias="errorMessage")
    document_markdown: str | None = Field(default=None, alias="documento_markdown_final")


class _WireSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total: int = 0
    completed: int = 0
    failed: int = 0
    last_execution: datetime | None = Field(default=None, alias="lastExecution")


def fields_key(kind: DocumentKind) -> str:
    return f"campos_{kind}_normalizados"


def unwrap_envelope(payload: object, failure_message: str) -> Any:
    """Return ``data`` or raise ``ApiResponseError`` with the server message."""

    try:
        envelope = ApiEnvelope.model_validate(payload)
    except ValidationError as exc:
        raise ApiResponseError(failure_message) from exc

    if envelope.success is not True:
        raise ApiResponseError(envelope.message or failure_message)
    if envelope.data is None:
        raise ApiResponseError("Server response has no data.")
    return envelope.data


def run_from_wire(kind: DocumentKind, data: object) -> Run:
    """Build a run snapshot from one wire object."""

    if not isinstance(data, dict):
        raise ApiResponseError("Run payload must be a JSON object.")

    try:
        wire = _WireRun.model_validate(data)
        raw_fields = data.get(fields_key(kind))
        output = None
        if wire.document_markdown is not None or raw_fields is not None:
            if raw_fields is not None:
                parse_field_record(raw_fields)
            fields = dict(raw_fields) if raw_fields is not None else {}
            output = RunOutput(document_markdown=wire.document_markdown or "", fields=fields)
        return Run(
            run_id=wire.run_id,
            kind=kind,
            status=wire.status,
            created_at=wire.created_at,
            updated_at=wire.updated_at,
            file_name=wire.file_name,
            output=output,
            error_message=wire.error_message,
        )
    except (ValidationError, ValueError) as exc:
        raise ApiResponseError(f"Invalid {kind.upper()} run payload: {exc}") from exc


def page_from_wire(kind: DocumentKind, data: object) -> RunPage:
    """Parse ``{items, nextCursor}``."""

    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise ApiResponseError("Run list payload must contain an 'items' list.")

    next_cursor = data.get("nextCursor")
    return RunPage(
        items=[run_from_wire(kind, item) for item in data["items"]],
        next_cursor=str(next_cursor) if next_cursor else None,
    )


def summary_from_wire(data: object) -> RunSummary:
    try:
        wire = _WireSummary.model_validate(data)
    except ValidationError as exc:
        raise ApiResponseError(f"Invalid summary payload: {exc}") from exc
    return RunSummary(
        total=wire.total,
        completed=wire.completed,
        failed=wire.failed,
        last_run_at=wire.last_execution,
    )
