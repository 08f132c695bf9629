"""Run models shared by stores, the API client and the display service."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.utils.filenames import sanitize_file_name

DocumentKind = Literal["trp", "trd"]


class RunStatus(str, Enum):
    """Lifecycle of one document-generation job as reported by the API."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @classmethod
    def _missing_(cls, value: object) -> RunStatus | None:
        if not isinstance(value, str):
            return None
        token = value.strip().upper()
        if token == "PROCESSING":
            return cls.RUNNING
        for member in cls:
            if member.value == token:
                return member
        return None

    @property
    def is_terminal(self) -> bool:
        return self in {RunStatus.COMPLETED, RunStatus.FAILED}


class RunOutput(BaseModel):
    """Generated document text and its normalized field record."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    document_markdown: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)


class Run(BaseModel):
    """Client-side snapshot of a run; replaced wholesale on every refetch."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    run_id: str = Field(min_length=1)
    kind: DocumentKind
    status: RunStatus
    created_at: datetime
    updated_at: datetime | None = None
    file_name: str | None = None
    output: RunOutput | None = None
    error_message: str | None = None

    @field_validator("file_name", mode="before")
    @classmethod
    def _sanitize_file_name(cls, value: object) -> str | None:
        return sanitize_file_name(value)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class RunPage(BaseModel):
    """One page of a run listing."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    items: list[Run] = Field(default_factory=list)
    next_cursor: str | None = None


class RunSummary(BaseModel):
    """Aggregate counts for a document kind."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    total: int = 0
    completed: int = 0
    failed: int = 0
    last_run_at: datetime | None = None


StatusFilter = Literal["ALL", "PENDING", "RUNNING", "COMPLETED", "FAILED"]
