"""Custom exceptions for core logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.runs.models import RunStatus


class RunNotFoundError(LookupError):
    """Raised when a run id is not present in the selected store."""

    def __init__(self, run_id: str, *, kind: str | None = None) -> None:
        label = kind.upper() if kind else "Run"
        super().__init__(f"{label} run {run_id} not found")
        self.run_id = run_id
        self.kind = kind


class InvalidTransitionError(ValueError):
    """Raised when a stored run would move backwards or out of a terminal state."""

    def __init__(self, run_id: str, *, current: RunStatus, requested: RunStatus) -> None:
        super().__init__(
            f"Run {run_id} cannot move from {current.value} to {requested.value}"
        )
        self.run_id = run_id
        self.current = current
        self.requested = requested


class RunStoreError(Exception):
    """Raised when a run store cannot read or write its backing data."""


class ApiError(Exception):
    """Raised when the external document API rejects or fails a request."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class ApiResponseError(ApiError):
    """Raised when the API envelope reports ``success != true`` or lacks data."""


class SessionExpiredError(ApiError):
    """Raised on 401/403; the session has already been signed out."""


class DocumentNotFoundError(ApiError):
    """Raised on 404 responses."""


class DocumentNotReadyError(ApiError):
    """Raised on 409 responses for documents that are not finalized."""


class RateLimitedError(ApiError):
    """Raised on 429 responses."""


class DownloadInProgressError(RuntimeError):
    """Raised when a download for the same run is already in flight."""

    def __init__(self, run_id: str) -> None:
        super().__init__(f"Download already in progress for run {run_id}")
        self.run_id = run_id
