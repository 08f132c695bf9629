"""Async client for the external document generation API."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import httpx

from core.client.fetch_guard import BusyFlags, RecentFetchCache
from core.client.requests import TrdGenerateRequest, TrpGenerateRequest
from core.client.session import SessionProvider, StaticSession, auth_headers, is_uuid
from core.client.wire import page_from_wire, run_from_wire, summary_from_wire, unwrap_envelope
from core.runs.models import DocumentKind, Run, RunPage, RunStatus, RunSummary, StatusFilter
from core.utils.errors import (
    ApiError,
    DocumentNotFoundError,
    DocumentNotReadyError,
    RateLimitedError,
    SessionExpiredError,
)
from core.utils.filenames import filename_from_disposition

if TYPE_CHECKING:
    from core.config.settings_loader import ClientSettings

logger = logging.getLogger("termos.client")

DownloadFormat = Literal["pdf", "docx"]

ATTACHMENT_PARTS = ("fichaContratualizacao", "notaFiscal", "ordemFornecimento")
_MEDIA_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


@dataclass(frozen=True)
class DownloadedFile:
    """Exported document bytes plus the resolved file name."""

    file_name: str
    content: bytes
    media_type: str


class DocumentApiClient:
    """Generate, fetch, list and download TRP/TRD runs.

    Fetches of the same run within ``fetch_cache_seconds`` are served from
    memory unless ``refresh=True``. Requests are never retried automatically.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: SessionProvider | None = None,
        timeout_seconds: float = 30.0,
        fetch_cache_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session or StaticSession()
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
        )
        self._run_cache: RecentFetchCache[Run] = RecentFetchCache(fetch_cache_seconds, clock)
        self._downloads = BusyFlags()

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> DocumentApiClient:
        return cls(
            settings.api_url,
            session=StaticSession(settings.api_token, settings.org_id),
            timeout_seconds=settings.request_timeout_seconds,
            fetch_cache_seconds=settings.fetch_cache_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> DocumentApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def generate_trp(
        self,
        request: TrpGenerateRequest,
        attachments: Mapping[str, Path] | None = None,
    ) -> Run:
        """Submit receipt data and attachments; returns the PENDING run snapshot."""

        parts: dict[str, Any] = {
            "dadosRecebimento": (None, json.dumps(request.to_wire(), ensure_ascii=False)),
        }
        for part_name, path in (attachments or {}).items():
            if part_name not in ATTACHMENT_PARTS:
                raise ValueError(f"Unsupported attachment: {part_name}")
            parts[part_name] = (path.name, path.read_bytes())

        payload = await self._request_json("POST", "/trp/generate", files=parts)
        data = unwrap_envelope(payload, "Failed to generate TRP on the server.")
        return run_from_wire("trp", data)

    async def generate_trd(self, request: TrdGenerateRequest) -> Run:
        """Ask for a TRD derived from a completed TRP run."""

        payload = await self._request_json("POST", "/trd/generate", json=request.to_wire())
        data = unwrap_envelope(payload, "Failed to generate TRD on the server.")
        return run_from_wire("trd", data)

    async def fetch_run(self, kind: DocumentKind, run_id: str, *, refresh: bool = False) -> Run:
        """Fetch one run snapshot, reusing a recent result unless ``refresh``."""

        run_id = _require_run_id(run_id)
        cache_key = f"{kind}:{run_id}"
        if not refresh:
            cached = self._run_cache.get(cache_key)
            if cached is not None:
                return cached

        payload = await self._request_json("GET", f"/{kind}/runs/{run_id}")
        data = unwrap_envelope(payload, f"Failed to fetch {kind.upper()} {run_id}")
        run = run_from_wire(kind, data)
        self._run_cache.put(cache_key, run)
        return run

    async def list_runs(
        self,
        kind: DocumentKind,
        *,
        status: StatusFilter | RunStatus | None = None,
        limit: int = 20,
        cursor: str | None = None,
        q: str | None = None,
    ) -> RunPage:
        params: dict[str, str] = {"limit": str(limit)}
        if cursor:
            params["cursor"] = cursor
        status_value = status.value if isinstance(status, RunStatus) else status
        if status_value and status_value != "ALL":
            params["status"] = status_value
        if q:
            params["q"] = q

        payload = await self._request_json("GET", f"/{kind}/runs", params=params)
        data = unwrap_envelope(payload, f"Failed to list {kind.upper()} runs")
        return page_from_wire(kind, data)

    async def fetch_summary(self, kind: DocumentKind) -> RunSummary:
        payload = await self._request_json("GET", f"/{kind}/runs/summary")
        data = unwrap_envelope(payload, f"Failed to fetch {kind.upper()} summary")
        return summary_from_wire(data)

    async def download(
        self, kind: DocumentKind, run_id: str, file_format: DownloadFormat
    ) -> DownloadedFile:
        """Download the rendered document; one download per run at a time."""

        run_id = _require_run_id(run_id)
        if kind == "trp" and not is_uuid(run_id):
            raise ValueError("runId must be a valid UUID")
        if file_format not in _MEDIA_TYPES:
            raise ValueError("format must be pdf or docx")

        with self._downloads.hold(f"{kind}:{run_id}"):
            response = await self._send(
                "GET", f"/{kind}/runs/{run_id}/download", params={"format": file_format}
            )

        file_name = filename_from_disposition(response.headers.get("content-disposition"))
        return DownloadedFile(
            file_name=file_name or f"{kind.upper()}_{run_id}.{file_format}",
            content=response.content,
            media_type=response.headers.get("content-type") or _MEDIA_TYPES[file_format],
        )

    def is_downloading(self, kind: DocumentKind, run_id: str) -> bool:
        return self._downloads.is_busy(f"{kind}:{run_id}")

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._send(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                "Server returned an invalid JSON response.", status=response.status_code
            ) from exc

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        started = time.perf_counter()
        headers = auth_headers(self._session)
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            _log_event(logging.ERROR, "error", method=method, path=path, error=type(exc).__name__)
            raise ApiError(f"Could not reach the document API: {exc}") from exc

        _log_event(
            logging.INFO if response.is_success else logging.WARNING,
            "request",
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
        )
        if not response.is_success:
            self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status in {401, 403}:
            self._session.sign_out()
            raise SessionExpiredError(
                "Session expired or you do not have permission. Sign in again.", status=status
            )
        if status == 404:
            raise DocumentNotFoundError("Document not found.", status=status)
        if status == 409:
            raise DocumentNotReadyError("Document not finalized yet.", status=status)
        if status == 429:
            raise RateLimitedError("Wait a moment before retrying.", status=status)
        raise ApiError(_server_message(response) or f"Request failed ({status})", status=status)


def _require_run_id(run_id: str) -> str:
    if not isinstance(run_id, str) or not run_id.strip():
        raise ValueError("runId is required and must be a non-empty string")
    return run_id.strip()


def _server_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, **fields: Any) -> None:
    payload = {"event": event, **fields}
    logger.log(level, _dump_json(payload))


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
