"""Settings loading for the API client, run stores and CLI."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError

StoreMode = Literal["memory", "file", "api"]

_ENV_STRING_KEYS = {
    "TERMOS_API_URL": "api_url",
    "TERMOS_API_TOKEN": "api_token",
    "TERMOS_ORG_ID": "org_id",
    "TERMOS_STORE": "store",
    "TERMOS_STORE_PATH": "store_path",
}
_ENV_POSITIVE_FLOAT_KEYS = {
    "TERMOS_REQUEST_TIMEOUT_SECONDS": "request_timeout_seconds",
    "TERMOS_FETCH_CACHE_SECONDS": "fetch_cache_seconds",
}


class ClientSettings(BaseModel):
    """Resolved settings shared by every surface."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    api_url: str = Field(min_length=1)
    api_token: str | None = None
    org_id: str | None = None
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    fetch_cache_seconds: float = Field(default=10.0, ge=0)
    store: StoreMode = "file"
    store_path: Path = Path(".termos/runs.json")


def default_settings_path() -> Path:
    return Path(__file__).with_name("settings.yaml")


def load_settings(
    path: Path | None = None, environ: Mapping[str, str] | None = None
) -> ClientSettings:
    """Load settings from YAML, then apply ``TERMOS_*`` environment overrides."""

    settings_path = path or default_settings_path()

    try:
        raw = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Settings file not found: {settings_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in settings file: {settings_path}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file must contain a mapping: {settings_path}")

    merged = _apply_env_overrides(raw, os.environ if environ is None else environ)

    try:
        return ClientSettings.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings schema: {settings_path}") from exc


def _apply_env_overrides(
    raw: dict[object, object], environ: Mapping[str, str]
) -> dict[object, object]:
    merged = dict(raw)
    for env_name, key in _ENV_STRING_KEYS.items():
        value = environ.get(env_name)
        if value is None or not value.strip():
            continue
        merged[key] = value.strip()

    for env_name, key in _ENV_POSITIVE_FLOAT_KEYS.items():
        parsed = _positive_float(environ.get(env_name))
        if parsed is not None:
            merged[key] = parsed
    return merged


def _positive_float(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        parsed = float(raw)
    except ValueError:
        return None
    return parsed if parsed > 0 else None
