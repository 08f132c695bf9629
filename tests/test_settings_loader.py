from __future__ import annotations

from pathlib import Path

import pytest

from core.config.settings_loader import default_settings_path, load_settings


def test_default_settings_load() -> None:
    settings = load_settings(default_settings_path(), environ={})

    assert settings.api_url == "http://localhost:3001/api"
    assert settings.api_token is None
    assert settings.store == "file"
    assert settings.store_path == Path(".termos/runs.json")
    assert settings.request_timeout_seconds == 30
    assert settings.fetch_cache_seconds == 10


def test_environment_overrides_yaml(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text("api_url: http://yaml.test\nstore: memory\n", encoding="utf-8")

    settings = load_settings(
        settings_path,
        environ={
            "TERMOS_API_URL": " http://env.test ",
            "TERMOS_API_TOKEN": "secret",
            "TERMOS_STORE": "file",
            "TERMOS_STORE_PATH": str(tmp_path / "runs.json"),
            "TERMOS_REQUEST_TIMEOUT_SECONDS": "5",
            "TERMOS_ORG_ID": "   ",
        },
    )

    assert settings.api_url == "http://env.test"
    assert settings.api_token == "secret"
    assert settings.org_id is None
    assert settings.store == "file"
    assert settings.store_path == tmp_path / "runs.json"
    assert settings.request_timeout_seconds == 5.0


@pytest.mark.parametrize("raw", ["abc", "0", "-3"])
def test_invalid_numeric_overrides_are_ignored(tmp_path: Path, raw: str) -> None:
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text("api_url: http://yaml.test\n", encoding="utf-8")

    settings = load_settings(settings_path, environ={"TERMOS_FETCH_CACHE_SECONDS": raw})

    assert settings.fetch_cache_seconds == 10.0


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Settings file not found"):
        load_settings(tmp_path / "absent.yaml", environ={})


def test_invalid_yaml(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text("api_url: [unclosed\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_settings(settings_path, environ={})


def test_non_mapping_yaml(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="must contain a mapping"):
        load_settings(settings_path, environ={})


def test_schema_errors(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text("api_url: http://x\nstore: redis\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid settings schema"):
        load_settings(settings_path, environ={})


def test_empty_file_needs_api_url_from_environment(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text("", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid settings schema"):
        load_settings(settings_path, environ={})

    settings = load_settings(settings_path, environ={"TERMOS_API_URL": "http://env.test"})
    assert settings.api_url == "http://env.test"
