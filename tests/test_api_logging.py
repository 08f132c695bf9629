from __future__ import annotations

import logging

import httpx
import pytest

from apps.api.main import app


@pytest.mark.anyio
async def test_api_logs_request_id_for_success(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="termos.api")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post("/v1/trp/display", json={"numero_contrato": "058/2025"})

    assert response.status_code == 200
    request_id = response.headers["X-Termos-Request-Id"]
    messages = [record.message for record in caplog.records if record.name == "termos.api"]
    assert any('"event":"start"' in message and request_id in message for message in messages)
    assert any(
        '"event":"done"' in message and request_id in message and '"total_ms"' in message
        for message in messages
    )


@pytest.mark.anyio
async def test_api_logs_request_id_and_error_code_for_failure(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="termos.api")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post("/v1/trp/display", json=["not", "an", "object"])

    assert response.status_code == 422
    request_id = response.headers["X-Termos-Request-Id"]
    messages = [record.message for record in caplog.records if record.name == "termos.api"]
    assert any(
        '"event":"error"' in message
        and request_id in message
        and '"error_code":"INVALID_FIELD_RECORD"' in message
        and '"failure_stage":"build_sections"' in message
        for message in messages
    )
