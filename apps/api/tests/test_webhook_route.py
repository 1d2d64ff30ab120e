"""Tests for the webhook HTTP endpoint."""
from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import AgoraConfig, settings
from app.main import app
from app.services.gateway import RtcGateway, get_gateway
from conftest import make_webhook_body, sign_v2


@pytest.mark.asyncio
async def test_signed_webhook_is_acknowledged(override_gateway) -> None:
    body = make_webhook_body()
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post(
            "/api/webhooks/agora",
            content=body,
            headers={"Content-Type": "application/json", "Agora-Signature-V2": sign_v2(body)},
        )

    assert response.status_code == 200
    assert response.json() == {
        "status": "success",
        "event_name": "broadcaster_join_channel",
        "notice_id": "2000001428:4330:107",
    }


@pytest.mark.asyncio
async def test_bad_signature_is_rejected(override_gateway) -> None:
    body = make_webhook_body()
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post(
            "/api/webhooks/agora",
            content=body,
            headers={"Agora-Signature-V2": "0" * 64},
        )

    assert response.status_code == 401
    payload = response.json()
    assert payload["status"] == "error"
    assert payload["error_code"] == "WEBHOOK_ERROR"
    assert payload["details"] == {"algorithm": "SHA256"}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"{oops", b"[" * 100000 + b"]" * 100000])
async def test_malformed_body_is_bad_request(override_gateway, body) -> None:
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post("/api/webhooks/agora", content=body)

    assert response.status_code == 400
    assert response.json()["error_code"] == "WEBHOOK_ERROR"


@pytest.mark.asyncio
async def test_missing_customer_secret_is_config_error() -> None:
    gateway = RtcGateway(AgoraConfig(app_id="app", app_certificate="cert"))

    async def _override():
        yield gateway

    app.dependency_overrides[get_gateway] = _override
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.post("/api/webhooks/agora", content=make_webhook_body())
    finally:
        app.dependency_overrides.pop(get_gateway, None)

    assert response.status_code == 500
    assert response.json()["error_code"] == "CONFIG_ERROR"


@pytest.mark.asyncio
async def test_unverified_intake_without_customer_secret(monkeypatch) -> None:
    monkeypatch.setattr(settings, "webhook_verify_signature", False)
    gateway = RtcGateway(AgoraConfig(app_id="app", app_certificate="cert"))

    async def _override():
        yield gateway

    app.dependency_overrides[get_gateway] = _override
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.post("/api/webhooks/agora", content=make_webhook_body())
    finally:
        app.dependency_overrides.pop(get_gateway, None)

    assert response.status_code == 200
    assert response.json()["event_name"] == "broadcaster_join_channel"
