"""Shared fixtures for the RTC access API tests."""
from __future__ import annotations

import base64
import hashlib
import hmac
import json

import pytest

from app.core.config import AgoraConfig
from app.main import app
from app.services.gateway import RtcGateway, get_gateway

APP_ID = "970CA35de60c44645bbae8a215061b33"
APP_CERTIFICATE = "5CFd2fd1755d40ecb72977518be15d3b"
CUSTOMER_ID = "customer-id"
CUSTOMER_SECRET = "customer-secret"


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


# JSON allows Infinity, which cannot become an integer expiry.
NON_FINITE_EXPIRY = _b64(
    '{"signature":"x","content":{"iss":"a","exp":Infinity,"msg":"%s"}}'
    % _b64('{"salt":1,"ts":1,"privileges":{"1":0}}')
)


@pytest.fixture
def agora_config() -> AgoraConfig:
    return AgoraConfig(
        app_id=APP_ID,
        app_certificate=APP_CERTIFICATE,
        customer_id=CUSTOMER_ID,
        customer_secret=CUSTOMER_SECRET,
        api_base_url="https://api.test",
    )


@pytest.fixture
def gateway(agora_config: AgoraConfig) -> RtcGateway:
    return RtcGateway(agora_config)


@pytest.fixture
def override_gateway(gateway: RtcGateway):
    """Route requests through a gateway built from test credentials."""

    async def _override():
        yield gateway

    app.dependency_overrides[get_gateway] = _override
    yield gateway
    app.dependency_overrides.pop(get_gateway, None)


def make_webhook_body(**overrides) -> bytes:
    event = {
        "noticeId": "2000001428:4330:107",
        "productId": 1,
        "eventType": 103,
        "notifyMs": 1611566412672,
        "sid": "session-1",
        "payload": {
            "channelName": "test_webhook",
            "ts": 1560496834,
            "uid": 12121212,
            "platform": 1,
            "clientSeq": 1625051030746,
        },
    }
    event.update(overrides)
    return json.dumps(event).encode("utf-8")


def sign_v2(body: bytes, secret: str = CUSTOMER_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def sign_v1(body: bytes, secret: str = CUSTOMER_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha1).hexdigest()
