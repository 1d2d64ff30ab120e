"""Tests for the cloud recording REST client."""
from __future__ import annotations

import base64
import json

import httpx
import pytest

from app.core.config import AgoraConfig
from app.core.errors import ConfigError, RecordingError
from app.services import recording
from app.services.recording import CloudRecordingClient

STORAGE = recording.build_storage_config(0, 0, "bucket", "ak", "sk", ["recordings"])


class RecordedTransport:
    """Mock transport that records requests and replays canned responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)


def _client(agora_config: AgoraConfig, transport: RecordedTransport) -> CloudRecordingClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    return CloudRecordingClient(agora_config, client=http_client)


def test_requires_restful_credentials():
    with pytest.raises(ConfigError):
        CloudRecordingClient(AgoraConfig(app_id="app", app_certificate="cert"))


@pytest.mark.asyncio
async def test_acquire_posts_basic_auth(agora_config):
    transport = RecordedTransport(httpx.Response(200, json={"resourceId": "res-1"}))

    async with _client(agora_config, transport) as client:
        result = await client.acquire("test_channel", 999999)

    assert result == {"resource_id": "res-1", "channel_name": "test_channel", "uid": 999999}
    request = transport.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"https://api.test/v1/apps/{agora_config.app_id}/cloud_recording/acquire"
    expected_auth = base64.b64encode(b"customer-id:customer-secret").decode()
    assert request.headers["Authorization"] == f"Basic {expected_auth}"
    assert json.loads(request.content) == {"cname": "test_channel", "uid": "999999", "clientRequest": {}}


@pytest.mark.asyncio
async def test_start_merges_recording_config(agora_config):
    transport = RecordedTransport(httpx.Response(200, json={"sid": "sid-1", "resourceId": "res-1"}))

    async with _client(agora_config, transport) as client:
        result = await client.start(
            "res-1", "test_channel", 999999, "token", STORAGE, "composite", {"streamTypes": 0}
        )

    assert result["sid"] == "sid-1"
    assert result["mode"] == "composite"
    request = transport.requests[0]
    assert request.url.path.endswith("/cloud_recording/resourceid/res-1/mode/composite/start")
    client_request = json.loads(request.content)["clientRequest"]
    assert client_request["token"] == "token"
    assert client_request["storageConfig"]["fileNamePrefix"] == ["recordings"]
    assert client_request["recordingConfig"]["streamTypes"] == 0
    assert client_request["recordingConfig"]["channelType"] == 0
    assert client_request["recordingConfig"]["maxIdleTime"] == 30


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("args", "message"),
    [
        (("", "c", 1, "t", STORAGE, "composite"), "Resource ID cannot be empty"),
        (("r", "", 1, "t", STORAGE, "composite"), "Channel name cannot be empty"),
        (("r", "c", 0, "t", STORAGE, "composite"), "UID must be greater than 0"),
        (("r", "c", 1, "", STORAGE, "composite"), "Token cannot be empty"),
        (("r", "c", 1, "t", STORAGE, "mixed"), "Invalid recording mode"),
        (("r", "c", 1, "t", {"vendor": 0}, "composite"), "Missing storage config field: region"),
    ],
)
async def test_start_validates_before_request(agora_config, args, message):
    transport = RecordedTransport()

    async with _client(agora_config, transport) as client:
        with pytest.raises(RecordingError) as exc:
            await client.start(*args)

    assert exc.value.message == message
    assert exc.value.status_code == 400
    assert transport.requests == []


@pytest.mark.asyncio
async def test_query_normalizes_response(agora_config):
    transport = RecordedTransport(
        httpx.Response(200, json={"serverResponse": {"status": 5, "fileList": "a.m3u8"}})
    )

    async with _client(agora_config, transport) as client:
        result = await client.query("res-1", "sid-1")

    assert result == {"status": 5, "file_list": "a.m3u8", "upload_status": "unknown"}
    assert transport.requests[0].method == "GET"


@pytest.mark.asyncio
async def test_stop_defaults_missing_fields(agora_config):
    transport = RecordedTransport(httpx.Response(200, json={}))

    async with _client(agora_config, transport) as client:
        result = await client.stop("res-1", "sid-1", "test_channel", 999999)

    assert result == {"upload_status": "unknown", "file_list": [], "file_list_mode": "unknown"}


@pytest.mark.asyncio
async def test_upstream_error_is_wrapped(agora_config):
    transport = RecordedTransport(httpx.Response(404, json={"code": 404, "reason": "no resource"}))

    async with _client(agora_config, transport) as client:
        with pytest.raises(RecordingError) as exc:
            await client.query("res-1", "sid-1")

    assert exc.value.message == "Failed to query recording status: no resource"
    assert exc.value.http_status == 404
    assert exc.value.upstream_code == "404"
    assert exc.value.status_code == 502


@pytest.mark.asyncio
async def test_non_json_response_is_wrapped(agora_config):
    transport = RecordedTransport(httpx.Response(200, text="<html>"))

    async with _client(agora_config, transport) as client:
        with pytest.raises(RecordingError) as exc:
            await client.acquire("test_channel", 5)

    assert "Invalid JSON response" in exc.value.message


@pytest.mark.asyncio
async def test_transport_failure_is_wrapped(agora_config):
    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(_boom))
    async with CloudRecordingClient(agora_config, client=http_client) as client:
        with pytest.raises(RecordingError) as exc:
            await client.acquire("test_channel", 5)

    assert "Transport error" in exc.value.message
    assert agora_config.customer_secret not in exc.value.message


@pytest.mark.asyncio
async def test_session_identifiers_stay_in_one_path_segment(agora_config):
    transport = RecordedTransport(httpx.Response(200, json={}))

    async with _client(agora_config, transport) as client:
        await client.stop("../../acquire", "a/b", "test_channel", 999999)

    raw_path = transport.requests[0].url.raw_path
    assert raw_path == (
        f"/v1/apps/{agora_config.app_id}/cloud_recording/resourceid/"
        "..%2F..%2Facquire/sid/a%2Fb/mode/composite/stop"
    ).encode()


@pytest.mark.asyncio
@pytest.mark.parametrize(("resource_id", "sid"), [("..", "sid-1"), ("res-1", ".")])
async def test_dot_segments_are_rejected(agora_config, resource_id, sid):
    transport = RecordedTransport()

    async with _client(agora_config, transport) as client:
        with pytest.raises(RecordingError) as exc:
            await client.query(resource_id, sid)

    assert exc.value.message.startswith("Invalid ")
    assert exc.value.status_code == 400
    assert transport.requests == []
