"""Cloud recording REST client.

Thin wrapper over the acquire/start/query/stop lifecycle endpoints. Requests are sent
once; callers decide whether to retry.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from ..core.config import APP_VERSION, AgoraConfig, settings
from ..core.errors import ApiError, ConfigError, RecordingError

logger = logging.getLogger(__name__)

MODE_INDIVIDUAL = "individual"
MODE_COMPOSITE = "composite"
MODE_WEB = "web"
RECORDING_MODES = frozenset({MODE_INDIVIDUAL, MODE_COMPOSITE, MODE_WEB})

CHANNEL_TYPE_COMMUNICATION = 0
CHANNEL_TYPE_LIVE_BROADCAST = 1

REQUIRED_STORAGE_FIELDS = ("vendor", "region", "bucket", "accessKey", "secretKey")

DEFAULT_RECORDING_CONFIG: Mapping[str, Any] = {
    "channelType": CHANNEL_TYPE_COMMUNICATION,
    "streamTypes": 2,
    "maxIdleTime": 30,
}


class CloudRecordingClient:
    """Async client for one project's recording endpoints."""

    def __init__(
        self,
        config: AgoraConfig,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        if not config.is_restful_api_config_valid():
            raise ConfigError("RESTful API configuration is incomplete")
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.http_timeout_seconds
        )

    async def __aenter__(self) -> "CloudRecordingClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def acquire(self, channel_name: str, uid: int) -> dict[str, Any]:
        """Reserve a recording resource for ``channel_name``."""

        if not channel_name:
            raise RecordingError("Channel name cannot be empty")
        if uid <= 0:
            raise RecordingError("UID must be greater than 0")

        body = {"cname": channel_name, "uid": str(uid), "clientRequest": {}}
        response = await self._call("acquire recording resource", "POST", "cloud_recording/acquire", body)
        return {
            "resource_id": response.get("resourceId"),
            "channel_name": channel_name,
            "uid": uid,
        }

    async def start(
        self,
        resource_id: str,
        channel_name: str,
        uid: int,
        token: str,
        storage_config: Mapping[str, Any],
        mode: str = MODE_COMPOSITE,
        recording_config: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Start recording with a subscriber token minted for ``uid``."""

        _validate_start(resource_id, channel_name, uid, token, storage_config, mode)
        merged_config = {
            **DEFAULT_RECORDING_CONFIG,
            "maxIdleTime": settings.recording_max_idle_time,
            **(recording_config or {}),
        }
        body = {
            "cname": channel_name,
            "uid": str(uid),
            "clientRequest": {
                "token": token,
                "storageConfig": dict(storage_config),
                "recordingConfig": merged_config,
            },
        }
        resource = _segment("Resource ID", resource_id)
        endpoint = f"cloud_recording/resourceid/{resource}/mode/{mode}/start"
        response = await self._call("start recording", "POST", endpoint, body)
        return {
            "resource_id": resource_id,
            "sid": response.get("sid"),
            "channel_name": channel_name,
            "uid": uid,
            "mode": mode,
        }

    async def query(self, resource_id: str, sid: str, mode: str = MODE_COMPOSITE) -> dict[str, Any]:
        _validate_session(resource_id, sid, mode)
        endpoint = f"{_session_path(resource_id, sid, mode)}/query"
        response = await self._call("query recording status", "GET", endpoint)
        server_response = response.get("serverResponse") or {}
        return {
            "status": server_response.get("status", "unknown"),
            "file_list": server_response.get("fileList", []),
            "upload_status": server_response.get("uploadingStatus", "unknown"),
        }

    async def stop(
        self,
        resource_id: str,
        sid: str,
        channel_name: str,
        uid: int,
        mode: str = MODE_COMPOSITE,
    ) -> dict[str, Any]:
        _validate_session(resource_id, sid, mode)
        body = {"cname": channel_name, "uid": str(uid), "clientRequest": {}}
        endpoint = f"{_session_path(resource_id, sid, mode)}/stop"
        response = await self._call("stop recording", "POST", endpoint, body)
        server_response = response.get("serverResponse") or {}
        return {
            "upload_status": server_response.get("uploadingStatus", "unknown"),
            "file_list": server_response.get("fileList", []),
            "file_list_mode": server_response.get("fileListMode", "unknown"),
        }

    async def _call(
        self,
        operation: str,
        method: str,
        endpoint: str,
        body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            return await self._request(method, endpoint, body)
        except ApiError as exc:
            logger.error("Failed to %s: %s (status=%s)", operation, exc.message, exc.http_status)
            raise RecordingError(
                f"Failed to {operation}: {exc.message}",
                http_status=exc.http_status,
                upstream_code=exc.upstream_code,
                upstream=True,
            ) from exc

    async def _request(
        self,
        method: str,
        endpoint: str,
        body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._config.api_base_url}/v1/apps/{self._config.app_id}/{endpoint.lstrip('/')}"
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"rtc-access-api/{APP_VERSION}",
            "Authorization": self._config.basic_auth_header(),
        }

        try:
            response = await self._client.request(method, url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise ApiError(f"Transport error: {exc.__class__.__name__}") from exc

        try:
            decoded = response.json()
        except ValueError as exc:
            raise ApiError("Invalid JSON response", http_status=response.status_code) from exc
        if not isinstance(decoded, dict):
            raise ApiError("Invalid JSON response", http_status=response.status_code)

        if response.status_code >= 400:
            code = decoded.get("code")
            raise ApiError(
                str(decoded.get("message") or decoded.get("reason") or "Unknown error"),
                http_status=response.status_code,
                upstream_code=str(code) if code is not None else None,
                details={"upstream_status": response.status_code},
            )

        return decoded


def build_storage_config(
    vendor: int,
    region: int,
    bucket: str,
    access_key: str,
    secret_key: str,
    file_name_prefix: list[str] | None = None,
) -> dict[str, Any]:
    config: dict[str, Any] = {
        "vendor": vendor,
        "region": region,
        "bucket": bucket,
        "accessKey": access_key,
        "secretKey": secret_key,
    }
    if file_name_prefix:
        config["fileNamePrefix"] = list(file_name_prefix)
    return config


def _validate_start(
    resource_id: str,
    channel_name: str,
    uid: int,
    token: str,
    storage_config: Mapping[str, Any],
    mode: str,
) -> None:
    if not resource_id:
        raise RecordingError("Resource ID cannot be empty")
    if not channel_name:
        raise RecordingError("Channel name cannot be empty")
    if uid <= 0:
        raise RecordingError("UID must be greater than 0")
    if not token:
        raise RecordingError("Token cannot be empty")
    if mode not in RECORDING_MODES:
        raise RecordingError("Invalid recording mode")
    for name in REQUIRED_STORAGE_FIELDS:
        if storage_config.get(name) is None:
            raise RecordingError(f"Missing storage config field: {name}")


def _validate_session(resource_id: str, sid: str, mode: str) -> None:
    if not resource_id:
        raise RecordingError("Resource ID cannot be empty")
    if not sid:
        raise RecordingError("SID cannot be empty")
    if mode not in RECORDING_MODES:
        raise RecordingError("Invalid recording mode")


def _segment(name: str, value: str) -> str:
    # Identifiers are interpolated into the upstream path; they must stay one segment.
    if value in (".", ".."):
        raise RecordingError(f"Invalid {name}")
    return quote(value, safe="")


def _session_path(resource_id: str, sid: str, mode: str) -> str:
    resource = _segment("Resource ID", resource_id)
    return f"cloud_recording/resourceid/{resource}/sid/{_segment('SID', sid)}/mode/{mode}"
