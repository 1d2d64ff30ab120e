"""Facade wiring channel validation, token issuance, webhooks and recording together."""
from __future__ import annotations

import logging
import time
from collections.abc import AsyncGenerator
from typing import Any, Mapping

import httpx

from ..core.config import APP_VERSION, AgoraConfig, settings
from ..core.errors import ConfigError, InvalidChannelName
from ..schemas.webhooks import WebhookEvent
from . import rtc
from .recording import CloudRecordingClient
from .webhooks import EventAuthenticator

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_UID = 1


class RtcGateway:
    """Entry point used by the HTTP layer.

    The recording client and event authenticator are created lazily because they need
    the customer credentials, which token-only deployments do not configure.
    """

    def __init__(self, config: AgoraConfig, *, http_client: httpx.AsyncClient | None = None) -> None:
        if not config.is_valid():
            raise ConfigError("Invalid Agora configuration")
        self._config = config
        self._http_client = http_client
        self._recording: CloudRecordingClient | None = None
        self._authenticator: EventAuthenticator | None = None

    @property
    def config(self) -> AgoraConfig:
        return self._config

    @staticmethod
    def version() -> str:
        return APP_VERSION

    def generate_token(
        self,
        channel_name: str,
        uid: int = 0,
        role: rtc.Role | int = rtc.Role.PUBLISHER,
        expire: int | None = None,
        privilege_expire: int | None = None,
    ) -> str:
        return rtc.build_token(
            self._config.app_id,
            self._config.app_certificate,
            channel_name,
            uid,
            role,
            settings.token_expire_seconds if expire is None else expire,
            settings.privilege_expire_seconds if privilege_expire is None else privilege_expire,
        )

    def generate_token_with_privileges(
        self,
        channel_name: str,
        uid: int,
        expire: int | None = None,
        join_channel_expire: int = 0,
        publish_audio_expire: int = 0,
        publish_video_expire: int = 0,
        publish_data_expire: int = 0,
    ) -> str:
        return rtc.build_token_with_privileges(
            self._config.app_id,
            self._config.app_certificate,
            channel_name,
            uid,
            settings.token_expire_seconds if expire is None else expire,
            join_channel_expire,
            publish_audio_expire,
            publish_video_expire,
            publish_data_expire,
        )

    def create_room(
        self,
        channel_name: str,
        admin_uid: int = DEFAULT_ADMIN_UID,
        token_expire: int | None = None,
    ) -> dict[str, Any]:
        """Mint a publisher token for the room admin.

        Channels exist implicitly once someone joins; this only hands out the first
        credential.
        """

        if not rtc.is_valid_channel_name(channel_name):
            raise InvalidChannelName(channel_name)
        expire = settings.token_expire_seconds if token_expire is None else token_expire
        admin_token = self.generate_token(channel_name, admin_uid, rtc.Role.PUBLISHER, expire)
        logger.info("Created room channel=%s admin_uid=%s", channel_name, admin_uid)
        return {
            "channel_name": channel_name,
            "admin_uid": admin_uid,
            "admin_token": admin_token,
            "token_expire_time": expire,
            "created_at": int(time.time()),
        }

    def generate_user_token(
        self,
        channel_name: str,
        uid: int,
        is_publisher: bool = True,
        expire: int | None = None,
    ) -> dict[str, Any]:
        role = rtc.Role.PUBLISHER if is_publisher else rtc.Role.SUBSCRIBER
        expire = settings.token_expire_seconds if expire is None else expire
        token = self.generate_token(channel_name, uid, role, expire)
        return {
            "channel_name": channel_name,
            "uid": uid,
            "token": token,
            "role": int(role),
            "is_publisher": is_publisher,
            "expire_time": expire,
            "generated_at": int(time.time()),
        }

    def event_authenticator(self) -> EventAuthenticator:
        if self._authenticator is None:
            if not self._config.customer_secret:
                raise ConfigError("Event parser requires Customer Secret for signature verification")
            self._authenticator = EventAuthenticator(self._config.customer_secret)
        return self._authenticator

    def parse_webhook_event(
        self,
        raw_body: bytes | str,
        headers: Mapping[str, str] | None = None,
        verify_signature: bool = True,
    ) -> WebhookEvent:
        """Parse a notification; the customer secret is only required when verifying."""

        if not verify_signature:
            authenticator = EventAuthenticator(self._config.customer_secret)
            return authenticator.parse_event(raw_body, headers, verify_signature=False)
        return self.event_authenticator().parse_event(raw_body, headers, verify_signature)

    def recording_client(self) -> CloudRecordingClient:
        if self._recording is None:
            if not self._config.is_restful_api_config_valid():
                raise ConfigError("Cloud recording requires Customer ID and Customer Secret")
            self._recording = CloudRecordingClient(self._config, client=self._http_client)
        return self._recording

    async def start_recording(
        self,
        channel_name: str,
        storage_config: Mapping[str, Any],
        *,
        recording_uid: int | None = None,
        token_expire: int | None = None,
        mode: str | None = None,
        recording_config: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Acquire a resource, mint a subscriber token for the recorder and start it."""

        client = self.recording_client()
        uid = settings.recording_uid if recording_uid is None else recording_uid
        mode = mode or settings.recording_mode
        recording_token = self.generate_token(channel_name, uid, rtc.Role.SUBSCRIBER, token_expire)

        acquired = await client.acquire(channel_name, uid)
        started = await client.start(
            acquired["resource_id"],
            channel_name,
            uid,
            recording_token,
            storage_config,
            mode,
            recording_config,
        )
        logger.info("Recording started channel=%s sid=%s", channel_name, started.get("sid"))
        return {
            **acquired,
            **started,
            "recording_token": recording_token,
            "started_at": int(time.time()),
        }

    async def stop_recording(
        self,
        resource_id: str,
        sid: str,
        channel_name: str,
        recording_uid: int,
        mode: str | None = None,
    ) -> dict[str, Any]:
        result = await self.recording_client().stop(
            resource_id, sid, channel_name, recording_uid, mode or settings.recording_mode
        )
        logger.info("Recording stopped channel=%s sid=%s", channel_name, sid)
        return {**result, "stopped_at": int(time.time())}

    async def query_recording(self, resource_id: str, sid: str, mode: str | None = None) -> dict[str, Any]:
        return await self.recording_client().query(resource_id, sid, mode or settings.recording_mode)

    async def aclose(self) -> None:
        if self._recording is not None:
            await self._recording.aclose()
            self._recording = None


async def get_gateway() -> AsyncGenerator[RtcGateway, None]:
    """FastAPI dependency to provide a gateway for the configured project."""

    gateway = RtcGateway(AgoraConfig.from_settings())
    try:
        yield gateway
    finally:
        await gateway.aclose()
