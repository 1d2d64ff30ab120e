"""Authentication and decoding of Agora notification webhooks.

Validation runs in a fixed order: decode the body, check the envelope, verify the
signature over the exact received bytes, then enrich the payload. Unknown event
codes and unknown lookup codes degrade to sentinel names instead of failing.
"""
from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from ..core.errors import (
    InvalidFieldType,
    InvalidSignature,
    MalformedPayload,
    MissingField,
    MissingSignature,
    WebhookError,
)
from ..schemas.webhooks import WebhookEvent
from .signing import constant_time_equals, hmac_hex

logger = logging.getLogger(__name__)

EVENT_CHANNEL_CREATE = 101
EVENT_CHANNEL_DESTROY = 102
EVENT_BROADCASTER_JOIN = 103
EVENT_BROADCASTER_LEAVE = 104
EVENT_AUDIENCE_JOIN = 105
EVENT_AUDIENCE_LEAVE = 106
EVENT_CLIENT_ROLE_CHANGE_TO_BROADCASTER = 111
EVENT_CLIENT_ROLE_CHANGE_TO_AUDIENCE = 112

UNKNOWN_EVENT = "unknown_event"
UNKNOWN_PLATFORM = "Unknown"
UNKNOWN_REASON = "Unknown reason"

EVENT_NAMES: Mapping[int, str] = MappingProxyType(
    {
        EVENT_CHANNEL_CREATE: "channel_create",
        EVENT_CHANNEL_DESTROY: "channel_destroy",
        EVENT_BROADCASTER_JOIN: "broadcaster_join_channel",
        EVENT_BROADCASTER_LEAVE: "broadcaster_leave_channel",
        EVENT_AUDIENCE_JOIN: "audience_join_channel",
        EVENT_AUDIENCE_LEAVE: "audience_leave_channel",
        EVENT_CLIENT_ROLE_CHANGE_TO_BROADCASTER: "client_role_change_to_broadcaster",
        EVENT_CLIENT_ROLE_CHANGE_TO_AUDIENCE: "client_role_change_to_audience",
    }
)

PLATFORMS: Mapping[int, str] = MappingProxyType(
    {
        0: "Other platforms",
        1: "Android",
        2: "iOS",
        5: "Windows",
        6: "Linux",
        7: "Web",
        8: "macOS",
    }
)

LEAVE_REASONS: Mapping[int, str] = MappingProxyType(
    {
        0: "Other reasons",
        1: "Normal leave",
        2: "Connection timeout",
        3: "Permission issue",
        4: "Server internal reason",
        5: "Device switch",
        9: "Multiple IP addresses",
        10: "Network connection problem",
        999: "Abnormal user",
    }
)

CHANNEL_EVENTS = frozenset({EVENT_CHANNEL_CREATE, EVENT_CHANNEL_DESTROY})
USER_EVENTS = frozenset(
    {
        EVENT_BROADCASTER_JOIN,
        EVENT_BROADCASTER_LEAVE,
        EVENT_AUDIENCE_JOIN,
        EVENT_AUDIENCE_LEAVE,
        EVENT_CLIENT_ROLE_CHANGE_TO_BROADCASTER,
        EVENT_CLIENT_ROLE_CHANGE_TO_AUDIENCE,
    }
)

REQUIRED_FIELDS = ("noticeId", "productId", "eventType", "notifyMs", "payload")

# Lowercased header names. v2 (HMAC-SHA256) wins over v1 (HMAC-SHA1) when both are sent.
SIGNATURE_V2_HEADERS = frozenset({"agora-signature-v2", "signature-v2"})
SIGNATURE_V1_HEADERS = frozenset({"agora-signature", "signature"})


def parse_event(
    raw_body: bytes | str,
    headers: Mapping[str, str],
    secret: str,
    verify_signature: bool = True,
) -> WebhookEvent:
    """Authenticate ``raw_body`` and return the enriched event."""

    body = raw_body.encode("utf-8") if isinstance(raw_body, str) else bytes(raw_body)
    document = _decode_body(body)
    _validate_envelope(document)
    if verify_signature:
        _verify_signature(body, headers, secret)

    event_type = document["eventType"]
    return WebhookEvent(
        notice_id=str(document["noticeId"]),
        product_id=document["productId"],
        event_type=event_type,
        event_name=event_name(event_type),
        notify_timestamp=document["notifyMs"],
        session_id=document.get("sid"),
        payload=enrich_payload(document["payload"]),
    )


class EventAuthenticator:
    """Binds the customer secret for repeated ``parse_event`` calls."""

    __slots__ = ("_secret",)

    def __init__(self, secret: str) -> None:
        self._secret = secret

    def __repr__(self) -> str:
        return "EventAuthenticator(secret=***)"

    def parse_event(
        self,
        raw_body: bytes | str,
        headers: Mapping[str, str] | None = None,
        verify_signature: bool = True,
    ) -> WebhookEvent:
        try:
            return parse_event(raw_body, headers or {}, self._secret, verify_signature)
        except WebhookError as exc:
            logger.warning("Rejected webhook: %s (%s)", exc.error_code, exc.message)
            raise


def event_name(event_type: int) -> str:
    return EVENT_NAMES.get(event_type, UNKNOWN_EVENT)


def is_channel_event(event_type: int) -> bool:
    return event_type in CHANNEL_EVENTS


def is_user_event(event_type: int) -> bool:
    return event_type in USER_EVENTS


def format_duration(seconds: int) -> str:
    """``HH:MM:SS`` for an hour or more, otherwise ``MM:SS``."""

    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_event_time(ts: int | float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def enrich_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Copy ``payload`` and add readable fields for the codes it carries."""

    enriched = dict(payload)

    platform = payload.get("platform")
    if platform is not None:
        enriched["platform_name"] = _lookup(PLATFORMS, platform, UNKNOWN_PLATFORM)

    reason = payload.get("reason")
    if reason is not None:
        enriched["leave_reason_text"] = _lookup(LEAVE_REASONS, reason, UNKNOWN_REASON)

    ts = payload.get("ts")
    if ts is not None:
        try:
            enriched["event_time"] = format_event_time(_require_number("payload.ts", ts))
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidFieldType("payload.ts", "a unix timestamp") from exc

    duration = payload.get("duration")
    if duration is not None:
        seconds = _require_number("payload.duration", duration)
        if seconds < 0:
            raise InvalidFieldType("payload.duration", "a non-negative number")
        enriched["duration_formatted"] = format_duration(seconds)

    return enriched


def _decode_body(body: bytes) -> dict[str, Any]:
    try:
        document = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        raise MalformedPayload(f"Invalid JSON format: {exc.__class__.__name__}") from exc
    if not isinstance(document, dict):
        raise MalformedPayload("Invalid JSON format: expected an object")
    return document


def _validate_envelope(document: Mapping[str, Any]) -> None:
    for name in REQUIRED_FIELDS:
        if document.get(name) is None:
            raise MissingField(name)

    if not _is_int(document["eventType"]):
        raise InvalidFieldType("eventType", "an integer")
    if not _is_int(document["productId"]):
        raise InvalidFieldType("productId", "an integer")
    if not _is_int(document["notifyMs"]):
        raise InvalidFieldType("notifyMs", "an integer")
    if not isinstance(document["payload"], dict):
        raise InvalidFieldType("payload", "an object")
    sid = document.get("sid")
    if sid is not None and not isinstance(sid, str):
        raise InvalidFieldType("sid", "a string")


def _verify_signature(body: bytes, headers: Mapping[str, str], secret: str) -> None:
    signature_v1: str | None = None
    signature_v2: str | None = None
    for key, value in headers.items():
        lowered = key.lower()
        if lowered in SIGNATURE_V2_HEADERS:
            signature_v2 = value
        elif lowered in SIGNATURE_V1_HEADERS:
            signature_v1 = value

    if signature_v2:
        expected = hmac_hex(secret, body, "sha256")
        if not constant_time_equals(expected, signature_v2):
            raise InvalidSignature("SHA256")
    elif signature_v1:
        expected = hmac_hex(secret, body, "sha1")
        if not constant_time_equals(expected, signature_v1):
            raise InvalidSignature("SHA1")
    else:
        raise MissingSignature()


def _lookup(table: Mapping[int, str], code: Any, default: str) -> str:
    if not _is_int(code):
        return default
    return table.get(code, default)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_number(field_name: str, value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidFieldType(field_name, "a number")
    return value
