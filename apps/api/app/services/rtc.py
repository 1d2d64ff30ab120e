"""RTC token issuance.

Tokens are self-describing: anyone can read the issuer, channel, uid and expiries back
out of the string, but only a holder of the app certificate can produce or verify the
HMAC-SHA256 signature. Layout::

    base64(json({"signature": hex, "content": {iss, exp, channel?, uid?, msg}}))
    msg = base64(json({"salt", "ts", "privileges": {kind: expire}}))

The signature covers the compact JSON serialization of ``content``.
"""
from __future__ import annotations

import enum
import json
import logging
import re
import secrets
import time
from dataclasses import dataclass, field
from typing import Mapping

from ..core.errors import (
    InvalidChannelName,
    InvalidConfig,
    InvalidExpiry,
    InvalidRole,
    InvalidSubject,
    MalformedToken,
)
from .signing import b64decode_text, b64encode_text, constant_time_equals, dumps_compact, hmac_hex

logger = logging.getLogger(__name__)

SALT_MAX = 99999999
CHANNEL_NAME_MAX_LENGTH = 64
_CHANNEL_NAME_PATTERN = re.compile(r"[a-zA-Z0-9 !#$%&()+\-:;<=>?\[\]^_`{|}~,]+")


class Role(enum.IntEnum):
    PUBLISHER = 1
    SUBSCRIBER = 2


class Privilege(enum.IntEnum):
    JOIN_CHANNEL = 1
    PUBLISH_AUDIO_STREAM = 2
    PUBLISH_VIDEO_STREAM = 3
    PUBLISH_DATA_STREAM = 4


PUBLISH_PRIVILEGES = (
    Privilege.PUBLISH_AUDIO_STREAM,
    Privilege.PUBLISH_VIDEO_STREAM,
    Privilege.PUBLISH_DATA_STREAM,
)


@dataclass(slots=True)
class DecodedToken:
    """Readable view of a token. Nothing here is trusted until ``verify_token`` passes."""

    signature: str
    issuer: str
    expire_at: int
    channel_name: str | None
    uid: int
    salt: int
    issued_at: int
    privileges: dict[Privilege | int, int] = field(default_factory=dict)
    content: dict = field(default_factory=dict, repr=False)


def is_valid_channel_name(channel_name: str) -> bool:
    """Return True for 1-64 chars drawn from the allowed set (no ``@``)."""

    if not channel_name or len(channel_name) > CHANNEL_NAME_MAX_LENGTH:
        return False
    return _CHANNEL_NAME_PATTERN.fullmatch(channel_name) is not None


def build_token(
    app_id: str,
    app_certificate: str,
    channel_name: str,
    uid: int,
    role: Role | int,
    token_expire: int,
    privilege_expire: int = 0,
) -> str:
    """Build a token whose publish rights follow from ``role``.

    Every token may join the channel; publishers also get audio, video and data
    stream publishing, all sharing ``privilege_expire`` (0 means no expiry).
    """

    _check_identity(app_id, app_certificate)
    _check_channel(channel_name)
    resolved_role = _resolve_role(role)
    _check_token_expire(token_expire)
    _check_uid(uid)
    _check_privilege_expire("privilege_expire", privilege_expire)

    privileges: dict[Privilege, int] = {Privilege.JOIN_CHANNEL: privilege_expire}
    if resolved_role is Role.PUBLISHER:
        for privilege in PUBLISH_PRIVILEGES:
            privileges[privilege] = privilege_expire

    logger.debug("Issuing %s token for channel=%s uid=%s", resolved_role.name.lower(), channel_name, uid)
    return _generate_token(app_id, app_certificate, channel_name, uid, token_expire, privileges)


def build_token_with_privileges(
    app_id: str,
    app_certificate: str,
    channel_name: str,
    uid: int,
    token_expire: int,
    join_channel_expire: int = 0,
    publish_audio_expire: int = 0,
    publish_video_expire: int = 0,
    publish_data_expire: int = 0,
) -> str:
    """Build a token granting all four privileges with independent expiries."""

    _check_identity(app_id, app_certificate)
    _check_channel(channel_name)
    _check_token_expire(token_expire)
    _check_uid(uid)
    privileges = {
        Privilege.JOIN_CHANNEL: join_channel_expire,
        Privilege.PUBLISH_AUDIO_STREAM: publish_audio_expire,
        Privilege.PUBLISH_VIDEO_STREAM: publish_video_expire,
        Privilege.PUBLISH_DATA_STREAM: publish_data_expire,
    }
    for privilege, expire in privileges.items():
        _check_privilege_expire(f"{privilege.name.lower()}_expire", expire)

    logger.debug("Issuing custom-privilege token for channel=%s uid=%s", channel_name, uid)
    return _generate_token(app_id, app_certificate, channel_name, uid, token_expire, privileges)


def decode_token(token: str) -> DecodedToken:
    """Read a token back without checking its signature."""

    try:
        envelope = json.loads(b64decode_text(token))
        signature = envelope["signature"]
        content = envelope["content"]
        message = json.loads(b64decode_text(content["msg"]))
        privileges = {
            _privilege_key(kind): int(expire) for kind, expire in message["privileges"].items()
        }
        return DecodedToken(
            signature=str(signature),
            issuer=str(content["iss"]),
            expire_at=int(content["exp"]),
            channel_name=content.get("channel"),
            uid=int(content.get("uid", 0)),
            salt=int(message["salt"]),
            issued_at=int(message["ts"]),
            privileges=privileges,
            content=content,
        )
    except (ValueError, TypeError, KeyError, AttributeError, OverflowError, RecursionError) as exc:
        raise MalformedToken("Token could not be decoded") from exc


def verify_token(token: str, app_certificate: str) -> bool:
    """Return True when the embedded signature matches ``app_certificate``."""

    decoded = decode_token(token)
    expected = sign_content(app_certificate, decoded.content)
    return constant_time_equals(expected, decoded.signature)


def sign_content(app_certificate: str, content: Mapping[str, object]) -> str:
    return hmac_hex(app_certificate, dumps_compact(content), "sha256")


def _generate_token(
    app_id: str,
    app_certificate: str,
    channel_name: str,
    uid: int,
    token_expire: int,
    privileges: Mapping[Privilege, int],
) -> str:
    issued_at = _now()
    message = {
        "salt": _draw_salt(),
        "ts": issued_at,
        "privileges": {str(int(kind)): expire for kind, expire in privileges.items()},
    }

    content: dict[str, object] = {"iss": app_id, "exp": issued_at + token_expire}
    if channel_name:
        content["channel"] = channel_name
    if uid > 0:
        content["uid"] = uid
    content["msg"] = b64encode_text(dumps_compact(message))

    envelope = {"signature": sign_content(app_certificate, content), "content": content}
    return b64encode_text(dumps_compact(envelope))


def _now() -> int:
    return int(time.time())


def _draw_salt() -> int:
    return secrets.randbelow(SALT_MAX) + 1


def _privilege_key(kind: str) -> Privilege | int:
    code = int(kind)
    try:
        return Privilege(code)
    except ValueError:
        return code


def _check_identity(app_id: str, app_certificate: str) -> None:
    if not app_id:
        raise InvalidConfig("App ID cannot be empty")
    if not app_certificate:
        raise InvalidConfig("App Certificate cannot be empty")


def _check_channel(channel_name: str) -> None:
    if not is_valid_channel_name(channel_name):
        raise InvalidChannelName(channel_name)


def _resolve_role(role: Role | int) -> Role:
    if isinstance(role, bool):
        raise InvalidRole(role)
    try:
        return Role(role)
    except ValueError as exc:
        raise InvalidRole(role) from exc


def _check_token_expire(token_expire: int) -> None:
    if isinstance(token_expire, bool) or not isinstance(token_expire, int) or token_expire <= 0:
        raise InvalidExpiry("token_expire", token_expire)


def _check_privilege_expire(field_name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidExpiry(field_name, value, "a non-negative integer")


def _check_uid(uid: int) -> None:
    if isinstance(uid, bool) or not isinstance(uid, int) or uid < 0:
        raise InvalidSubject(uid)
