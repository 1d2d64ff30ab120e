"""Shared serialization and HMAC helpers for tokens and webhooks."""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
from typing import Any

HASH_ALGORITHMS = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
}


def dumps_compact(value: Any) -> str:
    """Serialize to JSON with no insignificant whitespace, preserving key order."""

    return json.dumps(value, separators=(",", ":"), ensure_ascii=True)


def b64encode_text(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def b64decode_text(value: str) -> str:
    """Strict base64 decode; raises ``ValueError`` on garbage."""

    return base64.b64decode(value.encode("ascii"), validate=True).decode("utf-8")


def _as_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def hmac_hex(key: str | bytes, message: str | bytes, algorithm: str = "sha256") -> str:
    """Return the lowercase hex HMAC digest of ``message``."""

    return hmac.new(_as_bytes(key), _as_bytes(message), HASH_ALGORITHMS[algorithm]).hexdigest()


def constant_time_equals(expected: str | bytes, provided: str | bytes) -> bool:
    """Compare two digests without short-circuiting on the first differing byte."""

    return hmac.compare_digest(_as_bytes(expected), _as_bytes(provided))
