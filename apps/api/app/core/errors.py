"""Typed failures raised by token issuance, webhook parsing and recording calls.

Token and webhook errors are local validation failures that are never retried. Messages
name the offending field or algorithm but never include secret material.
"""
from __future__ import annotations

from typing import Any


class RtcSdkError(Exception):
    """Base error carrying a stable code for API responses."""

    error_code = "RTC_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConfigError(RtcSdkError):
    error_code = "CONFIG_ERROR"
    status_code = 500


class TokenError(RtcSdkError):
    error_code = "TOKEN_ERROR"


class InvalidConfig(ConfigError, TokenError):
    """Missing app identity or signing secret at token build time."""


class InvalidChannelName(TokenError):
    def __init__(self, channel_name: str) -> None:
        super().__init__(
            "Invalid channel name format",
            details={"channel_name": channel_name},
        )


class InvalidRole(TokenError):
    def __init__(self, role: object) -> None:
        super().__init__(
            "Invalid role. Must be 1 (publisher) or 2 (subscriber)",
            details={"role": repr(role)},
        )


class InvalidExpiry(TokenError):
    def __init__(self, field_name: str, value: object, requirement: str = "greater than 0") -> None:
        super().__init__(
            f"{field_name} must be {requirement}",
            details={"field": field_name, "value": value},
        )


class InvalidSubject(TokenError):
    def __init__(self, uid: object) -> None:
        super().__init__("uid must be a non-negative integer", details={"uid": uid})


class MalformedToken(TokenError):
    pass


class WebhookError(RtcSdkError):
    error_code = "WEBHOOK_ERROR"


class MalformedPayload(WebhookError):
    pass


class MissingField(WebhookError):
    def __init__(self, field_name: str) -> None:
        super().__init__(
            f"Missing required field: {field_name}",
            details={"field": field_name},
        )
        self.field = field_name


class InvalidFieldType(WebhookError):
    def __init__(self, field_name: str, expected: str) -> None:
        super().__init__(
            f"Field {field_name} must be {expected}",
            details={"field": field_name, "expected": expected},
        )
        self.field = field_name


class MissingSignature(WebhookError):
    status_code = 401

    def __init__(self) -> None:
        super().__init__("No signature found in headers")


class InvalidSignature(WebhookError):
    status_code = 401

    def __init__(self, algorithm: str) -> None:
        super().__init__(
            f"Invalid signature ({algorithm})",
            details={"algorithm": algorithm},
        )
        self.algorithm = algorithm


class ApiError(RtcSdkError):
    """Upstream REST call failed or returned an error status."""

    error_code = "API_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        http_status: int = 0,
        upstream_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.http_status = http_status
        self.upstream_code = upstream_code


class RecordingError(RtcSdkError):
    """Recording parameters were rejected locally or the upstream call failed.

    Local parameter checks answer 400; wrapped upstream failures answer 502.
    """

    error_code = "RECORDING_ERROR"

    def __init__(
        self,
        message: str,
        *,
        http_status: int = 0,
        upstream_code: str | None = None,
        upstream: bool = False,
    ) -> None:
        details: dict[str, Any] = {}
        if http_status:
            details["upstream_status"] = http_status
        if upstream_code is not None:
            details["upstream_code"] = upstream_code
        super().__init__(message, details=details, status_code=502 if upstream else None)
        self.http_status = http_status
        self.upstream_code = upstream_code
