"""Data contracts for RTC endpoints."""
from __future__ import annotations

from pydantic import BaseModel, Field


class RtcTokenRequest(BaseModel):
    channel_name: str = Field(..., description="Channel to join")
    uid: int = Field(default=0, ge=0, description="Numeric user id, 0 lets any user join")
    is_publisher: bool = Field(default=True, description="Publishers may send audio, video and data")
    expire: int | None = Field(default=None, description="Seconds until the token expires")


class RtcTokenResponse(BaseModel):
    channel_name: str
    uid: int
    token: str = Field(..., description="Signed access token")
    role: int
    is_publisher: bool
    expire_time: int = Field(..., ge=1, description="Seconds until expiration")
    generated_at: int


class PrivilegeTokenRequest(BaseModel):
    channel_name: str
    uid: int = Field(default=0, ge=0)
    expire: int | None = None
    join_channel_expire: int = Field(default=0, ge=0)
    publish_audio_expire: int = Field(default=0, ge=0)
    publish_video_expire: int = Field(default=0, ge=0)
    publish_data_expire: int = Field(default=0, ge=0)


class PrivilegeTokenResponse(BaseModel):
    channel_name: str
    uid: int
    token: str


class CreateRoomRequest(BaseModel):
    channel_name: str
    admin_uid: int = Field(default=1, ge=0)
    token_expire: int | None = None


class CreateRoomResponse(BaseModel):
    channel_name: str
    admin_uid: int
    admin_token: str
    token_expire_time: int
    created_at: int


class TokenInspectRequest(BaseModel):
    token: str


class TokenInspectResponse(BaseModel):
    issuer: str
    channel_name: str | None = None
    uid: int
    expire_at: int
    issued_at: int
    privileges: dict[str, int] = Field(default_factory=dict, description="Privilege name to expiry")
    signature_valid: bool
