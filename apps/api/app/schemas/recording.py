"""Schemas for cloud recording lifecycle endpoints."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    vendor: int = Field(..., ge=0)
    region: int = Field(..., ge=0)
    bucket: str
    accessKey: str
    secretKey: str
    fileNamePrefix: list[str] | None = None


class StartRecordingRequest(BaseModel):
    channel_name: str
    storage_config: StorageConfig
    recording_uid: int | None = Field(default=None, ge=1)
    token_expire: int | None = None
    mode: str | None = None
    recording_config: dict[str, Any] | None = None


class StartRecordingResponse(BaseModel):
    resource_id: str | None
    sid: str | None
    channel_name: str
    uid: int
    mode: str
    started_at: int


class StopRecordingRequest(BaseModel):
    resource_id: str
    sid: str
    channel_name: str
    recording_uid: int = Field(..., ge=1)
    mode: str | None = None


class StopRecordingResponse(BaseModel):
    upload_status: Any = "unknown"
    file_list: Any = Field(default_factory=list)
    file_list_mode: str = "unknown"
    stopped_at: int


class QueryRecordingRequest(BaseModel):
    resource_id: str
    sid: str
    mode: str | None = None


class QueryRecordingResponse(BaseModel):
    status: Any = "unknown"
    file_list: Any = Field(default_factory=list)
    upload_status: Any = "unknown"
