"""Cloud recording lifecycle endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas import recording as recording_schema
from ..services.gateway import RtcGateway, get_gateway
from ..services.recording import build_storage_config

router = APIRouter()


@router.post("/start", response_model=recording_schema.StartRecordingResponse)
async def start_recording(
    payload: recording_schema.StartRecordingRequest,
    gateway: RtcGateway = Depends(get_gateway),
) -> recording_schema.StartRecordingResponse:
    """Acquire a recorder and start it in the requested channel."""

    storage = payload.storage_config
    result = await gateway.start_recording(
        payload.channel_name,
        build_storage_config(
            storage.vendor,
            storage.region,
            storage.bucket,
            storage.accessKey,
            storage.secretKey,
            storage.fileNamePrefix,
        ),
        recording_uid=payload.recording_uid,
        token_expire=payload.token_expire,
        mode=payload.mode,
        recording_config=payload.recording_config,
    )
    return recording_schema.StartRecordingResponse(**result)


@router.post("/stop", response_model=recording_schema.StopRecordingResponse)
async def stop_recording(
    payload: recording_schema.StopRecordingRequest,
    gateway: RtcGateway = Depends(get_gateway),
) -> recording_schema.StopRecordingResponse:
    result = await gateway.stop_recording(
        payload.resource_id,
        payload.sid,
        payload.channel_name,
        payload.recording_uid,
        payload.mode,
    )
    return recording_schema.StopRecordingResponse(**result)


@router.post("/query", response_model=recording_schema.QueryRecordingResponse)
async def query_recording(
    payload: recording_schema.QueryRecordingRequest,
    gateway: RtcGateway = Depends(get_gateway),
) -> recording_schema.QueryRecordingResponse:
    result = await gateway.query_recording(payload.resource_id, payload.sid, payload.mode)
    return recording_schema.QueryRecordingResponse(**result)
