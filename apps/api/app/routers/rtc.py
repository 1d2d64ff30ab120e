"""RTC token issuance endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas import rtc as rtc_schema
from ..services import rtc as rtc_service
from ..services.gateway import RtcGateway, get_gateway

router = APIRouter()


@router.post("/token", response_model=rtc_schema.RtcTokenResponse)
async def create_rtc_token(
    payload: rtc_schema.RtcTokenRequest,
    gateway: RtcGateway = Depends(get_gateway),
) -> rtc_schema.RtcTokenResponse:
    """Return a channel access token whose rights follow from the publisher flag."""

    issued = gateway.generate_user_token(
        payload.channel_name,
        payload.uid,
        is_publisher=payload.is_publisher,
        expire=payload.expire,
    )
    return rtc_schema.RtcTokenResponse(**issued)


@router.post("/token/privileges", response_model=rtc_schema.PrivilegeTokenResponse)
async def create_privilege_token(
    payload: rtc_schema.PrivilegeTokenRequest,
    gateway: RtcGateway = Depends(get_gateway),
) -> rtc_schema.PrivilegeTokenResponse:
    """Return a token with an explicit expiry per privilege."""

    token = gateway.generate_token_with_privileges(
        payload.channel_name,
        payload.uid,
        expire=payload.expire,
        join_channel_expire=payload.join_channel_expire,
        publish_audio_expire=payload.publish_audio_expire,
        publish_video_expire=payload.publish_video_expire,
        publish_data_expire=payload.publish_data_expire,
    )
    return rtc_schema.PrivilegeTokenResponse(channel_name=payload.channel_name, uid=payload.uid, token=token)


@router.post("/rooms", response_model=rtc_schema.CreateRoomResponse)
async def create_room(
    payload: rtc_schema.CreateRoomRequest,
    gateway: RtcGateway = Depends(get_gateway),
) -> rtc_schema.CreateRoomResponse:
    room = gateway.create_room(payload.channel_name, payload.admin_uid, payload.token_expire)
    return rtc_schema.CreateRoomResponse(**room)


@router.post("/token/inspect", response_model=rtc_schema.TokenInspectResponse)
async def inspect_token(
    payload: rtc_schema.TokenInspectRequest,
    gateway: RtcGateway = Depends(get_gateway),
) -> rtc_schema.TokenInspectResponse:
    """Decode a token and report whether this project's certificate signed it."""

    decoded = rtc_service.decode_token(payload.token)
    privileges = {
        kind.name.lower() if isinstance(kind, rtc_service.Privilege) else str(kind): expire
        for kind, expire in decoded.privileges.items()
    }
    return rtc_schema.TokenInspectResponse(
        issuer=decoded.issuer,
        channel_name=decoded.channel_name,
        uid=decoded.uid,
        expire_at=decoded.expire_at,
        issued_at=decoded.issued_at,
        privileges=privileges,
        signature_valid=rtc_service.verify_token(payload.token, gateway.config.app_certificate),
    )
