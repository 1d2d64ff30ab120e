"""Inbound Agora notification endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from ..core.config import settings
from ..schemas.webhooks import WebhookAck
from ..services.gateway import RtcGateway, get_gateway

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/agora", response_model=WebhookAck)
async def receive_agora_event(
    request: Request,
    gateway: RtcGateway = Depends(get_gateway),
) -> WebhookAck:
    """Authenticate the notification against the exact bytes received."""

    raw_body = await request.body()
    event = gateway.parse_webhook_event(
        raw_body,
        request.headers,
        verify_signature=settings.webhook_verify_signature,
    )
    logger.info(
        "Webhook accepted notice_id=%s event=%s (%s)",
        event.notice_id,
        event.event_name,
        event.event_type,
    )
    return WebhookAck(event_name=event.event_name, notice_id=event.notice_id)
