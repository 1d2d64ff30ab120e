"""FastAPI application issuing RTC tokens and receiving provider webhooks."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .core.config import APP_VERSION, settings
from .core.errors import RtcSdkError
from .routers import recording as recording_router
from .routers import rtc as rtc_router
from .routers import webhooks as webhooks_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(title="RTC Access API", version=APP_VERSION)

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(rtc_router.router, prefix="/api/rtc", tags=["rtc"])
app.include_router(webhooks_router.router, prefix="/api/webhooks", tags=["webhooks"])
app.include_router(recording_router.router, prefix="/api/recordings", tags=["recording"])


@app.exception_handler(RtcSdkError)
async def handle_sdk_error(request: Request, exc: RtcSdkError) -> JSONResponse:
    """Render typed failures as a stable JSON error body."""

    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", **exc.to_dict()},
    )


@app.get("/api/health", tags=["meta"])
async def health() -> dict[str, str]:
    """Simple liveness probe."""

    return {"status": "ok", "version": APP_VERSION}


@app.head("/api/health", tags=["meta"])
async def health_head() -> Response:
    """Allow HEAD for uptime monitors that only need the status code."""

    return Response(status_code=200)
