"""
app/routers/health.py — Liveness endpoint
Reports the size of this instance's in-memory limiter and event ring.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from app.config import Settings
from app.core.rate_limiter import RATE_LIMITS, RateLimiter, limiter
from app.core.security_events import SecurityEventRecorder
from app.dependencies import get_rate_limiter, get_recorder, get_settings_dep

VERSION = "1.0.0"

router = APIRouter()


@router.get("/health")
@limiter.limit(RATE_LIMITS["health"])
async def health(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    recorder: SecurityEventRecorder = Depends(get_recorder),
) -> dict[str, Any]:
    return {
        "status": "ok",
        "version": VERSION,
        "environment": settings.environment,
        "rate_limit_keys": rate_limiter.tracked_keys,
        "security_events_retained": len(recorder),
    }
