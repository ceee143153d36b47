"""
app/routers/admin.py — Operator endpoints (X-API-Key)
Query the in-memory security event ring and reset an actor's rate limit window.
Both act on this instance's memory only.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from app.core.auth import verify_api_key
from app.core.rate_limiter import RATE_LIMITS, RateLimiter, limiter
from app.core.security_events import SecurityEventRecorder
from app.dependencies import get_rate_limiter, get_recorder
from app.models import RateLimitResetRequest, SecurityEventType, Severity

router = APIRouter()


@router.get("/security-events")
@limiter.limit(RATE_LIMITS["admin"])
async def query_security_events(
    request: Request,
    actor_id: Optional[str] = None,
    severity: Optional[Severity] = None,
    kind: Optional[SecurityEventType] = None,
    limit: int = Query(100, ge=1, le=1000),
    recorder: SecurityEventRecorder = Depends(get_recorder),
    _auth: bool = Depends(verify_api_key),
) -> dict[str, Any]:
    events = recorder.query(actor_id=actor_id, severity=severity, kind=kind, limit=limit)
    return {
        "events": [e.model_dump(mode="json") for e in events],
        "count": len(events),
        "retained": len(recorder),
        "capacity": recorder.capacity,
    }


@router.post("/rate-limits/reset")
@limiter.limit(RATE_LIMITS["admin"])
async def reset_rate_limit(
    request: Request,
    body: RateLimitResetRequest,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    _auth: bool = Depends(verify_api_key),
) -> dict[str, Any]:
    rate_limiter.reset(body.actor_id, body.action)
    return {"success": True, "actorId": body.actor_id, "action": body.action.value}
