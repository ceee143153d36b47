"""
app/core/guards.py — Shared checks run by every edge handler before touching the store
Turns typed results (RateLimitDecision, ValidationResult, Denial) into HTTP errors.
"""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request, status

from app.core.rate_limiter import Action, RateLimiter
from app.core.security_events import SecurityEventRecorder
from app.models import Denial, ValidationResult
from app.utils.validators import is_valid_uuid


def request_context(request: Request) -> dict[str, Optional[str]]:
    """user_agent / ip_address stamped onto security events."""
    return {
        "user_agent": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None,
    }


def enforce_rate_limit(
    rate_limiter: RateLimiter,
    actor_id: str,
    action: Action,
    message: str = "Rate limit exceeded. Please slow down.",
) -> None:
    """429 with Retry-After when the actor is over the action's window budget."""
    decision = rate_limiter.check_and_consume(actor_id, action)
    if decision.allowed:
        return
    retry_after = decision.retry_after_seconds or 0
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "error": f"{message} Try again in {retry_after} seconds.",
            "retryAfterSeconds": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )


def require_valid(result: ValidationResult) -> None:
    if not result.valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)


def require_uuid(
    recorder: SecurityEventRecorder,
    request: Request,
    actor_id: str,
    field: str,
    value: str,
    error: str,
) -> None:
    """400 plus an invalid_input event when an id is not a UUID."""
    if is_valid_uuid(value):
        return
    recorder.invalid_input(actor_id, field, value, **request_context(request))
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)


def raise_denial(denial: Denial) -> None:
    raise HTTPException(status_code=denial.status_code, detail=denial.error)


def internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )
