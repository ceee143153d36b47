"""
app/routers/messages.py — /secure-message-handler
Validates content (length, blank, unsafe markup) before spending rate limit budget.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.clients.supabase_client import SupabaseClient
from app.config import Settings
from app.core import logging as app_logging
from app.core.auth import get_current_user
from app.core.guards import (
    enforce_rate_limit,
    internal_error,
    raise_denial,
    request_context,
    require_uuid,
    require_valid,
)
from app.core.rate_limiter import RATE_LIMITS, RateLimiter, limiter
from app.core.security_events import ActivityTracker, SecurityEventRecorder
from app.dependencies import (
    get_activity_tracker,
    get_rate_limiter,
    get_recorder,
    get_settings_dep,
    get_store,
)
from app.models import ActionKind, Denial, MessageRequest
from app.services import messaging
from app.utils.validators import validate_message_content, verify_content_safety

router = APIRouter()


@router.post("")
@limiter.limit(RATE_LIMITS["handlers"])
async def send_message(
    request: Request,
    body: MessageRequest,
    user: dict[str, Any] = Depends(get_current_user),
    settings: Settings = Depends(get_settings_dep),
    store: SupabaseClient = Depends(get_store),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    recorder: SecurityEventRecorder = Depends(get_recorder),
    tracker: ActivityTracker = Depends(get_activity_tracker),
) -> dict[str, Any]:
    user_id = user["id"]

    if not body.match_id or not body.content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    require_uuid(recorder, request, user_id, "matchId", body.match_id, "Invalid match ID")
    require_valid(validate_message_content(body.content, settings.message_max_length))

    safety = verify_content_safety(body.content)
    if not safety.valid:
        recorder.xss_attempt(user_id, body.content, **request_context(request))
        require_valid(safety)

    tracker.track(user_id, ActionKind.SEND_MESSAGE.value)
    enforce_rate_limit(rate_limiter, user_id, ActionKind.SEND_MESSAGE)

    try:
        result = messaging.send_message(store, body.match_id, user_id, body.content)
    except Exception as exc:
        app_logging.log_error("messages", "send_message", exc, {"user_id": user_id})
        raise internal_error()

    if isinstance(result, Denial):
        if result.status_code == status.HTTP_403_FORBIDDEN:
            recorder.unauthorized_access(
                user_id, f"matches:{body.match_id}", **request_context(request)
            )
        raise_denial(result)
    return result
