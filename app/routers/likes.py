"""
app/routers/likes.py — /secure-like-handler
POST likes a profile (creating a match on reciprocity), DELETE removes the like.
Checks run in order: auth → body → id format → self-target → rate limit → block check.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from loguru import logger

from app.clients.supabase_client import SupabaseClient
from app.core import logging as app_logging
from app.core.auth import get_current_user
from app.core.guards import (
    enforce_rate_limit,
    internal_error,
    raise_denial,
    request_context,
    require_uuid,
)
from app.core.rate_limiter import RATE_LIMITS, RateLimiter, limiter
from app.core.security_events import ActivityTracker, SecurityEventRecorder
from app.dependencies import get_activity_tracker, get_rate_limiter, get_recorder, get_store
from app.models import ActionKind, Denial, LikeRequest
from app.services import likes as likes_service

router = APIRouter()


def _admit_like(
    request: Request,
    body: LikeRequest,
    user_id: str,
    store: SupabaseClient,
    rate_limiter: RateLimiter,
    recorder: SecurityEventRecorder,
    tracker: ActivityTracker,
) -> str:
    """Run the shared like/unlike checks and return the target user id."""
    liked_user_id = body.liked_user_id
    if not liked_user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing liked user ID")
    require_uuid(recorder, request, user_id, "likedUserId", liked_user_id, "Invalid liked user ID")
    if liked_user_id == user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot like yourself")

    tracker.track(user_id, ActionKind.LIKE_PROFILE.value)
    enforce_rate_limit(rate_limiter, user_id, ActionKind.LIKE_PROFILE)

    if not likes_service.can_interact(store, user_id, liked_user_id):
        recorder.unauthorized_access(user_id, f"likes:{liked_user_id}", **request_context(request))
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot interact with this user")
    return liked_user_id


@router.post("")
@limiter.limit(RATE_LIMITS["handlers"])
async def like_profile(
    request: Request,
    body: LikeRequest,
    user: dict[str, Any] = Depends(get_current_user),
    store: SupabaseClient = Depends(get_store),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    recorder: SecurityEventRecorder = Depends(get_recorder),
    tracker: ActivityTracker = Depends(get_activity_tracker),
) -> dict[str, Any]:
    try:
        liked_user_id = _admit_like(request, body, user["id"], store, rate_limiter, recorder, tracker)
        result = likes_service.create_like(store, user["id"], liked_user_id)
    except HTTPException:
        raise
    except Exception as exc:
        app_logging.log_error("likes", "like_profile", exc, {"user_id": user["id"]})
        raise internal_error()

    if isinstance(result, Denial):
        raise_denial(result)
    return result


@router.delete("")
@limiter.limit(RATE_LIMITS["handlers"])
async def unlike_profile(
    request: Request,
    body: LikeRequest,
    user: dict[str, Any] = Depends(get_current_user),
    store: SupabaseClient = Depends(get_store),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    recorder: SecurityEventRecorder = Depends(get_recorder),
    tracker: ActivityTracker = Depends(get_activity_tracker),
) -> dict[str, Any]:
    try:
        liked_user_id = _admit_like(request, body, user["id"], store, rate_limiter, recorder, tracker)
        result = likes_service.remove_like(store, user["id"], liked_user_id)
    except HTTPException:
        raise
    except Exception as exc:
        app_logging.log_error("likes", "unlike_profile", exc, {"user_id": user["id"]})
        raise internal_error()

    logger.debug(f"User {user['id']} removed like on {liked_user_id}")
    return result
