"""
app/routers/reports.py — /report-handler
A stored report is also recorded as a user_reported security event
(high severity for harassment, medium otherwise).
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
from app.core.security_events import SecurityEventRecorder
from app.dependencies import get_rate_limiter, get_recorder, get_settings_dep, get_store
from app.models import ActionKind, Denial, ReportReason, ReportRequest
from app.services import reports as reports_service
from app.utils.validators import sanitize_input, validate_report_reason

router = APIRouter()


@router.post("")
@limiter.limit(RATE_LIMITS["handlers"])
async def submit_report(
    request: Request,
    body: ReportRequest,
    user: dict[str, Any] = Depends(get_current_user),
    settings: Settings = Depends(get_settings_dep),
    store: SupabaseClient = Depends(get_store),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    recorder: SecurityEventRecorder = Depends(get_recorder),
) -> dict[str, Any]:
    user_id = user["id"]

    if not body.reported_user_id or not body.reason:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    require_valid(validate_report_reason(body.reason))
    require_uuid(
        recorder, request, user_id, "reportedUserId", body.reported_user_id, "Invalid reported user ID"
    )
    if body.reported_user_id == user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot report yourself")

    enforce_rate_limit(
        rate_limiter, user_id, ActionKind.SUBMIT_REPORT,
        message="Rate limit exceeded. Please try again later.",
    )

    reason = ReportReason(body.reason)
    details = sanitize_input(body.details, settings.report_details_max_length) if body.details else None

    try:
        result = reports_service.submit_report(store, user_id, body.reported_user_id, reason, details)
    except Exception as exc:
        app_logging.log_error("reports", "submit_report", exc, {"user_id": user_id})
        raise internal_error()

    if isinstance(result, Denial):
        raise_denial(result)

    recorder.user_reported(
        body.reported_user_id,
        user_id,
        result["report"].get("id"),
        reason,
        **request_context(request),
    )
    return result
