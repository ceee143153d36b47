"""
app/routers/security.py — /security-monitor
POST: a signed-in client reports a security event; it is written to the
security_events table and, for kinds with a fixed severity, recorded locally
at that severity (the client-sent one is ignored) so high and critical kinds escalate.
GET: the caller's own most recent events from the table.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from loguru import logger

from app.clients.supabase_client import StoreError, SupabaseClient
from app.config import Settings
from app.core.auth import get_current_user
from app.core.guards import request_context
from app.core.rate_limiter import RATE_LIMITS, limiter
from app.core.security_events import SecurityEventRecorder
from app.dependencies import get_recorder, get_settings_dep, get_store
from app.models import SecurityEventRequest, SecurityEventType, Severity
from app.services import security_log

router = APIRouter()

_KNOWN_KINDS = {kind.value for kind in SecurityEventType}
_SEVERITIES = {severity.value for severity in Severity}


@router.post("")
@limiter.limit(RATE_LIMITS["security_monitor"])
async def log_security_event(
    request: Request,
    body: SecurityEventRequest,
    user: dict[str, Any] = Depends(get_current_user),
    store: SupabaseClient = Depends(get_store),
    recorder: SecurityEventRecorder = Depends(get_recorder),
) -> dict[str, Any]:
    if not body.event_type or not body.severity:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    if body.severity not in _SEVERITIES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid severity")

    context = request_context(request)
    try:
        security_log.insert_client_event(
            store,
            user_id=user["id"],
            event_type=body.event_type,
            severity=body.severity,
            description=body.description,
            metadata=body.metadata,
            user_agent=context["user_agent"],
        )
    except StoreError as exc:
        logger.error(f"Failed to log security event: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to log event",
        )

    if body.event_type in _KNOWN_KINDS:
        details: dict[str, Any] = dict(body.metadata or {})
        if body.description:
            details["description"] = body.description
        # Already in the table; the local copy is for query and escalation only
        recorder.record_reported(
            SecurityEventType(body.event_type),
            user["id"],
            details,
            persist=False,
            **context,
        )

    return {"success": True}


@router.get("")
@limiter.limit(RATE_LIMITS["security_monitor"])
async def list_security_events(
    request: Request,
    limit: int = Query(10, ge=1),
    user: dict[str, Any] = Depends(get_current_user),
    settings: Settings = Depends(get_settings_dep),
    store: SupabaseClient = Depends(get_store),
) -> dict[str, Any]:
    try:
        events = security_log.list_user_events(
            store, user["id"], min(limit, settings.security_events_page_max)
        )
    except StoreError as exc:
        logger.error(f"Failed to fetch security events for {user['id']}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch events",
        )
    return {"events": events}
