"""
app/core/logging.py — loguru structured JSON logging setup
Every security event, escalation, rate limit denial and store call is logged
as one JSON record with component + operation fields.
"""
from __future__ import annotations

import json
import sys
import traceback
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from loguru import logger

if TYPE_CHECKING:
    from app.models import SecurityEvent


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure loguru for structured JSON output to stdout.
    The hosting platform captures stdout; no log files are written.
    """
    # Remove default loguru handler
    logger.remove()

    logger.add(
        sys.stdout,
        level=log_level.upper(),
        format="{message}",  # Raw message (we format as JSON ourselves)
        serialize=True,       # loguru built-in JSON serialization
        backtrace=True,
        diagnose=False,       # Disable in production for safety
        colorize=False,
    )


def _build_log_record(
    component: str,
    operation: str,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build a base structured log record."""
    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "component": component,
        "operation": operation,
    }
    if extra:
        record.update(extra)
    return record


def _event_payload(event: "SecurityEvent") -> dict[str, Any]:
    return event.model_dump(mode="json")


# ──────────────────────────────────────────────────────────────────────────────
# Mandatory log event helpers
# ──────────────────────────────────────────────────────────────────────────────

def log_security_event(event: "SecurityEvent") -> None:
    """Every recorded security event is logged at WARNING."""
    record = _build_log_record("security_monitor", "record", _event_payload(event))
    logger.warning(json.dumps(record, default=str))


def log_security_alert(event: "SecurityEvent") -> None:
    """Default escalation channel for high and critical events."""
    record = _build_log_record("security_monitor", "alert", _event_payload(event))
    logger.error(json.dumps(record, default=str))


def log_rate_limit_denial(
    actor_id: str,
    action: str,
    count: int,
    retry_after_seconds: int,
) -> None:
    record = _build_log_record("rate_limiter", "deny", {
        "actor_id": actor_id,
        "action": action,
        "count": count,
        "retry_after_seconds": retry_after_seconds,
    })
    logger.info(json.dumps(record))


def log_store_operation(
    target: str,
    operation: str,  # select | insert | delete | rpc | get_user
    success: bool,
    latency_ms: float,
    status_code: Optional[int] = None,
    error: Optional[str] = None,
) -> None:
    """Every Supabase REST call is logged."""
    record = _build_log_record("supabase_client", operation, {
        "target": target,
        "success": success,
        "latency_ms": round(latency_ms, 2),
        "status_code": status_code,
        "error": error,
    })
    logger.info(json.dumps(record))


def log_error(
    component: str,
    operation: str,
    error: Exception,
    context: Optional[dict[str, Any]] = None,
) -> None:
    """Every error must be logged with full context."""
    tb = traceback.format_exc()
    record = _build_log_record(component, operation, {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "stack_trace": tb[:2000] if tb else "",
        "context": context or {},
    })
    logger.error(json.dumps(record, default=str))
