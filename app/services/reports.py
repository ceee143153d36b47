"""
app/services/reports.py — User report flow behind /report-handler
One pending report per (reporter, reported) pair.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from loguru import logger

from app.clients.supabase_client import StoreError, SupabaseClient
from app.models import Denial, ReportReason


def has_pending_report(store: SupabaseClient, reporter_id: str, reported_id: str) -> bool:
    existing = store.select_one("reports", {
        "reporter_id": reporter_id,
        "reported_id": reported_id,
        "status": "pending",
    })
    return existing is not None


def submit_report(
    store: SupabaseClient,
    reporter_id: str,
    reported_id: str,
    reason: ReportReason,
    details: Optional[str] = None,
) -> Union[dict[str, Any], Denial]:
    if has_pending_report(store, reporter_id, reported_id):
        return Denial(status_code=400, error="You have already reported this user")

    try:
        report = store.insert("reports", {
            "reporter_id": reporter_id,
            "reported_id": reported_id,
            "reason": reason.value,
            "details": details or None,
            "status": "pending",
        })
    except StoreError as exc:
        logger.error(f"Report insert failed for reporter {reporter_id}: {exc}")
        return Denial(status_code=500, error="Failed to submit report")

    return {"success": True, "report": report}
