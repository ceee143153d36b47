"""
app/services/messaging.py — Message send flow behind /secure-message-handler
Only participants of a match in status "matched" may write to it.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from app.clients.supabase_client import StoreError, SupabaseClient
from app.models import Denial


def find_active_match(
    store: SupabaseClient,
    match_id: str,
    user_id: str,
) -> Optional[dict[str, Any]]:
    match = store.select_one("matches", {"id": match_id, "status": "matched"})
    if match is None:
        return None
    if user_id not in (match.get("user1_id"), match.get("user2_id")):
        return None
    return match


def send_message(
    store: SupabaseClient,
    match_id: str,
    sender_id: str,
    content: str,
) -> Union[dict[str, Any], Denial]:
    """`content` must already be validated; it is stored trimmed."""
    if find_active_match(store, match_id, sender_id) is None:
        return Denial(status_code=403, error="Invalid match or unauthorized")

    try:
        message = store.insert("messages", {
            "match_id": match_id,
            "sender_id": sender_id,
            "content": content.strip(),
        })
    except StoreError:
        return Denial(status_code=500, error="Failed to send message")

    return {"success": True, "message": message}
