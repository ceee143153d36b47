"""
app/services/likes.py — Like / unlike flow behind /secure-like-handler
A reciprocal like creates a match row with the two user ids in sorted order.
"""
from __future__ import annotations

from typing import Any, Union

from loguru import logger

from app.clients.supabase_client import StoreError, SupabaseClient
from app.core import logging as app_logging
from app.models import Denial


def can_interact(store: SupabaseClient, user_id: str, target_user_id: str) -> bool:
    """False when either user has blocked the other."""
    allowed = store.rpc(
        "validate_user_action",
        {"p_user_id": user_id, "p_target_user_id": target_user_id},
    )
    return bool(allowed)


def create_like(
    store: SupabaseClient,
    liker_id: str,
    liked_id: str,
) -> Union[dict[str, Any], Denial]:
    try:
        like = store.insert("likes", {"liker_id": liker_id, "liked_id": liked_id})
    except StoreError as exc:
        if exc.is_unique_violation:
            return Denial(status_code=400, error="Already liked this user")
        raise

    # The like is stored at this point; match failures leave match as None
    match = None
    try:
        reciprocal = store.select_one("likes", {"liker_id": liked_id, "liked_id": liker_id})
        if reciprocal:
            user1_id, user2_id = sorted([liker_id, liked_id])
            match = store.insert("matches", {
                "user1_id": user1_id,
                "user2_id": user2_id,
                "status": "matched",
            })
            logger.info(f"New match {match.get('id')} between {user1_id} and {user2_id}")
    except StoreError as exc:
        app_logging.log_error("likes", "create_match", exc, {"liker_id": liker_id, "liked_id": liked_id})
        match = None

    return {"success": True, "like": like, "match": match}


def remove_like(store: SupabaseClient, liker_id: str, liked_id: str) -> dict[str, Any]:
    store.delete("likes", {"liker_id": liker_id, "liked_id": liked_id})
    return {"success": True}
