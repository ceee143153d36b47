"""
app/core/auth.py — Authentication & Authorization
Bearer tokens are resolved through Supabase auth; admin routes use X-API-Key.
"""
from __future__ import annotations

import secrets
from typing import Any, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from app.clients.supabase_client import StoreError, SupabaseClient
from app.core import logging as app_logging
from app.dependencies import get_settings_dep, get_store


# ──────────────────────────────────────────────────────────────────────────────
# Bearer token: every edge handler
# ──────────────────────────────────────────────────────────────────────────────

def _bearer_token(authorization: str) -> Optional[str]:
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    store: SupabaseClient = Depends(get_store),
) -> dict[str, Any]:
    """Resolve the Authorization header to a Supabase user or fail with 401."""
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
        )
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    try:
        user = store.get_user(token)
    except StoreError as exc:
        app_logging.log_error("auth", "get_user", exc, {"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    request.state.user_id = user["id"]
    return user


# ──────────────────────────────────────────────────────────────────────────────
# API Key: admin routes
# ──────────────────────────────────────────────────────────────────────────────

async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    settings=Depends(get_settings_dep),
) -> bool:
    """Validate X-API-Key header for admin access."""
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-API-Key header required",
        )
    if not settings.admin_api_key or not secrets.compare_digest(
        x_api_key, settings.admin_api_key
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    return True
