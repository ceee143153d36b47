"""
app/dependencies.py — FastAPI dependencies for the per-process components
Each component is built once in create_app() and kept on app.state.
"""
from __future__ import annotations

from fastapi import Request

from app.clients.supabase_client import SupabaseClient
from app.config import Settings
from app.core.rate_limiter import RateLimiter
from app.core.security_events import ActivityTracker, SecurityEventRecorder


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> SupabaseClient:
    return request.app.state.store


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_recorder(request: Request) -> SecurityEventRecorder:
    return request.app.state.recorder


def get_activity_tracker(request: Request) -> ActivityTracker:
    return request.app.state.activity_tracker
