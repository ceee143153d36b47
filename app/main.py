"""
app/main.py — FastAPI application entry point
Builds one RateLimiter, SecurityEventRecorder, ActivityTracker and Supabase
client per process and keeps them on app.state.
Includes: lifespan management, CORS, per-IP throttle, security headers,
          security monitoring middleware, JSON error bodies.
"""

from contextlib import asynccontextmanager
import time
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.clients.supabase_client import SupabaseClient
from app.config import Settings, get_settings
from app.core import logging as app_logging
from app.core.logging import setup_logging
from app.core.rate_limiter import RateLimiter, build_action_policies, limiter
from app.core.security_events import ActivityTracker, SecurityEventRecorder
from app.routers import admin, health, likes, messages, reports, security
from app.services.security_log import EventPersister


def _validate_env(settings: Settings) -> None:
    """Warn loudly on missing secrets; the app still starts."""
    required = [
        ("supabase_url", "SUPABASE_URL"),
        ("supabase_anon_key", "SUPABASE_ANON_KEY"),
        ("supabase_service_role_key", "SUPABASE_SERVICE_ROLE_KEY"),
        ("admin_api_key", "ADMIN_API_KEY"),
    ]
    missing = [env_name for attr, env_name in required if not getattr(settings, attr, None)]
    if missing:
        logger.critical(f"Missing env vars: {', '.join(missing)}")
        logger.warning("App will start but affected features will be unavailable until credentials are set.")


def _error_response(status_code: int, detail, headers=None) -> JSONResponse:
    content = detail if isinstance(detail, dict) else {"error": detail}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SupabaseClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    if store is None:
        store = SupabaseClient(
            settings.supabase_url,
            settings.supabase_anon_key,
            settings.supabase_service_role_key,
            timeout=settings.store_timeout_seconds,
        )

    persister = (
        EventPersister(store, max_pending=settings.security_persist_max_pending)
        if settings.persist_security_events else None
    )
    recorder = SecurityEventRecorder(
        capacity=settings.security_event_capacity,
        persist=persister,
        detail_max_chars=settings.security_detail_max_chars,
    )
    rate_limiter = RateLimiter(build_action_policies(settings), recorder=recorder)
    tracker = ActivityTracker(
        recorder,
        sample_size=settings.suspicious_activity_sample_size,
        threshold_ms=settings.suspicious_activity_threshold_ms,
        history_size=settings.activity_history_size,
        max_actors=settings.activity_max_actors,
    )

    # ──────────────────────────────────────────────────────────────────────────
    # Application Lifespan
    # ──────────────────────────────────────────────────────────────────────────

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings.log_level)
        logger.info("BeProudly edge handlers starting up...")
        _validate_env(settings)
        logger.info("Startup complete.")
        yield
        logger.info("Shutting down BeProudly edge handlers.")
        if persister is not None:
            persister.shutdown()
        store.close()

    app = FastAPI(
        title="BeProudly Edge Handlers",
        description="Rate-limited like, message, report and security-monitor handlers.",
        version=health.VERSION,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.recorder = recorder
    app.state.rate_limiter = rate_limiter
    app.state.activity_tracker = tracker

    # ── Per-IP throttle: slowapi ─────────────────────────────────────────────
    app.state.limiter = limiter
    app.add_exception_handler(
        RateLimitExceeded,
        lambda req, exc: JSONResponse(
            status_code=429,
            content={"error": "Rate limit exceeded. Slow down."},
        ),
    )
    app.add_middleware(SlowAPIMiddleware)

    # ── JSON error bodies: {"error": ...} ─────────────────────────────────────
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug(f"Rejected request to {request.url.path}: {exc.errors()}")
        return _error_response(400, "Invalid request")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        app_logging.log_error("app", "request", exc, {"path": request.url.path})
        return _error_response(500, "Internal server error")

    # ── CORS ──────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Client-Info", "Apikey"],
    )

    # ── Security monitoring: auth failures and slow operations ───────────────
    @app.middleware("http")
    async def monitor_requests(request: Request, call_next) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        if response.status_code == 401:
            recorder.unauthorized_access(
                None,
                request.url.path,
                user_agent=request.headers.get("user-agent"),
                ip_address=request.client.host if request.client else None,
            )
        if duration_ms > settings.slow_operation_threshold_ms:
            recorder.suspicious_activity(
                None,
                "slow_operation",
                {"action": f"{request.method} {request.url.path}", "duration": round(duration_ms)},
            )
        return response

    # ── Security headers middleware ──────────────────────────────────────────
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # ── Routers: paths the mobile and web clients call ───────────────────────
    app.include_router(likes.router, prefix="/secure-like-handler", tags=["likes"])
    app.include_router(messages.router, prefix="/secure-message-handler", tags=["messages"])
    app.include_router(reports.router, prefix="/report-handler", tags=["reports"])
    app.include_router(security.router, prefix="/security-monitor", tags=["security"])
    app.include_router(admin.router, prefix="/admin", tags=["admin"])
    app.include_router(health.router, tags=["health"])

    return app


app = create_app()
