"""
app/config.py — Pydantic BaseSettings configuration
Edge handlers, rate limit policies, security event recorder and Supabase access.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 8000

    # ── Supabase (auth, tables, RPC) ──────────────────────────────────────────
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    store_timeout_seconds: float = 10.0

    # ── Admin surface (X-API-Key) ─────────────────────────────────────────────
    admin_api_key: str = ""

    # ── CORS: mirrors the headers the mobile and web clients send ───────────
    cors_allow_origins: list[str] = ["*"]

    # ── Fixed-window policies per action kind ─────────────────────────────────
    # max_attempts per window_ms; keys are ActionKind values
    rate_limit_policies: dict[str, dict[str, int]] = {
        "send_message": {"max_attempts": 20, "window_ms": 60_000},
        "like_profile": {"max_attempts": 50, "window_ms": 60_000},
        "submit_report": {"max_attempts": 5, "window_ms": 3_600_000},
        "update_profile": {"max_attempts": 5, "window_ms": 300_000},
        "upload_video": {"max_attempts": 3, "window_ms": 3_600_000},
    }

    # ── Security event recorder ───────────────────────────────────────────────
    security_event_capacity: int = 1000
    security_detail_max_chars: int = 200
    persist_security_events: bool = True
    security_persist_max_pending: int = 1000
    security_events_page_max: int = 50

    # ── Suspicious activity detection ─────────────────────────────────────────
    suspicious_activity_sample_size: int = 20
    suspicious_activity_threshold_ms: float = 100.0
    activity_history_size: int = 100
    activity_max_actors: int = 10_000
    slow_operation_threshold_ms: int = 10_000

    # ── Content limits ────────────────────────────────────────────────────────
    message_max_length: int = 2000
    report_details_max_length: int = 1000

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("rate_limit_policies")
    @classmethod
    def validate_policies(cls, v: dict[str, dict[str, int]]) -> dict[str, dict[str, int]]:
        for action, policy in v.items():
            max_attempts = policy.get("max_attempts", 0)
            window_ms = policy.get("window_ms", 0)
            if max_attempts <= 0 or window_ms <= 0:
                raise ValueError(
                    f"policy for {action!r} needs positive max_attempts and window_ms"
                )
        return v

    @field_validator("security_event_capacity", "activity_max_actors", "security_persist_max_pending")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("suspicious_activity_sample_size")
    @classmethod
    def validate_sample_size(cls, v: int) -> int:
        if v < 2:
            raise ValueError("must be at least 2")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance. Use this everywhere."""
    return Settings()
