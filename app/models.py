"""
app/models.py — All Pydantic data schemas
Rate limit policies and decisions, security events, request bodies.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ──────────────────────────────────────────────────────────────────────────────
# Enumerations
# ──────────────────────────────────────────────────────────────────────────────

class ActionKind(str, Enum):
    SEND_MESSAGE = "send_message"
    LIKE_PROFILE = "like_profile"
    UPDATE_PROFILE = "update_profile"
    UPLOAD_VIDEO = "upload_video"
    SUBMIT_REPORT = "submit_report"


class SecurityEventType(str, Enum):
    FAILED_LOGIN = "failed_login"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    INVALID_INPUT = "invalid_input"
    FILE_UPLOAD_REJECTED = "file_upload_rejected"
    XSS_ATTEMPT = "xss_attempt"
    SQL_INJECTION_ATTEMPT = "sql_injection_attempt"
    USER_REPORTED = "user_reported"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReportReason(str, Enum):
    HARASSMENT = "harassment"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    SPAM = "spam"
    FAKE_PROFILE = "fake_profile"
    OTHER = "other"


ESCALATION_SEVERITIES = frozenset({Severity.HIGH, Severity.CRITICAL})


# ──────────────────────────────────────────────────────────────────────────────
# Rate limiting
# ──────────────────────────────────────────────────────────────────────────────

class ActionPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(gt=0)
    window_ms: int = Field(gt=0)


class RateLimitEntry(BaseModel):
    count: int = 1
    reset_at: int  # epoch ms when the current window closes


class RateLimitDecision(BaseModel):
    allowed: bool
    count: int
    limit: int
    retry_after_seconds: Optional[int] = None


# ──────────────────────────────────────────────────────────────────────────────
# Security events
# ──────────────────────────────────────────────────────────────────────────────

class SecurityEventInput(BaseModel):
    kind: SecurityEventType
    severity: Severity
    actor_id: Optional[str] = None
    details: dict[str, Any] = {}
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


class SecurityEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: SecurityEventType
    severity: Severity
    actor_id: Optional[str] = None
    details: dict[str, Any] = {}
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def escalates(self) -> bool:
        return self.severity in ESCALATION_SEVERITIES


# ──────────────────────────────────────────────────────────────────────────────
# Typed results: policy violations and validation failures are values
# ──────────────────────────────────────────────────────────────────────────────

class ValidationResult(BaseModel):
    valid: bool
    error: Optional[str] = None


class Denial(BaseModel):
    status_code: int
    error: str


# ──────────────────────────────────────────────────────────────────────────────
# API Request models: camelCase on the wire, as the mobile/web clients send
# Every field is optional so handlers can answer with a specific 400 message.
# ──────────────────────────────────────────────────────────────────────────────

class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LikeRequest(_WireModel):
    """POST/DELETE /secure-like-handler"""
    liked_user_id: Optional[str] = Field(default=None, alias="likedUserId")


class MessageRequest(_WireModel):
    """POST /secure-message-handler"""
    match_id: Optional[str] = Field(default=None, alias="matchId")
    content: Optional[str] = None


class ReportRequest(_WireModel):
    """POST /report-handler"""
    reported_user_id: Optional[str] = Field(default=None, alias="reportedUserId")
    reason: Optional[str] = None
    details: Optional[str] = None


class SecurityEventRequest(_WireModel):
    """POST /security-monitor"""
    event_type: Optional[str] = Field(default=None, alias="eventType")
    severity: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class RateLimitResetRequest(_WireModel):
    """POST /admin/rate-limits/reset"""
    actor_id: str = Field(alias="actorId", min_length=1)
    action: ActionKind
