"""
app/utils/validators.py — Request input validation and sanitizing
Validation failures are returned as ValidationResult, never raised.
"""
from __future__ import annotations

import re
from typing import Optional

from app.models import ReportReason, ValidationResult

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Markup that must never reach another user's screen
UNSAFE_PATTERNS = [
    re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"<iframe[^>]*>", re.IGNORECASE),
    re.compile(r"<object[^>]*>", re.IGNORECASE),
    re.compile(r"<embed[^>]*>", re.IGNORECASE),
]

DEFAULT_MESSAGE_MAX_LENGTH = 2000


def is_valid_uuid(value: Optional[str]) -> bool:
    return bool(value) and UUID_RE.match(value) is not None


def sanitize_input(value: str, max_length: int = 1000) -> str:
    """Trim, cap length, and drop angle brackets."""
    return re.sub(r"[<>]", "", value.strip()[:max_length])


def validate_message_content(
    content: Optional[str],
    max_length: int = DEFAULT_MESSAGE_MAX_LENGTH,
) -> ValidationResult:
    """Raw length is checked before trimming so oversized payloads are rejected outright."""
    if not content:
        return ValidationResult(valid=False, error="Missing required fields")
    if len(content) > max_length:
        return ValidationResult(valid=False, error="Message too long")
    if not content.strip():
        return ValidationResult(valid=False, error="Message cannot be empty")
    return ValidationResult(valid=True)


def verify_content_safety(content: str) -> ValidationResult:
    for pattern in UNSAFE_PATTERNS:
        if pattern.search(content):
            return ValidationResult(valid=False, error="Potentially malicious content detected")
    return ValidationResult(valid=True)


def validate_report_reason(reason: Optional[str]) -> ValidationResult:
    if not reason:
        return ValidationResult(valid=False, error="Missing required fields")
    try:
        ReportReason(reason)
    except ValueError:
        return ValidationResult(valid=False, error="Invalid reason")
    return ValidationResult(valid=True)
