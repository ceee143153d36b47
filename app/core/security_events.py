"""
app/core/security_events.py — Security event recorder and rapid-activity detector
Events are kept in a bounded in-memory ring (oldest evicted first), logged,
escalated when high/critical, and handed to an optional persistence hook.
Recording never raises.

State is per process. It does not survive restarts and is not shared between
horizontally scaled instances.
"""
from __future__ import annotations

import threading
from collections import OrderedDict, deque
from typing import Any, Callable, Deque, Optional

from loguru import logger

from app.core import logging as app_logging
from app.models import (
    ReportReason,
    SecurityEvent,
    SecurityEventInput,
    SecurityEventType,
    Severity,
)
from app.utils.timing import Clock, mean_interval_ms, now_ms, utc_now

EventHook = Callable[[SecurityEvent], Any]

DEFAULT_CAPACITY = 1000
DEFAULT_DETAIL_MAX_CHARS = 200
INVALID_INPUT_MAX_CHARS = 100
MAX_DETAIL_KEYS = 32
MAX_DETAIL_LIST_ITEMS = 20
MAX_DETAIL_KEY_CHARS = 64
DEFAULT_MAX_TRACKED_ACTORS = 10_000

# Kinds whose severity never depends on the caller
FIXED_SEVERITIES: dict[SecurityEventType, Severity] = {
    SecurityEventType.FAILED_LOGIN: Severity.MEDIUM,
    SecurityEventType.SUSPICIOUS_ACTIVITY: Severity.HIGH,
    SecurityEventType.RATE_LIMIT_EXCEEDED: Severity.MEDIUM,
    SecurityEventType.UNAUTHORIZED_ACCESS: Severity.HIGH,
    SecurityEventType.INVALID_INPUT: Severity.LOW,
    SecurityEventType.FILE_UPLOAD_REJECTED: Severity.MEDIUM,
    SecurityEventType.XSS_ATTEMPT: Severity.CRITICAL,
    SecurityEventType.SQL_INJECTION_ATTEMPT: Severity.CRITICAL,
}

_SCALARS = (bool, int, float, type(None))


def _bound_value(value: Any, max_chars: int) -> Any:
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, str):
        return value[:max_chars]
    if isinstance(value, (list, tuple)):
        return [
            v if isinstance(v, _SCALARS) else str(v)[:max_chars]
            for v in list(value)[:MAX_DETAIL_LIST_ITEMS]
        ]
    return str(value)[:max_chars]


def bound_details(details: dict[str, Any], max_chars: int) -> dict[str, Any]:
    """
    Truncate a free-form details payload on insert.
    Strings are cut to max_chars, lists to MAX_DETAIL_LIST_ITEMS scalars,
    anything nested is stringified; at most MAX_DETAIL_KEYS keys are kept.
    """
    bounded: dict[str, Any] = {}
    for key, value in list(details.items())[:MAX_DETAIL_KEYS]:
        bounded[str(key)[:MAX_DETAIL_KEY_CHARS]] = _bound_value(value, max_chars)
    return bounded


class SecurityEventRecorder:
    """Bounded, thread-safe store of recent security events."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        escalate: Optional[EventHook] = None,
        persist: Optional[EventHook] = None,
        clock: Callable = utc_now,
        detail_max_chars: int = DEFAULT_DETAIL_MAX_CHARS,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._events: Deque[SecurityEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._escalate = escalate or app_logging.log_security_alert
        self._persist = persist
        self._clock = clock
        self._detail_max_chars = detail_max_chars

    @property
    def capacity(self) -> int:
        return self._events.maxlen or 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    # ── Core ──────────────────────────────────────────────────────────────────

    def record(
        self,
        event_input: SecurityEventInput,
        persist: bool = True,
    ) -> Optional[SecurityEvent]:
        """
        Stamp, retain, log and (for high/critical) escalate one event.
        Returns the stored event, or None if it could not be built.
        """
        try:
            event = SecurityEvent(
                kind=event_input.kind,
                severity=event_input.severity,
                actor_id=event_input.actor_id,
                details=bound_details(event_input.details, self._detail_max_chars),
                user_agent=event_input.user_agent,
                ip_address=event_input.ip_address,
                observed_at=self._clock(),
            )
        except Exception as exc:
            logger.error(f"Dropping malformed security event {event_input!r}: {exc}")
            return None

        with self._lock:
            self._events.append(event)  # deque(maxlen) evicts the oldest

        try:
            app_logging.log_security_event(event)
        except Exception as exc:
            logger.warning(f"Security event log write failed: {exc}")

        if event.escalates:
            try:
                self._escalate(event)
            except Exception as exc:
                logger.error(f"Security escalation failed for {event.event_id}: {exc}")

        if persist and self._persist is not None:
            try:
                self._persist(event)
            except Exception as exc:
                logger.error(f"Failed to persist security event {event.event_id}: {exc}")

        return event

    def query(
        self,
        actor_id: Optional[str] = None,
        severity: Optional[Severity] = None,
        kind: Optional[SecurityEventType] = None,
        limit: Optional[int] = None,
    ) -> list[SecurityEvent]:
        """Matching events, most recent first, as of the time of the call."""
        if limit is not None and limit <= 0:
            return []
        with self._lock:
            snapshot = list(self._events)

        matches: list[SecurityEvent] = []
        for event in reversed(snapshot):
            if actor_id is not None and event.actor_id != actor_id:
                continue
            if severity is not None and event.severity != severity:
                continue
            if kind is not None and event.kind != kind:
                continue
            matches.append(event)
            if limit is not None and len(matches) >= limit:
                break
        return matches

    def snapshot(self) -> list[SecurityEvent]:
        """All retained events, oldest first."""
        with self._lock:
            return list(self._events)

    # ── Convenience constructors: fixed severity per kind ────────────────────

    def _log(
        self,
        kind: SecurityEventType,
        actor_id: Optional[str],
        details: dict[str, Any],
        severity: Optional[Severity] = None,
        persist: bool = True,
        **context: Any,
    ) -> Optional[SecurityEvent]:
        try:
            event_input = SecurityEventInput(
                kind=kind,
                severity=severity or FIXED_SEVERITIES[kind],
                actor_id=actor_id,
                details=details,
                **context,
            )
        except Exception as exc:
            logger.error(f"Dropping malformed {kind.value} event for {actor_id!r}: {exc}")
            return None
        return self.record(event_input, persist=persist)

    def record_reported(
        self,
        kind: SecurityEventType,
        actor_id: str,
        details: dict[str, Any],
        persist: bool = True,
        **context: Any,
    ) -> Optional[SecurityEvent]:
        """
        Record an event a client reported. The kind's fixed severity applies
        whatever the client claimed; kinds without one are not recorded.
        """
        if kind not in FIXED_SEVERITIES:
            return None
        return self._log(kind, actor_id, details, persist=persist, **context)

    def failed_login(self, email: str, reason: str, **context: Any) -> Optional[SecurityEvent]:
        return self._log(
            SecurityEventType.FAILED_LOGIN, None,
            {"email": email, "reason": reason}, **context,
        )

    def suspicious_activity(
        self,
        actor_id: Optional[str],
        activity: str,
        details: Optional[dict[str, Any]] = None,
        **context: Any,
    ) -> Optional[SecurityEvent]:
        return self._log(
            SecurityEventType.SUSPICIOUS_ACTIVITY, actor_id,
            {"activity": activity, **(details or {})}, **context,
        )

    def rate_limit_exceeded(self, actor_id: str, action: str, **context: Any) -> Optional[SecurityEvent]:
        return self._log(
            SecurityEventType.RATE_LIMIT_EXCEEDED, actor_id,
            {"action": action}, **context,
        )

    def unauthorized_access(
        self,
        actor_id: Optional[str],
        resource: str,
        **context: Any,
    ) -> Optional[SecurityEvent]:
        return self._log(
            SecurityEventType.UNAUTHORIZED_ACCESS, actor_id,
            {"resource": resource}, **context,
        )

    def invalid_input(
        self,
        actor_id: Optional[str],
        field: str,
        value: Any,
        **context: Any,
    ) -> Optional[SecurityEvent]:
        return self._log(
            SecurityEventType.INVALID_INPUT, actor_id,
            {"field": field, "value": str(value)[:INVALID_INPUT_MAX_CHARS]}, **context,
        )

    def file_upload_rejected(
        self,
        actor_id: str,
        filename: str,
        reason: str,
        **context: Any,
    ) -> Optional[SecurityEvent]:
        return self._log(
            SecurityEventType.FILE_UPLOAD_REJECTED, actor_id,
            {"filename": filename, "reason": reason}, **context,
        )

    def xss_attempt(self, actor_id: Optional[str], payload: str, **context: Any) -> Optional[SecurityEvent]:
        return self._log(
            SecurityEventType.XSS_ATTEMPT, actor_id,
            {"input": str(payload)[:DEFAULT_DETAIL_MAX_CHARS]}, **context,
        )

    def sql_injection_attempt(
        self,
        actor_id: Optional[str],
        payload: str,
        **context: Any,
    ) -> Optional[SecurityEvent]:
        return self._log(
            SecurityEventType.SQL_INJECTION_ATTEMPT, actor_id,
            {"input": str(payload)[:DEFAULT_DETAIL_MAX_CHARS]}, **context,
        )

    def user_reported(
        self,
        reported_user_id: str,
        reporter_id: str,
        report_id: Optional[str],
        reason: ReportReason,
        **context: Any,
    ) -> Optional[SecurityEvent]:
        reason_value = getattr(reason, "value", reason)
        severity = Severity.HIGH if reason_value == ReportReason.HARASSMENT.value else Severity.MEDIUM
        return self._log(
            SecurityEventType.USER_REPORTED, reported_user_id,
            {
                "description": f"User reported for: {reason_value}",
                "reporter_id": reporter_id,
                "report_id": report_id,
                "reason": reason_value,
            },
            severity=severity,
            **context,
        )


class ActivityTracker:
    """
    Flags actors whose recent actions arrive faster than a human could produce them.
    Only logs; never denies the action.
    At most max_actors histories are kept; the least recently active actor is dropped first.
    """

    def __init__(
        self,
        recorder: SecurityEventRecorder,
        sample_size: int = 20,
        threshold_ms: float = 100.0,
        history_size: int = 100,
        max_actors: int = DEFAULT_MAX_TRACKED_ACTORS,
        clock: Clock = now_ms,
    ) -> None:
        if sample_size < 2:
            raise ValueError("sample_size must be at least 2")
        if max_actors < 1:
            raise ValueError("max_actors must be positive")
        self._recorder = recorder
        self._sample_size = sample_size
        self._threshold_ms = threshold_ms
        self._history_size = max(history_size, sample_size + 1)
        self._max_actors = max_actors
        self._clock = clock
        self._history: OrderedDict[str, Deque[int]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def tracked_actors(self) -> int:
        with self._lock:
            return len(self._history)

    def track(
        self,
        actor_id: str,
        activity: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Append one action; returns True if it was flagged as rapid."""
        with self._lock:
            history = self._history.get(actor_id)
            if history is None:
                history = self._history[actor_id] = deque(maxlen=self._history_size)
                while len(self._history) > self._max_actors:
                    self._history.popitem(last=False)
            else:
                self._history.move_to_end(actor_id)
            history.append(self._clock())
            if len(history) <= self._sample_size:
                return False
            recent = list(history)[-self._sample_size:]
            total = len(history)

        avg = mean_interval_ms(recent)
        if avg >= self._threshold_ms:
            return False

        self._recorder.suspicious_activity(
            actor_id,
            "rapid_requests",
            {
                "avgTimeDiff": round(avg, 2),
                "count": total,
                "trigger": activity,
                **(metadata or {}),
            },
        )
        return True

    def forget(self, actor_id: str) -> None:
        with self._lock:
            self._history.pop(actor_id, None)
