"""
app/core/rate_limiter.py — Per-actor fixed-window limiter + slowapi edge throttle
Two layers:
  * RateLimiter: per (actor, action) fixed-window counter consulted by handlers.
  * limiter: slowapi per-IP throttle applied to routes as a decorator.

Fixed windows let a full burst land at the end of one window and another at the
start of the next. That is accepted behaviour; do not swap in a sliding window
without a product decision.

Counters live in process memory. They are only authoritative for a single
instance; a multi-instance deployment needs an external atomic counter.
"""
from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Mapping, Optional, Union

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core import logging as app_logging
from app.models import ActionKind, ActionPolicy, RateLimitDecision, RateLimitEntry
from app.utils.timing import Clock, now_ms, seconds_until

if TYPE_CHECKING:
    from app.config import Settings
    from app.core.security_events import SecurityEventRecorder

Action = Union[ActionKind, str]

# Single shared per-IP limiter instance: imported by main.py and routers
limiter = Limiter(key_func=get_remote_address)

# ── Per-IP limits per endpoint category ───────────────────────────────────────
# These string values are used as decorators on individual route handlers.

RATE_LIMITS = {
    # Like / message / report handlers: per-actor limits do the real work
    "handlers": "120/minute",
    # Security event ingestion from clients
    "security_monitor": "60/minute",
    # Admin query and reset
    "admin": "30/minute",
    # Health check: moderate
    "health": "30/minute",
}


class UnregisteredActionError(LookupError):
    """Raised when an action kind has no ActionPolicy. Programmer error."""


def _action_key(action: Action) -> str:
    return action.value if isinstance(action, ActionKind) else str(action)


def build_action_policies(settings: "Settings") -> dict[str, ActionPolicy]:
    """Immutable policy table from settings.rate_limit_policies."""
    return {
        action: ActionPolicy(**policy)
        for action, policy in settings.rate_limit_policies.items()
    }


class RateLimiter:
    """Fixed-window attempt counter keyed by (actor_id, action)."""

    def __init__(
        self,
        policies: Mapping[Action, ActionPolicy],
        clock: Clock = now_ms,
        recorder: Optional["SecurityEventRecorder"] = None,
    ) -> None:
        self._policies: dict[str, ActionPolicy] = {
            _action_key(action): policy for action, policy in policies.items()
        }
        self._clock = clock
        self._recorder = recorder
        self._entries: dict[tuple[str, str], RateLimitEntry] = {}
        self._lock = threading.Lock()

    def policy_for(self, action: Action) -> ActionPolicy:
        key = _action_key(action)
        try:
            return self._policies[key]
        except KeyError:
            raise UnregisteredActionError(f"No rate limit policy for action {key!r}") from None

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._entries)

    def check_and_consume(self, actor_id: str, action: Action) -> RateLimitDecision:
        """
        Count one attempt and decide whether it is admitted.
        The count never passes max_attempts, so calls made while denied
        return the same denial without consuming anything.
        """
        if not actor_id:
            raise ValueError("actor_id must not be empty")
        policy = self.policy_for(action)
        action_key = _action_key(action)
        key = (actor_id, action_key)

        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None or now > entry.reset_at:
                self._entries[key] = RateLimitEntry(count=1, reset_at=now + policy.window_ms)
                return RateLimitDecision(allowed=True, count=1, limit=policy.max_attempts)

            if entry.count < policy.max_attempts:
                entry.count += 1
                return RateLimitDecision(
                    allowed=True, count=entry.count, limit=policy.max_attempts
                )

            decision = RateLimitDecision(
                allowed=False,
                count=entry.count,
                limit=policy.max_attempts,
                retry_after_seconds=seconds_until(entry.reset_at, now),
            )

        app_logging.log_rate_limit_denial(
            actor_id, action_key, decision.count, decision.retry_after_seconds or 0
        )
        if self._recorder is not None:
            self._recorder.rate_limit_exceeded(actor_id, action_key)
        return decision

    def reset(self, actor_id: str, action: Action) -> None:
        """Forget the window for this key. No-op if nothing is tracked."""
        with self._lock:
            self._entries.pop((actor_id, _action_key(action)), None)

    def entry(self, actor_id: str, action: Action) -> Optional[RateLimitEntry]:
        """Copy of the live entry, or None."""
        with self._lock:
            entry = self._entries.get((actor_id, _action_key(action)))
            return entry.model_copy() if entry is not None else None
