"""
tests/test_rate_limiter.py — Unit tests for the fixed-window rate limiter
"""
from __future__ import annotations

import threading

import pytest

from app.core.rate_limiter import RateLimiter, UnregisteredActionError, build_action_policies
from app.models import ActionKind, ActionPolicy, SecurityEventType, Severity
from tests.helpers import make_settings


@pytest.fixture
def like_limiter(clock) -> RateLimiter:
    return RateLimiter({"like": ActionPolicy(max_attempts=3, window_ms=60_000)}, clock=clock)


def test_first_n_allowed_then_denied(like_limiter):
    counts = [like_limiter.check_and_consume("u1", "like").count for _ in range(3)]
    assert counts == [1, 2, 3]

    denied = like_limiter.check_and_consume("u1", "like")
    assert not denied.allowed
    assert denied.retry_after_seconds == 60


def test_reset_clears_denial(like_limiter):
    for _ in range(4):
        like_limiter.check_and_consume("u1", "like")

    like_limiter.reset("u1", "like")
    decision = like_limiter.check_and_consume("u1", "like")
    assert decision.allowed
    assert decision.count == 1


def test_reset_without_entry_is_noop(like_limiter):
    like_limiter.reset("nobody", "like")
    like_limiter.reset("nobody", "like")
    assert like_limiter.entry("nobody", "like") is None


def test_retry_after_counts_down(like_limiter, clock):
    for _ in range(3):
        like_limiter.check_and_consume("u1", "like")
    clock.advance(45_500)
    assert like_limiter.check_and_consume("u1", "like").retry_after_seconds == 15


def test_new_window_after_reset_at(like_limiter, clock):
    for _ in range(4):
        like_limiter.check_and_consume("u1", "like")

    clock.advance(60_000)  # exactly reset_at: still the old window
    assert not like_limiter.check_and_consume("u1", "like").allowed

    clock.advance(1)
    decision = like_limiter.check_and_consume("u1", "like")
    assert decision.allowed
    assert decision.count == 1


def test_denied_calls_do_not_increment(like_limiter):
    for _ in range(10):
        like_limiter.check_and_consume("u1", "like")
    assert like_limiter.entry("u1", "like").count == 3


def test_burst_across_window_boundary_is_permitted(like_limiter, clock):
    like_limiter.check_and_consume("u1", "like")
    clock.advance(59_000)
    assert like_limiter.check_and_consume("u1", "like").allowed
    assert like_limiter.check_and_consume("u1", "like").allowed
    clock.advance(1_001)
    assert all(like_limiter.check_and_consume("u1", "like").allowed for _ in range(3))


def test_keys_are_independent(clock):
    limiter = RateLimiter(
        {
            ActionKind.LIKE_PROFILE: ActionPolicy(max_attempts=1, window_ms=1000),
            ActionKind.SEND_MESSAGE: ActionPolicy(max_attempts=1, window_ms=1000),
        },
        clock=clock,
    )
    assert limiter.check_and_consume("u1", ActionKind.LIKE_PROFILE).allowed
    assert limiter.check_and_consume("u2", ActionKind.LIKE_PROFILE).allowed
    assert limiter.check_and_consume("u1", ActionKind.SEND_MESSAGE).allowed
    assert not limiter.check_and_consume("u1", "like_profile").allowed


def test_unregistered_action_fails_fast(like_limiter):
    with pytest.raises(UnregisteredActionError):
        like_limiter.check_and_consume("u1", "teleport")


def test_empty_actor_rejected(like_limiter):
    with pytest.raises(ValueError):
        like_limiter.check_and_consume("", "like")


def test_denial_is_recorded(clock, recorder):
    limiter = RateLimiter(
        {"like": ActionPolicy(max_attempts=1, window_ms=60_000)}, clock=clock, recorder=recorder
    )
    limiter.check_and_consume("u1", "like")
    limiter.check_and_consume("u1", "like")

    events = recorder.query(actor_id="u1")
    assert len(events) == 1
    assert events[0].kind == SecurityEventType.RATE_LIMIT_EXCEEDED
    assert events[0].severity == Severity.MEDIUM
    assert events[0].details == {"action": "like"}


def test_policies_built_from_settings():
    policies = build_action_policies(make_settings())
    assert policies["like_profile"] == ActionPolicy(max_attempts=50, window_ms=60_000)
    assert policies["submit_report"].max_attempts == 5
    assert set(policies) == {kind.value for kind in ActionKind}


def test_concurrent_calls_never_overshoot(clock):
    limiter = RateLimiter({"like": ActionPolicy(max_attempts=100, window_ms=60_000)}, clock=clock)
    allowed = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            decision = limiter.check_and_consume("u1", "like")
            if decision.allowed:
                with lock:
                    allowed.append(decision.count)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(allowed) == list(range(1, 101))
