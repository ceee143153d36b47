"""
tests/conftest.py — Shared pytest fixtures
"""
from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.core.rate_limiter import limiter
from app.core.security_events import SecurityEventRecorder
from app.main import create_app
from tests.helpers import ALICE, BOB, FakeClock, FakeStore, make_settings


@pytest.fixture(autouse=True)
def reset_ip_limiter():
    # slowapi's per-IP counters are module-global
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder() -> SecurityEventRecorder:
    return SecurityEventRecorder(capacity=1000, escalate=lambda event: None)


@pytest.fixture
def store() -> FakeStore:
    fake = FakeStore()
    fake.add_user("alice-token", ALICE)
    fake.add_user("bob-token", BOB)
    return fake


@pytest.fixture
def make_client(store):
    def _make(**overrides: Any) -> TestClient:
        return TestClient(create_app(make_settings(**overrides), store))
    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
