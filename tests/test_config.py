"""
tests/test_config.py — Settings validation
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from tests.helpers import make_settings


def test_defaults_load():
    settings = make_settings()
    assert settings.security_event_capacity == 1000
    assert settings.activity_max_actors == 10_000
    assert not settings.is_production


def test_capacity_of_one_is_allowed():
    assert make_settings(security_event_capacity=1).security_event_capacity == 1


@pytest.mark.parametrize("field, value", [
    ("security_event_capacity", 0),
    ("activity_max_actors", 0),
    ("security_persist_max_pending", 0),
    ("suspicious_activity_sample_size", 1),
])
def test_out_of_range_values_rejected(field, value):
    with pytest.raises(ValidationError):
        make_settings(**{field: value})


def test_sample_size_of_two_is_allowed():
    assert make_settings(suspicious_activity_sample_size=2).suspicious_activity_sample_size == 2


def test_unknown_environment_rejected():
    with pytest.raises(ValidationError):
        make_settings(environment="staging")


def test_non_positive_policy_rejected():
    with pytest.raises(ValidationError):
        make_settings(rate_limit_policies={"like_profile": {"max_attempts": 0, "window_ms": 1000}})
