"""
tests/test_validators.py — Unit tests for request input validation
"""
from __future__ import annotations

import math

import pytest

from app.utils.timing import mean_interval_ms, seconds_until
from app.utils.validators import (
    is_valid_uuid,
    sanitize_input,
    validate_message_content,
    validate_report_reason,
    verify_content_safety,
)


def test_uuid_validation():
    assert is_valid_uuid("11111111-1111-4111-8111-111111111111")
    assert is_valid_uuid("ABCDEF01-2345-6789-ABCD-EF0123456789")
    assert not is_valid_uuid("not-a-uuid")
    assert not is_valid_uuid("")
    assert not is_valid_uuid(None)


def test_sanitize_strips_brackets_and_caps_length():
    assert sanitize_input("  <b>hello</b>  ") == "bhello/b"
    assert sanitize_input("a" * 50, max_length=10) == "a" * 10


def test_message_content_ok():
    assert validate_message_content("hi there").valid


def test_message_missing():
    result = validate_message_content(None)
    assert not result.valid
    assert result.error == "Missing required fields"


def test_message_too_long_checked_before_trim():
    result = validate_message_content(" " * 1999 + "ab")
    assert result.error == "Message too long"
    assert validate_message_content("a" * 2000).valid


def test_message_blank():
    assert validate_message_content("   \n\t").error == "Message cannot be empty"


@pytest.mark.parametrize("payload", [
    "<script>alert(1)</script>",
    "<SCRIPT src=x>\n</SCRIPT>",
    "click javascript:void(0)",
    '<img src=x onerror="steal()">',
    "<iframe src='https://evil.example'>",
    "<object data=x>",
    "<embed src=x>",
])
def test_unsafe_content_detected(payload):
    result = verify_content_safety(payload)
    assert not result.valid
    assert result.error == "Potentially malicious content detected"


def test_plain_text_is_safe():
    assert verify_content_safety("See you at 7? I'll bring snacks :)").valid


def test_report_reason():
    assert validate_report_reason("harassment").valid
    assert validate_report_reason("fake_profile").valid
    assert validate_report_reason("boring").error == "Invalid reason"
    assert validate_report_reason(None).error == "Missing required fields"


def test_seconds_until_rounds_up_and_floors_at_zero():
    assert seconds_until(61_000, 1_000) == 60
    assert seconds_until(1_500, 1_000) == 1
    assert seconds_until(1_000, 1_000) == 0
    assert seconds_until(1_000, 5_000) == 0


def test_mean_interval():
    assert mean_interval_ms([0, 10, 20, 30]) == 10
    assert mean_interval_ms([100, 100]) == 0
    assert math.isinf(mean_interval_ms([5]))
