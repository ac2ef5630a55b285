"""
Tests for duration string parsing and formatting.
"""

import pytest

from dockform.durations import format_duration, parse_duration


@pytest.mark.parametrize(
    "text,seconds",
    [
        ("7s", 7.0),
        ("3m", 180.0),
        ("1m30s", 90.0),
        ("1h0m0s", 3600.0),
        ("500ms", 0.5),
        ("1.5s", 1.5),
        ("0", 0.0),
        ("", 0.0),
    ],
)
def test_parse(text, seconds):
    assert parse_duration(text) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["7", "seven seconds", "1m 30s", "s", "10d"])
def test_parse_rejects_garbage(text):
    with pytest.raises(ValueError, match="invalid duration"):
        parse_duration(text)


@pytest.mark.parametrize(
    "seconds,text",
    [
        (0, "0s"),
        (0.3, "300ms"),
        (10, "10s"),
        (90, "1m30s"),
        (3600, "1h0m0s"),
    ],
)
def test_format(seconds, text):
    assert format_duration(seconds) == text
