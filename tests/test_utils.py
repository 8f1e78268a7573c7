"""Tests for formatting and parsing helpers."""

from __future__ import annotations

import pytest

from deptox.utils import bytes_to_human, format_bytes_compact, format_elapsed, format_relative_time, parse_size

NOW = 1_700_000_000_000
MINUTE_MS = 60 * 1000
DAY_MS = 24 * 60 * MINUTE_MS


class TestBytesToHuman:
    def test_values(self):
        assert bytes_to_human(0) == "0 B"
        assert bytes_to_human(512) == "512 B"
        assert bytes_to_human(1536) == "1.5 KB"
        assert bytes_to_human(5 * 1024**3) == "5.0 GB"
        assert bytes_to_human(-2048) == "-2.0 KB"


class TestFormatBytesCompact:
    def test_values(self):
        assert format_bytes_compact(0) == "0.00B"
        assert format_bytes_compact(1536) == "1.50KB"
        assert format_bytes_compact(int(1.5 * 1024**3)) == "1.50GB"
        assert format_bytes_compact(2 * 1024**4) == "2.00TB"


class TestFormatRelativeTime:
    @pytest.mark.parametrize(
        "delta, expected",
        [
            (0, "just now"),
            (-5000, "just now"),
            (MINUTE_MS, "1 minute ago"),
            (5 * MINUTE_MS, "5 minutes ago"),
            (60 * MINUTE_MS, "1 hour ago"),
            (DAY_MS, "1 day ago"),
            (29 * DAY_MS, "29 days ago"),
            (30 * DAY_MS, "1 month ago"),
            (360 * DAY_MS, "1 year ago"),
            (800 * DAY_MS, "2 years ago"),
        ],
    )
    def test_values(self, delta, expected):
        assert format_relative_time(NOW - delta, now=NOW) == expected


class TestFormatElapsed:
    def test_values(self):
        assert format_elapsed(0.25) == "250 ms"
        assert format_elapsed(3.21) == "3.2s"
        assert format_elapsed(125) == "2m 5s"


class TestParseSize:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("500", 500),
            ("500B", 500),
            ("2KB", 2048),
            ("1.5 GB", int(1.5 * 1024**3)),
            ("10mb", 10 * 1024**2),
            ("1TB", 1024**4),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_size(text) == expected

    @pytest.mark.parametrize("text", ["", "GB", "5G", "abc", "1.2.3MB", "-5MB"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_size(text)
