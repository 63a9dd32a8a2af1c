from __future__ import annotations

from andtask.utils import next_updated_at, parse_iso8601, truncate


def test_truncate_keeps_short_text() -> None:
    assert truncate("buy milk") == "buy milk"
    assert truncate("x" * 50) == "x" * 50


def test_truncate_cuts_long_text() -> None:
    assert truncate("x" * 51) == "x" * 50 + "..."
    assert truncate("abcdef", width=3) == "abc..."


def test_next_updated_at_bumps_when_clock_stalls() -> None:
    previous = "2026-03-01T12:00:00.000000+00:00"

    bumped = next_updated_at(previous, now=previous)

    assert bumped == "2026-03-01T12:00:00.000001+00:00"
    assert next_updated_at(previous, now="2026-03-01T12:00:05+00:00") == (
        "2026-03-01T12:00:05+00:00"
    )


def test_next_updated_at_handles_column_default_timestamps() -> None:
    bumped = next_updated_at("2025-01-01 10:00:00", now="2025-01-01T10:00:00+00:00")

    assert parse_iso8601(bumped) > parse_iso8601("2025-01-01 10:00:00")
