from __future__ import annotations

import datetime as dt


def now_iso() -> str:
    return dt.datetime.now(dt.UTC).isoformat(timespec="microseconds")


def parse_iso8601(value: str) -> dt.datetime | None:
    raw = value.strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)


def next_updated_at(previous: str | None, now: str | None = None) -> str:
    """Return a timestamp strictly later than ``previous``, bumping by 1µs if needed."""
    current = now or now_iso()
    if not previous:
        return current
    prev_dt = parse_iso8601(previous)
    cur_dt = parse_iso8601(current)
    if prev_dt is None or cur_dt is None:
        return current
    if cur_dt > prev_dt:
        return current
    return (prev_dt + dt.timedelta(microseconds=1)).isoformat(timespec="microseconds")


def truncate(text: str, width: int = 50) -> str:
    if len(text) <= width:
        return text
    return text[:width] + "..."
