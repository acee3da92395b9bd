"""Datetime helpers for registry timestamps and generated-file headers."""

from __future__ import annotations

from datetime import datetime, timezone

import pendulum


def parse_datetime(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax datetime string (registry ISO 8601 or date-only) into an aware datetime."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=pendulum.timezone(default_tz))  # type: ignore[arg-type]
        return value

    parsed = pendulum.parse(value.strip(), tz=default_tz, strict=False)
    if not isinstance(parsed, pendulum.DateTime):
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(
            parsed.year, parsed.month, parsed.day, tz=default_tz  # type: ignore[union-attr]
        )
    return parsed  # type: ignore[return-value]


def format_date(value: str | datetime) -> str:
    """Format a timestamp as YYYY-MM-DD.

    Returns ``"unknown"`` for empty input and the raw string when it cannot
    be parsed.
    """
    if isinstance(value, str) and not value.strip():
        return "unknown"
    try:
        return parse_datetime(value).strftime("%Y-%m-%d")
    except ValueError:
        return str(value)


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    """Format datetime as ISO 8601."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()
