from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

import pytz

FOUND_DATE_FORMAT = "%Y-%m-%d %I:%M:%S %p"


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def now_iso() -> str:
    """
    UTC ISO-8601 timestamp with 'Z' suffix.
    """
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def resolve_timezone(name: str | None) -> pytz.BaseTzInfo:
    """Return a pytz timezone; raises pytz.UnknownTimeZoneError for bad names."""
    return pytz.timezone((name or "UTC").strip() or "UTC")


def format_found_date(when: datetime | None = None, tz_name: str | None = "UTC") -> str:
    """
    Format a moment as 'YYYY-MM-DD hh:mm:ss AM' in the given timezone.
    Naive datetimes are treated as UTC.
    """
    when = when or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(resolve_timezone(tz_name)).strftime(FOUND_DATE_FORMAT)


def truncate(s: str | None, max_length: int) -> str:
    """Shorten to max_length characters, ending in '...' when cut."""
    s = s or ""
    if len(s) <= max_length:
        return s
    return s[: max(0, max_length - 3)] + "..."


def getenv_str(name: str, default: str | None = None) -> str | None:
    """
    Typed wrapper for environment access. Empty strings count as unset.
    """
    val = os.getenv(name)
    return val if val not in (None, "") else default
