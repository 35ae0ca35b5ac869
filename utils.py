"""Shared utilities for FamilyReel."""

import logging
import re
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

# Matches: 800, 0800, 8:00, 800am, 8:00am, 800pm, 8:00PM, 2000, 20:00
_TIME_RE = re.compile(
    r'^(\d{1,2}):?(\d{2})\s*(am|pm)?$',
    re.IGNORECASE,
)

_HHMM_RE = re.compile(r'^(\d{1,2}):(\d{2})$')


def now_local(tz_name: str = "") -> datetime:
    """Current wall-clock time in the given timezone (UTC if empty or invalid)."""
    if tz_name:
        try:
            from zoneinfo import ZoneInfo
            return datetime.now(ZoneInfo(tz_name))
        except Exception:
            logger.warning("Invalid timezone %r, falling back to UTC", tz_name)
    return datetime.now(timezone.utc)


def get_today_str(tz_name: str = "") -> str:
    """Get today's date as YYYY-MM-DD in the given timezone.

    Falls back to UTC if tz_name is empty or invalid.
    """
    return now_local(tz_name).strftime("%Y-%m-%d")


def clock_minutes(hhmm: str) -> int:
    """Convert a "HH:MM" clock string to minutes after midnight.

    Raises ValueError for anything that is not a valid 24-hour clock time.
    """
    m = _HHMM_RE.match(hhmm.strip()) if isinstance(hhmm, str) else None
    if not m:
        raise ValueError(f"Invalid clock time: {hhmm!r}")
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid clock time: {hhmm!r}")
    return hour * 60 + minute


def parse_time_input(raw: str) -> str | None:
    """Normalize a typed schedule bound to "HH:MM", or None if it is not a time.

    Both 12-hour ("8:00am", "800PM") and 24-hour ("0800", "20:00") input work.
    """
    m = _TIME_RE.match(raw.strip())
    if not m:
        return None
    hour, minute, meridiem = int(m.group(1)), int(m.group(2)), (m.group(3) or "").lower()
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if meridiem == "pm" else 0)
    normalized = f"{hour:02d}:{minute:02d}"
    try:
        clock_minutes(normalized)
    except ValueError:
        return None
    return normalized


def format_time_12h(hhmm: str) -> str:
    """Convert "HH:MM" to human-readable 12-hour format.

    "08:00" -> "8 AM", "08:30" -> "8:30 AM", "20:00" -> "8 PM", "00:00" -> "12 AM"
    """
    try:
        h, m = map(int, hhmm.split(":"))
    except (ValueError, AttributeError):
        return hhmm
    suffix = "AM" if h < 12 else "PM"
    h12 = h % 12 or 12
    if m == 0:
        return f"{h12} {suffix}"
    return f"{h12}:{m:02d} {suffix}"

