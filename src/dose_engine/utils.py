"""Shared day-boundary and name-matching helpers for the dose engine."""

import logging
from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

LOCAL_TIMEZONE_DISCLOSURE = (
    "No valid timezone configured; using the system local time for day grouping."
)


# ---------------------------------------------------------------------------
# Timezone resolution
# ---------------------------------------------------------------------------


def normalize_timezone_name(value: Any) -> str | None:
    """Normalize a timezone name and verify it's a valid IANA name."""
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw:
        return None
    if raw.upper() == "UTC":
        return "UTC"
    try:
        ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError):
        return None
    return raw


def resolve_timezone_context(timezone_pref: Any) -> dict[str, Any]:
    """Return timezone context with explicit disclosure when falling back to local time."""
    normalized = normalize_timezone_name(timezone_pref)
    if normalized:
        return {
            "timezone": normalized,
            "source": "configured",
            "assumed": False,
            "assumption_disclosure": None,
        }
    return {
        "timezone": None,
        "source": "system_local",
        "assumed": True,
        "assumption_disclosure": LOCAL_TIMEZONE_DISCLOSURE,
    }


# ---------------------------------------------------------------------------
# Local calendar days
# ---------------------------------------------------------------------------


def local_date(value: date | datetime, timezone_name: str | None = None) -> date:
    """Project a timestamp onto the local calendar day.

    Aware datetimes are converted to ``timezone_name`` (or the system local
    zone when it is None). Naive datetimes are already local wall-clock time
    and keep their own date. Plain dates pass through unchanged.
    """
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        return value.date()
    if timezone_name:
        return value.astimezone(ZoneInfo(timezone_name)).date()
    return value.astimezone().date()


def local_day_key(value: date | datetime, timezone_name: str | None = None) -> str:
    """Return the ``YYYY-MM-DD`` key of the local calendar day.

    Built from local year/month/day components; UTC serialization would
    shift doses logged near midnight onto the neighbouring day.
    """
    day = local_date(value, timezone_name)
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def local_today(timezone_name: str | None = None) -> date:
    return local_date(datetime.now(timezone.utc), timezone_name)


def local_time_label(value: datetime, timezone_name: str | None = None) -> str:
    """HH:MM of a timestamp in local wall-clock time."""
    if value.tzinfo is not None:
        value = value.astimezone(ZoneInfo(timezone_name)) if timezone_name else value.astimezone()
    return f"{value.hour:02d}:{value.minute:02d}"


def sunday_weekday(day: date) -> int:
    """Weekday index with Sunday=0 .. Saturday=6 (schedule convention)."""
    return (day.weekday() + 1) % 7


def parse_hhmm(raw: Any) -> tuple[int, int] | None:
    """Parse a 24-hour ``HH:MM`` string; None when malformed."""
    if not isinstance(raw, str):
        return None
    parts = raw.strip().split(":")
    if len(parts) != 2:
        return None
    try:
        hour = int(parts[0])
        minute = int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def time_sort_key(raw: Any) -> tuple[int, int, str]:
    """Order ``HH:MM`` times chronologically; malformed times sort last."""
    parsed = parse_hhmm(raw)
    text = raw if isinstance(raw, str) else ""
    if parsed is None:
        return (1, 0, text)
    hour, minute = parsed
    return (0, hour * 60 + minute, text)


# ---------------------------------------------------------------------------
# Fuzzy compound names
# ---------------------------------------------------------------------------


def canonical_name(raw: Any) -> str | None:
    if not isinstance(raw, str):
        return None
    normalized = " ".join(raw.strip().lower().split())
    return normalized or None


def names_correspond(a: Any, b: Any) -> bool:
    """Bidirectional case-insensitive substring containment.

    ``"Tirzepatide 10mg"`` and ``"tirzepatide"`` correspond; blank names
    never correspond to anything.
    """
    left = canonical_name(a)
    right = canonical_name(b)
    if left is None or right is None:
        return False
    return left in right or right in left


def identifiers_or_names_correspond(
    left_id: str | None,
    left_name: Any,
    right_id: str | None,
    right_name: Any,
) -> bool:
    """Prefer the stable compound identifier; fall back to fuzzy names for legacy rows."""
    if left_id and right_id:
        return left_id == right_id
    return names_correspond(left_name, right_name)
