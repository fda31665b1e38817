"""Shared utilities used across the scheduling core."""

import re
from datetime import date, datetime, timezone
from typing import Any, Optional, Union

from slotbook.errors import InvalidRequestError

_HHMM_RE = re.compile(r"^\d{2}:\d{2}$")
_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    """Default clock: the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_id(value: Any) -> str:
    """Coerce an id-ish value to a stripped string ('' for None)."""
    if value is None:
        return ""
    return str(value).strip()


def trim_or_none(value: Optional[str], max_length: Optional[int] = None) -> Optional[str]:
    """Strip free text; blank becomes None.

    Examples:
        >>> trim_or_none("  Vacation ")
        'Vacation'
        >>> trim_or_none("   ") is None
        True
    """
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if max_length is not None and len(trimmed) > max_length:
        raise InvalidRequestError(f"Text must be at most {max_length} characters")
    return trimmed


def hhmm_to_minutes(value: str) -> int:
    """Parse a wall-clock ``HH:MM`` string into minutes since midnight.

    Examples:
        >>> hhmm_to_minutes("09:30")
        570
    """
    if not isinstance(value, str) or not _HHMM_RE.match(value):
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    hours, minutes = (int(part) for part in value.split(":"))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time {value!r}")
    return hours * 60 + minutes


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: Union[str, datetime, None], field_name: str) -> datetime:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Raises:
        InvalidRequestError: If the value is missing or not ISO-8601.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"{field_name} must be a valid ISO date")
    raw = value.strip()
    if raw.endswith("Z") or raw.endswith("z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidRequestError(f"{field_name} must be a valid ISO date") from None
    return ensure_utc(parsed)


def parse_local_day(value: Union[str, date], field_name: str) -> date:
    """Parse a ``YYYY-MM-DD`` local calendar day."""
    if isinstance(value, datetime):
        raise InvalidRequestError(f"{field_name} must be a calendar day, not an instant")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DAY_RE.match(value.strip()):
        raise InvalidRequestError(f"{field_name} must be YYYY-MM-DD")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidRequestError(f"{field_name} is not a valid day") from None


def to_iso_z(value: datetime) -> str:
    """Format an instant the way the document store does: millisecond UTC with 'Z'.

    Examples:
        >>> to_iso_z(datetime(2026, 1, 29, 9, 0, tzinfo=timezone.utc))
        '2026-01-29T09:00:00.000Z'
    """
    utc = ensure_utc(value)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
