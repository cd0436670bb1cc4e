"""
Date helpers for schema date and date-time strings.

All recency and age arithmetic goes through here and takes an explicit
reference time; utc_now() is the single clock read in the package.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional, Union

_PARTIAL_DATE = re.compile(r"^(\d{4})(?:-(\d{2}))?(?:-(\d{2}))?$")

SECONDS_PER_DAY = 86400.0

# Sort key for values that cannot be parsed
EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)

DateLike = Union[str, date, datetime, None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware datetime; naive values are read as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def parse_fhir_date(value: DateLike) -> Optional[datetime]:
    """
    Parse a schema date or date-time into an aware UTC datetime.

    `YYYY`, `YYYY-MM` and `YYYY-MM-DD` resolve to midnight UTC of their
    first day. Naive date-times are read as UTC. Returns None for empty or
    unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _PARTIAL_DATE.match(text)
    if match:
        year, month, day = match.groups()
        try:
            return datetime(int(year), int(month or 1), int(day or 1), tzinfo=timezone.utc)
        except ValueError:
            return None

    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from `earlier` to `later` (negative if reversed)."""
    return (as_utc(later) - as_utc(earlier)).total_seconds() / SECONDS_PER_DAY


def days_since(value: DateLike, now: datetime) -> Optional[float]:
    parsed = parse_fhir_date(value)
    if parsed is None:
        return None
    return days_between(parsed, now)


def is_within_days(value: DateLike, days: float, now: datetime) -> bool:
    """
    True when `value` is at most `days` before `now`.

    Future dates count as recent. Unparseable values never do.
    """
    elapsed = days_since(value, now)
    if elapsed is None:
        return False
    return elapsed <= days


def calculate_age(birth_date: DateLike, today: datetime) -> Optional[int]:
    """
    Age in whole years on `today`.

    A birthday that has not yet come round this year reduces the age by one.
    """
    birth = parse_fhir_date(birth_date)
    if birth is None:
        return None
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def sort_key(value: DateLike) -> datetime:
    """Parsed date for ordering; unparseable values sort as the oldest."""
    return parse_fhir_date(value) or EPOCH_MIN


def format_date(value: DateLike) -> str:
    parsed = parse_fhir_date(value)
    if parsed is None:
        return str(value) if value else "unknown date"
    return parsed.date().isoformat()
