"""
Recuerdos Backend — Calendar Date Handling
===========================================

What:  The single place where memory dates are parsed, formatted and compared.
How:   A memory date is a pure calendar date ("YYYY-MM-DD"). It is split into
       year/month/day integers and turned into a `datetime.date` directly;
       it never goes through a timestamp, a UTC conversion or the host timezone.
Who:   Schemas (validation), services (ordering, stats, calendars), stores
       (persistence) and the client library.

Rule:
    Do not call datetime.fromisoformat / strptime / timestamp APIs on a memory
    date anywhere else in the codebase. Use parse_local_date() instead.
"""

import datetime as dt
import re
from typing import Iterable, List, Optional, TypeVar, Union

DATE_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")

MONTH_NAMES_ES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)

DateLike = Union[str, dt.date]
T = TypeVar("T")


def parse_local_date(value: DateLike) -> dt.date:
    """
    Build a calendar date from a "YYYY-MM-DD" string.

    The string is split into integers and passed straight to `date(y, m, d)`,
    so the result is identical on every host regardless of its UTC offset.
    A `date` passes through unchanged; a `datetime` is rejected because its
    day depends on the timezone it was taken in.

    Raises:
        ValueError: malformed string or impossible date (e.g. 2023-02-30).
    """
    if isinstance(value, dt.datetime):
        raise ValueError("Expected a calendar date, got a datetime")
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected a 'YYYY-MM-DD' string, got {type(value).__name__}")

    match = DATE_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid date '{value}': expected format YYYY-MM-DD")

    year, month, day = (int(part) for part in match.groups())
    return dt.date(year, month, day)


def to_date_string(value: DateLike) -> str:
    """Normalize a date (or date string) to zero-padded "YYYY-MM-DD"."""
    parsed = parse_local_date(value)
    return f"{parsed.year:04d}-{parsed.month:02d}-{parsed.day:02d}"


def format_date_safe(value: DateLike) -> str:
    """
    Human-readable Spanish long form, e.g. "15 de enero de 2024".

    Built from the integer parts, so no locale or timezone is involved.
    """
    parsed = parse_local_date(value)
    return f"{parsed.day} de {MONTH_NAMES_ES[parsed.month - 1]} de {parsed.year}"


def month_name(month: int) -> str:
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month {month}: expected 1-12")
    return MONTH_NAMES_ES[month - 1]


def today_local() -> dt.date:
    """Today's date on the host's local calendar."""
    return dt.date.today()


def current_local_date_string() -> str:
    """Today as "YYYY-MM-DD" on the host's local calendar (default for new memories)."""
    return to_date_string(today_local())


def compare_dates(first: DateLike, second: DateLike) -> int:
    """Negative if first < second, positive if first > second, 0 if equal."""
    a = parse_local_date(first)
    b = parse_local_date(second)
    return (a > b) - (a < b)


def is_same_day(first: DateLike, second: DateLike) -> bool:
    return parse_local_date(first) == parse_local_date(second)


def in_year(value: DateLike, year: int) -> bool:
    return parse_local_date(value).year == year


def in_month(value: DateLike, year: int, month: int) -> bool:
    parsed = parse_local_date(value)
    return parsed.year == year and parsed.month == month


def month_key(value: DateLike) -> str:
    """Bucket key ("YYYY-MM") used by the per-month statistics."""
    parsed = parse_local_date(value)
    return f"{parsed.year:04d}-{parsed.month:02d}"


def newest_first(memories: Iterable[T], tiebreak: Optional[str] = "created_at") -> List[T]:
    """
    Sort memories by calendar date, most recent first.

    Memories on the same day are ordered by `tiebreak` (newest first) when the
    attribute is set, so the order is stable across calls.
    """
    min_dt = dt.datetime.min.replace(tzinfo=dt.timezone.utc)

    def key(memory):
        secondary = getattr(memory, tiebreak, None) if tiebreak else None
        if secondary is not None and secondary.tzinfo is None:
            secondary = secondary.replace(tzinfo=dt.timezone.utc)
        return (parse_local_date(memory.date), secondary or min_dt)

    return sorted(memories, key=key, reverse=True)
