from __future__ import annotations

import re
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterator, Optional, Tuple
from zoneinfo import ZoneInfo

from packages.errors import InvalidDateFormat

YMD_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
DEFAULT_WINDOW_DAYS = 30


def is_ymd(value: object) -> bool:
    return isinstance(value, str) and YMD_PATTERN.fullmatch(value) is not None


def parse_ymd(value: str) -> date:
    value = value.strip()
    if not is_ymd(value):
        raise InvalidDateFormat(f"Invalid date '{value}' (expected YYYY-MM-DD).")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidDateFormat(f"Failed to parse date '{value}'.")


def today_in(tz: tzinfo) -> date:
    return datetime.now(tz).date()


def normalize_date_range(
    date_from: Optional[str],
    date_to: Optional[str],
    today: date,
) -> Tuple[date, date]:
    """Turn optional from/to strings into an inclusive, ordered day range.

    Omitted bounds default to a 30-day window ending today. Reversed bounds
    are swapped rather than rejected.
    """
    if date_from is None or date_from.strip() == "":
        start = today - timedelta(days=DEFAULT_WINDOW_DAYS - 1)
    else:
        start = parse_ymd(date_from)

    if date_to is None or date_to.strip() == "":
        end = today
    else:
        end = parse_ymd(date_to)

    if end < start:
        start, end = end, start
    return start, end


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def local_midnight_epoch(day: date, tz: tzinfo) -> int:
    return int(datetime(day.year, day.month, day.day, tzinfo=tz).timestamp())


def resolve_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)
