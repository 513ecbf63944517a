"""Bucket raw source events into one record per local calendar day."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from packages.dates import iter_days
from packages.errors import InvalidRecord
from services.processing.records import DailyRecord, WEATHER_SCHEMA

# Activity type -> bucket counter. Exact, case-sensitive match.
CATEGORY_COUNTERS = {
    "Run": "run_count",
    "Ride": "ride_count",
    "Walk": "walk_count",
    "Hike": "hike_count",
}

# Static intensity coefficients (kcal per kg per hour).
DEFAULT_MET = {
    "Run": 9.8,
    "Ride": 7.5,
    "Hike": 6.0,
    "Walk": 3.5,
}
FALLBACK_MET = 5.0
HR_CAP_FACTOR = 1.6
DEFAULT_AGE_YEARS = 30
# Wide enough to quantize any finite float; the default 28 digits is not.
_WIDE = Context(prec=400)


@dataclass
class ActivityBucket:
    activities_count: int = 0
    run_count: int = 0
    ride_count: int = 0
    walk_count: int = 0
    hike_count: int = 0
    distance_m: float = 0.0
    moving_time_s: float = 0.0
    elapsed_time_s: float = 0.0
    elevation_m: float = 0.0
    calories_kcal: float = 0.0

    def add(self, activity: Mapping[str, Any], calories: float) -> None:
        self.activities_count += 1
        self.distance_m += as_number(activity.get("distance"))
        self.moving_time_s += float(math.trunc(as_number(activity.get("moving_time"))))
        self.elapsed_time_s += float(math.trunc(as_number(activity.get("elapsed_time"))))
        self.elevation_m += as_number(activity.get("total_elevation_gain"))
        self.calories_kcal += calories
        counter = CATEGORY_COUNTERS.get(str(activity.get("type") or "Unknown"))
        if counter:
            setattr(self, counter, getattr(self, counter) + 1)

    def to_record(self, day: date) -> DailyRecord:
        return DailyRecord(
            day.isoformat(),
            {
                "activities_count": self.activities_count,
                "run_count": self.run_count,
                "ride_count": self.ride_count,
                "walk_count": self.walk_count,
                "hike_count": self.hike_count,
                "distance_km": round_half_up(self.distance_m / 1000.0, 3),
                "moving_time_min": int(round_half_up(self.moving_time_s / 60.0)),
                "elapsed_time_min": int(round_half_up(self.elapsed_time_s / 60.0)),
                "elevation_m": round_half_up(self.elevation_m, 1),
                "calories_kcal": round_half_up(self.calories_kcal),
            },
        )


def round_half_up(value: float, digits: int = 0) -> float:
    if not math.isfinite(value):
        raise InvalidRecord(f"Cannot round non-finite value {value!r}; a daily total overflowed.")
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP, context=_WIDE))


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value.strip()))
        except ValueError:
            return False
    return False


def as_number(value: Any) -> float:
    """Numeric value of ``value``; absent or non-numeric values count as 0."""
    if not is_numeric(value):
        return 0.0
    return float(value.strip()) if isinstance(value, str) else float(value)


def _parse_iso(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def local_day(activity: Mapping[str, Any], tz: tzinfo, now: Optional[datetime] = None) -> date:
    """Calendar day an activity belongs to in ``tz``.

    The local start time already carries the athlete's wall clock, so its
    date is taken as-is. The UTC start time is converted into ``tz``.
    Activities with neither fall on today.
    """
    local = _parse_iso(activity.get("start_date_local"))
    if local is not None:
        return local.date()
    utc = _parse_iso(activity.get("start_date"))
    if utc is not None:
        if utc.tzinfo is None:
            utc = utc.replace(tzinfo=tz)
        return utc.astimezone(tz).date()
    return (now or datetime.now(tz)).astimezone(tz).date()


def default_met(activity_type: str) -> float:
    return DEFAULT_MET.get(activity_type, FALLBACK_MET)


def estimate_calories_kcal(activity: Mapping[str, Any], weight_kg: float, age: int = 0) -> float:
    """Estimate energy expenditure for one activity.

    Uses average heart rate when the activity has one, capped at 1.6x the
    MET estimate; otherwise the MET estimate alone. Zero without a positive
    body weight or a positive moving time.
    """
    if weight_kg <= 0:
        return 0.0
    seconds = int(as_number(activity.get("moving_time")))
    if seconds <= 0:
        return 0.0

    hours = seconds / 3600.0
    met = default_met(str(activity.get("type") or ""))
    met_kcal = met * weight_kg * hours

    avg_hr = activity.get("average_heartrate")
    if bool(activity.get("has_heartrate")) and is_numeric(avg_hr) and as_number(avg_hr) > 0:
        hr = as_number(avg_hr)
        years = age if age > 0 else DEFAULT_AGE_YEARS
        kcal_per_min = (0.6309 * hr + 0.1988 * weight_kg + 0.2017 * years - 55.0969) / 4.184
        kcal = max(kcal_per_min, 0.0) * (seconds / 60.0)
        return min(kcal, met_kcal * HR_CAP_FACTOR)

    return met_kcal


def activity_calories(activity: Mapping[str, Any], weight_kg: float, age: int = 0) -> float:
    if is_numeric(activity.get("calories")):
        return as_number(activity.get("calories"))
    return estimate_calories_kcal(activity, weight_kg, age)


def aggregate_activities(
    activities: Iterable[Any],
    start: date,
    end: date,
    tz: tzinfo,
    weight_kg: float = 0.0,
    age: int = 0,
    now: Optional[datetime] = None,
) -> List[DailyRecord]:
    """Aggregate activities into one record per day of ``[start, end]``.

    Days without activities are zero-filled; activities that land outside
    the range after local-day attribution are dropped.
    """
    buckets: Dict[date, ActivityBucket] = {day: ActivityBucket() for day in iter_days(start, end)}
    for activity in activities:
        if not isinstance(activity, Mapping):
            continue
        bucket = buckets.get(local_day(activity, tz, now))
        if bucket is None:
            continue
        bucket.add(activity, activity_calories(activity, weight_kg, age))
    return [bucket.to_record(day) for day, bucket in buckets.items()]


def empty_weather_fields() -> Dict[str, None]:
    return {name: None for name in WEATHER_SCHEMA}


def fill_missing_days(start: date, end: date, records: Sequence[DailyRecord]) -> List[DailyRecord]:
    """Return exactly one weather record per day, nulls where upstream had none."""
    by_date = {record.date: record for record in records}
    out: List[DailyRecord] = []
    for day in iter_days(start, end):
        key = day.isoformat()
        out.append(by_date.get(key) or DailyRecord(key, empty_weather_fields()))
    return out


def weather_records_from_daily(daily: Mapping[str, Any]) -> List[DailyRecord]:
    """Map Open-Meteo's column-oriented ``daily`` block to records."""
    times = daily.get("time") or []
    tmax = daily.get("temperature_2m_max") or []
    tmin = daily.get("temperature_2m_min") or []
    precip = daily.get("precipitation_sum") or []

    def pick(values: Sequence[Any], i: int) -> Optional[float]:
        value = values[i] if i < len(values) else None
        return as_number(value) if is_numeric(value) else None

    return [
        DailyRecord(
            str(day),
            {
                "tmax_c": pick(tmax, i),
                "tmin_c": pick(tmin, i),
                "precip_mm": pick(precip, i),
            },
        )
        for i, day in enumerate(times)
    ]
