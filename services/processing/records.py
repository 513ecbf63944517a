"""Daily records, their per-provider schemas, and the cast/validate stage."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from packages.dates import is_ymd
from packages.errors import InvalidRecord

logger = logging.getLogger("ingest.records")

Number = Union[int, float]
Record = Dict[str, Any]

# Lowest possible YYYY-MM-DD string; reported when nothing was pushed.
NO_DATE_SENTINEL = "0000-00-00"

STRAVA_SCHEMA: Dict[str, type] = {
    "activities_count": int,
    "run_count": int,
    "ride_count": int,
    "walk_count": int,
    "hike_count": int,
    "distance_km": float,
    "moving_time_min": int,
    "elapsed_time_min": int,
    "elevation_m": float,
    "calories_kcal": float,
}

WEATHER_SCHEMA: Dict[str, type] = {
    "tmax_c": float,
    "tmin_c": float,
    "precip_mm": float,
}

PROVIDER_SCHEMAS: Dict[str, Dict[str, type]] = {
    "strava": STRAVA_SCHEMA,
    "weather": WEATHER_SCHEMA,
}


@dataclass(frozen=True)
class DailyRecord:
    """One calendar day of measurements for one provider."""

    date: str
    fields: Dict[str, Optional[Number]] = field(default_factory=dict)

    def as_payload(self) -> Record:
        payload: Record = {"date": self.date}
        payload.update(self.fields)
        return payload


def _coerce(value: Any, target: type, provider: str, index: int, key: str) -> Number:
    try:
        if isinstance(value, str):
            number = float(value.strip())
        elif isinstance(value, (int, float)):
            number = value
        else:
            raise TypeError(type(value).__name__)
        if target is int:
            if isinstance(number, float) and not math.isfinite(number):
                raise ValueError(value)
            return int(number)
        return float(number)
    except (TypeError, ValueError):
        raise InvalidRecord(f"{provider}: field '{key}' at index {index} is not numeric ({value!r}).")


def cast_records(provider: str, records: Sequence[Mapping[str, Any]]) -> List[Record]:
    """Coerce schema fields to their declared types.

    None and empty-string values pass through untouched; unknown providers
    and fields outside the schema are left as they are.
    """
    casts = PROVIDER_SCHEMAS.get(provider, {})
    out: List[Record] = []
    for i, record in enumerate(records):
        row = dict(record)
        for key, target in casts.items():
            if key not in row or row[key] is None or row[key] == "":
                continue
            row[key] = _coerce(row[key], target, provider, i, key)
        out.append(row)
    return out


def validate_records(provider: str, records: Sequence[Mapping[str, Any]]) -> None:
    if not records:
        logger.warning("%s: no records for this period", provider)
        return
    for i, record in enumerate(records):
        value = record.get("date")
        if not isinstance(value, str):
            raise InvalidRecord(f"{provider}: invalid record at index {i} (missing date).")
        if not is_ymd(value):
            raise InvalidRecord(f"{provider}: invalid date format at index {i} (expected YYYY-MM-DD).")


def cast_and_validate(provider: str, records: Sequence[Mapping[str, Any]]) -> List[Record]:
    casted = cast_records(provider, records)
    validate_records(provider, casted)
    return casted


def max_record_date(records: Sequence[Mapping[str, Any]]) -> str:
    # Zero-padded YYYY-MM-DD strings order the same as the dates they encode.
    latest = NO_DATE_SENTINEL
    for record in records:
        value = record.get("date")
        if isinstance(value, str) and value > latest:
            latest = value
    return latest
