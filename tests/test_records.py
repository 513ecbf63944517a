import logging

import pytest

from packages.errors import InvalidRecord
from services.processing.records import (
    NO_DATE_SENTINEL,
    DailyRecord,
    cast_and_validate,
    cast_records,
    max_record_date,
    validate_records,
)


def test_payload_flattens_date_and_fields():
    record = DailyRecord("2026-01-01", {"tmax_c": 4.0, "tmin_c": None})
    assert record.as_payload() == {"date": "2026-01-01", "tmax_c": 4.0, "tmin_c": None}


def test_cast_coerces_loose_values():
    rows = cast_records(
        "strava",
        [{"date": "2026-01-01", "run_count": "2", "distance_km": "5.25", "moving_time_min": 31.7, "calories_kcal": 400}],
    )
    row = rows[0]
    assert row["run_count"] == 2 and isinstance(row["run_count"], int)
    assert row["distance_km"] == 5.25
    assert row["moving_time_min"] == 31 and isinstance(row["moving_time_min"], int)
    assert isinstance(row["calories_kcal"], float)


def test_cast_leaves_null_and_empty_untouched():
    rows = cast_records("weather", [{"date": "2026-01-01", "tmax_c": None, "tmin_c": "", "precip_mm": "1.5"}])
    assert rows[0] == {"date": "2026-01-01", "tmax_c": None, "tmin_c": "", "precip_mm": 1.5}


def test_cast_does_not_mutate_input():
    original = {"date": "2026-01-01", "tmax_c": "3"}
    cast_records("weather", [original])
    assert original["tmax_c"] == "3"


def test_cast_ignores_unknown_provider_and_fields():
    rows = cast_records("other", [{"date": "2026-01-01", "x": "1"}])
    assert rows == [{"date": "2026-01-01", "x": "1"}]


def test_cast_rejects_non_numeric():
    with pytest.raises(InvalidRecord, match="run_count"):
        cast_records("strava", [{"date": "2026-01-01", "run_count": "many"}])


def test_validate_rejects_missing_date():
    with pytest.raises(InvalidRecord, match="index 1 \\(missing date\\)"):
        validate_records("strava", [{"date": "2026-01-01"}, {"run_count": 1}])


def test_validate_rejects_malformed_date():
    with pytest.raises(InvalidRecord, match="expected YYYY-MM-DD"):
        validate_records("weather", [{"date": "2026-1-01"}])


def test_empty_record_set_is_logged_not_rejected(caplog):
    with caplog.at_level(logging.WARNING, logger="ingest.records"):
        assert cast_and_validate("strava", []) == []
    assert "strava: no records for this period" in caplog.text


def test_max_record_date():
    assert max_record_date([{"date": "2026-01-02"}, {"date": "2026-01-10"}, {"date": "2025-12-31"}]) == "2026-01-10"


def test_max_record_date_sentinel_when_empty():
    assert max_record_date([]) == NO_DATE_SENTINEL == "0000-00-00"
