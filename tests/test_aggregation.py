from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from packages.errors import InvalidRecord
from services.processing.aggregation import (
    aggregate_activities,
    estimate_calories_kcal,
    fill_missing_days,
    local_day,
    round_half_up,
    weather_records_from_daily,
)
from services.processing.records import DailyRecord

TZ = ZoneInfo("Europe/Ljubljana")


def _run(**overrides):
    activity = {
        "id": 1,
        "type": "Run",
        "start_date_local": "2026-01-02T07:00:00Z",
        "start_date": "2026-01-02T06:00:00Z",
        "distance": 1000.0,
        "moving_time": 1800,
        "elapsed_time": 2000,
        "total_elevation_gain": 12.34,
    }
    activity.update(overrides)
    return activity


def test_zero_events_yield_zero_filled_days():
    records = aggregate_activities([], date(2026, 1, 1), date(2026, 1, 3), TZ)
    assert [r.date for r in records] == ["2026-01-01", "2026-01-02", "2026-01-03"]
    for r in records:
        assert r.fields["activities_count"] == 0
        assert r.fields["run_count"] == 0
        assert r.fields["moving_time_min"] == 0
        assert r.fields["distance_km"] == 0.0


def test_one_record_per_day_in_order():
    start, end = date(2025, 12, 20), date(2026, 2, 10)
    records = aggregate_activities([_run()], start, end, TZ)
    assert len(records) == (end - start).days + 1
    dates = [r.date for r in records]
    assert dates == sorted(dates)
    assert len(set(dates)) == len(dates)


def test_unit_conversions():
    records = aggregate_activities([_run()], date(2026, 1, 2), date(2026, 1, 2), TZ)
    fields = records[0].fields
    assert fields["activities_count"] == 1
    assert fields["run_count"] == 1
    assert fields["distance_km"] == 1.0
    assert fields["moving_time_min"] == 30
    assert fields["elapsed_time_min"] == 33
    assert fields["elevation_m"] == 12.3


def test_minutes_round_half_up():
    records = aggregate_activities([_run(moving_time=150)], date(2026, 1, 2), date(2026, 1, 2), TZ)
    assert records[0].fields["moving_time_min"] == 3


def test_category_counters_use_exact_match():
    activities = [
        _run(type="Run"),
        _run(type="Ride"),
        _run(type="Walk"),
        _run(type="Hike"),
        _run(type="run"),
        _run(type="Swim"),
    ]
    fields = aggregate_activities(activities, date(2026, 1, 2), date(2026, 1, 2), TZ)[0].fields
    assert fields["activities_count"] == 6
    assert (fields["run_count"], fields["ride_count"], fields["walk_count"], fields["hike_count"]) == (1, 1, 1, 1)


def test_missing_and_non_numeric_measurements_count_as_zero():
    activity = {"type": "Run", "start_date_local": "2026-01-02T07:00:00Z", "distance": "n/a", "moving_time": None}
    fields = aggregate_activities([activity], date(2026, 1, 2), date(2026, 1, 2), TZ)[0].fields
    assert fields["activities_count"] == 1
    assert fields["distance_km"] == 0.0
    assert fields["moving_time_min"] == 0


def test_events_outside_range_are_dropped():
    activities = [_run(start_date_local="2025-12-31T10:00:00Z"), _run(start_date_local="2026-01-04T10:00:00Z")]
    records = aggregate_activities(activities, date(2026, 1, 1), date(2026, 1, 3), TZ)
    assert sum(r.fields["activities_count"] for r in records) == 0


def test_local_day_prefers_local_start_time():
    assert local_day({"start_date_local": "2026-01-02T23:30:00Z", "start_date": "2026-01-02T22:30:00Z"}, TZ) == date(2026, 1, 2)


def test_local_day_converts_utc_when_local_missing():
    # 23:30 UTC is 00:30 the next day in Ljubljana (UTC+1 in winter).
    assert local_day({"start_date": "2026-01-01T23:30:00Z"}, TZ) == date(2026, 1, 2)


def test_local_day_falls_back_to_now():
    now = datetime(2026, 1, 3, 12, 0, tzinfo=TZ)
    assert local_day({"type": "Run"}, TZ, now=now) == date(2026, 1, 3)


def test_aggregation_is_repeatable():
    activities = [_run(), _run(type="Ride", distance=25000.5, start_date_local="2026-01-03T09:00:00Z")]
    first = aggregate_activities(activities, date(2026, 1, 1), date(2026, 1, 5), TZ, weight_kg=70)
    second = aggregate_activities(activities, date(2026, 1, 1), date(2026, 1, 5), TZ, weight_kg=70)
    assert first == second


def test_supplied_calories_win_over_estimate():
    records = aggregate_activities([_run(calories=512.4)], date(2026, 1, 2), date(2026, 1, 2), TZ, weight_kg=70)
    assert records[0].fields["calories_kcal"] == 512.0


def test_calories_are_zero_without_weight():
    assert estimate_calories_kcal(_run(moving_time=3600), weight_kg=0) == 0.0
    records = aggregate_activities([_run()], date(2026, 1, 2), date(2026, 1, 2), TZ, weight_kg=0)
    assert records[0].fields["calories_kcal"] == 0.0


def test_calories_zero_without_moving_time():
    assert estimate_calories_kcal(_run(moving_time=0), weight_kg=70) == 0.0


def test_met_estimate_without_heart_rate():
    assert estimate_calories_kcal(_run(moving_time=3600), weight_kg=70) == pytest.approx(9.8 * 70)
    assert estimate_calories_kcal(_run(type="Yoga", moving_time=3600), weight_kg=70) == pytest.approx(5.0 * 70)


def test_heart_rate_estimate_below_cap():
    activity = _run(moving_time=3600, has_heartrate=True, average_heartrate=150)
    expected = (0.6309 * 150 + 0.1988 * 70 + 0.2017 * 30 - 55.0969) / 4.184 * 60
    assert estimate_calories_kcal(activity, weight_kg=70) == pytest.approx(expected)


def test_heart_rate_estimate_is_capped():
    activity = _run(type="Walk", moving_time=3600, has_heartrate=True, average_heartrate=200)
    assert estimate_calories_kcal(activity, weight_kg=70) == pytest.approx(3.5 * 70 * 1.6)


def test_heart_rate_ignored_without_flag():
    activity = _run(moving_time=3600, has_heartrate=False, average_heartrate=150)
    assert estimate_calories_kcal(activity, weight_kg=70) == pytest.approx(9.8 * 70)


@pytest.mark.parametrize("hr", [90, 120, 150, 180, 220])
def test_heart_rate_never_exceeds_cap(hr):
    activity = _run(moving_time=2700, has_heartrate=True, average_heartrate=hr)
    met_only = estimate_calories_kcal(_run(moving_time=2700), weight_kg=80, age=45)
    assert estimate_calories_kcal(activity, weight_kg=80, age=45) <= met_only * 1.6 + 1e-9


def test_weather_rows_map_columns_and_nulls():
    daily = {
        "time": ["2026-01-01", "2026-01-03"],
        "temperature_2m_max": [5.5, "x"],
        "temperature_2m_min": [-1, None],
        "precipitation_sum": [0.2],
    }
    records = weather_records_from_daily(daily)
    assert records[0] == DailyRecord("2026-01-01", {"tmax_c": 5.5, "tmin_c": -1.0, "precip_mm": 0.2})
    assert records[1] == DailyRecord("2026-01-03", {"tmax_c": None, "tmin_c": None, "precip_mm": None})


def test_fill_missing_days_inserts_null_records():
    upstream = [DailyRecord("2026-01-02", {"tmax_c": 3.0, "tmin_c": 1.0, "precip_mm": 0.0})]
    records = fill_missing_days(date(2026, 1, 1), date(2026, 1, 3), upstream)
    assert [r.date for r in records] == ["2026-01-01", "2026-01-02", "2026-01-03"]
    assert records[0].fields == {"tmax_c": None, "tmin_c": None, "precip_mm": None}
    assert records[1] is upstream[0]


def test_overflowing_daily_total_is_rejected():
    activities = [_run(distance=1e308), _run(distance=1e308)]
    with pytest.raises(InvalidRecord, match="non-finite"):
        aggregate_activities(activities, date(2026, 1, 2), date(2026, 1, 2), TZ)


def test_very_large_finite_totals_still_round():
    records = aggregate_activities([_run(distance=1e308)], date(2026, 1, 2), date(2026, 1, 2), TZ)
    assert records[0].fields["distance_km"] == pytest.approx(1e305)


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_round_half_up_rejects_non_finite(value):
    with pytest.raises(InvalidRecord):
        round_half_up(value)


def test_round_half_up_rounds_ties_away_from_zero():
    assert round_half_up(2.5) == 3.0
    assert round_half_up(-2.5) == -3.0
    assert round_half_up(1.25, 1) == 1.3
