from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Callable, List, Optional

from packages import config
from packages.dates import normalize_date_range, resolve_zone, today_in
from packages.errors import SourceFetchFailed
from packages.http_client import HttpClient, HttpError
from services.ingestion.base import DailySource
from services.processing.aggregation import fill_missing_days, weather_records_from_daily
from services.processing.records import DailyRecord

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
DAILY_FIELDS = "temperature_2m_max,temperature_2m_min,precipitation_sum"

# Open-Meteo reports unsupported dates only in free text, e.g.
# "Parameter 'start_date' is out of allowed range from 2016-01-01 to ...".
OUT_OF_RANGE_MARKER = "out of allowed range"

logger = logging.getLogger("ingest.open_meteo")


def is_out_of_range_error(exc: HttpError) -> bool:
    """True when Open-Meteo rejected the request because of the date range.

    Prefers the structured ``reason`` of a 400 response and falls back to the
    raw body and message. Any other wording is treated as a real failure.
    """
    reason = ""
    if isinstance(exc.payload, dict):
        reason = str(exc.payload.get("reason") or "")
    if exc.status == 400 and OUT_OF_RANGE_MARKER in reason:
        return True
    return OUT_OF_RANGE_MARKER in (exc.body or "") or OUT_OF_RANGE_MARKER in str(exc)


class OpenMeteoSource(DailySource):
    provider = "weather"

    def __init__(
        self,
        http: Optional[HttpClient] = None,
        latitude: Optional[str] = None,
        longitude: Optional[str] = None,
        tz_name: Optional[str] = None,
        today: Optional[Callable[[tzinfo], date]] = None,
    ):
        self.http = http or HttpClient()
        self.latitude = (config.OPEN_METEO_LAT if latitude is None else latitude).strip()
        self.longitude = (config.OPEN_METEO_LON if longitude is None else longitude).strip()
        self.tz_name = tz_name or config.WEATHER_TZ
        self.tz = resolve_zone(self.tz_name)
        self.today = today or today_in

    def fetch_daily(self, date_from: Optional[str], date_to: Optional[str]) -> List[DailyRecord]:
        start, end = normalize_date_range(date_from, date_to, self.today(self.tz))

        if not self.latitude or not self.longitude:
            logger.warning("OpenMeteo skipped: missing OPEN_METEO_LAT/OPEN_METEO_LON")
            return fill_missing_days(start, end, [])

        params = {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timezone": self.tz_name,
            "daily": DAILY_FIELDS,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        }
        try:
            payload = self.http.get_json(FORECAST_URL, params=params)
        except HttpError as exc:
            if is_out_of_range_error(exc):
                logger.warning(
                    "Open-Meteo date range not supported",
                    extra={
                        "context": {
                            "provider": "open-meteo",
                            "requested_from": params["start_date"],
                            "requested_to": params["end_date"],
                            "note": "No data ingested for this period",
                        }
                    },
                )
                return fill_missing_days(start, end, [])
            raise SourceFetchFailed(f"Open-Meteo request failed: {exc}") from exc

        if not isinstance(payload, dict):
            raise SourceFetchFailed("Open-Meteo response is not a JSON object.")
        daily = payload.get("daily")
        if not isinstance(daily, dict) or not isinstance(daily.get("time"), list):
            raise SourceFetchFailed("Open-Meteo response missing daily data.")
        for column in DAILY_FIELDS.split(","):
            if daily.get(column) is not None and not isinstance(daily[column], list):
                raise SourceFetchFailed(f"Open-Meteo daily.{column} is not a list.")

        records = fill_missing_days(start, end, weather_records_from_daily(daily))
        logger.info(
            "OpenMeteo OK",
            extra={"context": {"from": start.isoformat(), "to": end.isoformat(), "days": len(records)}},
        )
        return records
