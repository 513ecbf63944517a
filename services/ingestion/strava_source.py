from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, List, Optional

from packages import config
from packages.dates import local_midnight_epoch, normalize_date_range, resolve_zone, today_in
from packages.errors import SourceFetchFailed
from packages.http_client import HttpClient, HttpError
from services.ingestion.base import DailySource
from services.processing.aggregation import aggregate_activities
from services.processing.records import DailyRecord

STRAVA_API_BASE = "https://www.strava.com/api/v3"
PER_PAGE = 200
MAX_PAGES = 50

logger = logging.getLogger("ingest.strava")


class StravaSource(DailySource):
    """Daily aggregation of Strava activities."""

    provider = "strava"

    def __init__(
        self,
        token_provider: Callable[[], str],
        http: Optional[HttpClient] = None,
        tz: Optional[tzinfo] = None,
        weight_kg: Optional[float] = None,
        age: Optional[int] = None,
        verbose: Optional[bool] = None,
        today: Optional[Callable[[tzinfo], date]] = None,
    ):
        self.token_provider = token_provider
        self.http = http or HttpClient()
        self.tz = tz or resolve_zone(config.STRAVA_TZ)
        self.weight_kg = config.USER_WEIGHT_KG if weight_kg is None else weight_kg
        self.age = config.USER_AGE if age is None else age
        self.verbose = config.LOG_VERBOSE if verbose is None else verbose
        self.today = today or today_in

    def fetch_daily(self, date_from: Optional[str], date_to: Optional[str]) -> List[DailyRecord]:
        start, end = normalize_date_range(date_from, date_to, self.today(self.tz))

        after_epoch = local_midnight_epoch(start, self.tz)
        before_epoch = local_midnight_epoch(end + timedelta(days=1), self.tz)

        access_token = self.token_provider()
        activities = self.list_activities(access_token, after_epoch, before_epoch)

        if self.verbose and activities:
            self._log_sample(activities[0])

        records = aggregate_activities(activities, start, end, self.tz, self.weight_kg, self.age, now=datetime.now(self.tz))
        logger.info(
            "Strava daily aggregation OK",
            extra={
                "context": {
                    "from": start.isoformat(),
                    "to": end.isoformat(),
                    "days": len(records),
                    "activities_fetched": len(activities),
                }
            },
        )
        return records

    def list_activities(self, access_token: str, after_epoch: int, before_epoch: int) -> list[dict]:
        activities: list[dict] = []
        page = 1
        while True:
            try:
                payload = self.http.get_json(
                    f"{STRAVA_API_BASE}/athlete/activities",
                    headers={"Authorization": f"Bearer {access_token}"},
                    params={"after": after_epoch, "before": before_epoch, "page": page, "per_page": PER_PAGE},
                )
            except HttpError as exc:
                raise SourceFetchFailed(f"Strava activities request failed: {exc}") from exc

            if not isinstance(payload, list):
                raise SourceFetchFailed("Strava activities response is not a JSON array.")
            if not payload:
                break
            activities.extend(item for item in payload if isinstance(item, dict))
            if len(payload) < PER_PAGE:
                break

            page += 1
            if page > MAX_PAGES:
                logger.warning("Strava pagination safety break", extra={"context": {"page": page}})
                break
        return activities

    def _log_sample(self, activity: dict) -> None:
        keys = (
            "id",
            "type",
            "start_date",
            "start_date_local",
            "moving_time",
            "elapsed_time",
            "distance",
            "total_elevation_gain",
            "has_heartrate",
            "average_heartrate",
        )
        logger.info("Strava sample activity (sanitized)", extra={"context": {k: activity.get(k) for k in keys}})
