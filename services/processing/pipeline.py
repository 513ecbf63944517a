"""Wire the configured sources, sink and state store into one ingestion run."""
from __future__ import annotations

from typing import List, Optional

from packages import config, db
from packages.http_client import HttpClient
from packages.state_store import StateStore
from services.ingestion.open_meteo_source import OpenMeteoSource
from services.ingestion.strava_oauth import StravaOAuth
from services.ingestion.strava_source import StravaSource
from services.processing.runner import IngestionRunner, ProviderRunResult, SourceTarget
from services.sink.databox_client import DataboxClient


def build_targets(store: StateStore, http: HttpClient) -> List[SourceTarget]:
    """Providers in the order they are ingested."""
    oauth = StravaOAuth(store, http=http)
    return [
        SourceTarget("strava", StravaSource(oauth.get_valid_access_token, http=http), config.DATABOX_DATASET_STRAVA),
        SourceTarget("weather", OpenMeteoSource(http=http), config.DATABOX_DATASET_WEATHER),
    ]


def process(date_from: Optional[str] = None, date_to: Optional[str] = None) -> List[ProviderRunResult]:
    http = HttpClient()
    sink = DataboxClient(http=http)
    with db.connect() as conn:
        db.configure_connection(conn)
        store = StateStore(conn)
        store.init()
        runner = IngestionRunner(store, sink)
        return runner.run(date_from, date_to, build_targets(store, http))
