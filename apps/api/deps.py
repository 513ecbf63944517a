from typing import Iterator

from packages import db
from packages.state_store import StateStore
from services.ingestion.strava_oauth import StravaOAuth


def get_store() -> Iterator[StateStore]:
    with db.connect() as conn:
        db.configure_connection(conn)
        store = StateStore(conn)
        store.init()
        yield store


def get_oauth(store: StateStore) -> StravaOAuth:
    return StravaOAuth(store)
