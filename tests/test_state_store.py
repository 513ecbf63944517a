from packages import db
from packages.state_store import IngestionState, OAuthToken, StateStore
from tests.fixtures.build_fixture_db import build_fixture_db


def _store(tmp_path):
    conn = db.connect(tmp_path / "state.db")
    store = StateStore(conn)
    store.init()
    return conn, store


def test_missing_provider_has_no_state(tmp_path):
    conn, store = _store(tmp_path)
    with conn:
        assert store.get_state("strava") is None


def test_first_upsert_creates_row_and_later_ones_replace_it(tmp_path):
    conn, store = _store(tmp_path)
    with conn:
        store.upsert_state("strava", None, "2026-01-01T06:00:00+01:00")
        assert store.get_state("strava") == IngestionState("strava", None, "2026-01-01T06:00:00+01:00")
        store.upsert_state("strava", "2026-01-01", "2026-01-02T06:00:00+01:00")
        assert store.get_state("strava") == IngestionState("strava", "2026-01-01", "2026-01-02T06:00:00+01:00")
        assert len(store.list_states()) == 1


def test_state_survives_reconnect(tmp_path):
    conn, store = _store(tmp_path)
    with conn:
        store.upsert_state("weather", "2026-01-05", "2026-01-06T06:00:00+01:00")
    with db.connect(tmp_path / "state.db") as conn2:
        assert StateStore(conn2).get_state("weather").last_successful_date == "2026-01-05"


def test_oauth_token_roundtrip(tmp_path):
    conn, store = _store(tmp_path)
    with conn:
        assert store.get_oauth_token("strava") is None
        store.save_oauth_token("strava", "a1", "r1", 100)
        store.save_oauth_token("strava", "a2", "r2", 200)
        assert store.get_oauth_token("strava") == OAuthToken("strava", "a2", "r2", 200)


def test_fixture_db(tmp_path):
    path = tmp_path / "fixture.db"
    build_fixture_db(path)
    with db.connect(path) as conn:
        store = StateStore(conn)
        assert store.get_oauth_token("strava").access_token == "access-fixture"
        assert store.get_state("weather").last_successful_date == "2026-01-31"
