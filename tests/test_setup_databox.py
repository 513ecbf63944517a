import pytest

from packages import config
from scripts import setup_databox
from services.sink.databox_client import DataboxClient
from tests.fixtures.fake_http import FakeHttp


@pytest.fixture
def http(monkeypatch):
    fake = FakeHttp(
        [
            {"id": "src-1"},
            {"id": "ds-strava"},
            {"id": "ds-weather"},
            {"status": "ok"},
            {"status": "ok"},
        ]
    )
    monkeypatch.setattr(config, "DATABOX_TOKEN", "key-1")
    monkeypatch.setattr(setup_databox, "DataboxClient", lambda: DataboxClient(http=fake, base_url="https://databox.test/v1"))
    return fake


def test_bootstrap_creates_datasets_and_seeds_typed_records(http, capsys):
    assert setup_databox.main() == 0

    urls = [c["url"] for c in http.calls]
    assert urls[:3] == [
        "https://databox.test/v1/data-sources",
        "https://databox.test/v1/datasets",
        "https://databox.test/v1/datasets",
    ]
    assert http.calls[1]["json"] == {"title": "Strava Daily", "dataSourceId": "src-1", "primaryKeys": ["date"]}

    strava_seed = http.calls[3]["json"]["records"][0]
    assert isinstance(strava_seed["run_count"], int)
    assert isinstance(strava_seed["distance_km"], float)
    weather_seed = http.calls[4]["json"]["records"][0]
    assert weather_seed["tmax_c"] == 0.0 and isinstance(weather_seed["tmax_c"], float)

    out = capsys.readouterr().out
    assert "DATABOX_DATASET_STRAVA=ds-strava" in out
    assert "DATABOX_DATASET_WEATHER=ds-weather" in out


def test_bootstrap_reports_rejection(monkeypatch, capsys):
    fake = FakeHttp([{"status": "error", "message": "plan limit"}])
    monkeypatch.setattr(config, "DATABOX_TOKEN", "key-1")
    monkeypatch.setattr(setup_databox, "DataboxClient", lambda: DataboxClient(http=fake, base_url="https://databox.test/v1"))
    assert setup_databox.main() == 1
    assert "plan limit" in capsys.readouterr().out
