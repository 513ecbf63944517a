"""One-time Databox bootstrap: data source, two daily datasets, seed records.

Prints the dataset ids to add to .env.
"""
from datetime import date
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages import config
from packages.errors import IngestError
from services.processing.records import STRAVA_SCHEMA, WEATHER_SCHEMA, cast_and_validate
from services.sink.databox_client import DataboxClient


def seed_record(schema: dict) -> dict:
    record = {"date": date.today().isoformat()}
    record.update({name: 0 for name in schema})
    return record


def main() -> int:
    try:
        client = DataboxClient()
        source = client.create_data_source("Daily Activity & Weather", config.WEATHER_TZ)
        strava = client.create_dataset("Strava Daily", str(source["id"]))
        weather = client.create_dataset("Weather Daily", str(source["id"]))
        client.ingest(str(strava["id"]), cast_and_validate("strava", [seed_record(STRAVA_SCHEMA)]))
        client.ingest(str(weather["id"]), cast_and_validate("weather", [seed_record(WEATHER_SCHEMA)]))
    except (IngestError, KeyError) as exc:
        print(f"Databox setup failed: {exc}")
        return 1

    print("\n=== ADD TO .env ===")
    print(f"DATABOX_DATASET_STRAVA={strava['id']}")
    print(f"DATABOX_DATASET_WEATHER={weather['id']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
