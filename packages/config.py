from pathlib import Path
import os

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]

load_dotenv(ROOT / ".env")


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


DB_PATH = Path(os.getenv("INGEST_DB_PATH", ROOT / "data" / "app.db"))
LOG_DIR = Path(os.getenv("INGEST_LOG_DIR", ROOT / "logs"))
LOG_LEVEL = os.getenv("INGEST_LOG_LEVEL", "INFO").upper()
LOG_VERBOSE = os.getenv("LOG_VERBOSE", "0").strip().lower() in ("1", "true", "yes", "on")
HTTP_TIMEOUT_SEC = _float_env("INGEST_HTTP_TIMEOUT_SEC", 20.0)
RUN_TZ = os.getenv("INGEST_RUN_TZ", "Europe/Ljubljana")

API_HOST = os.getenv("INGEST_API_HOST", "127.0.0.1")
API_PORT = _int_env("INGEST_API_PORT", 8000)
RUN_MODE = os.getenv("RUN_MODE", "dev").lower()

# Strava (activity source + OAuth app)
STRAVA_CLIENT_ID = (os.getenv("STRAVA_CLIENT_ID") or "").strip()
STRAVA_CLIENT_SECRET = (os.getenv("STRAVA_CLIENT_SECRET") or "").strip()
STRAVA_REDIRECT_URI = (os.getenv("STRAVA_REDIRECT_URI") or "").strip()
STRAVA_TZ = os.getenv("STRAVA_TZ", "Europe/Ljubljana")
USER_WEIGHT_KG = _float_env("USER_WEIGHT_KG", 0.0)
USER_AGE = _int_env("USER_AGE", 0)

# Open-Meteo (weather source)
OPEN_METEO_LAT = (os.getenv("OPEN_METEO_LAT") or "").strip()
OPEN_METEO_LON = (os.getenv("OPEN_METEO_LON") or "").strip()
WEATHER_TZ = os.getenv("WEATHER_TZ", "Europe/Zagreb")

# Databox (sink)
DATABOX_TOKEN = (os.getenv("DATABOX_TOKEN") or "").strip()
DATABOX_API_BASE = os.getenv("DATABOX_API_BASE", "https://api.databox.com/v1").rstrip("/")
DATABOX_DATASET_STRAVA = (os.getenv("DATABOX_DATASET_STRAVA") or "").strip()
DATABOX_DATASET_WEATHER = (os.getenv("DATABOX_DATASET_WEATHER") or "").strip()
