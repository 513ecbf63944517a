import argparse
import logging
from pathlib import Path
import sys
import uuid

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages.dates import parse_ymd
from packages.error_reporting import init_error_reporting
from packages.errors import IngestError
from packages.logging_utils import setup_logging
from packages.request_context import run_context
from services.processing import pipeline

logger = logging.getLogger("ingest.cli")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Aggregate Strava and Open-Meteo data into daily records and push them to Databox.",
    )
    parser.add_argument("dates", nargs="*", metavar="YYYY-MM-DD", help="Optional FROM and TO dates (both or neither).")
    args = parser.parse_args(argv)
    if len(args.dates) not in (0, 2):
        parser.error("expected zero or two dates: FROM TO")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()
    init_error_reporting("ingest")

    date_from, date_to = (args.dates + [None, None])[:2]
    # Reject malformed dates before touching the network or the state store.
    try:
        for value in (date_from, date_to):
            if value is not None:
                parse_ymd(value)
    except IngestError as exc:
        logger.error("Invalid arguments: %s", exc)
        return 1

    with run_context(uuid.uuid4().hex[:12]):
        try:
            results = pipeline.process(date_from, date_to)
        except IngestError as exc:
            logger.error("Ingestion aborted: %s", exc)
            return 1
        for result in results:
            logger.info(
                "Provider %s done: %s records, %s batches, last date %s",
                result.provider,
                result.records,
                result.summary.batch_count,
                result.last_successful_date,
            )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
