"""Run every configured provider through fetch -> cast -> validate -> push."""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable, List, Optional, Sequence

from packages import config, metrics
from packages.dates import resolve_zone
from packages.error_reporting import report_provider_failure
from packages.request_context import provider_context
from packages.state_store import StateStore
from services.ingestion.base import DailySource
from services.processing.records import cast_records, max_record_date, validate_records
from services.sink.databox_client import BatchSummary, DataboxClient

logger = logging.getLogger("ingest.runner")


class RunPhase(str, enum.Enum):
    ATTEMPTING = "attempting"
    FETCHING = "fetching"
    CASTING = "casting"
    VALIDATING = "validating"
    PUSHING = "pushing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class SourceTarget:
    provider: str
    source: DailySource
    dataset_id: str


@dataclass
class ProviderRunResult:
    provider: str
    records: int
    last_successful_date: str
    summary: BatchSummary


class IngestionRunner:
    def __init__(
        self,
        store: StateStore,
        sink: DataboxClient,
        run_tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[tzinfo], datetime]] = None,
    ):
        self.store = store
        self.sink = sink
        self.run_tz = run_tz or resolve_zone(config.RUN_TZ)
        self.clock = clock or datetime.now

    def run(self, date_from: Optional[str], date_to: Optional[str], targets: Sequence[SourceTarget]) -> List[ProviderRunResult]:
        """Ingest each target in order, stopping at the first failure."""
        run_at = self.clock(self.run_tz).isoformat(timespec="seconds")
        results: List[ProviderRunResult] = []
        for target in targets:
            with provider_context(target.provider):
                results.append(self._run_provider(target, date_from, date_to, run_at))
        return results

    def _run_provider(
        self, target: SourceTarget, date_from: Optional[str], date_to: Optional[str], run_at: str
    ) -> ProviderRunResult:
        provider = target.provider
        logger.info("Ingestion start", extra={"context": {"provider": provider, "from": date_from, "to": date_to}})
        started = time.perf_counter()
        metrics.inc("ingest_runs_total", provider=provider)

        phase = RunPhase.ATTEMPTING
        try:
            # Attempt marker: written before any fetch, keeps the prior success date.
            prior = self.store.get_state(provider)
            self.store.upsert_state(provider, prior.last_successful_date if prior else None, run_at)

            phase = RunPhase.FETCHING
            daily = target.source.fetch_daily(date_from, date_to)
            records = [record.as_payload() for record in daily]

            phase = RunPhase.CASTING
            records = cast_records(provider, records)

            phase = RunPhase.VALIDATING
            validate_records(provider, records)

            phase = RunPhase.PUSHING
            summary = self.sink.ingest(target.dataset_id, records)
        except Exception as exc:
            metrics.inc("ingest_failures_total", provider=provider, phase=phase.value)
            logger.error(
                "Ingestion failed",
                extra={"context": {"provider": provider, "phase": phase.value, "error": str(exc)}},
            )
            report_provider_failure(provider, exc)
            logger.debug("Provider %s %s", provider, RunPhase.FAILED.value)
            raise
        finally:
            metrics.observe("ingest_duration_seconds", time.perf_counter() - started, provider=provider)

        logger.info(
            "Databox ingest OK",
            extra={
                "context": {
                    "provider": provider,
                    "dataset_id": target.dataset_id,
                    "records": len(records),
                    "databox": summary.describe(),
                }
            },
        )
        metrics.inc("ingest_records_total", len(records), provider=provider)
        metrics.inc("ingest_batches_total", summary.batch_count, provider=provider)

        # With nothing pushed this stores the sentinel, not the prior date.
        last_date = max_record_date(records)
        self.store.upsert_state(provider, last_date, run_at)
        logger.debug("Provider %s %s", provider, RunPhase.SUCCEEDED.value)
        return ProviderRunResult(provider, len(records), last_date, summary)
