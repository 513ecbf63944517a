"""Push daily records into Databox datasets."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

from packages import config
from packages.errors import EmptyDatasetId, MissingCredential, SinkRejected
from packages.http_client import HttpClient, HttpError

# Databox accepts at most 100 records per request.
MAX_BATCH = 100
BODY_SNIPPET_CHARS = 2048

logger = logging.getLogger("ingest.databox")


@dataclass
class BatchResult:
    batch_index: int
    batch_size: int
    response: Dict[str, Any]


@dataclass
class BatchSummary:
    batch_count: int = 0
    total_record_count: int = 0
    results: List[BatchResult] = field(default_factory=list)

    def describe(self) -> Dict[str, Any]:
        """Compact view for logs: counts plus the first batch's ids."""
        summary: Dict[str, Any] = {"batches": self.batch_count, "totalRecords": self.total_record_count}
        if self.results:
            first = self.results[0].response
            for key in ("status", "ingestionId", "requestId", "message"):
                summary[key] = first.get(key)
        return summary


def partition(records: Sequence[Any], size: int = MAX_BATCH) -> List[List[Any]]:
    return [list(records[i : i + size]) for i in range(0, len(records), size)]


class DataboxClient:
    def __init__(self, api_key: Optional[str] = None, http: Optional[HttpClient] = None, base_url: Optional[str] = None):
        api_key = (config.DATABOX_TOKEN if api_key is None else api_key).strip()
        if not api_key:
            raise MissingCredential("DATABOX_TOKEN (x-api-key) is missing/empty.")
        self.api_key = api_key
        self.http = http or HttpClient()
        self.base_url = (base_url or config.DATABOX_API_BASE).rstrip("/")

    def ingest(self, dataset_id: str, records: Sequence[Mapping[str, Any]]) -> BatchSummary:
        """Submit ``records`` in order, one batch at a time.

        Stops at the first failing batch. Batches already accepted stay
        accepted; the sink has no way to roll them back.
        """
        dataset_id = _require_id(dataset_id)
        records = list(records)
        if not records:
            return BatchSummary()

        summary = BatchSummary(total_record_count=len(records))
        url = self._url("datasets", dataset_id, "data")
        for index, batch in enumerate(partition(records)):
            try:
                payload = self.http.post_json(url, {"records": batch}, headers=self._headers())
            except HttpError as exc:
                if exc.status is not None and exc.payload is None and 200 <= exc.status < 300:
                    raise SinkRejected(self._not_json_message(exc)) from exc
                raise SinkRejected(
                    f"Databox ingest request failed (batch {index}, size {len(batch)}): {exc}"
                ) from exc
            response = self._check(payload)
            summary.results.append(BatchResult(index, len(batch), response))
            summary.batch_count += 1
            logger.debug("Databox batch accepted", extra={"context": {"batch": index, "size": len(batch)}})
        return summary

    def get_ingestion(self, dataset_id: str, ingestion_id: str) -> Dict[str, Any]:
        dataset_id = _require_id(dataset_id)
        ingestion_id = (ingestion_id or "").strip()
        if not ingestion_id:
            raise ValueError("ingestionId is missing/empty.")
        try:
            payload = self.http.get_json(
                self._url("datasets", dataset_id, "ingestions", ingestion_id), headers=self._headers()
            )
        except HttpError as exc:
            raise SinkRejected(f"Databox getIngestion failed: {exc}") from exc
        return self._check(payload)

    def create_data_source(self, title: str, timezone: str) -> Dict[str, Any]:
        return self._post(self._url("data-sources"), {"title": title, "timezone": timezone})

    def create_dataset(self, title: str, data_source_id: str, primary_keys: Sequence[str] = ("date",)) -> Dict[str, Any]:
        return self._post(
            self._url("datasets"),
            {"title": title, "dataSourceId": data_source_id, "primaryKeys": list(primary_keys)},
        )

    def _post(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            payload = self.http.post_json(url, body, headers=self._headers())
        except HttpError as exc:
            raise SinkRejected(f"Databox request failed: {exc}") from exc
        return self._check(payload)

    def _headers(self) -> Dict[str, str]:
        return {"x-api-key": self.api_key}

    def _url(self, *segments: str) -> str:
        return "/".join([self.base_url, *(quote(s, safe="") for s in segments)])

    @staticmethod
    def _check(payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            raise SinkRejected("Databox response is not a JSON object.")
        # Databox can report business errors inside a 2xx response.
        if payload.get("status") == "error":
            raise SinkRejected(f"Databox API returned error: {payload.get('message') or 'unknown'}")
        return payload

    @staticmethod
    def _not_json_message(exc: HttpError) -> str:
        snippet = (exc.body or "")[:BODY_SNIPPET_CHARS]
        return f"Databox response is not valid JSON. HTTP {exc.status} Body (first 2KB): {snippet}"


def _require_id(dataset_id: str) -> str:
    dataset_id = (dataset_id or "").strip()
    if not dataset_id:
        raise EmptyDatasetId("datasetId is missing/empty.")
    return dataset_id
