"""Exception hierarchy for the ingestion pipeline.

Every failure the pipeline can report derives from IngestError, so the CLI
can map them to a non-zero exit without catching unrelated bugs.
"""
from __future__ import annotations


class IngestError(Exception):
    """Base exception for all pipeline failures."""


class InvalidDateFormat(IngestError, ValueError):
    """Raised when a user-supplied date is not YYYY-MM-DD."""


class InvalidRecord(IngestError):
    """Raised when a record lacks a date or its date is malformed."""


class SourceFetchFailed(IngestError):
    """Raised on network or parse failures talking to a source API."""


class SinkRejected(IngestError):
    """Raised when the sink reports an error or returns an unreadable body."""


class EmptyDatasetId(IngestError, ValueError):
    """Raised when a sink call is made without a dataset id."""


class MissingCredential(IngestError):
    """Raised when a token, API key or client secret is not configured."""
