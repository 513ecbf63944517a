from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from services.processing.records import DailyRecord


class DailySource(ABC):
    """A provider that yields one record per day of a requested range."""

    provider: str

    @abstractmethod
    def fetch_daily(self, date_from: Optional[str], date_to: Optional[str]) -> List[DailyRecord]:
        """Return date-ascending records covering ``[date_from, date_to]``.

        Malformed dates raise InvalidDateFormat before any network call.
        """
