"""
In-memory event store for tests and offline use.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

from pendulum import DateTime

from ..domain.exceptions import EventStoreError
from ..domain.models import CommittedEvent
from .rows import parse_datetime, scheduled_events_from_rows, synced_events_from_rows

DEFAULT_MOCK_DATA_FILE = Path(__file__).parent / "mock_events.json"


class MockEventStore:
    """
    Store that serves rows held in memory, applying the same filters as the
    Supabase queries.

    Rows use the table column names, plus ``user_id``, ``is_completed``
    (first-party) and ``is_busy`` (synced).
    """

    def __init__(
        self,
        scheduled_rows: List[Dict[str, Any]] | None = None,
        synced_rows: List[Dict[str, Any]] | None = None,
        timezone: str = "Europe/Berlin"
    ):
        self.scheduled_rows = list(scheduled_rows or [])
        self.synced_rows = list(synced_rows or [])
        self.timezone = timezone

    @classmethod
    def from_json(cls, data_file: Path = DEFAULT_MOCK_DATA_FILE, timezone: str = "Europe/Berlin") -> "MockEventStore":
        """
        Load rows from a JSON file with ``scheduled_events`` and
        ``synced_events`` lists.

        Raises:
            FileNotFoundError: If the file doesn't exist
            EventStoreError: If the file is not valid mock data
        """
        if not data_file.exists():
            raise FileNotFoundError(f"Mock data file not found: {data_file}")

        try:
            with open(data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise EventStoreError(f"Invalid JSON in {data_file}: {exc}") from exc

        if not isinstance(data, dict):
            raise EventStoreError("Mock data file must contain a mapping at the root level.")

        return cls(
            scheduled_rows=data.get("scheduled_events", []),
            synced_rows=data.get("synced_events", []),
            timezone=timezone,
        )

    async def list_scheduled_events(
        self,
        user_id: str,
        window_start: DateTime,
        window_end: DateTime,
        *,
        completed: bool = False
    ) -> List[CommittedEvent]:
        rows = [
            row for row in self.scheduled_rows
            if row.get("user_id") == user_id
            and bool(row.get("is_completed", False)) == completed
            and self._in_window(row, "event_date", window_start, window_end)
        ]
        return scheduled_events_from_rows(rows, self.timezone)

    async def list_synced_events(
        self,
        user_id: str,
        window_start: DateTime,
        window_end: DateTime,
        *,
        busy: bool = True
    ) -> List[CommittedEvent]:
        rows = [
            row for row in self.synced_rows
            if row.get("user_id") == user_id
            and bool(row.get("is_busy", True)) == busy
            and self._in_window(row, "start_time", window_start, window_end)
        ]
        return synced_events_from_rows(rows, self.timezone)

    def _in_window(self, row: Dict[str, Any], column: str, start: DateTime, end: DateTime) -> bool:
        try:
            value = parse_datetime(row[column], self.timezone)
        except (KeyError, TypeError, ValueError):
            # Rows without a usable timestamp never match a range filter
            return False
        return start <= value <= end
