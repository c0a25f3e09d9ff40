"""
Supabase (PostgREST) client for reading committed events.
"""

import asyncio
import logging
from typing import Any, Dict, List, Tuple

import requests
from pendulum import DateTime

from ..domain.exceptions import EventStoreError
from ..domain.models import CommittedEvent
from .rows import (
    SCHEDULED_EVENT_COLUMNS,
    SYNCED_EVENT_COLUMNS,
    scheduled_events_from_rows,
    synced_events_from_rows,
)

logger = logging.getLogger(__name__)


class SupabaseEventStore:
    """
    Event store backed by the Supabase REST API.

    Queries the ``scheduled_events`` and ``synced_events`` tables with
    PostgREST filters. Requests are blocking and run in a worker thread.
    """

    REST_PATH = "/rest/v1"

    def __init__(
        self,
        url: str,
        api_key: str,
        timezone: str = "Europe/Berlin",
        timeout_seconds: float = 30,
        session: requests.Session | None = None
    ):
        """
        Initialize the client.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co
            api_key: Anon or service role key
            timezone: IANA timezone returned events are converted to
            timeout_seconds: Per-request timeout
            session: Optional pre-configured requests session
        """
        self.base_url = url.rstrip("/") + self.REST_PATH
        self.timezone = timezone
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json"
        }

    async def list_scheduled_events(
        self,
        user_id: str,
        window_start: DateTime,
        window_end: DateTime,
        *,
        completed: bool = False
    ) -> List[CommittedEvent]:
        """Fetch first-party events whose ``event_date`` lies in the window."""
        params = [
            ("select", SCHEDULED_EVENT_COLUMNS),
            ("user_id", f"eq.{user_id}"),
            *self._window_filter("event_date", window_start, window_end),
            ("is_completed", f"eq.{self._bool(completed)}"),
        ]

        rows = await asyncio.to_thread(self._get, "scheduled_events", params)
        return scheduled_events_from_rows(rows, self.timezone)

    async def list_synced_events(
        self,
        user_id: str,
        window_start: DateTime,
        window_end: DateTime,
        *,
        busy: bool = True
    ) -> List[CommittedEvent]:
        """Fetch synced events whose ``start_time`` lies in the window."""
        params = [
            ("select", SYNCED_EVENT_COLUMNS),
            ("user_id", f"eq.{user_id}"),
            *self._window_filter("start_time", window_start, window_end),
            ("is_busy", f"eq.{self._bool(busy)}"),
        ]

        rows = await asyncio.to_thread(self._get, "synced_events", params)
        return synced_events_from_rows(rows, self.timezone)

    def _get(self, table: str, params: List[Tuple[str, str]]) -> List[Dict[str, Any]]:
        """
        Run a GET against ``table`` and return the decoded rows.

        Raises:
            EventStoreError: If the request fails or the payload is not a list
        """
        url = f"{self.base_url}/{table}"

        try:
            response = self.session.get(
                url,
                headers=self.headers,
                params=params,
                timeout=self.timeout_seconds
            )
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.RequestException as e:
            raise EventStoreError(f"Failed to query {table}: {e}") from e
        except ValueError as e:
            raise EventStoreError(f"Invalid JSON returned for {table}: {e}") from e

        if not isinstance(data, list):
            raise EventStoreError(f"Unexpected payload for {table}: expected a list of rows")

        logger.debug("Fetched %d row(s) from %s", len(data), table)
        return data

    @staticmethod
    def _window_filter(column: str, start: DateTime, end: DateTime) -> List[Tuple[str, str]]:
        """Closed-interval filter on ``column``."""
        return [
            (column, f"gte.{start.in_timezone('UTC').to_iso8601_string()}"),
            (column, f"lte.{end.in_timezone('UTC').to_iso8601_string()}"),
        ]

    @staticmethod
    def _bool(value: bool) -> str:
        return "true" if value else "false"
