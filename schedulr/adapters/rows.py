"""
Conversion of stored event rows into domain events.

Rows follow the column names of the ``scheduled_events`` and
``synced_events`` tables.
"""

import logging
from typing import Any, Dict, Iterable, List

import pendulum
from pendulum import DateTime

from ..domain.models import CommittedEvent, EventOrigin

logger = logging.getLogger(__name__)

SCHEDULED_EVENT_COLUMNS = "id,title,event_date"
SYNCED_EVENT_COLUMNS = "id,title,start_time,end_time"


def parse_datetime(value: str, timezone: str) -> DateTime:
    """
    Parse an ISO 8601 timestamp and convert it to ``timezone``.

    Raises:
        ValueError: If the value is not a datetime
    """
    dt = pendulum.parse(value, tz=timezone)

    if isinstance(dt, DateTime):
        return dt.in_timezone(timezone)

    raise ValueError(f"Could not parse datetime: {value}")


def scheduled_event_from_row(row: Dict[str, Any], timezone: str) -> CommittedEvent:
    """Build a first-party event; these rows carry no end time."""
    return CommittedEvent(
        id=str(row["id"]),
        title=row.get("title") or "",
        start=parse_datetime(row["event_date"], timezone),
        origin=EventOrigin.SCHEDULED,
    )


def synced_event_from_row(row: Dict[str, Any], timezone: str) -> CommittedEvent:
    """Build a synced event with its explicit end time."""
    start = parse_datetime(row["start_time"], timezone)
    end = parse_datetime(row["end_time"], timezone)

    if end <= start:
        raise ValueError(f"Event {row['id']} ends before it starts")

    return CommittedEvent(
        id=str(row["id"]),
        title=row.get("title") or "",
        start=start,
        end=end,
        origin=EventOrigin.SYNCED,
        is_busy=bool(row.get("is_busy", True)),
    )


def scheduled_events_from_rows(rows: Iterable[Dict[str, Any]], timezone: str) -> List[CommittedEvent]:
    return _convert_rows(rows, timezone, scheduled_event_from_row)


def synced_events_from_rows(rows: Iterable[Dict[str, Any]], timezone: str) -> List[CommittedEvent]:
    return _convert_rows(rows, timezone, synced_event_from_row)


def _convert_rows(rows, timezone, converter) -> List[CommittedEvent]:
    events: List[CommittedEvent] = []

    for row in rows:
        try:
            events.append(converter(row, timezone))
        except (KeyError, TypeError, ValueError) as e:
            # Skip invalid rows
            logger.warning("Could not parse event row %r: %s", row.get("id"), e)
            continue

    return events
