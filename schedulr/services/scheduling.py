"""
Application services for conflict checks and smart slot suggestions.

The service fetches committed events through an event store adapter and
delegates the actual computation to the domain-level ``ConflictDetector``
and ``SlotScorer``. Both sources are queried concurrently; a failing source
is logged and treated as empty so callers always get a best-effort answer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, List, Mapping, Protocol, Tuple

import pendulum
from pendulum import DateTime

from ..domain.conflict_detector import ConflictDetector
from ..domain.exceptions import EventStoreError
from ..domain.models import (
    DEFAULT_EVENT_DURATION_MINUTES,
    AlternativeSlot,
    CommittedEvent,
    ConflictResult,
    SchedulingPreferences,
    TimeRange,
    TimeSlotSuggestion,
)
from ..domain.slot_scorer import SlotScorer

logger = logging.getLogger(__name__)


class EventStoreProtocol(Protocol):
    """Protocol describing the read operations the service needs."""

    async def list_scheduled_events(
        self,
        user_id: str,
        window_start: DateTime,
        window_end: DateTime,
        *,
        completed: bool = False,
    ) -> List[CommittedEvent]:
        """Return first-party events whose start lies in the closed window."""

    async def list_synced_events(
        self,
        user_id: str,
        window_start: DateTime,
        window_end: DateTime,
        *,
        busy: bool = True,
    ) -> List[CommittedEvent]:
        """Return synced events whose start lies in the closed window."""


class SchedulingService:
    """
    Orchestrates event retrieval, conflict detection and slot scoring.

    Depending on a protocol makes it easy to plug in the Supabase adapter
    or the mock store in tests.
    """

    # Local hours searched for alternatives once a conflict is found.
    ALTERNATIVES_DAY_START_HOUR = 6
    ALTERNATIVES_DAY_END_HOUR = 22

    def __init__(
        self,
        event_store: EventStoreProtocol,
        conflict_detector: ConflictDetector,
        slot_scorer: SlotScorer,
        timezone: str = "Europe/Berlin",
        default_preferences: SchedulingPreferences | None = None,
    ) -> None:
        self._event_store = event_store
        self._conflict_detector = conflict_detector
        self._slot_scorer = slot_scorer
        self._timezone = timezone
        self._default_preferences = default_preferences or SchedulingPreferences()

    async def check_for_conflicts(
        self,
        user_id: str,
        event_start: DateTime,
        duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES,
        exclude_event_id: str | None = None,
        *,
        include_alternatives: bool = True,
        now: DateTime | None = None,
    ) -> ConflictResult:
        """
        Report committed events overlapping the proposed window.

        Retrieval failures never propagate; the result is then computed
        from whatever data could be fetched.
        """
        start = event_start.in_timezone(self._timezone)
        proposed = TimeRange.from_duration(start, duration_minutes)

        try:
            window = self._conflict_detector.search_window(start, duration_minutes)
            scheduled, synced = await self.fetch_events(user_id, window)

            result = self._conflict_detector.detect(
                proposed,
                scheduled_events=scheduled,
                synced_events=synced,
                exclude_event_id=exclude_event_id,
            )

            if result.has_conflict and include_alternatives:
                result.alternatives = await self._find_alternatives(
                    user_id,
                    proposed,
                    exclude_event_id=exclude_event_id,
                    now=now or pendulum.now(self._timezone),
                )

            logger.debug(
                "Conflict check for %s at %s: %d conflict(s)",
                user_id,
                proposed,
                len(result.conflicts),
            )
            return result

        except Exception:
            logger.exception("Error in conflict detection for user %s", user_id)
            return ConflictResult()

    async def find_best_time_slots(
        self,
        user_id: str,
        target_date: DateTime,
        duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES,
        preferences: SchedulingPreferences | Mapping[str, Any] | None = None,
        *,
        now: DateTime | None = None,
    ) -> List[TimeSlotSuggestion]:
        """
        Suggest the best windows of ``duration_minutes`` on ``target_date``.

        ``preferences`` may be a full ``SchedulingPreferences`` or a mapping
        of overrides merged over the service defaults.
        """
        if duration_minutes <= 0:
            raise ValueError(f"Duration must be positive, got {duration_minutes} minutes")

        prefs = self._resolve_preferences(preferences)
        day = target_date.in_timezone(self._timezone)

        try:
            window = TimeRange(start=day.start_of("day"), end=day.end_of("day"))
            scheduled, synced = await self.fetch_events(user_id, window)

            return self._slot_scorer.find_best_slots(
                target_date=day,
                events=[*scheduled, *synced],
                now=now or pendulum.now(self._timezone),
                duration_minutes=duration_minutes,
                preferences=prefs,
            )

        except Exception:
            logger.exception("Error finding time slots for user %s", user_id)
            return []

    async def fetch_events(
        self,
        user_id: str,
        window: TimeRange,
    ) -> Tuple[List[CommittedEvent], List[CommittedEvent]]:
        """Fetch not-completed first-party events and busy synced events."""
        scheduled, synced = await asyncio.gather(
            self._fetch_source(
                "scheduled events",
                self._event_store.list_scheduled_events(
                    user_id, window.start, window.end, completed=False
                ),
            ),
            self._fetch_source(
                "synced events",
                self._event_store.list_synced_events(
                    user_id, window.start, window.end, busy=True
                ),
            ),
        )
        return scheduled, synced

    async def _find_alternatives(
        self,
        user_id: str,
        proposed: TimeRange,
        *,
        exclude_event_id: str | None,
        now: DateTime,
    ) -> List[AlternativeSlot]:
        day_start = proposed.start.set(
            hour=self.ALTERNATIVES_DAY_START_HOUR, minute=0, second=0, microsecond=0
        )
        day_end = proposed.start.set(
            hour=self.ALTERNATIVES_DAY_END_HOUR, minute=0, second=0, microsecond=0
        )
        # Late or early proposals still need their own neighbourhood covered.
        window = TimeRange(
            start=min(day_start, proposed.start.subtract(hours=2)),
            end=max(day_end, proposed.end.add(hours=3)),
        )

        scheduled, synced = await self.fetch_events(user_id, window)
        busy_ranges = [
            *self._conflict_detector.busy_ranges(scheduled, exclude_event_id),
            *self._conflict_detector.busy_ranges(synced),
        ]

        return self._conflict_detector.find_alternatives(proposed, busy_ranges, now)

    def _resolve_preferences(
        self,
        preferences: SchedulingPreferences | Mapping[str, Any] | None,
    ) -> SchedulingPreferences:
        if isinstance(preferences, SchedulingPreferences):
            return preferences
        return self._default_preferences.merged(preferences)

    @staticmethod
    async def _fetch_source(
        label: str,
        query: Awaitable[List[CommittedEvent]],
    ) -> List[CommittedEvent]:
        """
        Await one source, degrading to an empty list on failure.

        A partial outage under-reports busy time instead of failing the
        whole request.
        """
        try:
            return list(await query)
        except EventStoreError as exc:
            logger.warning("Error fetching %s: %s", label, exc)
        except Exception:
            logger.exception("Unexpected error fetching %s", label)
        return []
