"""
Conflict detection between a proposed event and a user's committed events.

Pure domain logic: the caller fetches events and hands them in.
"""

from typing import Iterable, List, Sequence

from pendulum import DateTime

from .models import (
    DEFAULT_EVENT_DURATION_MINUTES,
    AlternativeSlot,
    CommittedEvent,
    ConflictingEvent,
    ConflictResult,
    EventOrigin,
    TimeRange,
)


class ConflictDetector:
    """
    Decides whether a proposed window overlaps existing events.

    Overlap uses the half-open rule: ``[a, b)`` and ``[c, d)`` collide iff
    ``a < d and b > c``, so back-to-back events never conflict.
    """

    # Events are only fetched around the proposed window; overlap is still
    # computed exactly afterwards.
    SEARCH_PADDING_MINUTES = 120

    # Hour offsets tried, in order, when looking for alternatives.
    ALTERNATIVE_OFFSETS_HOURS = (-2, -1, 1, 2, 3)
    ALTERNATIVE_EARLIEST_HOUR = 8
    ALTERNATIVE_LATEST_HOUR = 21
    MAX_ALTERNATIVES = 4

    def __init__(self, default_event_duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES):
        self.default_event_duration_minutes = default_event_duration_minutes

    def search_window(
        self,
        start: DateTime,
        duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES
    ) -> TimeRange:
        """Return the window used to bound the event queries."""
        proposed = TimeRange.from_duration(start, duration_minutes)
        return proposed.padded(self.SEARCH_PADDING_MINUTES)

    def detect(
        self,
        proposed: TimeRange,
        scheduled_events: Iterable[CommittedEvent],
        synced_events: Iterable[CommittedEvent],
        exclude_event_id: str | None = None
    ) -> ConflictResult:
        """
        Collect every event overlapping ``proposed``.

        First-party events are reported before synced ones, each in the
        order given. A first-party event with id ``exclude_event_id`` is
        ignored so an event being edited never conflicts with itself.
        """
        conflicts: List[ConflictingEvent] = []

        for event in self._without_excluded(scheduled_events, exclude_event_id):
            if proposed.overlaps(event.busy_range(self.default_event_duration_minutes)):
                conflicts.append(self._to_conflict(event))

        for event in synced_events:
            if proposed.overlaps(event.busy_range(self.default_event_duration_minutes)):
                conflicts.append(self._to_conflict(event))

        return ConflictResult(conflicts=conflicts)

    def busy_ranges(
        self,
        events: Iterable[CommittedEvent],
        exclude_event_id: str | None = None
    ) -> List[TimeRange]:
        """Turn events into the ranges they block, skipping the excluded one."""
        return [
            event.busy_range(self.default_event_duration_minutes)
            for event in self._without_excluded(events, exclude_event_id)
        ]

    def find_alternatives(
        self,
        proposed: TimeRange,
        busy_ranges: Sequence[TimeRange],
        now: DateTime
    ) -> List[AlternativeSlot]:
        """
        Suggest nearby start times that keep the proposed duration.

        Candidates are tried at fixed hour offsets around the proposed start;
        those in the past, outside 08:00-21:00 local time or overlapping a
        busy range are dropped.
        """
        alternatives: List[AlternativeSlot] = []
        duration = proposed.duration_minutes()

        for offset in self.ALTERNATIVE_OFFSETS_HOURS:
            candidate = TimeRange.from_duration(proposed.start.add(hours=offset), duration)

            if candidate.start < now:
                continue

            hour = candidate.start.hour
            if hour < self.ALTERNATIVE_EARLIEST_HOUR or hour >= self.ALTERNATIVE_LATEST_HOUR:
                continue

            if any(candidate.overlaps(busy) for busy in busy_ranges):
                continue

            alternatives.append(
                AlternativeSlot(
                    start=candidate.start,
                    label=candidate.start.format("h:mm A"),
                )
            )

            if len(alternatives) >= self.MAX_ALTERNATIVES:
                break

        return alternatives

    @staticmethod
    def _without_excluded(
        events: Iterable[CommittedEvent],
        exclude_event_id: str | None
    ) -> Iterable[CommittedEvent]:
        for event in events:
            if (
                exclude_event_id is not None
                and event.origin is EventOrigin.SCHEDULED
                and event.id == exclude_event_id
            ):
                continue
            yield event

    @staticmethod
    def _to_conflict(event: CommittedEvent) -> ConflictingEvent:
        return ConflictingEvent(
            id=event.id,
            title=event.title,
            start=event.start,
            origin=event.origin,
        )
