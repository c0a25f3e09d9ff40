"""
Domain models for committed events, candidate windows and scheduling results.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Mapping

from pendulum import DateTime

# First-party events carry no end time; they are assumed to last this long.
DEFAULT_EVENT_DURATION_MINUTES = 60


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def from_duration(cls, start: DateTime, duration_minutes: int) -> "TimeRange":
        """Build a range of ``duration_minutes`` starting at ``start``."""
        if duration_minutes <= 0:
            raise ValueError(f"Duration must be positive, got {duration_minutes} minutes")
        return cls(start=start, end=start.add(minutes=duration_minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another (half-open on both ends)."""
        return self.start < other.end and self.end > other.start

    def padded(self, minutes: int) -> "TimeRange":
        """Return a copy widened by ``minutes`` on both sides."""
        return TimeRange(
            start=self.start.subtract(minutes=minutes),
            end=self.end.add(minutes=minutes),
        )

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


class EventOrigin(str, Enum):
    """Where a committed event lives."""
    SCHEDULED = "scheduled"  # created in our own store
    SYNCED = "synced"  # mirrored from an external calendar provider


@dataclass(frozen=True)
class CommittedEvent:
    """
    An existing event that occupies time in a user's calendar.

    First-party events have no stored end; their busy window is derived
    from a default duration.
    """
    id: str
    title: str
    start: DateTime
    origin: EventOrigin
    end: DateTime | None = None
    is_busy: bool = True

    def busy_range(
        self,
        default_duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES,
    ) -> TimeRange:
        """Return the window this event blocks."""
        if self.origin is EventOrigin.SCHEDULED or self.end is None:
            return TimeRange.from_duration(self.start, default_duration_minutes)
        return TimeRange(start=self.start, end=self.end)


@dataclass(frozen=True)
class ConflictingEvent:
    """An existing event that overlaps a proposed window."""
    id: str
    title: str
    start: DateTime
    origin: EventOrigin


@dataclass(frozen=True)
class AlternativeSlot:
    """A nearby free start time offered when the proposed one conflicts."""
    start: DateTime
    label: str


@dataclass
class ConflictResult:
    """Outcome of a conflict check."""
    conflicts: List[ConflictingEvent] = field(default_factory=list)
    alternatives: List[AlternativeSlot] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return len(self.conflicts) > 0


@dataclass(frozen=True)
class SchedulingPreferences:
    """
    Soft preferences used when ranking candidate slots.

    Callers usually start from the defaults and merge their own overrides
    via :meth:`merged`.
    """
    preferred_start_hour: int = 9
    preferred_end_hour: int = 18
    prefer_morning: bool = False
    prefer_afternoon: bool = False
    avoid_back_to_back: bool = True
    min_gap_minutes: int = 30

    def merged(self, overrides: Mapping[str, Any] | None) -> "SchedulingPreferences":
        """Return a copy with every non-None override applied."""
        if not overrides:
            return self
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    def working_hours_for(self, day: DateTime) -> TimeRange:
        """
        Get the working hours range for the calendar day of ``day``.

        The day is interpreted in the timezone ``day`` carries.
        """
        start = day.set(
            hour=self.preferred_start_hour,
            minute=0,
            second=0,
            microsecond=0
        )
        end = day.set(
            hour=self.preferred_end_hour,
            minute=0,
            second=0,
            microsecond=0
        )

        return TimeRange(start=start, end=end)


@dataclass(frozen=True)
class TimeSlotSuggestion:
    """
    A ranked candidate window returned by the slot scorer.
    """
    time_range: TimeRange
    score: int
    reason: str

    @property
    def start(self) -> DateTime:
        return self.time_range.start

    @property
    def end(self) -> DateTime:
        return self.time_range.end

    def format_display(self) -> str:
        """
        Format the suggestion for display.
        Format: Weekday, DD.MM.YYYY | HH:mm - HH:mm (score, reason)
        """
        start = self.time_range.start
        end = self.time_range.end

        weekday = start.format("dddd")
        date_str = start.format("DD.MM.YYYY")
        time_str = f"{start.format('HH:mm')} - {end.format('HH:mm')}"

        return f"{weekday}, {date_str} | {time_str} (score {self.score}, {self.reason})"
