"""
Smart scheduling: rank candidate windows for a single day.

Pure domain logic - no I/O. The busy set is supplied by the caller.
"""

from typing import Iterable, List, Sequence, Tuple

from pendulum import DateTime

from .models import (
    DEFAULT_EVENT_DURATION_MINUTES,
    CommittedEvent,
    SchedulingPreferences,
    TimeRange,
    TimeSlotSuggestion,
)

BASE_SCORE = 100
SLOT_INTERVAL_MINUTES = 30
DEFAULT_MIN_GAP_MINUTES = 30
MAX_SUGGESTIONS = 5

MORNING_HOURS = range(9, 12)
AFTERNOON_HOURS = range(13, 17)
FOCUS_HOURS = frozenset({10, 11, 14, 15})
EARLY_BEFORE_HOUR = 9
LATE_FROM_HOUR = 17

REASON_MORNING = "Morning slot"
REASON_AFTERNOON = "Afternoon slot"
REASON_TOO_CLOSE = "Close to another event"
REASON_GOOD_BUFFER = "Good buffer time"
REASON_FOCUS = "Optimal focus time"
REASON_CLEAN_START = "Clean start time"
REASON_EARLY = "Early morning"
REASON_LATE = "Late afternoon"
REASON_AVAILABLE = "Available"


class SlotScorer:
    """
    Enumerates fixed-size windows through a day's working hours and scores them.

    Algorithm:
    1. Derive working hours for the day from the preferences
    2. Build the busy set from the day's events, sorted by start
    3. Walk candidates at a 30 minute stride, dropping past and conflicting ones
    4. Score each remaining candidate with additive adjustments
    5. Return the best ``MAX_SUGGESTIONS`` (stable on equal scores)
    """

    def __init__(
        self,
        default_event_duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES,
        max_suggestions: int = MAX_SUGGESTIONS
    ):
        self.default_event_duration_minutes = default_event_duration_minutes
        self.max_suggestions = max_suggestions

    def find_best_slots(
        self,
        target_date: DateTime,
        events: Iterable[CommittedEvent],
        now: DateTime,
        duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES,
        preferences: SchedulingPreferences | None = None
    ) -> List[TimeSlotSuggestion]:
        """
        Rank the free windows of ``target_date``.

        Args:
            target_date: Any instant on the day to plan, in the user's timezone
            events: The day's committed events (first-party and synced)
            now: Reference instant; candidates starting before it are skipped
            duration_minutes: Length of the window to place
            preferences: Soft preferences, defaults when omitted

        Returns:
            Up to ``max_suggestions`` suggestions, best first
        """
        if duration_minutes <= 0:
            raise ValueError(f"Duration must be positive, got {duration_minutes} minutes")

        prefs = preferences or SchedulingPreferences()
        working_hours = prefs.working_hours_for(target_date)

        busy_ranges = sorted(
            (event.busy_range(self.default_event_duration_minutes) for event in events),
            key=lambda r: r.start
        )

        suggestions: List[TimeSlotSuggestion] = []

        for candidate in self._candidates(working_hours, duration_minutes):
            if candidate.start < now:
                continue

            if any(candidate.overlaps(busy) for busy in busy_ranges):
                continue

            score, reasons = self.score_slot(candidate, busy_ranges, prefs)
            suggestions.append(
                TimeSlotSuggestion(
                    time_range=candidate,
                    score=score,
                    reason=reasons[0] if reasons else REASON_AVAILABLE,
                )
            )

        # sorted() is stable, so earlier slots win ties
        ranked = sorted(suggestions, key=lambda s: s.score, reverse=True)
        return ranked[:self.max_suggestions]

    def score_slot(
        self,
        candidate: TimeRange,
        busy_ranges: Sequence[TimeRange],
        preferences: SchedulingPreferences
    ) -> Tuple[int, List[str]]:
        """
        Score a conflict-free candidate.

        Every clause is independent; reasons are collected in evaluation
        order and only the first one is shown to the user.
        """
        score = BASE_SCORE
        reasons: List[str] = []
        hour = candidate.start.hour

        if preferences.prefer_morning and hour in MORNING_HOURS:
            score += 20
            reasons.append(REASON_MORNING)

        if preferences.prefer_afternoon and hour in AFTERNOON_HOURS:
            score += 20
            reasons.append(REASON_AFTERNOON)

        if preferences.avoid_back_to_back:
            min_gap_seconds = (preferences.min_gap_minutes or DEFAULT_MIN_GAP_MINUTES) * 60

            if self._too_close(candidate, busy_ranges, min_gap_seconds):
                score -= 30
                reasons.append(REASON_TOO_CLOSE)
            elif busy_ranges:
                score += 15
                reasons.append(REASON_GOOD_BUFFER)

        if hour in FOCUS_HOURS:
            score += 10
            reasons.append(REASON_FOCUS)

        if candidate.start.minute == 0:
            score += 5
            reasons.append(REASON_CLEAN_START)

        if hour < EARLY_BEFORE_HOUR:
            score -= 20
            reasons.append(REASON_EARLY)

        if hour >= LATE_FROM_HOUR:
            score -= 15
            reasons.append(REASON_LATE)

        return score, reasons

    @staticmethod
    def _candidates(working_hours: TimeRange, duration_minutes: int) -> Iterable[TimeRange]:
        """Yield windows from working start at a fixed stride while they fit."""
        current = working_hours.start

        while current.add(minutes=duration_minutes) <= working_hours.end:
            yield TimeRange.from_duration(current, duration_minutes)
            current = current.add(minutes=SLOT_INTERVAL_MINUTES)

    @staticmethod
    def _too_close(
        candidate: TimeRange,
        busy_ranges: Sequence[TimeRange],
        min_gap_seconds: float
    ) -> bool:
        """True if some busy range ends just before or starts just after the candidate."""
        for busy in busy_ranges:
            gap_before = candidate.start.timestamp() - busy.end.timestamp()
            gap_after = busy.start.timestamp() - candidate.end.timestamp()

            if 0 <= gap_before < min_gap_seconds or 0 <= gap_after < min_gap_seconds:
                return True

        return False
