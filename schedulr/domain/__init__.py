"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .conflict_detector import ConflictDetector
from .exceptions import ConfigurationError, EventStoreError, SchedulrError
from .models import (
    AlternativeSlot,
    CommittedEvent,
    ConflictingEvent,
    ConflictResult,
    EventOrigin,
    SchedulingPreferences,
    TimeRange,
    TimeSlotSuggestion,
)
from .slot_scorer import SlotScorer

__all__ = [
    "AlternativeSlot",
    "CommittedEvent",
    "ConfigurationError",
    "ConflictDetector",
    "ConflictingEvent",
    "ConflictResult",
    "EventOrigin",
    "EventStoreError",
    "SchedulingPreferences",
    "SchedulrError",
    "SlotScorer",
    "TimeRange",
    "TimeSlotSuggestion",
]
