"""
Domain-specific exception hierarchy for the scheduling core.
"""


class SchedulrError(Exception):
    """Base class for all application-level errors."""


class EventStoreError(SchedulrError):
    """Raised when events cannot be fetched from one of the event sources."""


class ConfigurationError(SchedulrError):
    """Raised when the configuration cannot support the requested operation."""
