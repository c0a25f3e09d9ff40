"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .scheduling import EventStoreProtocol, SchedulingService

__all__ = ["EventStoreProtocol", "SchedulingService"]
