"""
Adapters layer - Event store integrations (Supabase REST API, mock data).
"""

from .mock_event_store import MockEventStore
from .supabase_client import SupabaseEventStore

__all__ = ["MockEventStore", "SupabaseEventStore"]
