"""
Adapters layer - External integrations (Supabase, config-backed schedules).
"""

from .configured_schedule import ConfiguredScheduleProvider
from .mock_store import MockAppointmentStore
from .supabase_store import SupabaseAppointmentStore

__all__ = ["ConfiguredScheduleProvider", "MockAppointmentStore", "SupabaseAppointmentStore"]
