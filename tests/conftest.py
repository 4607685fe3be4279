"""
Shared fixtures.
"""

import pytest

from bookingslots.domain.models import BusinessHoursConfig, TimeWindow


@pytest.fixture
def morning_hours() -> BusinessHoursConfig:
    """Weekdays 09:00-12:00, 60 minute slots, no buffer."""
    window = (TimeWindow(open="09:00", close="12:00"),)
    return BusinessHoursConfig(
        slot_duration=60,
        business_hours={
            day: window for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
        },
    )
