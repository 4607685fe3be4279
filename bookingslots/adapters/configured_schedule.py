"""
Schedule provider that reads business hours from the application config.
"""

from datetime import date

from ..config import AppConfig
from ..domain.models import BusinessHoursConfig, ResolvedDay


class ConfiguredScheduleProvider:
    """Resolves each agent's business hours from ``AppConfig``."""

    def __init__(self, config: AppConfig):
        self.config = config
        self._cache = {}

    def get_business_hours(self, agent_id: str) -> BusinessHoursConfig:
        """Agent-specific hours when configured, the agency's otherwise."""
        if agent_id not in self._cache:
            self._cache[agent_id] = self.config.business_hours_for(agent_id)
        return self._cache[agent_id]

    def resolve(self, agent_id: str, day: date) -> ResolvedDay:
        return self.get_business_hours(agent_id).resolve(day)
