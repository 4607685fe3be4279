"""
Configuration management using Pydantic models loaded from YAML.
"""

import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pendulum
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .domain.exceptions import InvalidConfig
from .domain.models import (
    BusinessHoursConfig,
    DateOverride,
    TimeWindow,
    Weekday,
    normalize_time,
    parse_time,
)

DEFAULT_AGENT_ID = "00000000-0000-0000-0000-000000000001"


class WindowConfig(BaseModel):
    """An open/close pair, e.g. ``{open: "09:00", close: "13:00"}``."""
    open: str
    close: str

    @field_validator("open", "close")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Normalize to HH:MM:SS."""
        return normalize_time(value)

    def to_window(self) -> TimeWindow:
        return TimeWindow(open=parse_time(self.open), close=parse_time(self.close))


class BreakConfig(BaseModel):
    """A pause inside a working day (e.g. lunch)."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return normalize_time(value)


class DayConfig(BaseModel):
    """
    Booking-form style day definition.

    ``{open, close, breaks, enabled}``: the breaks are cut out of the
    open/close span, splitting the day into several windows.
    """
    open: Optional[str] = None
    close: Optional[str] = None
    breaks: List[BreakConfig] = Field(default_factory=list)
    enabled: bool = True

    @field_validator("open", "close")
    @classmethod
    def validate_time(cls, value: Optional[str]) -> Optional[str]:
        return normalize_time(value) if value is not None else None

    @model_validator(mode="after")
    def validate_enabled_day(self) -> "DayConfig":
        """Enabled days need both an opening and a closing time."""
        if self.enabled and (self.open is None or self.close is None):
            raise ValueError("Enabled days must define both open and close times")
        return self

    def to_windows(self) -> List[TimeWindow]:
        if not self.enabled:
            return []

        day_open = parse_time(self.open)
        day_close = parse_time(self.close)
        windows: List[TimeWindow] = []
        current = day_open

        for pause in sorted(self.breaks, key=lambda b: b.start):
            pause_start = parse_time(pause.start)
            pause_end = parse_time(pause.end)
            if pause_end <= pause_start:
                raise InvalidConfig(f"Break {pause.start} - {pause.end} ends before it starts")
            if pause_start < current or pause_end > day_close:
                raise InvalidConfig(
                    f"Break {pause.start} - {pause.end} lies outside {self.open} - {self.close} "
                    "or overlaps another break"
                )
            if current < pause_start:
                windows.append(TimeWindow(open=current, close=pause_start))
            current = pause_end

        if current < day_close:
            windows.append(TimeWindow(open=current, close=day_close))

        return windows


class OverrideConfig(BaseModel):
    """Special hours or a full closure on one date."""
    date: datetime.date
    closed: bool = False
    windows: List[WindowConfig] = Field(default_factory=list)
    notes: str = ""
    recurring: bool = False

    @model_validator(mode="after")
    def validate_closed_or_windows(self) -> "OverrideConfig":
        if self.closed and self.windows:
            raise ValueError(f"Override for {self.date} cannot be closed and list windows")
        if not self.closed and not self.windows:
            raise ValueError(f"Override for {self.date} must either be closed or list windows")
        return self

    def to_override(self) -> DateOverride:
        return DateOverride(
            date=self.date,
            windows=tuple(window.to_window() for window in self.windows),
            notes=self.notes,
            recurring=self.recurring,
        )


class HolidayType(str, Enum):
    HOLIDAY = "holiday"
    VACATION = "vacation"
    BLOCKED = "blocked"


class HolidayConfig(BaseModel):
    """A day the agency is closed."""
    date: datetime.date
    name: str
    type: HolidayType = HolidayType.HOLIDAY
    recurring: bool = False

    def to_override(self) -> DateOverride:
        return DateOverride(date=self.date, notes=self.name, recurring=self.recurring)


class ScheduleConfig(BaseModel):
    """Weekly business hours, slot sizing and date overrides."""
    slot_duration: int = 30
    buffer_time: int = 0
    business_hours: Dict[str, Union[List[WindowConfig], DayConfig]] = Field(default_factory=dict)
    overrides: List[OverrideConfig] = Field(default_factory=list)

    @field_validator("slot_duration")
    @classmethod
    def validate_slot_duration(cls, value: int) -> int:
        """Ensure slots have a positive length."""
        if value <= 0:
            raise ValueError("slot_duration must be greater than zero")
        return value

    @field_validator("buffer_time")
    @classmethod
    def validate_buffer_time(cls, value: int) -> int:
        if value < 0:
            raise ValueError("buffer_time must not be negative")
        return value

    @field_validator("business_hours")
    @classmethod
    def validate_weekdays(cls, value: Dict[str, Union[List[WindowConfig], DayConfig]]):
        """Weekday names must be sunday..saturday, case-insensitive."""
        normalized = {}
        for name, day in value.items():
            weekday = Weekday.parse(name)
            if weekday.value in normalized:
                raise ValueError(f"Duplicate business hours for {weekday.value}")
            normalized[weekday.value] = day
        return normalized

    def to_business_hours(self, holidays: Sequence[HolidayConfig] = ()) -> BusinessHoursConfig:
        """
        Build the domain config, folding holidays in as closures.

        Raises:
            InvalidConfig: If windows overlap or overrides collide
        """
        hours = {}
        for name, day in self.business_hours.items():
            if isinstance(day, DayConfig):
                hours[name] = tuple(day.to_windows())
            else:
                hours[name] = tuple(window.to_window() for window in day)

        overrides = [override.to_override() for override in self.overrides]
        overrides.extend(holiday.to_override() for holiday in holidays)

        return BusinessHoursConfig(
            slot_duration=self.slot_duration,
            buffer_time=self.buffer_time,
            business_hours=hours,
            overrides=tuple(overrides),
        )


class SupabaseConfig(BaseModel):
    """Connection settings for the appointments REST API."""
    url: str
    api_key: str
    timeout: int = 30

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Supabase url must start with http:// or https://, got {value!r}")
        return value.rstrip("/")


class DefaultsConfig(BaseModel):
    """Default settings for availability queries."""
    agent_id: str = DEFAULT_AGENT_ID
    capacity: int = 1
    lookahead_days: int = 14
    max_range_days: int = 366

    @field_validator("capacity", "lookahead_days", "max_range_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"Value must be at least 1, got {value}")
        return value

    @model_validator(mode="after")
    def validate_range_limit(self) -> "DefaultsConfig":
        if self.max_range_days < self.lookahead_days:
            raise ValueError("max_range_days must not be shorter than lookahead_days")
        return self


class AppConfig(BaseModel):
    """Application configuration."""
    agency: str = ""
    timezone: str = "America/Mexico_City"
    supabase: Optional[SupabaseConfig] = None
    mock_data_file: Optional[Path] = None
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    agents: Dict[str, ScheduleConfig] = Field(default_factory=dict)
    holidays: List[HolidayConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @model_validator(mode="after")
    def validate_schedules(self) -> "AppConfig":
        """Reject malformed business hours at load time rather than per query."""
        self.schedule.to_business_hours(self.holidays)
        for schedule in self.agents.values():
            schedule.to_business_hours(self.holidays)
        return self

    def schedule_for(self, agent_id: str) -> ScheduleConfig:
        """Per-agent schedule, falling back to the agency-wide one."""
        return self.agents.get(agent_id, self.schedule)

    def business_hours_for(self, agent_id: str) -> BusinessHoursConfig:
        return self.schedule_for(agent_id).to_business_hours(self.holidays)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            InvalidConfig: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise InvalidConfig(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise InvalidConfig("Config file must contain a mapping at the root level.")

        try:
            config = cls(**data)
        except ValidationError as exc:
            raise InvalidConfig(f"Invalid configuration in {config_path}:\n{exc}") from exc

        if config.mock_data_file is not None and not config.mock_data_file.is_absolute():
            config.mock_data_file = config_path.parent / config.mock_data_file

        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
