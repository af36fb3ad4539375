"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import InputFormatError
from .domain.models import AvailabilityMode
from .domain.slot_catalog import SlotCatalog
from .domain.timezone_converter import parse_time, validate_timezone


class ScheduleConfig(BaseModel):
    """Bookable hours of a business day."""
    first_slot: str = "09:00"
    last_slot: str = "16:00"
    step_minutes: int = 30
    duration_minutes: int = 15

    @field_validator("first_slot", "last_slot")
    @classmethod
    def validate_slot_time(cls, v: str) -> str:
        """Validate slot bounds are HH:mm."""
        try:
            parse_time(v)
        except InputFormatError as exc:
            raise ValueError(str(exc)) from exc
        return v

    @field_validator("step_minutes", "duration_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure step and duration are positive."""
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_slot_order(self) -> "ScheduleConfig":
        """Ensure the first slot is not after the last one."""
        if parse_time(self.first_slot) > parse_time(self.last_slot):
            raise ValueError("first_slot must not be later than last_slot")
        return self

    def catalog(self) -> SlotCatalog:
        """Get the slot catalogue for these hours."""
        return SlotCatalog(self.first_slot, self.last_slot, self.step_minutes)


class GoogleCredentialsConfig(BaseModel):
    """OAuth client of the calendar owner."""
    client_id: str
    client_secret: str
    refresh_token: str = ""  # Empty: read from the system keyring


class AppConfig(BaseModel):
    """Application configuration."""
    calendar_id: str = "primary"
    timezone: str = "America/Santiago"
    availability_mode: AvailabilityMode  # Deliberately no default
    creator_tag: str = "slotbooker"
    business_name: str = ""
    notify_email: Optional[str] = None
    request_timeout_seconds: float = 30
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    google: Optional[GoogleCredentialsConfig] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone_name(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            return validate_timezone(value)
        except InputFormatError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("creator_tag", "calendar_id")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        """Reject empty identifiers."""
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("notify_email")
    @classmethod
    def normalize_notify_email(cls, value: Optional[str]) -> Optional[str]:
        """Treat an empty notification mailbox as unset."""
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def duration_minutes(self) -> int:
        return self.schedule.duration_minutes

    def candidate_slots(self) -> List[str]:
        """Get the configured candidate slot times."""
        return list(self.schedule.catalog())

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
            ValueError: If config is invalid
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
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of slotbooker/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
