"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import DEFAULT_EVENT_DURATION_MINUTES, SchedulingPreferences


class PreferencesConfig(BaseModel):
    """Default soft preferences for smart scheduling."""
    preferred_start_hour: int = 9
    preferred_end_hour: int = 18
    prefer_morning: bool = False
    prefer_afternoon: bool = False
    avoid_back_to_back: bool = True
    min_gap_minutes: int = 30

    @field_validator("preferred_start_hour", "preferred_end_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @field_validator("min_gap_minutes")
    @classmethod
    def validate_min_gap(cls, value: int) -> int:
        if value < 0:
            raise ValueError("min_gap_minutes must not be negative")
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "PreferencesConfig":
        """Ensure the working window opens before it closes."""
        if self.preferred_end_hour <= self.preferred_start_hour:
            raise ValueError("preferred_end_hour must be later than preferred_start_hour")
        return self

    def to_preferences(self) -> SchedulingPreferences:
        """Convert to the domain preferences object."""
        return SchedulingPreferences(**self.model_dump())


class SupabaseConfig(BaseModel):
    """Connection settings for the Supabase REST API."""
    url: str
    api_key: str
    timeout_seconds: float = 30

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Supabase url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    default_event_duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES
    default_user_id: Optional[str] = None
    supabase: Optional[SupabaseConfig] = None
    mock_data_file: Optional[Path] = None
    preferences: PreferencesConfig = Field(default_factory=PreferencesConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject unknown IANA timezone names early."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("default_event_duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure the assumed event duration is positive."""
        if value <= 0:
            raise ValueError("default_event_duration_minutes must be greater than zero")
        return value

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

    def resolve_user_id(self, user_id: str | None) -> str:
        """
        Return ``user_id`` or the configured default.

        Raises:
            ValueError: If neither is available
        """
        resolved = user_id or self.default_user_id
        if not resolved:
            raise ValueError(
                "No user id given. Pass one on the command line or set "
                "default_user_id in the configuration."
            )
        return resolved


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
