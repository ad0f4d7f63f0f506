"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.models import TimeWindowPreference
from .domain.stress import DEFAULT_TOTAL_DAYS, HIGH_STRESS_AVERAGE, HIGH_STRESS_DAY_THRESHOLD

MIN_MEETING_MINUTES = 15


class GoogleConfig(BaseModel):
    """OAuth client registered in the Google Cloud console (Desktop app)."""
    client_id: str = ""
    client_secret: str = ""

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class DefaultsConfig(BaseModel):
    """Default settings for the meeting slot search."""
    duration_minutes: int = 30
    search_days: int = 14
    time_window: TimeWindowPreference = TimeWindowPreference.ANY

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Meetings are at least 15 minutes long."""
        if value < MIN_MEETING_MINUTES:
            raise ValueError(f"duration_minutes must be at least {MIN_MEETING_MINUTES}, got {value}")
        return value

    @field_validator("search_days")
    @classmethod
    def validate_search_days(cls, value: int) -> int:
        """Keep the search window short enough to bound the sweep."""
        if not 1 <= value <= 60:
            raise ValueError(f"search_days must be between 1 and 60, got {value}")
        return value

    @field_validator("time_window", mode="before")
    @classmethod
    def parse_time_window(cls, value):
        return TimeWindowPreference.parse(value)


class StressConfig(BaseModel):
    """Thresholds for the calendar stress analysis."""
    total_days: int = DEFAULT_TOTAL_DAYS
    high_stress_day_threshold: int = HIGH_STRESS_DAY_THRESHOLD
    high_stress_average: float = HIGH_STRESS_AVERAGE

    @field_validator("total_days")
    @classmethod
    def validate_total_days(cls, value: int) -> int:
        if not 1 <= value <= 365:
            raise ValueError(f"total_days must be between 1 and 365, got {value}")
        return value


class Colleague(BaseModel):
    """Colleague/Participant configuration."""
    name: str  # Used as alias
    email: str
    calendar_id: str = ""  # Optional: for mock data mapping


class AppConfig(BaseModel):
    """Application configuration."""
    google: GoogleConfig = Field(default_factory=GoogleConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    stress: StressConfig = Field(default_factory=StressConfig)
    timezone: str = "America/New_York"
    colleagues: List[Colleague] = Field(default_factory=list)
    log_level: str = "WARNING"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA identifier."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value!r}")
        return level

    @field_validator("colleagues")
    @classmethod
    def validate_colleagues(cls, value: List[Colleague]) -> List[Colleague]:
        """Ensure colleague aliases and emails are unique."""
        seen_names: set[str] = set()
        seen_emails: set[str] = set()
        for colleague in value:
            name_key = colleague.name.lower()
            email_key = colleague.email.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate colleague name detected: {colleague.name}")
            if email_key in seen_emails:
                raise ValueError(f"Duplicate colleague email detected: {colleague.email}")
            seen_names.add(name_key)
            seen_emails.add(email_key)
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

    def find_colleague_by_name(self, name: str) -> Colleague | None:
        """Find a colleague by their name (alias)."""
        for colleague in self.colleagues:
            if colleague.name.lower() == name.lower():
                return colleague
        return None

    def find_colleague_by_email(self, email: str) -> Colleague | None:
        """Find a colleague by their email."""
        for colleague in self.colleagues:
            if colleague.email.lower() == email.lower():
                return colleague
        return None

    def resolve_participant(self, identifier: str) -> str:
        """
        Resolve a participant identifier (name/alias or email) to an email address.

        Raises:
            ValueError: If identifier cannot be resolved
        """
        if "@" in identifier:
            return identifier.lower()

        colleague = self.find_colleague_by_name(identifier)
        if colleague:
            return colleague.email.lower()

        raise ValueError(
            f"Unknown participant identifier: '{identifier}'. "
            f"Use an email address or a configured name."
        )


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    config_path = Path.cwd() / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
