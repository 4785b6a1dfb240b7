"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import InvalidTimeError
from .domain.models import DailyWindow
from .domain.timeutils import parse_minutes_of_day


class WindowConfig(BaseModel):
    """An ``HH:mm`` window used when a business has no availability."""
    start: str = "08:00"
    end: str = "18:00"

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Ensure the value is a real time of day."""
        try:
            parse_minutes_of_day(value, strict=True)
        except InvalidTimeError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "WindowConfig":
        """Ensure the window opens before it closes."""
        if parse_minutes_of_day(self.end) <= parse_minutes_of_day(self.start):
            raise ValueError("fallback window end must be later than start")
        return self

    def to_window(self) -> DailyWindow:
        return DailyWindow(start=self.start, end=self.end)


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: Optional[str] = None  # None = machine local timezone
    step_minutes: int = 15
    fallback_window: WindowConfig = Field(default_factory=WindowConfig)
    data_file: Optional[Path] = None

    @field_validator("step_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure the step is positive."""
        if value <= 0:
            raise ValueError("step_minutes must be greater than zero")
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        """Ensure the timezone is a known IANA name."""
        if value is None:
            return value
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
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

        config = cls(**data)
        if config.data_file is not None and not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file
        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of slotbook/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load an explicitly given config file, or the default one if present.

    Without any config file the built-in defaults apply.
    """
    if config_path is not None:
        return AppConfig.load_from_yaml(config_path)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()
