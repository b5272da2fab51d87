"""
Conti Configuration Management

Engine-wide timing and placeholder settings with JSON loading and validation.
Per-run knobs (batch size, inter-batch delay, retries) live on the request;
this module holds what stays fixed between runs.
"""

import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError, InvalidConfigError
from .env_loader import get_config_path, get_log_level_name
from .logging_config import LogLevel


@dataclass
class BatchEngineConfig:
    """Main configuration for the storyboard batch engine."""

    # Rate limiting
    stagger_interval_seconds: float = 2.0  # start offset per index inside a batch
    sequential_interval_seconds: float = 5.0  # pause between fallback shots

    # Retry backoff
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 10.0

    # Progress estimates
    estimated_seconds_per_shot: int = 30

    # Placeholder and default image values
    placeholder_model: str = "ByteDance-Seedream-4.0"
    placeholder_width: int = 1920
    placeholder_height: int = 1080
    default_consistency_score: float = 0.8

    log_level: str = "INFO"

    def validate(self) -> None:
        """Raise InvalidConfigError if any value is out of range."""
        for name in (
            "stagger_interval_seconds",
            "sequential_interval_seconds",
            "retry_base_delay_seconds",
            "retry_max_delay_seconds",
        ):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value < 0:
                raise InvalidConfigError(f"{name} must be a non-negative number, got {value!r}")

        if self.retry_max_delay_seconds < self.retry_base_delay_seconds:
            raise InvalidConfigError(
                "retry_max_delay_seconds must not be smaller than retry_base_delay_seconds",
                {
                    "retry_base_delay_seconds": self.retry_base_delay_seconds,
                    "retry_max_delay_seconds": self.retry_max_delay_seconds,
                },
            )
        if self.estimated_seconds_per_shot < 0:
            raise InvalidConfigError("estimated_seconds_per_shot must be non-negative")
        if self.placeholder_width <= 0 or self.placeholder_height <= 0:
            raise InvalidConfigError("placeholder dimensions must be positive")
        if not 0.0 <= self.default_consistency_score <= 1.0:
            raise InvalidConfigError("default_consistency_score must be between 0 and 1")
        try:
            LogLevel.from_name(str(self.log_level))
        except ValueError as e:
            raise InvalidConfigError(str(e))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'BatchEngineConfig':
        """Create a config from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidConfigError(f"Unknown config keys: {', '.join(unknown)}")

        config = cls(**data)
        try:
            config.validate()
        except TypeError as e:
            raise InvalidConfigError(f"Invalid config value type: {e}")
        return config


def load_config(config_path: Optional[Path] = None) -> BatchEngineConfig:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to configuration file. Falls back to
            CONTI_CONFIG_PATH, then to built-in defaults.

    Returns:
        Loaded BatchEngineConfig instance
    """
    config_path = Path(config_path) if config_path else get_config_path()

    if config_path is None or not config_path.exists():
        config = BatchEngineConfig()
    else:
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidConfigError(f"Invalid JSON in config file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load config: {e}")

        if not isinstance(data, dict):
            raise InvalidConfigError("Config file must contain a JSON object")
        config = BatchEngineConfig.from_dict(data)

    env_level = get_log_level_name()
    if env_level:
        config.log_level = env_level.upper()
        config.validate()

    return config


# Global config instance
_config: Optional[BatchEngineConfig] = None


def get_config() -> BatchEngineConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: BatchEngineConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
