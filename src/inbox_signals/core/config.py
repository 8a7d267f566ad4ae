"""Configuration management."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

LOG_FORMATS = ("console", "json")


def _lookup(name: str, config: dict[str, Any]) -> str | None:
    """Return an environment variable, falling back to the .env values."""
    return os.environ.get(name) or config.get(name)


def _float(name: str, config: dict[str, Any], default: float) -> float:
    raw = _lookup(name, config)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _int(name: str, config: dict[str, Any], default: int) -> int:
    raw = _lookup(name, config)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class Config:
    """Application configuration."""

    database_url: str | None = None
    log_level: str = "INFO"
    log_format: str = "console"
    # Confidence thresholds for reading learned patterns
    adaptation_floor: float = 0.3
    profile_threshold: float = 0.3
    suggestion_threshold: float = 0.4
    # Optimistic-concurrency retries for pattern updates
    max_update_retries: int = 5

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> Config:
        """Load configuration from environment and .env file.

        Args:
            env_file: Path to .env file. If None, only the process
                     environment is consulted.

        Returns:
            Config instance with loaded values.

        Raises:
            ValueError: If a numeric setting cannot be parsed.
        """
        config: dict[str, Any] = {}
        if env_file and env_file.exists():
            config = dict(dotenv_values(env_file))

        return cls(
            database_url=_lookup("DATABASE_URL", config),
            log_level=(_lookup("LOG_LEVEL", config) or "INFO").upper(),
            log_format=(_lookup("LOG_FORMAT", config) or "console").lower(),
            adaptation_floor=_float("ADAPTATION_CONFIDENCE_FLOOR", config, 0.3),
            profile_threshold=_float("PROFILE_CONFIDENCE_THRESHOLD", config, 0.3),
            suggestion_threshold=_float("SUGGESTION_CONFIDENCE_THRESHOLD", config, 0.4),
            max_update_retries=_int("PATTERN_UPDATE_MAX_RETRIES", config, 5),
        )

    def validate(self) -> list[str]:
        """Validate configuration.

        Returns:
            List of problems found, empty when the config is usable.
        """
        problems = []
        for name, value in (
            ("ADAPTATION_CONFIDENCE_FLOOR", self.adaptation_floor),
            ("PROFILE_CONFIDENCE_THRESHOLD", self.profile_threshold),
            ("SUGGESTION_CONFIDENCE_THRESHOLD", self.suggestion_threshold),
        ):
            if not 0.0 <= value <= 1.0:
                problems.append(f"{name} must be between 0 and 1")
        if self.max_update_retries < 1:
            problems.append("PATTERN_UPDATE_MAX_RETRIES must be at least 1")
        if self.log_format not in LOG_FORMATS:
            problems.append(f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}")
        return problems

    def has_database(self) -> bool:
        """Check if a database URL is configured."""
        return bool(self.database_url)
