"""
bootstrap/config.py - Application configuration

Provides configuration loading from files, environment variables, and defaults.
Precedence: JSON file values override environment values, which override defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from sitebuild.core.constants import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_LOG_FORMAT,
    DEFAULT_MAX_LOG_ENTRIES,
    VERSION,
)
from sitebuild.errors.taxonomy import ConfigurationError

logger = logging.getLogger("bootstrap.config")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", key=name)


def _require_int(key: str, value: Any) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}", key=key)


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


@dataclass
class BuildConfig:
    """Incremental build engine configuration."""

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000

    def validate(self) -> None:
        _require_int("build.debounce_ms", self.debounce_ms)
        _require_int("build.max_log_entries", self.max_log_entries)
        if self.debounce_ms < 0:
            raise ConfigurationError(
                f"build.debounce_ms must be >= 0, got {self.debounce_ms}",
                key="build.debounce_ms",
            )
        if self.max_log_entries < 1:
            raise ConfigurationError(
                f"build.max_log_entries must be >= 1, got {self.max_log_entries}",
                key="build.max_log_entries",
            )

    @classmethod
    def from_env(cls) -> "BuildConfig":
        return cls(
            debounce_ms=_env_int("SITEBUILD_DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS),
            max_log_entries=_env_int("SITEBUILD_MAX_LOG_ENTRIES", DEFAULT_MAX_LOG_ENTRIES),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("SITEBUILD_LOG_LEVEL", "INFO"),
            format=os.getenv("SITEBUILD_LOG_FORMAT", DEFAULT_LOG_FORMAT),
            log_file=os.getenv("SITEBUILD_LOG_FILE"),
            json_logs=_env_bool("SITEBUILD_JSON_LOGS", False),
        )


@dataclass
class SiteBuildConfig:
    """Root configuration for sitebuild."""

    environment: str = "development"
    debug: bool = False
    version: str = VERSION

    build: BuildConfig = field(default_factory=BuildConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Free-form settings handed to SiteAdapter.configure
    settings: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> "SiteBuildConfig":
        self.build.validate()
        return self

    @classmethod
    def from_env(cls) -> "SiteBuildConfig":
        """Create configuration from environment variables."""
        return cls(
            environment=os.getenv("SITEBUILD_ENVIRONMENT", "development"),
            debug=_env_bool("SITEBUILD_DEBUG", False),
            build=BuildConfig.from_env(),
            logging=LoggingConfig.from_env(),
        ).validate()

    @classmethod
    def from_file(cls, filepath: str) -> "SiteBuildConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file {filepath}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {filepath} must contain a JSON object")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "SiteBuildConfig":
        """Create config from dictionary, on top of the environment."""
        config = cls.from_env()

        if "environment" in data:
            config.environment = data["environment"]
        if "debug" in data:
            config.debug = data["debug"]

        for section in ("build", "logging"):
            if section not in data:
                continue
            values = data[section]
            if not isinstance(values, dict):
                raise ConfigurationError(
                    f"Config section '{section}' must be a JSON object, "
                    f"got {type(values).__name__}",
                    key=section,
                )
            target = getattr(config, section)
            for key, value in values.items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Ignoring unknown config key: {section}.{key}")

        if "settings" in data:
            if not isinstance(data["settings"], dict):
                raise ConfigurationError(
                    "Config section 'settings' must be a JSON object", key="settings"
                )
            config.settings.update(data["settings"])

        return config.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "version": self.version,
            "build": {
                "debounce_ms": self.build.debounce_ms,
                "max_log_entries": self.build.max_log_entries,
            },
            "logging": {
                "level": self.logging.level,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
            "settings": dict(self.settings),
        }


DEFAULT_CONFIG_PATHS = (
    "./sitebuild.json",
    "./config/sitebuild.json",
    "~/.sitebuild/config.json",
)


def load_config(filepath: Optional[str] = None) -> SiteBuildConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        SiteBuildConfig instance
    """
    if filepath:
        config = SiteBuildConfig.from_file(filepath)
    else:
        config = None
        for candidate in DEFAULT_CONFIG_PATHS:
            path = Path(os.path.expanduser(candidate))
            if path.exists():
                logger.info(f"Loading config from: {path}")
                config = SiteBuildConfig.from_file(str(path))
                break

        if config is None:
            config = SiteBuildConfig.from_env()

    logger.info(
        f"Configuration loaded: environment={config.environment}, "
        f"debounce={config.build.debounce_ms}ms"
    )
    return config
