"""Configuration loading for journalmon."""

import math
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

TRANSPORTS = ("mailer", "webhook")

# Searched in order when no --config is given
DEFAULT_CONFIG_PATHS = [
    Path.home() / ".config" / "journalmon" / "config.yaml",
    Path.home() / ".config" / "journalmon" / "config",
    Path("/etc/journalmon/config.yaml"),
    Path("/etc/journalmon/config"),
]

# Environment variable -> config field
ENV_OVERRIDES = {
    "JOURNALMON_RECIPIENT": "recipient",
    "JOURNALMON_TRANSPORT": "transport",
    "JOURNALMON_WEBHOOK_URL": "webhook_url",
    "JOURNALMON_MIN_PRIORITY": "min_priority",
    "JOURNALMON_BATCH_WINDOW": "batch_window",
    "JOURNALMON_FILTERS": "filters",
}


class ConfigError(Exception):
    """Configuration is missing or invalid."""


@dataclass(frozen=True)
class Config:
    """Monitor configuration. Built once at startup and never mutated."""

    recipient: str
    transport: str = "mailer"
    mailer_path: str = "mailer"
    mailer_config: str | None = None
    webhook_url: str | None = None
    min_priority: int = 3  # ERROR and above
    batch_window: float = 60.0  # seconds; <= 0 disables coalescing
    filters: tuple[str, ...] = field(default_factory=tuple)
    metrics_port: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Build a config from a mapping, coercing value types.

        Unknown keys are ignored so one file can carry settings for other tools.
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            key = str(key).strip()
            if key not in known or value is None:
                continue
            values[key] = _coerce(key, value)

        if not values.get("recipient"):
            raise ConfigError("recipient is required")

        config = cls(**values)
        config.validate()
        return config

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load configuration from a file, with env var overrides.

        The file may be YAML or the legacy ``key=value`` format.
        """
        try:
            text = path.read_text()
        except OSError as e:
            raise ConfigError(f"cannot read config file {path}: {e.strerror}") from e

        data = _parse_config_text(text)
        data.update(_env_values())
        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables only."""
        return cls.from_dict(_env_values())

    def validate(self) -> None:
        """Raise ConfigError if any field is out of range."""
        if not 0 <= self.min_priority <= 7:
            raise ConfigError(f"min_priority must be between 0 and 7, got {self.min_priority}")
        if self.transport not in TRANSPORTS:
            raise ConfigError(
                f"transport must be one of {', '.join(TRANSPORTS)}, got {self.transport!r}"
            )
        if self.transport == "webhook" and not self.webhook_url:
            raise ConfigError("webhook transport requires webhook_url")
        if self.metrics_port is not None and not 0 < self.metrics_port < 65536:
            raise ConfigError(f"metrics_port out of range: {self.metrics_port}")

    def with_overrides(self, **changes: Any) -> "Config":
        """Return a validated copy with some fields replaced."""
        config = replace(self, **{k: _coerce(k, v) for k, v in changes.items()})
        config.validate()
        return config


def find_config_path(explicit: Path | None = None) -> Path | None:
    """Return the config file to load, or None if there is none.

    An explicit path is returned as-is so a typo surfaces as a read error.
    """
    if explicit is not None:
        return explicit
    for candidate in DEFAULT_CONFIG_PATHS:
        if candidate.is_file():
            return candidate
    return None


def load_config(explicit: Path | None = None) -> Config:
    """Find and load the configuration, falling back to the environment."""
    path = find_config_path(explicit)
    if path is None:
        if os.environ.get("JOURNALMON_RECIPIENT"):
            return Config.from_env()
        raise ConfigError(
            "no configuration found; create ~/.config/journalmon/config.yaml "
            "or pass --config"
        )
    return Config.from_file(path)


def parse_filters(text: str) -> tuple[str, ...]:
    """Split a comma-separated filter list, dropping blanks."""
    return tuple(part.strip() for part in text.split(",") if part.strip())


def _coerce(key: str, value: Any) -> Any:
    try:
        if key in ("min_priority", "metrics_port"):
            return _to_int(value)
        if key == "batch_window":
            window = float(value)
            if not math.isfinite(window):
                raise ValueError(value)
            return window
        if key == "filters":
            if isinstance(value, str):
                return parse_filters(value)
            return tuple(str(v) for v in value if str(v))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid value for {key}: {value!r}") from e
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _to_int(value: Any) -> int:
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(value)
    return int(value)


def _parse_config_text(text: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        data = None

    if isinstance(data, dict):
        return data
    if data is None and not text.strip():
        return {}
    return _parse_legacy(text)


def _parse_legacy(text: str) -> dict[str, str]:
    """Parse ``key=value`` lines. Lines starting with ``#`` are comments."""
    data: dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            raise ConfigError(f"line {lineno}: expected key=value, got {line!r}")
        key, value = line.split("=", 1)
        data[key.strip()] = value.strip()
    return data


def _env_values() -> dict[str, str]:
    return {
        name: os.environ[var]
        for var, name in ENV_OVERRIDES.items()
        if os.environ.get(var)
    }
