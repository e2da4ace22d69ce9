"""icaldump.config_loader

Config loader for icaldump.

- Reads YAML with PyYAML (JSON files are valid YAML and load the same way).
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
- The extraction core never reads configuration itself; the CLI loads it and
  passes plain values into the pipeline.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .datetime_utils import get_timezone
from .exceptions import ConfigError
from .models import CalendarSource
from .task_formatter import DEFAULT_TEMPLATE

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ICALDUMP_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "icaldump" / "config.yaml"


@dataclass
class Config:
    """Typed configuration for icaldump.

    Fields:
        calendars: configured calendar feeds
        formatting: output template with ${placeholder} tokens
        timezone: IANA timezone name; None means the system local timezone
        log_level: logging level name
        request_timeout: HTTP read timeout in seconds
        max_retries: retry attempts for HTTP fetches
        retry_backoff_factor: multiplier for retry backoff delays
        max_occurrences: cap on generated occurrences per recurring component
    """

    calendars: list[CalendarSource] = field(default_factory=list)
    formatting: str = DEFAULT_TEMPLATE
    timezone: str | None = None
    log_level: str = "INFO"
    request_timeout: int = 30
    max_retries: int = 3
    retry_backoff_factor: float = 1.5
    max_occurrences: int = 100

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Calendars may be given as {name, url} mappings or bare URL strings.
        Numeric values are coerced, logging a warning and using the default
        when coercion fails.

        Raises:
            ConfigError: If a calendar entry or the timezone is invalid
        """
        if data is None:
            data = {}

        calendars_raw = data.get("calendars", [])
        if calendars_raw is None:
            calendars_raw = []
        if not isinstance(calendars_raw, (list, tuple)):
            logger.warning("Config `calendars` is not a list; coercing to single-item list")
            calendars_raw = [calendars_raw]

        calendars: list[CalendarSource] = []
        for i, entry in enumerate(calendars_raw):
            if isinstance(entry, str):
                entry = {"url": entry}
            if not isinstance(entry, dict):
                raise ConfigError(f"Calendar entry #{i + 1} must be a mapping or URL string")
            try:
                calendars.append(CalendarSource(**entry))
            except ValidationError as e:
                raise ConfigError(f"Invalid calendar entry #{i + 1}: {e}") from e

        def _coerce(key: str, default: Any, kind: type) -> Any:
            raw = data.get(key, default)
            try:
                return kind(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not a %s; using default %r", key, raw, kind.__name__, default)
                return default

        formatting = data.get("formatting", DEFAULT_TEMPLATE)
        formatting = str(formatting) if formatting is not None else DEFAULT_TEMPLATE

        timezone = data.get("timezone")
        if timezone is not None:
            timezone = str(timezone)
            try:
                get_timezone(timezone)
            except ValueError as e:
                raise ConfigError(str(e)) from e

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        max_occurrences = _coerce("max_occurrences", 100, int)
        if max_occurrences < 1:
            logger.warning("max_occurrences %d below minimum; coercing to 1", max_occurrences)
            max_occurrences = 1

        return cls(
            calendars=calendars,
            formatting=formatting,
            timezone=timezone,
            log_level=log_level,
            request_timeout=_coerce("request_timeout", 30, int),
            max_retries=_coerce("max_retries", 3, int),
            retry_backoff_factor=_coerce("retry_backoff_factor", 1.5, float),
            max_occurrences=max_occurrences,
        )

    def find_calendar(self, name: str) -> CalendarSource | None:
        """Look up a configured calendar by name (case-insensitive) or 1-based position."""
        for calendar in self.calendars:
            if calendar.name and calendar.name.lower() == name.lower():
                return calendar
        if name.lstrip("#").isdigit():
            position = int(name.lstrip("#")) - 1
            if 0 <= position < len(self.calendars):
                return self.calendars[position]
        return None


def _resolve_path(path: str | None) -> Path:
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to $ICALDUMP_CONFIG,
              then ~/.config/icaldump/config.yaml.

    Returns:
        Config dataclass instance with values from file (or defaults).

    Raises:
        ConfigError: If the file cannot be read or parsed, or its top level
            is not a mapping
    """
    p = _resolve_path(path)
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Unable to read config {p}: {e}") from e

    # safe_load returns None for empty files
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ConfigError("Config file must contain a mapping at top level")

    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s (%d calendars)", p, len(cfg.calendars))
    logger.debug("Configuration values: %s", cfg)
    return cfg
