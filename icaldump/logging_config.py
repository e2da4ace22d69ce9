"""
Central logging configuration for icaldump.

Suppresses verbose debug logs from third-party libraries while keeping
icaldump's own per-component decisions visible in debug mode.
"""

import logging
import os
from typing import Optional

PACKAGE_LOGGERS = [
    "icaldump",
    "icaldump.calendar_model",
    "icaldump.config_loader",
    "icaldump.fetcher",
    "icaldump.occurrence_resolver",
    "icaldump.pipeline",
    "icaldump.rrule_expander",
]

THIRD_PARTY_LEVELS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "icalendar": logging.INFO,
}


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logger levels for icaldump.

    Args:
        debug_mode: Whether to enable debug logging for icaldump modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        ICALDUMP_DEBUG: Set to '1', 'true', 'yes' or 'on' to force debug logging
        ICALDUMP_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("ICALDUMP_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")
    env_log_level = os.getenv("ICALDUMP_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)
    logging.getLogger().setLevel(root_level)

    for logger_name, level in THIRD_PARTY_LEVELS.items():
        logging.getLogger(logger_name).setLevel(level)

    package_level = logging.DEBUG if final_debug else logging.INFO
    for logger_name in PACKAGE_LOGGERS:
        logging.getLogger(logger_name).setLevel(package_level)

    logging.getLogger(__name__).debug(
        "Logging configured: root=%s, icaldump=%s",
        logging.getLevelName(root_level),
        logging.getLevelName(package_level),
    )


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["icaldump", *THIRD_PARTY_LEVELS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
