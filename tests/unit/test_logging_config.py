"""Unit tests for icaldump logging setup."""

import logging

import pytest

from icaldump import _init_logging
from icaldump.logging_config import configure_logging, get_logging_status

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def restore_logger_levels():
    names = ["", "icaldump", "icaldump.occurrence_resolver", "httpx", "httpcore", "asyncio", "icalendar"]
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


def test_configure_logging_default_levels() -> None:
    configure_logging(debug_mode=False)

    status = get_logging_status()
    assert status["root"] == "INFO"
    assert status["icaldump"] == "INFO"
    assert status["httpx"] == "WARNING"
    assert status["icalendar"] == "INFO"


def test_configure_logging_debug_mode() -> None:
    configure_logging(debug_mode=True)

    assert logging.getLogger("icaldump.occurrence_resolver").level == logging.DEBUG
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_configure_logging_env_debug(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ICALDUMP_DEBUG", "true")

    configure_logging(debug_mode=False)

    assert get_logging_status()["icaldump"] == "DEBUG"


def test_configure_logging_force_debug_overrides_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ICALDUMP_DEBUG", "1")

    configure_logging(debug_mode=True, force_debug=False)

    assert get_logging_status()["icaldump"] == "INFO"


def test_configure_logging_env_root_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ICALDUMP_LOG_LEVEL", "warning")

    configure_logging()

    assert get_logging_status()["root"] == "WARNING"


def test_configure_logging_ignores_unknown_env_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ICALDUMP_LOG_LEVEL", "CHATTY")

    configure_logging()

    assert get_logging_status()["root"] == "INFO"


@pytest.mark.parametrize(("level_name", "expected"), [("WARNING", logging.WARNING), ("debug", logging.DEBUG), (None, logging.INFO), ("BOGUS", logging.INFO)])
def test_init_logging_sets_root_level(level_name, expected: int) -> None:
    _init_logging(level_name)

    assert logging.getLogger().level == expected


def test_init_logging_env_debug_forces_debug(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ICALDUMP_DEBUG", "on")

    _init_logging("ERROR")

    assert logging.getLogger().level == logging.DEBUG


def test_init_logging_adds_no_handler_when_root_configured() -> None:
    root = logging.getLogger()
    handler = logging.NullHandler()
    root.addHandler(handler)
    try:
        before = list(root.handlers)
        _init_logging("INFO")
        assert root.handlers == before
    finally:
        root.removeHandler(handler)
