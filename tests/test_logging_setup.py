import io
import logging

import pytest

from flowboard.logging_setup import (
    LEVEL_ENV_VAR,
    configure_logging,
    get_logger,
    reset_logging,
    resolve_level,
)


@pytest.fixture(autouse=True)
def _clean_logging(monkeypatch):
    monkeypatch.delenv(LEVEL_ENV_VAR, raising=False)
    yield
    reset_logging()


def test_resolve_level_accepts_names_numbers_and_env(monkeypatch) -> None:
    assert resolve_level("info") == logging.INFO
    assert resolve_level(" debug ") == logging.DEBUG
    assert resolve_level("15") == 15
    assert resolve_level(logging.ERROR) == logging.ERROR
    assert resolve_level() == logging.WARNING

    monkeypatch.setenv(LEVEL_ENV_VAR, "ERROR")
    assert resolve_level() == logging.ERROR
    assert resolve_level("INFO") == logging.INFO


def test_resolve_level_rejects_unknown_names(monkeypatch) -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        resolve_level("LOUD")

    monkeypatch.setenv(LEVEL_ENV_VAR, "chatty")
    with pytest.raises(ValueError):
        resolve_level()


def test_configure_logging_writes_package_records_to_stream() -> None:
    stream = io.StringIO()
    configure_logging("INFO", stream=stream)

    get_logger("flowboard.io").info("Imported %d movement(s)", 3)
    get_logger("flowboard.io").debug("hidden")

    assert stream.getvalue() == "INFO flowboard.io: Imported 3 movement(s)\n"


def test_configure_logging_again_replaces_handler() -> None:
    first, second = io.StringIO(), io.StringIO()
    configure_logging("INFO", stream=first)
    configure_logging("WARNING", stream=second)

    log = get_logger("flowboard.db")
    log.info("not shown")
    log.warning("shown once")

    assert first.getvalue() == ""
    assert second.getvalue() == "WARNING flowboard.db: shown once\n"
    stream_handlers = [
        h for h in logging.getLogger("flowboard").handlers if isinstance(h, logging.StreamHandler)
    ]
    assert len(stream_handlers) == 1


def test_reset_logging_restores_propagation() -> None:
    configure_logging("DEBUG", stream=io.StringIO())
    reset_logging()

    pkg = logging.getLogger("flowboard")
    assert pkg.propagate is True
    assert pkg.level == logging.NOTSET
    assert all(isinstance(h, logging.NullHandler) for h in pkg.handlers)
