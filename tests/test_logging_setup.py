import logging

import pytest

from ob6control.logging_setup import configure_logging, resolve_level


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_cli_level_wins(monkeypatch):
    monkeypatch.setenv("OB6_LOG_LEVEL", "ERROR")
    configure_logging(cli_level="debug")
    assert logging.getLogger().level == logging.DEBUG


def test_env_level(monkeypatch):
    monkeypatch.setenv("OB6_LOG_LEVEL", "WARNING")
    configure_logging()
    assert logging.getLogger().level == logging.WARNING


def test_unknown_level_defaults_to_info(monkeypatch):
    monkeypatch.delenv("OB6_LOG_LEVEL", raising=False)
    configure_logging(cli_level="chatty")
    assert logging.getLogger().level == logging.INFO


def test_resolve_level_precedence(monkeypatch):
    monkeypatch.setenv("OB6_LOG_LEVEL", "error")
    assert resolve_level() == logging.ERROR
    assert resolve_level("debug") == logging.DEBUG


def test_wire_logger_follows_debug(monkeypatch):
    monkeypatch.delenv("OB6_LOG_LEVEL", raising=False)
    wire = logging.getLogger("ob6control.transport.midi_transport")
    assert configure_logging(cli_level="DEBUG") == logging.DEBUG
    assert wire.level == logging.DEBUG
    configure_logging(cli_level="INFO")
    assert wire.level == logging.INFO
    wire.setLevel(logging.NOTSET)
