import importlib
import logging
import sys
from unittest.mock import patch

import pytest
from pythonjsonlogger import json as jsonlogger


def test_setup_logging_sets_basic_config(monkeypatch):
    monkeypatch.delenv("PYTHONLOGLEVEL", raising=False)
    monkeypatch.delenv("KERNEL_SESSIONS_LOG_FORMAT", raising=False)
    called = {}

    def fake_basicConfig(**kwargs):
        called.update(kwargs)

    with patch("logging.basicConfig", fake_basicConfig):
        import kernel_sessions._logging as logging_mod

        importlib.reload(logging_mod)
        logging_mod.setup_logging()
    assert called["level"] == "INFO"
    assert called["stream"] == sys.stderr
    assert called["force"] is True
    assert "format" in called


def test_setup_logging_respects_env(monkeypatch):
    monkeypatch.setenv("PYTHONLOGLEVEL", "DEBUG")
    monkeypatch.delenv("KERNEL_SESSIONS_LOG_FORMAT", raising=False)
    called = {}

    def fake_basicConfig(**kwargs):
        called.update(kwargs)

    with patch("logging.basicConfig", fake_basicConfig):
        import kernel_sessions._logging as logging_mod

        importlib.reload(logging_mod)
        logging_mod.setup_logging()
    assert called["level"] == "DEBUG"


def test_setup_logging_json_format(monkeypatch):
    monkeypatch.setenv("KERNEL_SESSIONS_LOG_FORMAT", "JSON")
    called = {}

    def fake_basicConfig(**kwargs):
        called.update(kwargs)

    with patch("logging.basicConfig", fake_basicConfig):
        import kernel_sessions._logging as logging_mod

        importlib.reload(logging_mod)
        logging_mod.setup_logging()

    assert called["force"] is True
    assert "format" not in called
    (handler,) = called["handlers"]
    assert isinstance(handler, logging.StreamHandler)
    assert isinstance(handler.formatter, jsonlogger.JsonFormatter)


def test_setup_logging_leaves_process_hooks_alone(monkeypatch):
    monkeypatch.delenv("KERNEL_SESSIONS_LOG_FORMAT", raising=False)
    import kernel_sessions._logging as logging_mod

    orig_excepthook = sys.excepthook
    with patch("logging.basicConfig"):
        logging_mod.setup_logging()
    assert sys.excepthook is orig_excepthook
    assert not hasattr(logging_mod, "setup_global_exception_logging")


@pytest.fixture(autouse=True)
def _restore_logging_module():
    yield
    import kernel_sessions._logging as logging_mod

    importlib.reload(logging_mod)
