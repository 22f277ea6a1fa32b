"""Tests for logging configuration."""

import logging

import pytest
import structlog
from commerce.utils.logging import add_context, clear_context, get_log_level, setup_stdlib_logging


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestLogLevel:
    @pytest.mark.parametrize(
        "env, expected",
        [("production", "INFO"), ("development", "DEBUG"), ("test", "WARNING"), ("unknown", "INFO")],
    )
    def test_level_follows_environment(self, monkeypatch, env, expected):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("ENV", raising=False)
        monkeypatch.setenv("ENVIRONMENT", env)
        assert get_log_level() == expected

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LOG_LEVEL", "error")
        assert get_log_level() == "ERROR"


class TestStdlibLogging:
    def test_console_only_by_default(self, monkeypatch, restore_root_logger):
        monkeypatch.delenv("LOG_DIR", raising=False)
        setup_stdlib_logging()
        assert len(logging.getLogger().handlers) == 1
        assert logging.getLogger("protean").level == logging.WARNING

    def test_rotating_files_with_log_dir(self, tmp_path, restore_root_logger):
        setup_stdlib_logging(str(tmp_path))
        assert len(logging.getLogger().handlers) == 3
        assert (tmp_path / "commerce.log").exists()
        assert (tmp_path / "commerce_error.log").exists()


class TestContext:
    def test_bind_and_clear(self):
        add_context(request_id="req-1")
        assert structlog.contextvars.get_contextvars()["request_id"] == "req-1"
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
