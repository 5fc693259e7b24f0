import json
import logging
from logging.handlers import RotatingFileHandler

import pytest
import structlog

from repokit.core.logging.logger import _enforce_key_order_processor, get_logger, setup_logger


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestLogger:
    """Unit tests for logger setup and retrieval in repokit.core.logging.logger."""

    def test_setup_logger_creates_log_file_and_handlers(self, tmp_path):
        logger = setup_logger(
            name="test_logger",
            log_dir=tmp_path,
            logger_level=logging.INFO,
            stream_level=logging.WARNING,
            file_level=logging.INFO,
            file_mode="w",
            max_bytes=1024,
            backup_count=1,
        )
        assert logger.name == "test_logger"
        assert logger.propagate is False
        assert any(type(h) is logging.StreamHandler for h in logger.handlers)
        assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)

        log_file = tmp_path / "modules" / "test_logger.log"
        assert log_file.exists()
        logger.info("Test log message")
        assert "Test log message" in log_file.read_text()

    def test_root_logger_file_is_not_nested(self, tmp_path):
        setup_logger(name="repokit", log_dir=tmp_path)
        assert (tmp_path / "repokit.log").exists()

    def test_setup_logger_is_idempotent(self, tmp_path):
        setup_logger(name="test_idempotent", log_dir=tmp_path)
        logger = setup_logger(name="test_idempotent", log_dir=tmp_path)
        assert len(logger.handlers) == 2

    def test_handlers_can_be_disabled(self, tmp_path):
        logger = setup_logger(
            name="test_no_handlers", log_dir=tmp_path, add_stream_handler=False, add_file_handler=False
        )
        assert logger.handlers == []
        assert not (tmp_path / "modules").exists()

    def test_default_log_dir_comes_from_settings(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REPOKIT_DIR_PATHS__LOGGER_DIR", str(tmp_path))
        setup_logger(name="test_default_dir")
        assert (tmp_path / "modules" / "test_default_dir.log").exists()

    def test_get_logger_returns_configured_logger(self, tmp_path):
        logger = get_logger(name="unit.test_get_logger", log_dir=tmp_path, file_mode="w")
        assert logger.name == "repokit.unit.test_get_logger"
        assert logger.propagate is True

        log_file = tmp_path / "modules" / "repokit.unit.test_get_logger.log"
        assert log_file.exists()
        logger.debug("Debug message")
        assert "Debug message" in log_file.read_text()

    def test_get_logger_keeps_repokit_prefix(self, tmp_path):
        assert get_logger("repokit.database", log_dir=tmp_path).name == "repokit.database"

    def test_get_logger_default_name(self, tmp_path):
        assert get_logger(None, log_dir=tmp_path).name == "repokit"

    def test_messages_reach_caplog(self, tmp_path, caplog):
        logger = get_logger("unit.test_caplog", log_dir=tmp_path)
        logger.warning("3 users document(s) failed validation during find")
        assert "failed validation during find" in caplog.text


class TestStructLogger:
    """Unit tests for struct logging in repokit.core.logging.logger."""

    def test_json_rendering(self, tmp_path, reset_structlog):
        logger = setup_logger(
            name="test_json_logger",
            log_dir=tmp_path,
            use_structlog=True,
            structlog_json=True,
            structlog_bind={"collection": "users"},
        )
        assert hasattr(logger, "bind")
        logger.info("Structured message", filter={"status": "sent"})

        line = (tmp_path / "modules" / "test_json_logger.log").read_text().strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "Structured message"
        assert record["collection"] == "users"
        assert record["filter"] == {"status": "sent"}
        assert record["level"] == "info"
        assert list(record)[:3] == ["timestamp", "event", "collection"]

    def test_callable_bind(self, tmp_path, reset_structlog):
        logger = setup_logger(
            name="test_callable_bind",
            log_dir=tmp_path,
            use_structlog=True,
            structlog_bind=lambda name: {"context": name},
        )
        logger.warning("bound")
        content = (tmp_path / "modules" / "test_callable_bind.log").read_text()
        assert '"context": "test_callable_bind"' in content

    def test_struct_log_dir_comes_from_settings(self, tmp_path, monkeypatch, reset_structlog):
        monkeypatch.setenv("REPOKIT_DIR_PATHS__STRUCT_LOGGER_DIR", str(tmp_path))
        setup_logger(name="test_struct_dir", use_structlog=True)
        assert (tmp_path / "modules" / "test_struct_dir.log").exists()

    def test_use_structlog_from_settings(self, tmp_path, monkeypatch, reset_structlog):
        monkeypatch.setenv("REPOKIT_LOGGER__USE_STRUCTLOG", "true")
        logger = get_logger("unit.test_struct_setting", log_dir=tmp_path)
        assert not isinstance(logger, logging.Logger)
        assert hasattr(logger, "bind")


def test_enforce_key_order_processor():
    processor = _enforce_key_order_processor(["timestamp", "event", "level"])
    ordered = processor(None, "info", {"zeta": 1, "level": "info", "alpha": 2, "event": "hello", "timestamp": "now"})
    assert list(ordered) == ["timestamp", "event", "level", "alpha", "zeta"]
