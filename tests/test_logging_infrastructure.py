"""
Tests for logging infrastructure.

Uses real file I/O and logging, not mocks.
"""

import json
import logging
import logging.handlers
import pytest
import sys

from consultlink.infrastructure.logging import ConsultLinkLogger, get_logger
from consultlink.infrastructure.logging.logger import JSONFormatter


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    ConsultLinkLogger.configure(console=False)


class TestConsultLinkLogger:
    """Test suite for ConsultLinkLogger."""

    def test_singleton_pattern(self):
        """Test that get_instance returns one shared logger."""
        ConsultLinkLogger._instance = None

        assert ConsultLinkLogger.get_instance() is ConsultLinkLogger.get_instance()

    def test_configure_replaces_instance(self, tmp_path):
        """Test that configure installs a new singleton."""
        before = ConsultLinkLogger.get_instance()

        after = ConsultLinkLogger.configure(log_file=tmp_path / "x.log", console=False)

        assert after is not before
        assert ConsultLinkLogger.get_instance() is after

    def test_old_instances_share_new_handlers(self, tmp_path):
        """Test that a previously fetched instance logs through new handlers."""
        stale = ConsultLinkLogger.get_instance()
        log_file = tmp_path / "shared.log"

        ConsultLinkLogger.configure(log_file=log_file, console=False, rotation="none")
        stale.info("Still reaches the file")

        assert "Still reaches the file" in log_file.read_text()

    def test_console_output(self, capsys):
        """Test that console output goes to stderr in human format."""
        logger = ConsultLinkLogger.configure(level="INFO", console=True)

        logger.info("Database opened")

        captured = capsys.readouterr()
        assert "INFO - Database opened" in captured.err
        assert captured.out == ""

    def test_json_format_in_file(self, tmp_path):
        """Test that file logs are one JSON object per line."""
        log_file = tmp_path / "nested" / "consultlink.log"
        logger = ConsultLinkLogger.configure(log_file=log_file, console=False, rotation="none")

        logger.warning("Storage operation failed", extra={"storage_operation": "list_page"})

        record = json.loads(log_file.read_text().splitlines()[0])
        assert record["level"] == "WARNING"
        assert record["message"] == "Storage operation failed"
        assert record["logger"] == "consultlink"
        assert record["storage_operation"] == "list_page"
        assert "timestamp" in record

    def test_level_filters_console(self, capsys):
        """Test that messages below the level are dropped."""
        logger = ConsultLinkLogger.configure(level="WARNING", console=True)

        logger.info("hidden")
        logger.error("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_daily_rotation_handler(self, tmp_path):
        """Test that daily rotation uses a timed rotating handler."""
        logger = ConsultLinkLogger.configure(
            log_file=tmp_path / "rotating.log",
            console=False,
            rotation="daily",
            retention_days=7,
        )

        handlers = logger.logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.handlers.TimedRotatingFileHandler)
        assert handlers[0].backupCount == 7

    def test_reconfigure_does_not_duplicate_handlers(self, tmp_path):
        """Test that configuring twice leaves one set of handlers."""
        ConsultLinkLogger.configure(log_file=tmp_path / "a.log", console=True)
        logger = ConsultLinkLogger.configure(log_file=tmp_path / "a.log", console=True)

        assert len(logger.logger.handlers) == 2


class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def make_record(self, **extra):
        record = logging.LogRecord(
            name="consultlink",
            level=logging.ERROR,
            pathname=__file__,
            lineno=10,
            msg="Failed %s",
            args=("write",),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_message_args_rendered(self):
        """Test that %-style args are interpolated."""
        data = json.loads(JSONFormatter().format(self.make_record()))

        assert data["message"] == "Failed write"
        assert data["level"] == "ERROR"

    def test_extra_fields_and_non_serializable_values(self):
        """Test that extras are included and odd values stringified."""
        data = json.loads(JSONFormatter().format(self.make_record(connection_id=3, when=object())))

        assert data["connection_id"] == 3
        assert isinstance(data["when"], str)

    def test_exception_info(self):
        """Test that exception details are serialized."""
        try:
            raise ValueError("bad value")
        except ValueError:
            record = self.make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad value"
        assert "Traceback" in data["exception"]["traceback"]


class TestGetLogger:
    """Test suite for get_logger."""

    def test_children_of_consultlink(self):
        """Test that module loggers hang off the consultlink logger."""
        assert get_logger("persistence").name == "consultlink.persistence"
        assert get_logger("consultlink.cli").name == "consultlink.cli"
