"""Tests for logging service configuration."""

import logging
import tempfile
from pathlib import Path
from unittest.mock import patch

from leasebill.services.logging import NOISY_LOGGERS, get_log_level, setup_server_logging


class TestServerLogging:
    """Test server logging configuration."""

    def setup_method(self):
        """Save original handlers before each test."""
        self.root_logger = logging.getLogger()
        self.original_handlers = self.root_logger.handlers.copy()
        self.original_level = self.root_logger.level

    def teardown_method(self):
        """Restore original handlers after each test."""
        self.root_logger = logging.getLogger()
        for handler in self.root_logger.handlers[:]:
            handler.close()
            self.root_logger.removeHandler(handler)
        for handler in self.original_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.original_level)
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.NOTSET)

    def test_setup_server_logging_creates_log_directory(self) -> None:
        """Verify setup_server_logging creates the log directory if missing."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "test_logs" / "server.log"
            assert not log_file.parent.exists()

            setup_server_logging(str(log_file))

            assert log_file.parent.exists()

    def test_setup_server_logging_creates_handlers(self) -> None:
        """Verify stdout and file handlers are installed."""
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_server_logging(str(Path(temp_dir) / "server.log"))

            assert len(self.root_logger.handlers) == 2

    def test_setup_server_logging_writes_billing_messages(self) -> None:
        """Verify messages of billing loggers reach the log file."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "server.log"

            with patch.dict("os.environ", {"LOG_LEVEL": "INFO"}, clear=False):
                setup_server_logging(str(log_file))

            logging.getLogger("leasebill.services.billing_service").warning(
                "Unit %s: caller total %s differs from derived total %s", 1, "10500.00", "10200.00"
            )

            log_contents = log_file.read_text()
            assert "leasebill.services.billing_service" in log_contents
            assert "WARNING" in log_contents
            assert "caller total 10500.00 differs" in log_contents
            assert "[20" in log_contents  # ISO timestamp

    def test_setup_server_logging_removes_existing_handlers(self) -> None:
        """Verify repeated setup does not duplicate handlers."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "server.log"
            dummy_handler = logging.StreamHandler()
            self.root_logger.addHandler(dummy_handler)

            setup_server_logging(str(log_file))
            setup_server_logging(str(log_file))

            assert len(self.root_logger.handlers) == 2
            assert dummy_handler not in self.root_logger.handlers

    def test_sql_echo_follows_debug_level(self) -> None:
        """SQL statements are only logged at DEBUG."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = str(Path(temp_dir) / "server.log")

            with patch.dict("os.environ", {"LOG_LEVEL": "INFO"}, clear=False):
                setup_server_logging(log_file)
                assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

            with patch.dict("os.environ", {"LOG_LEVEL": "DEBUG"}, clear=False):
                setup_server_logging(log_file)
                assert logging.getLogger("sqlalchemy.engine").level == logging.INFO


class TestGetLogLevel:
    """Test LOG_LEVEL parsing."""

    def test_known_level(self) -> None:
        with patch.dict("os.environ", {"LOG_LEVEL": "warning"}, clear=False):
            assert get_log_level() == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        with patch.dict("os.environ", {"LOG_LEVEL": "LOUD"}, clear=False):
            assert get_log_level() == logging.INFO
