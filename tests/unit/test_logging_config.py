"""Unit tests for calendarapi.core.logging_config."""

import logging

import pytest
from colorlog import ColoredFormatter

from calendarapi.core.logging_config import RequestIdFilter, configure_logging

pytestmark = pytest.mark.unit


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("calendarapi").setLevel(logging.NOTSET)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_installs_single_colored_handler(self, restore_root_logger):
        configure_logging("INFO")
        configure_logging("INFO")

        colored = [h for h in restore_root_logger.handlers if isinstance(h.formatter, ColoredFormatter)]
        assert len(colored) == 1

    def test_debug_flag_forces_debug(self, restore_root_logger):
        configure_logging("WARNING", debug=True)

        assert restore_root_logger.level == logging.DEBUG

    def test_env_level_overrides(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("CALENDARAPI_LOG_LEVEL", "ERROR")

        configure_logging("INFO")

        assert restore_root_logger.level == logging.ERROR

    def test_quiets_third_party_loggers(self, restore_root_logger):
        configure_logging("DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("aiohttp.access").level == logging.WARNING


class TestRequestIdFilter:
    """Tests for request id tagging."""

    def test_filter_adds_request_id(self):
        record = logging.LogRecord("calendarapi", logging.INFO, __file__, 1, "msg", None, None)

        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "no-request-id"
