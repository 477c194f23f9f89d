"""
Central logging configuration for calendarapi.

Installs a colorized console handler on the root logger, tags every record
with the current request id and quiets chatty third-party libraries.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

LOG_FORMAT = (
    "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s [%(request_id)s] %(name)s: %(message)s"
)

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


class RequestIdFilter(logging.Filter):
    """Add the current request id to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Imported lazily so logging can be configured before aiohttp is loaded
        from calendarapi.api.middleware import get_request_id

        record.request_id = get_request_id()
        return True


def configure_logging(level_name: Optional[str] = None, debug: bool = False) -> None:
    """
    Configure process-wide logging.

    Args:
        level_name: Root log level name (DEBUG, INFO, WARNING, ERROR)
        debug: Force DEBUG level for calendarapi modules

    Environment Variables:
        CALENDARAPI_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDARAPI_LOG_LEVEL: Override root log level
    """
    env_debug = os.getenv("CALENDARAPI_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")
    env_level = os.getenv("CALENDARAPI_LOG_LEVEL", "").strip().upper()

    final_debug = debug or env_debug
    level = logging.DEBUG if final_debug else logging.INFO
    if level_name and not final_debug:
        level = getattr(logging, level_name.upper(), logging.INFO)
    if env_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        level = getattr(logging, env_level)

    root = logging.getLogger()
    root.setLevel(level)

    # Only install our handler once; repeated calls just adjust levels.
    if not any(isinstance(h.formatter, ColoredFormatter) for h in root.handlers):
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS))
        handler.addFilter(RequestIdFilter())
        root.addHandler(handler)

    quiet_loggers: dict[str, int] = {
        "aiohttp.access": logging.WARNING,
        "aiohttp.server": logging.WARNING,
        "aiohttp.web": logging.INFO,
        "httpx": logging.WARNING,
        "httpcore": logging.WARNING,
        "asyncio": logging.WARNING,
        "icalendar": logging.INFO,
    }
    for logger_name, logger_level in quiet_loggers.items():
        logging.getLogger(logger_name).setLevel(logger_level)

    logging.getLogger("calendarapi").setLevel(logging.DEBUG if final_debug else level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )
