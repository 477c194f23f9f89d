"""Configuration management for calendarapi.

Configuration lives in a YAML file shaped like::

    server:
      host: ""
      httpPort: 8099
      refresh: 30m
      fetchTimeout: 10s
    calendars:
      - {name: work, from: url, ical: https://example.com/work.ics}
    rules:
      - {name: keep-all, calendar: "*", key: "*", contains: ["*"]}

Calendar sources and rules are kept as raw data and re-parsed every time
they are requested, so a reload takes effect on the next refresh cycle.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from calendarapi.calendar.models import CalendarSource
from calendarapi.domain.rules import Rule, parse_rules

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = timedelta(minutes=30)
DEFAULT_FETCH_TIMEOUT = timedelta(seconds=10)
DEFAULT_SERVER_HOST = ""
DEFAULT_SERVER_PORT = 8099

CONFIG_ENV_VAR = "CALENDARAPI_CONFIG"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: Union[str, int, float, timedelta, None]) -> timedelta:
    """Parse a Go-style duration (``1h30m``, ``45s``, ``500ms``) or bare seconds.

    Raises:
        ValueError: If the value cannot be interpreted as a positive duration
    """
    if isinstance(value, timedelta):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ValueError(f"invalid duration {value!r}")
    elif isinstance(value, (int, float)):
        result = timedelta(seconds=value)
    else:
        text = str(value).strip().lower()
        if re.fullmatch(r"\d+(?:\.\d+)?", text):
            result = timedelta(seconds=float(text))
        elif text and _DURATION_PART.sub("", text) == "":
            seconds = sum(
                float(amount) * _DURATION_UNITS[unit] for amount, unit in _DURATION_PART.findall(text)
            )
            result = timedelta(seconds=seconds)
        else:
            raise ValueError(f"invalid duration {value!r}")

    if result <= timedelta(0):
        raise ValueError(f"duration must be positive, got {value!r}")
    return result


def _duration_or_default(value: Any, default: timedelta, name: str) -> timedelta:
    if value is None or value == "":
        return default
    try:
        return parse_duration(value)
    except ValueError as e:
        logger.error(
            "Failed to parse %s=%r as duration: %s. Falling back to default (%s)",
            name,
            value,
            e,
            default,
        )
        return default


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file into key-value pairs.

    Skips blank lines and comments and strips surrounding quotes. Returns an
    empty dict if the file is missing or unreadable.
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}
    try:
        for raw_line in path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, val = line.split("=", 1)
            key = key.strip()
            if key:
                result[key] = val.strip().strip('"').strip("'")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", path, exc_info=True)

    return result


def load_env_file(path: Optional[Path] = None) -> list[str]:
    """Load a .env file into os.environ without overriding existing variables.

    Returns:
        Keys that were set from the file
    """
    env_path = path or Path.cwd() / ".env"
    set_keys = []
    for key, val in parse_env_file(env_path).items():
        if key not in os.environ:
            os.environ[key] = val
            set_keys.append(key)

    if set_keys:
        logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
    return set_keys


def default_config_paths() -> list[Path]:
    """Locations searched for ``config.yaml`` when no path is given."""
    home = Path.home()
    return [
        Path.cwd() / "config.yaml",
        home / "config.yaml",
        home / ".config" / "calendarapi" / "config.yaml",
        Path("/data/config.yaml"),
    ]


def find_config_file(path: Optional[str] = None) -> Optional[Path]:
    """Resolve the config file: explicit path, $CALENDARAPI_CONFIG, then default locations."""
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()

    for candidate in default_config_paths():
        if candidate.is_file():
            return candidate
    return None


def load_yaml_mapping(path: Path) -> dict[str, Any]:
    """Load a YAML file that must contain a mapping at top level.

    Raises:
        ValueError: If the file is not valid YAML or not a mapping
        OSError: If the file cannot be read
    """
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"invalid YAML in {path}: {e}") from e

    # safe_load returns None for empty files
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError("Config file must contain a mapping at top level")
    return loaded


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class Config:
    """Typed view of the server section plus the raw calendar/rule data."""

    server_host: str = DEFAULT_SERVER_HOST
    server_port: int = DEFAULT_SERVER_PORT
    refresh_interval: timedelta = DEFAULT_REFRESH_INTERVAL
    fetch_timeout: timedelta = DEFAULT_FETCH_TIMEOUT
    debug: bool = False
    log_level: str = "INFO"
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Config:
        """Create a Config from a mapping, applying environment overrides and defaults."""
        data = dict(data or {})
        server = data.get("server") or {}
        if not isinstance(server, dict):
            logger.warning("Config `server` is not a mapping; using defaults")
            server = {}

        host = os.environ.get("CALENDARAPI_SERVER_HOST", server.get("host", DEFAULT_SERVER_HOST))
        port_raw = os.environ.get("CALENDARAPI_SERVER_PORT", server.get("httpPort", DEFAULT_SERVER_PORT))
        try:
            port = int(port_raw)
        except (TypeError, ValueError):
            logger.warning("Config httpPort=%r is not an int; using default %d", port_raw, DEFAULT_SERVER_PORT)
            port = DEFAULT_SERVER_PORT

        refresh = _duration_or_default(
            os.environ.get("CALENDARAPI_REFRESH", server.get("refresh")),
            DEFAULT_REFRESH_INTERVAL,
            "server.refresh",
        )
        fetch_timeout = _duration_or_default(
            server.get("fetchTimeout"), DEFAULT_FETCH_TIMEOUT, "server.fetchTimeout"
        )

        debug = _coerce_bool(os.environ.get("CALENDARAPI_DEBUG", server.get("debug", False)))
        log_level = str(server.get("logLevel") or "INFO").upper()

        return cls(
            server_host=str(host) if host is not None else DEFAULT_SERVER_HOST,
            server_port=port,
            refresh_interval=refresh,
            fetch_timeout=fetch_timeout,
            debug=debug,
            log_level=log_level,
            raw=data,
        )


def parse_sources(raw_sources: Any) -> list[CalendarSource]:
    """Build CalendarSource objects from configuration, skipping invalid entries.

    Duplicate names keep the first entry.
    """
    if raw_sources is None:
        return []
    if not isinstance(raw_sources, list):
        logger.error("Failed to parse calendars: expected a list, got %s", type(raw_sources).__name__)
        return []

    sources: list[CalendarSource] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_sources):
        if not isinstance(raw, dict):
            logger.error("Failed to parse calendar #%d: expected a mapping, got %r", index, raw)
            continue
        try:
            source = CalendarSource.model_validate(raw)
        except ValidationError as e:
            logger.error("Failed to parse calendar #%d (%s): %s", index, raw.get("name", ""), e)
            continue
        if source.name in seen:
            logger.error("Duplicate calendar name %r; ignoring later entry", source.name)
            continue
        seen.add(source.name)
        sources.append(source)
    return sources


class ConfigProvider:
    """Holds the current configuration and re-reads it on demand."""

    def __init__(self, path: Optional[Path] = None, data: Optional[dict[str, Any]] = None):
        """Create a provider.

        Args:
            path: Config file backing this provider (None for in-memory config)
            data: Initial raw configuration; loaded from ``path`` when omitted
        """
        self.path = path
        if data is None and path is not None and path.exists():
            data = load_yaml_mapping(path)
        elif data is None and path is not None:
            logger.info("Config file %s not found; using defaults", path)
        self._config = Config.from_dict(data)
        self._mtime = self._current_mtime()

    @classmethod
    def load(cls, path: Optional[str] = None) -> ConfigProvider:
        """Load .env defaults, locate the config file and build a provider."""
        load_env_file()
        config_path = find_config_file(path)
        if config_path is None:
            logger.info("No config file found; starting with no calendars")
        else:
            logger.info("Loading configuration from %s", config_path)
        return cls(config_path)

    @property
    def config(self) -> Config:
        """The current configuration."""
        return self._config

    def _current_mtime(self) -> Optional[float]:
        if self.path is None:
            return None
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None

    def has_changed(self) -> bool:
        """Whether the backing file was modified since the last (re)load."""
        return self.path is not None and self._current_mtime() != self._mtime

    def reload(self) -> bool:
        """Re-read the backing file.

        Returns:
            True if the configuration was replaced; False if it was kept
            because the file is missing or invalid
        """
        if self.path is None:
            return False

        self._mtime = self._current_mtime()
        try:
            data = load_yaml_mapping(self.path)
        except (OSError, ValueError) as e:
            logger.error("Failed to reload config %s; keeping previous configuration: %s", self.path, e)
            return False

        self._config = Config.from_dict(data)
        logger.info("Reloaded configuration from %s", self.path)
        return True

    def update(self, data: dict[str, Any]) -> None:
        """Replace the configuration with an in-memory mapping."""
        self._config = Config.from_dict(data)

    def sources(self) -> list[CalendarSource]:
        """Parse and return the configured calendar sources."""
        return parse_sources(self._config.raw.get("calendars"))

    def rules(self) -> list[Rule]:
        """Parse and return the configured rules in order."""
        return parse_rules(self._config.raw.get("rules"))

    def refresh_interval(self) -> timedelta:
        """Interval between background refreshes."""
        return self._config.refresh_interval

    def fetch_timeout(self) -> float:
        """Per-source fetch deadline in seconds."""
        return self._config.fetch_timeout.total_seconds()
