"""Timezone resolution and "today" window helpers for calendarapi."""

from __future__ import annotations

import datetime
import logging
import os
import zoneinfo
from typing import Optional

logger = logging.getLogger(__name__)

# Windows timezone names to IANA identifier mapping.
# Outlook/Exchange feeds frequently emit these as TZID values.
WINDOWS_TZ_MAP: dict[str, str] = {
    "Pacific Standard Time": "America/Los_Angeles",
    "Mountain Standard Time": "America/Denver",
    "Central Standard Time": "America/Chicago",
    "Eastern Standard Time": "America/New_York",
    "Alaskan Standard Time": "America/Anchorage",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "US Mountain Standard Time": "America/Phoenix",
    "Atlantic Standard Time": "America/Halifax",
    "GMT Standard Time": "Europe/Dublin",
    "Greenwich Standard Time": "Etc/GMT",
    "W. Europe Standard Time": "Europe/Berlin",
    "Central Europe Standard Time": "Europe/Berlin",
    "Central European Standard Time": "Europe/Warsaw",
    "Romance Standard Time": "Europe/Brussels",
    "E. Europe Standard Time": "Europe/Bucharest",
    "FLE Standard Time": "Europe/Helsinki",
    "GTB Standard Time": "Europe/Athens",
    "Russian Standard Time": "Europe/Moscow",
    "Israel Standard Time": "Asia/Jerusalem",
    "India Standard Time": "Asia/Kolkata",
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "Singapore Standard Time": "Asia/Singapore",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "E. Australia Standard Time": "Australia/Brisbane",
    "New Zealand Standard Time": "Pacific/Auckland",
    "Customized Time Zone": "UTC",
    "UTC": "UTC",
}

# Environment variable used to pin the process timezone (IANA name)
TIMEZONE_ENV_VAR = "CALENDARAPI_TIMEZONE"

# Environment variable used by tests and debugging to freeze "now" (ISO-8601)
TEST_TIME_ENV_VAR = "CALENDARAPI_TEST_TIME"


def get_local_timezone() -> datetime.tzinfo:
    """Return the timezone events are presented in.

    Honors CALENDARAPI_TIMEZONE when it names a valid IANA zone, otherwise
    uses the process-local timezone.
    """
    configured = os.environ.get(TIMEZONE_ENV_VAR)
    if configured:
        try:
            return zoneinfo.ZoneInfo(configured)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError):
            logger.warning("Invalid %s=%r; using process timezone", TIMEZONE_ENV_VAR, configured)

    local_tz = datetime.datetime.now().astimezone().tzinfo
    return local_tz if local_tz is not None else datetime.timezone.utc


def resolve_tzid(tzid: Optional[str]) -> Optional[datetime.tzinfo]:
    """Resolve an ICS TZID (IANA or Windows name) to a tzinfo.

    Returns None when the identifier cannot be resolved.
    """
    if not tzid:
        return None

    name = WINDOWS_TZ_MAP.get(tzid.strip(), tzid.strip())
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.debug("Unknown TZID %r", tzid)
        return None


def now_local(tz: Optional[datetime.tzinfo] = None) -> datetime.datetime:
    """Return the current time as an aware datetime in the local timezone.

    CALENDARAPI_TEST_TIME (ISO-8601) overrides the wall clock.
    """
    tz = tz or get_local_timezone()
    override = os.environ.get(TEST_TIME_ENV_VAR)
    if override:
        try:
            frozen = datetime.datetime.fromisoformat(override.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Invalid %s=%r; using wall clock", TEST_TIME_ENV_VAR, override)
        else:
            if frozen.tzinfo is None:
                frozen = frozen.replace(tzinfo=tz)
            return frozen.astimezone(tz)

    return datetime.datetime.now(tz)


def day_window(
    now: datetime.datetime, tz: Optional[datetime.tzinfo] = None
) -> tuple[datetime.datetime, datetime.datetime]:
    """Return ``[midnight, 23:59:59]`` of the local calendar day containing ``now``."""
    tz = tz or now.tzinfo or get_local_timezone()
    local_now = now.astimezone(tz)
    start = datetime.datetime.combine(local_now.date(), datetime.time.min, tzinfo=tz)
    end = datetime.datetime.combine(local_now.date(), datetime.time(23, 59, 59), tzinfo=tz)
    return start, end
