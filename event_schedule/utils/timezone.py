"""Timezone-safe conversions for stored event datetimes.

All event datetimes in the database are naive 'Y-m-d H:i:s' strings
interpreted in the configured site timezone (SITE_TIMEZONE). This module
converts at the import/export boundaries. Malformed input never raises:
the functions return an empty string, None or the input's own fallback,
and callers check for that before using the value.
"""

from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from ..config.settings import get_site_timezone_name

LOCAL_FORMAT = '%Y-%m-%d %H:%M:%S'
DATE_FORMAT = '%Y-%m-%d'
ICAL_UTC_FORMAT = '%Y%m%dT%H%M%SZ'


def get_site_timezone() -> ZoneInfo:
    """Get the site timezone. Read on every call so configuration changes apply to the next request."""
    return ZoneInfo(get_site_timezone_name())


def now_local() -> datetime:
    """Current time as a timezone-aware datetime in the site timezone."""
    return datetime.now(get_site_timezone())


def now_local_string() -> str:
    """Current time as a naive site-local 'Y-m-d H:i:s' string."""
    return now_local().strftime(LOCAL_FORMAT)


def parse_local(value: str) -> Optional[datetime]:
    """
    Parse a naive site-local string into a naive datetime.

    Accepts 'Y-m-d H:i:s', 'Y-m-d H:i', 'Y-m-dTH:i[:s]' and a bare 'Y-m-d'.

    Returns:
        Optional[datetime]: Naive datetime, or None if the value cannot be parsed
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        return None
    return parsed


def format_local(value: Union[datetime, date]) -> str:
    """Format a naive datetime (or date, as midnight) as 'Y-m-d H:i:s'."""
    if not isinstance(value, datetime):
        return f"{value.strftime(DATE_FORMAT)} 00:00:00"
    return value.strftime(LOCAL_FORMAT)


def local_to_timestamp(value: str) -> Optional[int]:
    """
    Convert a site-local naive datetime to a Unix timestamp.

    Args:
        value: Naive 'Y-m-d H:i:s' in site-local time.

    Returns:
        Optional[int]: Unix timestamp, or None on failure.
    """
    parsed = parse_local(value)
    if parsed is None:
        return None
    return int(parsed.replace(tzinfo=get_site_timezone()).timestamp())


def local_to_iso8601(value: str) -> str:
    """
    Convert a site-local naive datetime to an ISO 8601 UTC string.

    Args:
        value: Naive 'Y-m-d H:i:s' in site-local time.

    Returns:
        str: ISO 8601 UTC string (e.g. '2025-06-15T17:30:00+00:00'), or empty string on failure.
    """
    timestamp = local_to_timestamp(value)
    if timestamp is None:
        return ''
    return datetime.fromtimestamp(timestamp, dt_timezone.utc).isoformat()


def local_to_ical_utc(value: str) -> str:
    """
    Convert a site-local naive datetime to an iCal UTC string.

    Returns:
        str: iCal UTC string (e.g. '20250615T173000Z'), or empty string on failure.
    """
    timestamp = local_to_timestamp(value)
    if timestamp is None:
        return ''
    return datetime.fromtimestamp(timestamp, dt_timezone.utc).strftime(ICAL_UTC_FORMAT)


def iso8601_to_local(value: str) -> Optional[str]:
    """
    Convert an ISO 8601 string (any offset) to site-local 'Y-m-d H:i:s'.

    A value without an offset is read as UTC. A bare date ('2025-06-15')
    is a floating calendar date and maps to local midnight unchanged.

    Args:
        value: ISO 8601 datetime string (e.g. '2025-06-15T13:00:00-04:00').

    Returns:
        Optional[str]: Site-local 'Y-m-d H:i:s', or None on failure.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if len(text) == 10:
        try:
            return format_local(date.fromisoformat(text))
        except ValueError:
            return None
    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed.astimezone(get_site_timezone()).strftime(LOCAL_FORMAT)


def datetime_to_local(value: Union[datetime, date]) -> str:
    """
    Convert a datetime to site-local 'Y-m-d H:i:s'.

    Aware datetimes are converted to the site timezone; naive (floating)
    datetimes and plain dates are taken as already local.
    """
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(get_site_timezone()).replace(tzinfo=None)
    return format_local(value)


def local_date(value: str) -> str:
    """
    Extract the date part from a site-local naive datetime.

    Stored datetimes are site-local, so this is a substring and needs no tz math.
    """
    return value[:10]


def local_time(value: str) -> str:
    """Extract 'H:i' from a site-local naive datetime."""
    return value[11:16]


def local_time_full(value: str) -> str:
    """Extract 'H:i:s' from a site-local naive datetime."""
    return value[11:19]


def next_date(value: str) -> str:
    """Advance a 'Y-m-d' date by one calendar day. Empty string for malformed input."""
    try:
        return (date.fromisoformat(value) + timedelta(days=1)).isoformat()
    except (TypeError, ValueError):
        return ''
