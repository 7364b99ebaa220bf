"""Runtime settings read from the environment.

Every getter reads ``os.environ`` when it is called, so a value changed
between two requests is picked up by the next one. Nothing here is cached.
"""

import logging
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Internal imports - environment must be first
from .environment import IS_PRODUCTION_ENVIRONMENT  # noqa: F401

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'UTC'
DEFAULT_FEED_TIMEOUT = 5
MAX_FEED_TIMEOUT = 5
DEFAULT_FEED_WORKERS = 4
FEDERATED_PER_PAGE = 500


def _get_int(name: str, default: int) -> int:
    raw = os.environ.get(name, '').strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: {raw!r}")
        return default


def get_site_timezone_name() -> str:
    """
    Get the configured site timezone identifier.

    Returns:
        str: An IANA timezone name (e.g. 'Europe/Oslo'). Unknown names fall back to UTC.
    """
    name = os.environ.get('SITE_TIMEZONE', '').strip() or DEFAULT_TIMEZONE
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown SITE_TIMEZONE '{name}', falling back to {DEFAULT_TIMEZONE}")
        return DEFAULT_TIMEZONE
    return name


def get_feed_timeout() -> int:
    """Per-fetch timeout in seconds for remote feeds (never more than 5)."""
    timeout = _get_int('FEED_TIMEOUT', DEFAULT_FEED_TIMEOUT)
    return max(1, min(timeout, MAX_FEED_TIMEOUT))


def get_feed_cache_seconds() -> int:
    """How long parsed feed results may be reused. 0 disables the cache."""
    return max(0, _get_int('FEED_CACHE_SECONDS', 0))


def get_feed_workers() -> int:
    """Upper bound on concurrent feed fetches per request."""
    return max(1, _get_int('FEED_WORKERS', DEFAULT_FEED_WORKERS))


def get_site_url() -> str:
    return os.environ.get('SITE_URL', 'http://localhost:8000').rstrip('/')


def get_site_name() -> str:
    return os.environ.get('SITE_NAME', 'Event Schedule')
