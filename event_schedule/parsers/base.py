"""Base interface that all feed parsers must implement."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from ..config.data_sources import get_source_type_display_name
from ..config.settings import get_feed_timeout
from ..models.occurrence import FeedOccurrence
from ..query.date_range import overlaps

logger = logging.getLogger(__name__)

def is_valid_url(url: Any) -> bool:
    """Only absolute http(s) URLs with a host are fetched."""
    if not isinstance(url, str) or not url.strip():
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)

def filter_for_range(
    occurrences: List[FeedOccurrence],
    range_start: Optional[str],
    range_end: Optional[str]
) -> List[FeedOccurrence]:
    """
    Keep occurrences overlapping the inclusive window [range_start, range_end].

    Missing bounds leave that side of the window open.
    """
    if range_start is None and range_end is None:
        return list(occurrences)
    lower = range_start or '0000-01-01 00:00:00'
    upper = range_end or '9999-12-31 23:59:59'
    return [o for o in occurrences if overlaps(o.start_local, o.end_local, lower, upper)]

class BaseFeedParser(ABC):
    """
    Base interface for all remote feed parsers.

    Each parser is responsible for:
    1. Fetching one remote feed over HTTP with a short timeout
    2. Converting the feed's event format into feed occurrences
    3. Never raising to the caller: bad URLs, transport errors and
       unparsable bodies are logged and produce an empty list

    Required Methods:
        parse(): Converts a successful response into occurrences
    """

    ACCEPT = '*/*'

    def __init__(self, source_type: str):
        """
        Initialize the parser with its data source type.

        Args:
            source_type: The data source type (e.g., 'ical_url')
        """
        self.source_type = source_type

    def name(self) -> str:
        """
        Return the display name of this parser's source type.

        Raises:
            ValueError: If the source type is not registered
        """
        return get_source_type_display_name(self.source_type)

    def request_params(self, range_start: Optional[str], range_end: Optional[str]) -> Dict[str, Any]:
        """Query parameters sent with the request. None by default."""
        return {}

    def fetch(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[requests.Response]:
        """
        Fetch a feed.

        Returns:
            Optional[requests.Response]: The response, or None if the URL is invalid,
            the request failed or the status was not 200
        """
        if not is_valid_url(url):
            logger.warning(f"{self.name()}: refusing to fetch invalid URL {url!r}")
            return None
        try:
            response = requests.get(
                url.strip(),
                params=params or None,
                headers={'Accept': self.ACCEPT},
                timeout=get_feed_timeout(),
            )
        except requests.RequestException as e:
            logger.error(f"{self.name()}: failed to fetch {url}: {e}")
            return None
        if response.status_code != 200:
            logger.error(f"{self.name()}: {url} returned HTTP {response.status_code}")
            return None
        return response

    @abstractmethod
    def parse(
        self,
        response: requests.Response,
        color: Optional[str] = None,
        source_name: Optional[str] = None
    ) -> List[FeedOccurrence]:
        """
        Convert a successful response into occurrences.

        Implementations log and skip individual bad entries, and return an
        empty list when the body as a whole cannot be parsed.
        """
        pass

    def load(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        color: Optional[str] = None,
        source_name: Optional[str] = None
    ) -> Optional[List[FeedOccurrence]]:
        """
        Fetch and parse one feed without range filtering.

        Returns:
            Optional[List[FeedOccurrence]]: Occurrences in feed order, or None if the fetch failed
        """
        response = self.fetch(url, params)
        if response is None:
            return None
        return self.parse(response, color=color, source_name=source_name)

    def get_events(
        self,
        url: str,
        range_start: Optional[str] = None,
        range_end: Optional[str] = None,
        color: Optional[str] = None,
        source_name: Optional[str] = None
    ) -> List[FeedOccurrence]:
        """
        Fetch, parse and range-filter one feed.

        Args:
            url: Feed URL
            range_start: Inclusive naive local window start (optional)
            range_end: Inclusive naive local window end (optional)
            color: Display color attached to every occurrence
            source_name: Name of the feed source the data source belongs to

        Returns:
            List[FeedOccurrence]: Occurrences overlapping the window, in feed order
        """
        occurrences = self.load(url, self.request_params(range_start, range_end), color, source_name)
        if occurrences is None:
            return []
        filtered = filter_for_range(occurrences, range_start, range_end)
        logger.info(f"{self.name()}: {len(filtered)} of {len(occurrences)} events from {url} in range")
        return filtered
