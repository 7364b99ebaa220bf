"""
Coordinates fetching of remote feeds for a schedule request.

Feed sources are read from the repository, each enabled data source is
resolved to a parser class through the registry in config/data_sources.py,
and all feeds of a request are fetched concurrently. Results are joined in
configured order before they are merged with local events, and a feed that
fails contributes nothing without affecting the others.
"""

import importlib
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple, Type

from ..config.data_sources import (
    ParserRegistration,
    get_registration,
    CATEGORIES_SOURCE_TYPE,
    DEFAULT_FEED_COLOR,
)
from ..config.settings import get_feed_cache_seconds, get_feed_workers
from ..models.feed_source import FeedSourceConfig
from ..models.occurrence import FeedOccurrence
from ..parsers.base import BaseFeedParser, filter_for_range
from ..store.feed_sources import FeedSourceRepository

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class FeedTask:
    """One remote data source to fetch."""
    source_slug: str
    source_name: str
    source_type: str
    url: str
    color: str

class FeedCache:
    """
    Time-bounded cache of parsed, unfiltered feed results.

    Entries are shared between requests, so callers must apply their own
    date-range filter to whatever they read back.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, List[FeedOccurrence]]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[List[FeedOccurrence]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, occurrences = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return list(occurrences)

    def set(self, key: Hashable, occurrences: List[FeedOccurrence]) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), list(occurrences))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

_shared_cache: Optional[FeedCache] = None
_shared_cache_lock = threading.Lock()

def get_shared_cache() -> Optional[FeedCache]:
    """Process-wide feed cache, or None when FEED_CACHE_SECONDS is 0."""
    global _shared_cache
    ttl = get_feed_cache_seconds()
    if ttl <= 0:
        return None
    with _shared_cache_lock:
        if _shared_cache is None or _shared_cache.ttl_seconds != ttl:
            _shared_cache = FeedCache(ttl)
        return _shared_cache

class FeedManager:
    """
    Central manager for remote feeds.

    This class is responsible for:
    1. Resolving which feed sources and data sources a request uses
    2. Loading parser classes from their registration
    3. Fetching all feeds concurrently with per-feed failure isolation
    """

    def __init__(
        self,
        repository: Optional[FeedSourceRepository] = None,
        cache: Optional[FeedCache] = None,
        max_workers: Optional[int] = None
    ):
        self.repository = repository or FeedSourceRepository()
        self.max_workers = max_workers
        self.cache = cache if cache is not None else get_shared_cache()

    @staticmethod
    def get_parser_class(registration: ParserRegistration) -> Type[BaseFeedParser]:
        """
        Dynamically import and return a parser class from its registration.

        Args:
            registration: Registration info, e.g. 'event_schedule.parsers.ical.ICalParser'

        Raises:
            ImportError: If the module cannot be imported
            AttributeError: If the class doesn't exist in the module
            TypeError: If the class does not implement BaseFeedParser
        """
        try:
            module_path, class_name = registration.parser_class.rsplit('.', 1)
            module = importlib.import_module(module_path)
            parser_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            logger.error(f"Failed to load parser class {registration.parser_class}: {e}")
            raise

        # Verify the class implements the BaseFeedParser interface
        if not issubclass(parser_class, BaseFeedParser):
            raise TypeError(f"Parser class {class_name} must implement BaseFeedParser interface")
        return parser_class

    def get_sources(self, slugs: Iterable[str] = ()) -> List[FeedSourceConfig]:
        """
        Enabled feed sources for a request.

        Args:
            slugs: Only these sources, in this order. Empty means every enabled source.
        """
        sources = self.repository.get_all(enabled_only=True)
        slugs = list(slugs)
        if not slugs:
            return sources
        by_slug = {source.slug: source for source in sources}
        return [by_slug[slug] for slug in slugs if slug in by_slug]

    @staticmethod
    def category_ids_for(sources: Iterable[FeedSourceConfig]) -> List[int]:
        """Category ids selected by the enabled 'categories' data sources, without duplicates."""
        category_ids = []
        for source in sources:
            for data_source in source.data_sources:
                if not data_source.enabled or data_source.source_type != CATEGORIES_SOURCE_TYPE:
                    continue
                for category_id in data_source.config.get('category_ids') or []:
                    try:
                        category_id = int(category_id)
                    except (TypeError, ValueError):
                        logger.warning(f"Ignoring invalid category id {category_id!r} in source {source.slug}")
                        continue
                    if category_id not in category_ids:
                        category_ids.append(category_id)
        return category_ids

    @staticmethod
    def collect_tasks(sources: Iterable[FeedSourceConfig]) -> List[FeedTask]:
        """Remote data sources to fetch, in configured order. Disabled ones are left out."""
        tasks = []
        for source in sources:
            if not source.enabled:
                continue
            for data_source in source.data_sources:
                if not data_source.enabled or data_source.source_type == CATEGORIES_SOURCE_TYPE:
                    continue
                if get_registration(data_source.source_type) is None:
                    logger.warning(f"Skipping unknown or disabled data source type {data_source.source_type} in {source.slug}")
                    continue
                url = str(data_source.config.get('url') or '').strip()
                if not url:
                    continue
                tasks.append(FeedTask(
                    source_slug=source.slug,
                    source_name=source.name,
                    source_type=data_source.source_type,
                    url=url,
                    color=data_source.config.get('color') or DEFAULT_FEED_COLOR,
                ))
        return tasks

    def fetch(
        self,
        tasks: List[FeedTask],
        range_start: Optional[str] = None,
        range_end: Optional[str] = None
    ) -> List[FeedOccurrence]:
        """
        Fetch every task concurrently and join the results in task order.

        Args:
            tasks: Data sources to fetch
            range_start: Inclusive naive local window start (optional)
            range_end: Inclusive naive local window end (optional)

        Returns:
            List[FeedOccurrence]: Occurrences overlapping the window
        """
        if not tasks:
            return []

        workers = min(len(tasks), self.max_workers or get_feed_workers())
        logger.info(f"Fetching {len(tasks)} feeds with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._fetch_one, task, range_start, range_end)
                for task in tasks
            ]

            occurrences = []
            for task, future in zip(tasks, futures):
                try:
                    occurrences.extend(future.result())
                except Exception as e:
                    logger.error(f"Error fetching {task.source_type} feed {task.url} for {task.source_slug}: {e}")
        return occurrences

    def _fetch_one(self, task: FeedTask, range_start: Optional[str], range_end: Optional[str]) -> List[FeedOccurrence]:
        registration = get_registration(task.source_type)
        if registration is None:
            return []
        parser = self.get_parser_class(registration)(task.source_type)
        params = parser.request_params(range_start, range_end)
        key = self._cache_key(task, params)

        occurrences = self.cache.get(key) if self.cache else None
        if occurrences is None:
            occurrences = parser.load(task.url, params, color=task.color, source_name=task.source_name)
            if occurrences is None:
                return []
            if self.cache:
                self.cache.set(key, occurrences)
        else:
            logger.debug(f"Using cached {task.source_type} feed {task.url}")

        return filter_for_range(occurrences, range_start, range_end)

    @staticmethod
    def _cache_key(task: FeedTask, params: Dict[str, Any]) -> Hashable:
        return (task, tuple(sorted(params.items())))
