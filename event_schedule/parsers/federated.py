"""Parser for federated JSON event feeds published by peer sites."""

import hashlib
import logging
from typing import Any, Dict, List, Optional

import requests

from .base import BaseFeedParser
from ..config.settings import FEDERATED_PER_PAGE
from ..models.occurrence import FederatedOccurrence, uid_hash
from ..utils.timezone import iso8601_to_local, local_date

logger = logging.getLogger(__name__)

class FederatedApiParser(BaseFeedParser):
    """
    Reads {"events": [...]} responses.

    Start and end are ISO 8601 strings; values without an offset are read
    as UTC. The all_day flag and the end are already inclusive.
    """

    ACCEPT = 'application/json'

    def request_params(self, range_start: Optional[str], range_end: Optional[str]) -> Dict[str, Any]:
        params = {'per_page': FEDERATED_PER_PAGE}
        if range_start:
            params['start_date'] = local_date(range_start)
        if range_end:
            params['end_date'] = local_date(range_end)
        return params

    def parse(
        self,
        response: requests.Response,
        color: Optional[str] = None,
        source_name: Optional[str] = None
    ) -> List[FederatedOccurrence]:
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from federated feed {response.url}: {e}")
            return []

        if not isinstance(data, dict) or not isinstance(data.get('events'), list):
            logger.error(f"Federated feed {response.url} has no 'events' list")
            return []

        occurrences = []
        for entry in data['events']:
            occurrence = self._parse_entry(entry, color, source_name)
            if occurrence is None:
                logger.debug(f"Skipping federated entry without a usable title or start: {entry!r}")
                continue
            occurrences.append(occurrence)
        return occurrences

    def _parse_entry(self, entry: Any, color: Optional[str], source_name: Optional[str]) -> Optional[FederatedOccurrence]:
        if not isinstance(entry, dict):
            return None
        title = str(entry.get('title') or '').strip()
        raw_start = entry.get('start')
        if not title or not isinstance(raw_start, str):
            return None

        start_local = iso8601_to_local(raw_start)
        if start_local is None:
            return None

        raw_end = entry.get('end')
        end_local = iso8601_to_local(raw_end) if isinstance(raw_end, str) and raw_end else None
        if end_local is None or end_local < start_local:
            end_local = start_local

        uid = str(entry.get('uid') or '').strip() or hashlib.md5(f"{raw_start}{title}".encode('utf-8')).hexdigest()

        return FederatedOccurrence(
            id=uid_hash(uid),
            title=title,
            start_local=start_local,
            end_local=end_local,
            all_day=bool(entry.get('all_day', False)),
            description=entry.get('description') or None,
            url=entry.get('url') or None,
            color=color,
            uid=uid,
            source_name=source_name,
        )
