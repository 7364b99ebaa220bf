"""Remote feed parsers."""

from .base import BaseFeedParser, filter_for_range, is_valid_url
from .ical import ICalParser
from .federated import FederatedApiParser

__all__ = [
    'BaseFeedParser',
    'filter_for_range',
    'is_valid_url',
    'ICalParser',
    'FederatedApiParser',
]
