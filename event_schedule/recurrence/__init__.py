"""Recurrence rules and series generation."""

from .manager import (
    RecurrenceRule,
    to_rule,
    parse_rule,
    format_until_date,
    generate_occurrences,
)
from .service import RecurrenceService, expand_series, MAX_OCCURRENCES

__all__ = [
    'RecurrenceRule',
    'to_rule',
    'parse_rule',
    'format_until_date',
    'generate_occurrences',
    'RecurrenceService',
    'expand_series',
    'MAX_OCCURRENCES',
]
