"""Configuration for feed data source types and their parsers."""

from dataclasses import dataclass
from typing import Dict, Optional

# Internal imports - environment must be first
from .environment import IS_PRODUCTION_ENVIRONMENT  # noqa: F401

@dataclass
class ParserRegistration:
    """
    Registration of a feed parser with the feed manager.

    This class defines:
    1. Whether the parser is currently enabled
    2. Where to find its implementation
    3. Display name of the source type

    Fields:
        enabled: Whether this parser is enabled
        parser_class: Full path to parser class (e.g., 'event_schedule.parsers.ical.ICalParser')
        name: Display name of the source type (e.g., 'iCal Feed')
    """
    enabled: bool
    parser_class: str
    name: str

# Source type for data sources that select local events by category (no network access)
CATEGORIES_SOURCE_TYPE = 'categories'

# Registry of available remote feed parsers, keyed by data source type
SOURCE_TYPES = {
    'ical_url': ParserRegistration(
        enabled=True,
        parser_class='event_schedule.parsers.ical.ICalParser',
        name='iCal Feed'
    ),
    'federated_api': ParserRegistration(
        enabled=True,
        parser_class='event_schedule.parsers.federated.FederatedApiParser',
        name='Federated Events API'
    ),
}

DEFAULT_FEED_COLOR = '#4caf50'

def get_enabled_source_types() -> Dict[str, ParserRegistration]:
    """
    Get all enabled parser registrations.

    Returns:
        Dict[str, ParserRegistration]: Dictionary of source_type -> registration for all enabled parsers
    """
    return {k: v for k, v in SOURCE_TYPES.items() if v.enabled}

def get_registration(source_type: str) -> Optional[ParserRegistration]:
    """
    Get the registration for a source type if it is known and enabled.

    Args:
        source_type: The data source type (e.g., 'ical_url')

    Returns:
        Optional[ParserRegistration]: The registration, or None for unknown or disabled types
    """
    registration = SOURCE_TYPES.get(source_type)
    if not registration or not registration.enabled:
        return None
    return registration

def get_source_type_display_name(source_type: str) -> str:
    """
    Get the display name for a given source type.

    Args:
        source_type: The source type identifier (e.g., 'federated_api')

    Returns:
        str: The display name (e.g., 'Federated Events API')

    Raises:
        ValueError: If no source type is registered under the given identifier
    """
    registration = SOURCE_TYPES.get(source_type)
    if not registration:
        raise ValueError(f"No source type found with ID: {source_type}")
    return registration.name
