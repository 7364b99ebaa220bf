import pytest

from event_schedule.config.data_sources import SOURCE_TYPES
from event_schedule.models.feed_source import DataSource
from event_schedule.parsers.ical import ICalParser
from event_schedule.parsers.federated import FederatedApiParser
from event_schedule.schedule import FeedManager

def test_create_and_read(source_repository):
    source_repository.create('partner', 'Partner', [
        {'source_type': 'ical_url', 'config': {'url': 'https://a.example.com/cal.ics'}},
        DataSource('federated_api', {'url': 'https://b.example.com/api/public/events'}, enabled=False),
        {'source_type': 'categories', 'config': {'category_ids': [3, 1]}},
    ])

    source = source_repository.get_by_slug('partner')
    assert source.name == 'Partner'
    assert [d.source_type for d in source.data_sources] == ['ical_url', 'federated_api', 'categories']
    assert source.data_sources[1].enabled is False
    assert source.to_dict()['data_sources'][2]['config'] == {'category_ids': [3, 1]}

@pytest.mark.parametrize('slug', ['Partner', 'has space', '', '-leading'])
def test_invalid_slug(source_repository, slug):
    with pytest.raises(ValueError):
        source_repository.create(slug, 'Name')

def test_unknown_data_source_type(source_repository):
    with pytest.raises(ValueError):
        source_repository.create('partner', 'Partner', [{'source_type': 'rss', 'config': {}}])

def test_duplicate_slug_is_reported(source_repository):
    assert source_repository.create('partner', 'Partner') is not None
    assert source_repository.create('partner', 'Partner again') is None

def test_enable_disable_and_delete(source_repository):
    source_repository.create('partner', 'Partner')
    source_repository.create('other', 'Other')

    assert source_repository.set_enabled('partner', False)
    assert [s.slug for s in source_repository.get_all(enabled_only=True)] == ['other']
    assert [s.slug for s in source_repository.get_all()] == ['partner', 'other']
    assert source_repository.set_enabled('missing', True) is False

    assert source_repository.delete('partner')
    assert source_repository.delete('partner') is False

def test_parser_registry():
    assert FeedManager.get_parser_class(SOURCE_TYPES['ical_url']) is ICalParser
    assert FeedManager.get_parser_class(SOURCE_TYPES['federated_api']) is FederatedApiParser

def test_manager_resolves_sources_and_categories(source_repository):
    source_repository.create('first', 'First', [
        {'source_type': 'categories', 'config': {'category_ids': [2, '5', 'x']}},
        {'source_type': 'ical_url', 'config': {'url': 'https://a.example.com/cal.ics'}},
        {'source_type': 'ical_url', 'config': {}},
    ])
    source_repository.create('second', 'Second', [
        {'source_type': 'categories', 'config': {'category_ids': [5, 7]}},
        {'source_type': 'federated_api', 'config': {'url': 'https://b.example.com/api/public/events', 'color': '#000'}},
    ])
    manager = FeedManager(source_repository)

    sources = manager.get_sources(['second', 'missing', 'first'])
    assert [s.slug for s in sources] == ['second', 'first']
    assert manager.category_ids_for(sources) == [5, 7, 2]

    tasks = manager.collect_tasks(manager.get_sources())
    assert [(t.source_slug, t.source_type) for t in tasks] == [('first', 'ical_url'), ('second', 'federated_api')]
    assert tasks[0].color == '#4caf50'
    assert tasks[1].color == '#000'
