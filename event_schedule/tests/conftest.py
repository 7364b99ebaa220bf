"""Shared fixtures: in-memory database, stores and a fixed site timezone."""

import os

# The global database must not touch data/events.db while tests import the package
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('ENVIRONMENT', 'development')

import pytest

from event_schedule.db import Database, DatabaseConfig
from event_schedule.schedule import FeedManager, ScheduleEngine, PublicFeedBuilder
from event_schedule.store import ContentStore, EventDateStore, FeedSourceRepository

SITE_TIMEZONE = 'Europe/Oslo'

ICAL_URL = 'https://calendar.example.com/events.ics'
FEDERATED_URL = 'https://peer.example.org/api/public/events'

@pytest.fixture(autouse=True)
def site_settings(monkeypatch):
    """Fixed site timezone and no feed cache for every test."""
    monkeypatch.setenv('SITE_TIMEZONE', SITE_TIMEZONE)
    monkeypatch.setenv('FEED_CACHE_SECONDS', '0')
    monkeypatch.setenv('SITE_URL', 'https://events.example.com')
    monkeypatch.setenv('SITE_NAME', 'Example Events')

@pytest.fixture
def database():
    database = Database(DatabaseConfig(url='sqlite://'))
    database.init_db()
    yield database
    database.drop_all()
    database.dispose()

@pytest.fixture
def event_store(database):
    return EventDateStore(database)

@pytest.fixture
def content_store(database):
    return ContentStore(database)

@pytest.fixture
def source_repository(database):
    return FeedSourceRepository(database)

@pytest.fixture
def feed_manager(source_repository):
    return FeedManager(source_repository, max_workers=2)

@pytest.fixture
def engine(event_store, content_store, feed_manager):
    return ScheduleEngine(event_store, content_store, feed_manager)

@pytest.fixture
def feed_builder(content_store, event_store):
    return PublicFeedBuilder(content_store, event_store)

@pytest.fixture
def make_event(content_store, event_store):
    """Create a published content item with one canonical occurrence."""
    def _make_event(title, start, end=None, all_day=False, category_ids=None, **item_fields):
        item_id = content_store.create(title, category_ids=category_ids, **item_fields)
        assert event_store.save(item_id, start, end, all_day)
        return item_id
    return _make_event
