import pytest
import responses
from fastapi.testclient import TestClient

from event_schedule.api.app import app
from event_schedule.api.dependencies import get_content_store, get_engine, get_public_feed_builder
from event_schedule.db import SessionError

from .conftest import ICAL_URL

CALENDAR = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example//Calendar//EN
BEGIN:VEVENT
UID:partner-talk@example.com
DTSTART:20250311T130000Z
DTEND:20250311T140000Z
SUMMARY:Partner talk
END:VEVENT
END:VCALENDAR
"""

@pytest.fixture
def client(engine, feed_builder, content_store):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_public_feed_builder] = lambda: feed_builder
    app.dependency_overrides[get_content_store] = lambda: content_store
    yield TestClient(app)
    app.dependency_overrides.clear()

def test_health_check(client):
    response = client.get('/')
    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'
    assert response.json()['timezone'] == 'Europe/Oslo'
    assert response.json()['feed_types'] == ['federated_api', 'ical_url']

def test_list_events(client, make_event):
    make_event('Future summit', '2099-05-01 09:00:00', '2099-05-01 17:00:00')
    make_event('Old meetup', '2001-05-01 18:00:00')

    response = client.get('/api/events')
    assert response.status_code == 200
    body = response.json()
    assert body['filter'] == 'upcoming'
    assert body['total'] == 1
    event = body['events'][0]
    assert event['title'] == 'Future summit'
    assert event['source_kind'] == 'local'
    assert event['start_local'] == '2099-05-01 09:00:00'

    past = client.get('/api/events', params={'filter': 'past'}).json()
    assert [e['title'] for e in past['events']] == ['Old meetup']

def test_list_events_validation(client):
    assert client.get('/api/events', params={'filter': 'someday'}).status_code == 422
    response = client.get('/api/events', params={'categories': '1,abc'})
    assert response.status_code == 400

def test_database_errors_become_500(client, engine, monkeypatch):
    def fail(*args, **kwargs):
        raise SessionError('connection lost')

    monkeypatch.setattr(engine, 'list_events', fail)
    response = client.get('/api/events')
    assert response.status_code == 500
    assert response.json()['detail'] == 'Database error: connection lost'

@responses.activate
def test_week_schedule(client, make_event, source_repository):
    responses.add(responses.GET, ICAL_URL, body=CALENDAR, content_type='text/calendar')
    make_event('Local talk', '2025-03-10 09:00:00', '2025-03-10 10:00:00')
    source_repository.create('partner', 'Partner', [{'source_type': 'ical_url', 'config': {'url': ICAL_URL}}])

    response = client.get('/api/schedule/week', params={'week': '2025-W11'})
    assert response.status_code == 200
    body = response.json()
    assert body['start_date'] == '2025-03-10'
    assert [e['title'] for e in body['days'][0]['events']] == ['Local talk']
    assert [e['title'] for e in body['days'][1]['events']] == ['Partner talk']
    assert body['days'][1]['events'][0]['start_time'] == '14:00'

    sunday = client.get('/api/schedule/week', params={'week': '2025-W11', 'start_of_week': 0}).json()
    assert sunday['start_date'] == '2025-03-09'

def test_week_schedule_validation(client):
    assert client.get('/api/schedule/week', params={'week': '2025-11'}).status_code == 400
    assert client.get('/api/schedule/week', params={'week': '2025-W60'}).status_code == 400
    assert client.get('/api/schedule/week', params={'start_of_week': 3}).status_code == 422

def test_current_week_by_default(client):
    body = client.get('/api/schedule/week').json()
    assert body['iso_week'] == body['navigation']['current']
    assert len(body['days']) == 7

def test_month_schedule(client, make_event):
    make_event('Festival', '2025-06-28 10:00:00', '2025-06-30 18:00:00')
    response = client.get('/api/schedule/month', params={'month': '2025-06'})
    assert response.status_code == 200
    body = response.json()
    assert [d['date'] for d in body['days'] if d['events']] == ['2025-06-28', '2025-06-29', '2025-06-30']
    assert client.get('/api/schedule/month', params={'month': '2025-13'}).status_code == 400

def test_public_events_feed(client, make_event, event_store, content_store):
    music = content_store.create_category('music', 'Music')
    concert_id = make_event('Concert', '2025-03-10 19:00:00', '2025-03-10 22:00:00', category_ids=[music],
                            url='https://events.example.com/concert', excerpt='Live music')
    make_event('Lecture', '2025-03-11 10:00:00', '2025-03-11 11:00:00')
    standalone_id = event_store.create_standalone('Open day', '2025-03-12 00:00:00', '2025-03-12 00:00:00',
                                                  all_day=True)
    occurrence_id = event_store.get_by_event_id(concert_id).id

    body = client.get('/api/public/events', params={'start_date': '2025-03-01', 'end_date': '2025-03-31'}).json()
    assert body['meta']['total'] == 3
    assert body['meta']['site_name'] == 'Example Events'
    concert, lecture, open_day = body['events']
    assert concert == {
        'uid': f'fair_event_{concert_id}_{occurrence_id}@events.example.com',
        'title': 'Concert',
        'description': 'Live music',
        'start': '2025-03-10T18:00:00+00:00',
        'end': '2025-03-10T21:00:00+00:00',
        'all_day': False,
        'url': 'https://events.example.com/concert',
    }
    assert open_day['uid'] == f'standalone_{standalone_id}@events.example.com'
    assert open_day['all_day'] is True

    by_category = client.get('/api/public/events', params={'categories': 'music'}).json()
    assert [e['title'] for e in by_category['events']] == ['Concert']
    unknown = client.get('/api/public/events', params={'categories': 'nothing'}).json()
    assert unknown['events'] == []

    paged = client.get('/api/public/events', params={'per_page': 1, 'page': 2}).json()
    assert [e['title'] for e in paged['events']] == ['Lecture']
    assert paged['meta']['total'] == 3

def test_public_events_validation(client):
    assert client.get('/api/public/events', params={'per_page': 501}).status_code == 422
    assert client.get('/api/public/events', params={'start_date': '03/10/2025'}).status_code == 422
    assert client.get('/api/public/events', params={'start_date': '2025-02-30'}).status_code == 400
    assert client.get('/api/public/events', params={'end_date': '2025-13-01'}).status_code == 400

@responses.activate
def test_source_feed(client, make_event, source_repository):
    responses.add(responses.GET, ICAL_URL, body=CALENDAR, content_type='text/calendar')
    make_event('Local talk', '2025-03-10 09:00:00', '2025-03-10 10:00:00')
    source_repository.create('partner', 'Partner', [{'source_type': 'ical_url', 'config': {'url': ICAL_URL}}])
    source_repository.create('paused', 'Paused', [], enabled=False)

    body = client.get('/api/sources/partner/events', params={'start_date': '2025-03-10', 'end_date': '2025-03-16'}).json()
    assert [e['title'] for e in body['events']] == ['Local talk', 'Partner talk']
    assert body['events'][1]['uid'] == 'partner-talk@example.com'

    assert client.get('/api/sources/missing/events').status_code == 404
    assert client.get('/api/sources/paused/events').status_code == 403
    assert client.get('/api/sources/partner/events', params={'end_date': '2025-13-01'}).status_code == 400
    assert client.get('/api/sources/partner/events', params={'start_date': '2025-02-30'}).status_code == 400

def test_recurrence_preview(client):
    response = client.get('/api/recurrence/preview', params={
        'start_date': '2025-01-06', 'frequency': 'WEEKLY', 'count': 3,
    })
    assert response.status_code == 200
    assert response.json() == {
        'rule': 'FREQ=WEEKLY;COUNT=3',
        'occurrences': ['2025-01-06', '2025-01-13', '2025-01-20'],
    }

    biweekly = client.get('/api/recurrence/preview', params={
        'start_date': '2025-01-06', 'frequency': 'BIWEEKLY', 'max_instances': 2,
        'exception_dates': '2025-01-20',
    }).json()
    assert biweekly == {'rule': 'FREQ=WEEKLY;INTERVAL=2', 'occurrences': ['2025-01-06', '2025-02-03']}

    assert client.get('/api/recurrence/preview', params={
        'start_date': '2025-01-06', 'frequency': 'HOURLY',
    }).status_code == 422
