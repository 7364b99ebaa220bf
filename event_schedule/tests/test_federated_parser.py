import hashlib
from urllib.parse import parse_qs, urlparse

import responses

from event_schedule.models.occurrence import FederatedOccurrence, SourceKind
from event_schedule.parsers.federated import FederatedApiParser

from .conftest import FEDERATED_URL

FEED = {
    'meta': {'site_name': 'Peer', 'total': 5},
    'events': [
        {
            'uid': 'fair_event_7_12@peer.example.org',
            'title': 'Peer meetup',
            'description': 'Monthly meetup',
            'start': '2025-03-10T17:00:00+00:00',
            'end': '2025-03-10T19:00:00+00:00',
            'all_day': False,
            'url': 'https://peer.example.org/meetup',
        },
        {'title': 'Open end', 'start': '2025-03-11T09:00:00Z'},
        {'title': 'Backwards', 'start': '2025-03-12T10:00:00Z', 'end': '2025-03-12T08:00:00Z'},
        {'title': '', 'start': '2025-03-12T10:00:00Z'},
        {'title': 'Numeric start', 'start': 1741600000},
        {'title': 'Bad start', 'start': 'next tuesday'},
        'not an object',
        {'uid': 'day@peer', 'title': 'Fair day', 'start': '2025-03-14', 'end': '2025-03-14', 'all_day': True},
    ],
}

def _by_title(occurrences):
    return {occurrence.title: occurrence for occurrence in occurrences}

@responses.activate
def test_parses_entries():
    responses.add(responses.GET, FEDERATED_URL, json=FEED)
    events = _by_title(FederatedApiParser('federated_api').get_events(FEDERATED_URL, source_name='Peer'))

    assert set(events) == {'Peer meetup', 'Open end', 'Backwards', 'Fair day'}

    meetup = events['Peer meetup']
    assert isinstance(meetup, FederatedOccurrence)
    assert meetup.source_kind == SourceKind.FEDERATED
    assert meetup.start_local == '2025-03-10 18:00:00'
    assert meetup.end_local == '2025-03-10 20:00:00'
    assert meetup.uid == 'fair_event_7_12@peer.example.org'
    assert meetup.description == 'Monthly meetup'
    assert meetup.source_name == 'Peer'

@responses.activate
def test_missing_or_backwards_end_falls_back_to_start():
    responses.add(responses.GET, FEDERATED_URL, json=FEED)
    events = _by_title(FederatedApiParser('federated_api').get_events(FEDERATED_URL))

    assert events['Open end'].start_local == events['Open end'].end_local == '2025-03-11 10:00:00'
    assert events['Backwards'].end_local == events['Backwards'].start_local == '2025-03-12 11:00:00'

@responses.activate
def test_generated_uid_and_all_day():
    responses.add(responses.GET, FEDERATED_URL, json=FEED)
    events = _by_title(FederatedApiParser('federated_api').get_events(FEDERATED_URL))

    expected_uid = hashlib.md5('2025-03-11T09:00:00ZOpen end'.encode('utf-8')).hexdigest()
    assert events['Open end'].uid == expected_uid

    fair_day = events['Fair day']
    assert fair_day.all_day is True
    assert fair_day.start_local == fair_day.end_local == '2025-03-14 00:00:00'

@responses.activate
def test_request_parameters():
    responses.add(responses.GET, FEDERATED_URL, json={'events': []})
    FederatedApiParser('federated_api').get_events(
        FEDERATED_URL, range_start='2025-03-10 00:00:00', range_end='2025-03-16 23:59:59'
    )

    request = responses.calls[0].request
    params = parse_qs(urlparse(request.url).query)
    assert params == {'per_page': ['500'], 'start_date': ['2025-03-10'], 'end_date': ['2025-03-16']}
    assert request.headers['Accept'] == 'application/json'

@responses.activate
def test_body_without_events_list_yields_nothing():
    responses.add(responses.GET, FEDERATED_URL, json=[{'title': 'x', 'start': '2025-03-10T10:00:00Z'}])
    assert FederatedApiParser('federated_api').get_events(FEDERATED_URL) == []

@responses.activate
def test_invalid_json_yields_nothing():
    responses.add(responses.GET, FEDERATED_URL, body='<html>oops</html>', content_type='text/html')
    assert FederatedApiParser('federated_api').get_events(FEDERATED_URL) == []

@responses.activate
def test_not_found_yields_nothing():
    responses.add(responses.GET, FEDERATED_URL, json={'error': 'gone'}, status=404)
    assert FederatedApiParser('federated_api').get_events(FEDERATED_URL) == []
