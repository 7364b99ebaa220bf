import hashlib

import requests
import responses

from event_schedule.models.occurrence import IcalOccurrence, SourceKind, uid_hash
from event_schedule.parsers.ical import ICalParser

from .conftest import ICAL_URL

CALENDAR = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example//Calendar//EN
BEGIN:VEVENT
UID:workshop@example.com
DTSTART:20250310T090000Z
DTEND:20250310T110000Z
SUMMARY:Workshop
DESCRIPTION:Hands-on session
URL:https://example.com/workshop
END:VEVENT
BEGIN:VEVENT
UID:conference@example.com
DTSTART;VALUE=DATE:20250312
DTEND;VALUE=DATE:20250315
SUMMARY:Conference
END:VEVENT
BEGIN:VEVENT
UID:holiday@example.com
DTSTART;VALUE=DATE:20250320
DTEND;VALUE=DATE:20250321
SUMMARY:Holiday
END:VEVENT
BEGIN:VEVENT
DTSTART:20250311T120000Z
DURATION:PT90M
SUMMARY:Lunch talk
END:VEVENT
BEGIN:VEVENT
UID:untitled@example.com
DTSTART:20250311T120000Z
END:VEVENT
BEGIN:VEVENT
UID:new-york@example.com
DTSTART;TZID=America/New_York:20250310T090000
DTEND;TZID=America/New_York:20250310T100000
SUMMARY:Remote standup
END:VEVENT
END:VCALENDAR
"""

def _add_calendar(body=CALENDAR, status=200):
    responses.add(responses.GET, ICAL_URL, body=body, status=status, content_type='text/calendar')

def _by_title(occurrences):
    return {occurrence.title: occurrence for occurrence in occurrences}

@responses.activate
def test_parses_timed_events_into_site_time():
    _add_calendar()
    events = _by_title(ICalParser('ical_url').get_events(ICAL_URL, color='#123456', source_name='Partner'))

    workshop = events['Workshop']
    assert isinstance(workshop, IcalOccurrence)
    assert workshop.source_kind == SourceKind.ICAL
    assert workshop.start_local == '2025-03-10 10:00:00'
    assert workshop.end_local == '2025-03-10 12:00:00'
    assert workshop.all_day is False
    assert workshop.description == 'Hands-on session'
    assert workshop.url == 'https://example.com/workshop'
    assert workshop.color == '#123456'
    assert workshop.source_name == 'Partner'
    assert workshop.uid == 'workshop@example.com'
    assert workshop.id == uid_hash('workshop@example.com')

@responses.activate
def test_all_day_end_is_made_inclusive():
    _add_calendar()
    events = _by_title(ICalParser('ical_url').get_events(ICAL_URL))

    conference = events['Conference']
    assert conference.all_day is True
    assert conference.start_local == '2025-03-12 00:00:00'
    assert conference.end_local == '2025-03-14 00:00:00'

    holiday = events['Holiday']
    assert holiday.start_local == holiday.end_local == '2025-03-20 00:00:00'

@responses.activate
def test_duration_and_generated_uid():
    _add_calendar()
    lunch = _by_title(ICalParser('ical_url').get_events(ICAL_URL))['Lunch talk']

    assert lunch.start_local == '2025-03-11 13:00:00'
    assert lunch.end_local == '2025-03-11 14:30:00'
    expected_uid = hashlib.md5('2025-03-11 13:00:00Lunch talk'.encode('utf-8')).hexdigest()
    assert lunch.uid == expected_uid

@responses.activate
def test_tzid_events_are_converted():
    _add_calendar()
    standup = _by_title(ICalParser('ical_url').get_events(ICAL_URL))['Remote standup']
    # New York is on EDT (-04:00) from 2025-03-09, Oslo still on CET (+01:00)
    assert standup.start_local == '2025-03-10 14:00:00'
    assert standup.end_local == '2025-03-10 15:00:00'

@responses.activate
def test_events_without_summary_are_skipped():
    _add_calendar()
    occurrences = ICalParser('ical_url').get_events(ICAL_URL)
    assert len(occurrences) == 5
    assert all(occurrence.uid != 'untitled@example.com' for occurrence in occurrences)

@responses.activate
def test_range_filter_is_inclusive_overlap():
    _add_calendar()
    occurrences = ICalParser('ical_url').get_events(
        ICAL_URL, range_start='2025-03-13 00:00:00', range_end='2025-03-13 23:59:59'
    )
    assert [occurrence.title for occurrence in occurrences] == ['Conference']

@responses.activate
def test_sends_calendar_accept_header():
    _add_calendar()
    ICalParser('ical_url').get_events(ICAL_URL)
    assert responses.calls[0].request.headers['Accept'] == 'text/calendar'

@responses.activate
def test_http_error_yields_nothing(caplog):
    _add_calendar(status=500)
    assert ICalParser('ical_url').get_events(ICAL_URL) == []
    assert f'iCal Feed: {ICAL_URL} returned HTTP 500' in caplog.text

@responses.activate
def test_timeout_yields_nothing():
    responses.add(responses.GET, ICAL_URL, body=requests.exceptions.ConnectTimeout('timed out'))
    assert ICalParser('ical_url').get_events(ICAL_URL) == []

@responses.activate
def test_invalid_url_is_never_fetched():
    parser = ICalParser('ical_url')
    assert parser.get_events('ftp://calendar.example.com/events.ics') == []
    assert parser.get_events('not a url') == []
    assert len(responses.calls) == 0

@responses.activate
def test_unparsable_body_yields_nothing():
    _add_calendar(body='this is not a calendar')
    assert ICalParser('ical_url').get_events(ICAL_URL) == []

def test_parser_name():
    assert ICalParser('ical_url').name() == 'iCal Feed'
