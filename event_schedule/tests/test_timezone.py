from datetime import date, datetime, timezone

import pytest

from event_schedule.utils.timezone import (
    datetime_to_local,
    iso8601_to_local,
    local_date,
    local_time,
    local_to_iso8601,
    local_to_ical_utc,
    local_to_timestamp,
    next_date,
    parse_local,
)
from event_schedule.config.settings import get_site_timezone_name, get_feed_timeout

def test_local_to_iso8601_converts_to_utc():
    # June is CEST (+02:00)
    assert local_to_iso8601('2025-06-15 19:30:00') == '2025-06-15T17:30:00+00:00'
    # January is CET (+01:00)
    assert local_to_iso8601('2025-01-15 10:00:00') == '2025-01-15T09:00:00+00:00'

def test_iso8601_to_local_honours_offsets():
    assert iso8601_to_local('2025-06-15T13:00:00-04:00') == '2025-06-15 19:00:00'
    assert iso8601_to_local('2025-06-15T17:30:00Z') == '2025-06-15 19:30:00'

def test_iso8601_without_offset_is_read_as_utc():
    assert iso8601_to_local('2025-01-15T09:00:00') == '2025-01-15 10:00:00'

def test_bare_date_maps_to_local_midnight():
    assert iso8601_to_local('2025-06-15') == '2025-06-15 00:00:00'

@pytest.mark.parametrize('value', [
    '2025-01-01 00:00:00',
    '2025-03-30 03:30:00',
    '2025-06-15 19:30:00',
    '2025-10-26 12:00:00',
    '2025-12-31 23:59:59',
])
def test_round_trip(value):
    assert iso8601_to_local(local_to_iso8601(value)) == value

def test_dst_boundary():
    # Clocks jump from 02:00 to 03:00 on 2025-03-30 in Oslo
    assert local_to_iso8601('2025-03-30 01:30:00') == '2025-03-30T00:30:00+00:00'
    assert local_to_iso8601('2025-03-30 03:30:00') == '2025-03-30T01:30:00+00:00'

def test_ical_utc_format():
    assert local_to_ical_utc('2025-01-15 10:00:00') == '20250115T090000Z'

@pytest.mark.parametrize('value', ['', 'garbage', '2025-13-45 99:00:00', None])
def test_malformed_input_never_raises(value):
    assert local_to_iso8601(value) == ''
    assert local_to_ical_utc(value) == ''
    assert local_to_timestamp(value) is None
    assert iso8601_to_local(value) is None
    assert next_date(value) == ''

def test_parse_local_rejects_aware_values():
    assert parse_local('2025-01-15T10:00:00+01:00') is None
    assert parse_local('2025-01-15 10:00') == datetime(2025, 1, 15, 10, 0)

def test_datetime_to_local():
    aware = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
    assert datetime_to_local(aware) == '2025-03-10 10:00:00'
    # Naive (floating) values are already local
    assert datetime_to_local(datetime(2025, 3, 10, 9, 0)) == '2025-03-10 09:00:00'
    assert datetime_to_local(date(2025, 3, 10)) == '2025-03-10 00:00:00'

def test_string_helpers():
    assert local_date('2025-03-10 09:15:00') == '2025-03-10'
    assert local_time('2025-03-10 09:15:00') == '09:15'
    assert next_date('2025-02-28') == '2025-03-01'
    assert next_date('2024-02-28') == '2024-02-29'

def test_timezone_read_per_call(monkeypatch):
    monkeypatch.setenv('SITE_TIMEZONE', 'UTC')
    assert local_to_iso8601('2025-06-15 19:30:00') == '2025-06-15T19:30:00+00:00'

def test_unknown_timezone_falls_back_to_utc(monkeypatch):
    monkeypatch.setenv('SITE_TIMEZONE', 'Mars/Olympus_Mons')
    assert get_site_timezone_name() == 'UTC'

def test_feed_timeout_is_capped(monkeypatch):
    monkeypatch.setenv('FEED_TIMEOUT', '30')
    assert get_feed_timeout() == 5
    monkeypatch.setenv('FEED_TIMEOUT', 'soon')
    assert get_feed_timeout() == 5
