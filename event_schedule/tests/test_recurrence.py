from datetime import date

import pytest

from event_schedule.models.event_date import INSTANCE, MASTER, SINGLE
from event_schedule.recurrence import (
    RecurrenceRule,
    RecurrenceService,
    expand_series,
    format_until_date,
    generate_occurrences,
    parse_rule,
    to_rule,
)

@pytest.mark.parametrize('description, expected', [
    ({'frequency': 'BIWEEKLY'}, 'FREQ=WEEKLY;INTERVAL=2'),
    ({'frequency': 'WEEKLY', 'count': 5}, 'FREQ=WEEKLY;COUNT=5'),
    ({'frequency': 'DAILY', 'interval': 3, 'until': '2025-06-30'}, 'FREQ=DAILY;INTERVAL=3;UNTIL=20250630'),
    ({'frequency': 'DAILY', 'interval': 1}, 'FREQ=DAILY'),
    # COUNT wins over UNTIL
    ({'frequency': 'WEEKLY', 'count': 2, 'until': '2025-06-30'}, 'FREQ=WEEKLY;COUNT=2'),
    ({'frequency': 'WEEKLY', 'until': 'June'}, 'FREQ=WEEKLY'),
    ({'frequency': ''}, ''),
    (None, ''),
])
def test_to_rule(description, expected):
    assert to_rule(description) == expected

def test_format_until_date():
    assert format_until_date('2025-06-30') == '20250630'
    assert format_until_date('2025-6-30') == ''
    assert format_until_date(None) == ''

def test_weekly_count():
    assert generate_occurrences({'frequency': 'WEEKLY', 'count': 3}, '2025-01-06') == [
        '2025-01-06', '2025-01-13', '2025-01-20',
    ]

def test_biweekly_until_is_inclusive():
    assert generate_occurrences({'frequency': 'BIWEEKLY', 'until': '2025-02-03'}, '2025-01-06') == [
        '2025-01-06', '2025-01-20', '2025-02-03',
    ]

def test_daily_interval_respects_max_instances():
    dates = generate_occurrences({'frequency': 'DAILY', 'interval': 2}, '2025-01-30', max_instances=4)
    assert dates == ['2025-01-30', '2025-02-01', '2025-02-03', '2025-02-05']

def test_exception_dates_still_count():
    dates = generate_occurrences(
        {'frequency': 'WEEKLY', 'count': 3}, '2025-01-06', exception_dates=['2025-01-13']
    )
    assert dates == ['2025-01-06', '2025-01-20']

def test_unknown_frequency_stops_after_start():
    assert generate_occurrences({'frequency': 'MONTHLY', 'count': 5}, '2025-01-06') == ['2025-01-06']

def test_no_frequency_or_bad_start():
    assert generate_occurrences({}, '2025-01-06') == []
    assert generate_occurrences({'frequency': 'DAILY'}, 'someday') == []

def test_parse_rule_round_trip():
    rule = parse_rule('RRULE:FREQ=WEEKLY;INTERVAL=2;UNTIL=20250630T235959Z')
    assert rule == RecurrenceRule(frequency='WEEKLY', interval=2, until=date(2025, 6, 30))
    assert rule.to_rule() == 'FREQ=WEEKLY;INTERVAL=2;UNTIL=20250630'
    assert rule.to_description()['frequency'] == 'BIWEEKLY'
    assert parse_rule('INTERVAL=2') is None
    assert parse_rule('') is None

def test_expand_series_keeps_duration():
    rule = RecurrenceRule(frequency='DAILY', count=2)
    assert expand_series('2025-03-31 23:00:00', '2025-04-01 01:00:00', rule) == [
        ('2025-03-31 23:00:00', '2025-04-01 01:00:00'),
        ('2025-04-01 23:00:00', '2025-04-02 01:00:00'),
    ]

def test_regenerate_event_occurrences(content_store, event_store):
    item_id = content_store.create('Reading group')
    event_store.save(item_id, '2025-03-10 18:00:00', '2025-03-10 19:30:00', False)
    service = RecurrenceService(event_store)

    assert service.regenerate_event_occurrences(item_id, 'FREQ=WEEKLY;COUNT=4') == 4
    records = event_store.get_all_by_event_id(item_id)
    assert [r.occurrence_type for r in records] == [MASTER, INSTANCE, INSTANCE, INSTANCE]
    assert [r.start_datetime for r in records][-1] == '2025-03-31 18:00:00'
    assert records[-1].end_datetime == '2025-03-31 19:30:00'

    # Regenerating from the stored rule replaces, never duplicates
    assert service.regenerate_event_occurrences(item_id) == 4
    assert len(event_store.get_all_by_event_id(item_id)) == 4

    # An empty rule turns the series back into a single event
    assert service.regenerate_event_occurrences(item_id, '') == 1
    records = event_store.get_all_by_event_id(item_id)
    assert [r.occurrence_type for r in records] == [SINGLE]
    assert records[0].rrule is None

def test_regenerate_respects_cap(content_store, event_store):
    item_id = content_store.create('Daily standup')
    event_store.save(item_id, '2025-03-10 09:00:00', '2025-03-10 09:15:00', False)
    assert RecurrenceService(event_store, max_occurrences=5).regenerate_event_occurrences(item_id, 'FREQ=DAILY') == 5

def test_regenerate_without_occurrence(event_store):
    assert RecurrenceService(event_store).regenerate_event_occurrences(12345, 'FREQ=DAILY') == 0

def test_expand_series_steps_months_from_the_start():
    rule = RecurrenceRule(frequency='MONTHLY', count=3)
    assert expand_series('2025-01-31 10:00:00', '2025-01-31 11:00:00', rule) == [
        ('2025-01-31 10:00:00', '2025-01-31 11:00:00'),
        ('2025-02-28 10:00:00', '2025-02-28 11:00:00'),
        ('2025-03-31 10:00:00', '2025-03-31 11:00:00'),
    ]

def test_expand_series_steps_years():
    rule = parse_rule('FREQ=YEARLY;INTERVAL=2;UNTIL=20300101')
    assert [start for start, _ in expand_series('2024-02-29 09:00:00', None, rule)] == [
        '2024-02-29 09:00:00', '2026-02-28 09:00:00', '2028-02-29 09:00:00',
    ]

def test_regenerate_monthly_series(content_store, event_store):
    item_id = content_store.create('Board meeting')
    event_store.save(item_id, '2025-01-15 17:00:00', '2025-01-15 18:00:00', False)

    assert RecurrenceService(event_store).regenerate_event_occurrences(item_id, 'FREQ=MONTHLY;COUNT=3') == 3
    records = event_store.get_all_by_event_id(item_id)
    assert [r.occurrence_type for r in records] == [MASTER, INSTANCE, INSTANCE]
    assert [r.start_datetime for r in records] == [
        '2025-01-15 17:00:00', '2025-02-15 17:00:00', '2025-03-15 17:00:00',
    ]
