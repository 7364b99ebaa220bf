#!/usr/bin/env python3

"""
Command-line interface for viewing aggregated event schedules.

Prints the same schedules the HTTP API serves: local events, standalone
events and the feeds of every enabled feed source, merged and sorted.

For usage information, run:
    python schedule.py --help

Common use cases:
    # Upcoming events from all sources
    python schedule.py list

    # Past events of one feed source, newest first
    python schedule.py list --filter past --source partner-site

    # A week grid starting on Sunday
    python schedule.py week --week 2025-W11 --start-of-week 0

    # Create missing tables (or recreate all of them)
    python schedule.py init-db [--reset]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to Python path
sys.path.append(str(Path(__file__).parent.parent))

from event_schedule.db import db, DatabaseError
from event_schedule.schedule import (
    RenderContext,
    ScheduleEngine,
    TIME_FILTERS,
    parse_iso_week,
    current_iso_week,
)
from event_schedule.schedule.engine import occurrence_label
from event_schedule.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

def _time_range(occurrence) -> str:
    if occurrence.all_day:
        return 'all day'
    return f"{occurrence.start_local[11:16]}-{occurrence.end_local[11:16]}"

def print_list(time_filter: str, sources: Optional[List[str]], include_drafts: bool):
    """Print a flat list of events for a time filter."""
    engine = ScheduleEngine()
    context = RenderContext.create(source_slugs=sources, include_drafts=include_drafts)
    occurrences = engine.list_events(time_filter, context)

    print(f"{len(occurrences)} {time_filter} events (now: {context.now})")
    for occurrence in occurrences:
        print(
            f"{occurrence.start_local[:10]}  {_time_range(occurrence):<11}  "
            f"{occurrence.title}  [{occurrence_label(occurrence)}]"
        )

def print_week(week: Optional[str], start_of_week: int, sources: Optional[List[str]]) -> bool:
    """Print a 7-day grid. Returns False for an invalid week string."""
    context = RenderContext.create(source_slugs=sources, start_of_week=start_of_week)
    if week:
        parsed = parse_iso_week(week)
        if parsed is None:
            logger.error(f"Invalid week {week!r}, expected YYYY-Www")
            return False
    else:
        parsed = current_iso_week(context.today)

    schedule = ScheduleEngine().week_schedule(parsed[0], parsed[1], context)
    print(f"Week {schedule['iso_week']} ({schedule['start_date']} to {schedule['end_date']})")
    for day in schedule['days']:
        marker = ' (today)' if day['is_today'] else ''
        print(f"\n{day['weekday']} {day['date']}{marker}")
        if not day['events']:
            print("  -")
        for event in day['events']:
            if event['all_day'] or (not event['is_first_day'] and not event['is_last_day']):
                when = 'all day'
            else:
                when = f"{event['start_time'] if event['is_first_day'] else '...'}-{event['end_time'] if event['is_last_day'] else '...'}"
            print(f"  {when:<13} {event['title']}")
    print(f"\nprev: {schedule['navigation']['prev']}  next: {schedule['navigation']['next']}")
    return True

def init_database(reset: bool):
    """Create missing tables, dropping existing ones first when reset is set."""
    if reset:
        logger.info("Dropping all tables")
        db.drop_all()
    db.init_db()
    logger.info("Database tables are ready")

def main():
    parser = argparse.ArgumentParser(description='View aggregated event schedules')
    subparsers = parser.add_subparsers(dest='command', required=True)

    list_parser = subparsers.add_parser('list', help='Print a flat list of events')
    list_parser.add_argument('--filter', choices=TIME_FILTERS, default='upcoming', dest='time_filter',
                             help='Which events to list (default: upcoming)')
    list_parser.add_argument('--source', action='append', dest='sources',
                             help='Only show this feed source (can be repeated)')
    list_parser.add_argument('--include-drafts', action='store_true',
                             help='Also list unpublished content items')

    week_parser = subparsers.add_parser('week', help='Print a week grid')
    week_parser.add_argument('--week', help='ISO week, e.g. 2025-W11 (default: current week)')
    week_parser.add_argument('--start-of-week', type=int, choices=[0, 1], default=1,
                             help='0 for Sunday, 1 for Monday (default: 1)')
    week_parser.add_argument('--source', action='append', dest='sources',
                             help='Only show this feed source (can be repeated)')

    init_parser = subparsers.add_parser('init-db', help='Create database tables')
    init_parser.add_argument('--reset', action='store_true', help='Drop all tables first')

    args = parser.parse_args()
    setup_logging()

    try:
        if args.command == 'list':
            print_list(args.time_filter, args.sources, args.include_drafts)
        elif args.command == 'week':
            if not print_week(args.week, args.start_of_week, args.sources):
                sys.exit(2)
        elif args.command == 'init-db':
            init_database(args.reset)
    except DatabaseError as e:
        logger.error(f"Database error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
