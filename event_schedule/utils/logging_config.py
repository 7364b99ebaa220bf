"""Logging configuration for the application."""

import logging
import os
import sys

def setup_logging():
    """Configure logging for the application."""
    root_logger = logging.getLogger()
    level = getattr(logging, os.environ.get('LOG_LEVEL', 'INFO').upper(), logging.INFO)
    root_logger.setLevel(level)

    # Only attach our handler once, even if the app is created several times
    if not any(getattr(handler, '_event_schedule', False) for handler in root_logger.handlers):
        # Create a formatter
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        # Create a console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler._event_schedule = True
        root_logger.addHandler(console_handler)

    # Set higher log levels for noisy components
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)

    # Configure specific loggers
    loggers = [
        'event_schedule.parsers',
        'event_schedule.schedule.feed_manager',
        'event_schedule.store.event_dates',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        # Don't add handler here since it's already handled by root logger
