"""Database operations and utilities.

This module provides common database operations and utilities,
including retry logic for transient failures.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Optional, TypeVar, cast

from sqlalchemy.exc import OperationalError, IntegrityError

from .db_core import Database, DatabaseError, SessionError, db as default_db

logger = logging.getLogger(__name__)

# Type variable for generic return type
T = TypeVar('T')

def _is_transient(error: BaseException) -> bool:
    """Session errors wrap the driver error; retry only on operational failures."""
    cause = error.__cause__ if isinstance(error, SessionError) else error
    return isinstance(cause, OperationalError)

def with_retry(
    max_attempts: int = 3,
    delay: float = 0.1,
    backoff: float = 2,
    exceptions: tuple = (OperationalError, SessionError)
) -> Callable:
    """
    Decorator that implements retry logic for database operations.

    Only transient (operational) failures are retried; integrity errors and
    other session failures are raised on the first attempt.

    Args:
        max_attempts: Maximum number of retry attempts
        delay: Initial delay between retries in seconds
        backoff: Multiplier for delay between retries
        exceptions: Tuple of exceptions to catch and inspect

    Example:
        @with_retry(max_attempts=3)
        def get_occurrence(event_id: int) -> EventDateRecord:
            with db.session() as session:
                return session.query(EventDate).filter_by(event_id=event_id).first().to_record()
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception = None
            current_delay = delay

            for attempt in range(max_attempts):
                try:
                    return cast(T, func(*args, **kwargs))
                except exceptions as e:
                    last_exception = e
                    if not _is_transient(e):
                        raise
                    if attempt + 1 == max_attempts:
                        logger.error(
                            f"Final attempt failed for {func.__name__}: {str(e)}"
                        )
                        raise

                    logger.warning(
                        f"Attempt {attempt + 1}/{max_attempts} failed for "
                        f"{func.__name__}: {str(e)}. Retrying in {current_delay}s..."
                    )

                    time.sleep(current_delay)
                    current_delay *= backoff

            # This should never happen due to the raise in the loop
            raise last_exception or DatabaseError("Unknown error in retry logic")

        return wrapper
    return decorator

@with_retry()
def execute_in_transaction(
    operation: Callable[..., T],
    *args: Any,
    database: Optional[Database] = None,
    **kwargs: Any
) -> T:
    """
    Run an operation in one transaction, retrying on transient failures.

    The operation receives the session first. Everything it writes is
    committed together or rolled back together; an exception raised inside
    it surfaces as SessionError.

    Example:
        def rename_category(session, category_id: int, name: str):
            session.get(Category, category_id).name = name

        execute_in_transaction(rename_category, 3, 'Music')
    """
    with (database or default_db).session() as session:
        try:
            return operation(session, *args, **kwargs)
        except IntegrityError as e:
            raise DatabaseError(f"Integrity error in transaction: {e}") from e
