"""Database engine, sessions and transaction helpers.

Stores take a Database so tests can run against their own in-memory
SQLite instance; everything else uses the shared `db`.
"""

from .db_core import Database, DatabaseConfig, DatabaseError, SessionError, db
from .operations import with_retry, execute_in_transaction

__all__ = [
    'Database',
    'DatabaseConfig',
    'DatabaseError',
    'SessionError',
    'db',
    'with_retry',
    'execute_in_transaction',
]
