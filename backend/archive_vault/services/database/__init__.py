"""
Database abstraction layer.
SQLite with FTS5 full-text indexes backs every library.
"""
from .base import DatabaseInterface, DateRange
from .sqlite_adapter import SQLiteAdapter
from .factory import DatabaseFactory

__all__ = [
    "DatabaseInterface",
    "DateRange",
    "SQLiteAdapter",
    "DatabaseFactory"
]
