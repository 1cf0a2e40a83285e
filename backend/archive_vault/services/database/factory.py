"""
Database Factory for creating database adapters.
Implements Factory Pattern so the service layer never names a concrete backend.
"""
import os
from pathlib import Path
from typing import Optional

from .base import DatabaseInterface
from .sqlite_adapter import SQLiteAdapter
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class DatabaseFactory:
    """
    Factory for creating database adapters.
    SQLite (with FTS5) is the only backend; it lives inside the library root.
    """

    @staticmethod
    def create(database_type: Optional[str] = None, **kwargs) -> DatabaseInterface:
        """
        Create a database adapter instance.

        Args:
            database_type: Type of database ('sqlite', or None for auto-detect)
            **kwargs: db_path for the sqlite adapter

        Returns:
            DatabaseInterface instance

        Examples:
            db = DatabaseFactory.create('sqlite', db_path=Path('library/db.sqlite'))
        """
        if database_type is None:
            database_type = os.getenv("DATABASE_TYPE", "sqlite")

        database_type = database_type.lower()

        if database_type == "sqlite":
            return DatabaseFactory._create_sqlite(**kwargs)
        raise ValueError(
            f"Unsupported database type: {database_type}. "
            f"Supported types: 'sqlite'"
        )

    @staticmethod
    def _create_sqlite(**kwargs) -> SQLiteAdapter:
        db_path = kwargs.get("db_path")
        if db_path is None:
            raise ValueError("sqlite adapter requires db_path")
        return SQLiteAdapter(db_path=Path(db_path))

    @staticmethod
    async def create_and_initialize(database_type: Optional[str] = None, **kwargs) -> DatabaseInterface:
        """
        Create database adapter and initialize it.

        Args:
            database_type: Type of database
            **kwargs: Additional arguments

        Returns:
            Initialized DatabaseInterface instance
        """
        db = DatabaseFactory.create(database_type, **kwargs)
        await db.initialize()
        logger.info(f"Database adapter ready: {type(db).__name__}")
        return db
