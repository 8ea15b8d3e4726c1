"""
==============================================================================
Database Initialization Module
==============================================================================

Creates tables and verifies the connection at application startup.

Usage:
------
    from app.db import init_db, DatabaseInitializer

    # Quick initialization
    init_db()

    # Or with more control
    initializer = DatabaseInitializer()
    initializer.create_tables()
    initializer.get_stats()

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from sqlalchemy import func

from app.config import get_settings
from app.db.database import DatabaseManager
from app.db.models import RaffleEntryRecord


# Module logger
logger = logging.getLogger(__name__)


class DatabaseInitializer:
    """
    Database initialization manager.

    Example:
        >>> initializer = DatabaseInitializer()
        >>> initializer.initialize()
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        self._db_manager = db_manager or DatabaseManager()
        self._settings = get_settings()

    def create_tables(self) -> None:
        """Create all tables (idempotent)."""
        logger.info("Creating database tables...")
        self._db_manager.create_tables()
        logger.info("✅ Database tables created successfully")

    def initialize(self) -> None:
        """Create tables and verify the connection (application startup)."""
        self.create_tables()

        if self._db_manager.verify_connection():
            logger.info("✅ Database connection verified")
        else:
            logger.warning("⚠️ Database connection check failed")

    def reset(self) -> None:
        """
        Drop and recreate all tables.

        Raises:
            RuntimeError: In production
        """
        if self._settings.is_production:
            logger.error("Cannot reset database in production!")
            raise RuntimeError("Database reset not allowed in production")

        logger.warning("RESETTING DATABASE - ALL ENTRIES WILL BE LOST")
        self._db_manager.reset_database()

    def get_stats(self) -> Dict[str, int]:
        """
        Get entry counts.

        Returns:
            {"entries": total, "raffles": distinct raffle ids}
        """
        with self._db_manager.session_scope() as session:
            return {
                "entries": session.query(RaffleEntryRecord).count(),
                "raffles": session.query(
                    func.count(func.distinct(RaffleEntryRecord.raffle_id))
                ).scalar() or 0,
            }


def init_db() -> None:
    """Initialize the database with default settings."""
    DatabaseInitializer().initialize()
