"""
==============================================================================
Database Package
==============================================================================

SQLAlchemy database infrastructure for recorded raffle entries.

Architecture:
------------
├── database.py   - DatabaseManager class, session factory
├── models.py     - RaffleEntryRecord ORM model
└── init_db.py    - DatabaseInitializer for setup

Usage:
------
    from app.db import DatabaseManager, RaffleEntryRecord, init_db

    with DatabaseManager().session_scope() as session:
        session.query(RaffleEntryRecord).count()

==============================================================================
"""

from .database import Base, DatabaseManager, get_database_manager, get_db
from .models import RaffleEntryRecord
from .init_db import DatabaseInitializer, init_db

__all__ = [
    # Database management
    "Base",
    "DatabaseManager",
    "get_database_manager",
    "get_db",
    # Models
    "RaffleEntryRecord",
    # Initialization
    "DatabaseInitializer",
    "init_db",
]
