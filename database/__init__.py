"""
Database Package Initialization.

SQLAlchemy persistence for the anonymization audit log.
"""

from .engine import (
    Base,
    create_database_engine,
    create_session_factory,
    get_engine,
    get_session_factory,
    transaction_scope,
    create_all_tables,
    DatabasePersistenceError,
    DatabaseInitializationError,
)

from .models import AnonymizationLogRow

__all__ = [
    "Base",
    "create_database_engine",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "transaction_scope",
    "create_all_tables",
    "DatabasePersistenceError",
    "DatabaseInitializationError",
    "AnonymizationLogRow",
]
