"""
Database Persistence Layer - Core Engine.

============================================================
PURPOSE
============================================================
SQLAlchemy engine and session management for the anonymization
audit log.

- One process-wide engine, built lazily from DATABASE_URL
- Without DATABASE_URL a local SQLite file is used (warning logged)
- Every unit of work runs inside transaction_scope()
- Persistence errors are raised, never swallowed

============================================================
"""

import os
import logging
from typing import Generator, Optional
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///./anonymization.db"

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


# =============================================================
# ENGINE
# =============================================================

def get_database_url() -> str:
    """DATABASE_URL, with async drivers mapped to their sync form."""
    url = os.getenv("DATABASE_URL")
    if not url:
        logger.warning(f"DATABASE_URL not set, audit log goes to {DEFAULT_DATABASE_URL}")
        return DEFAULT_DATABASE_URL
    return url.replace("postgresql+asyncpg", "postgresql")


def create_database_engine(url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Build an engine for the given URL (DATABASE_URL by default).

    In-memory SQLite shares one connection so every session sees
    the same tables.
    """
    url = url or get_database_url()
    logger.info(f"Opening audit log database {url.split('@')[-1]}")

    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    options = {"connect_args": {"check_same_thread": False}}
    if url == "sqlite://" or ":memory:" in url:
        options["poolclass"] = StaticPool
    return create_engine(url, echo=echo, **options)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_database_engine()
    return _engine


def create_session_factory(engine: Engine) -> sessionmaker:
    # Entries are read after commit, so attributes must not expire
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_session_factory() -> sessionmaker:
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = create_session_factory(get_engine())
    return _SessionFactory


# =============================================================
# TRANSACTIONS
# =============================================================

@contextmanager
def transaction_scope(
    session_factory: Optional[sessionmaker] = None,
) -> Generator[Session, None, None]:
    """
    Run one unit of work in a session.

    The session is committed when the block exits normally and
    rolled back otherwise. SQLAlchemy failures surface as
    DatabasePersistenceError; anything else is re-raised as is.
    """
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Audit log transaction rolled back: {e}")
        raise DatabasePersistenceError(f"Transaction failed: {e}") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """
    Create the audit log table if missing.

    Raises:
        DatabaseInitializationError if table creation fails
    """
    from . import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine or get_engine())
    except SQLAlchemyError as e:
        logger.error(f"Failed to create audit log table: {e}")
        raise DatabaseInitializationError(f"Table creation failed: {e}") from e
    logger.info("Audit log table ready")


# =============================================================
# EXCEPTIONS
# =============================================================

class DatabasePersistenceError(Exception):
    """A database write or read failed."""


class DatabaseInitializationError(Exception):
    """Tables could not be created."""
