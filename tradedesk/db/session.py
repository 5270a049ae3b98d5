# File: tradedesk/db/session.py
"""
Database session management for TradeDesk.

Provides the SQLAlchemy engine, the session factory, the FastAPI ``get_db``
dependency and schema initialization. Every store call is bounded by
``settings.DB_TIMEOUT_SECONDS``: the SQLite busy timeout, or the PostgreSQL
``statement_timeout``.

Usage:
    from tradedesk.db.session import get_db

    # In FastAPI dependency
    def some_endpoint(db: Session = Depends(get_db)):
        ...
"""

import logging
import threading
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tradedesk.core.config import settings
from tradedesk.db.models import Base

logger = logging.getLogger(__name__)

CONNECTION_POOL_PRE_PING = True


def _connect_args(database_url: str) -> Dict[str, Any]:
    """Driver arguments that enforce the store timeout."""
    if database_url.startswith("sqlite"):
        return {
            "check_same_thread": False,
            "timeout": settings.DB_TIMEOUT_SECONDS,
        }
    if database_url.startswith("postgresql"):
        timeout_ms = int(settings.DB_TIMEOUT_SECONDS * 1000)
        return {
            "connect_timeout": settings.DB_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={timeout_ms}",
        }
    return {}


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Configured SQLAlchemy engine
    """
    db_engine = create_engine(
        database_url,
        connect_args=_connect_args(database_url),
        pool_pre_ping=CONNECTION_POOL_PRE_PING,
        echo=settings.DEBUG,
    )

    if database_url.startswith("sqlite"):

        @event.listens_for(db_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return db_engine


logger.info(f"Creating SQLAlchemy engine for {settings.DATABASE_URL}")
engine = create_db_engine(settings.DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# -----------------------------------------------------------------------------
# FastAPI Dependency
# -----------------------------------------------------------------------------


def get_db() -> Generator[Session, None, None]:
    """
    Get a database session with proper resource management.

    Returns:
        SQLAlchemy Session for database operations
    """
    thread_id = threading.get_ident()
    logger.debug(f"Creating DB session for thread {thread_id}")

    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Error in get_db for thread {thread_id}: {e}")
        raise
    finally:
        db.close()
        logger.debug(f"Closed DB session for thread {thread_id}")


# -----------------------------------------------------------------------------
# Database Verification and Initialization
# -----------------------------------------------------------------------------


def verify_db_connection(db_engine: Engine = None) -> bool:
    """
    Verify that we can connect to the database.

    Returns:
        True if connection succeeds, False otherwise
    """
    db_engine = db_engine or engine
    try:
        with db_engine.connect() as connection:
            result = connection.execute(text("SELECT 1")).scalar()
            logger.info(f"Database connection verified: {result}")
            return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection verification failed: {e}")
        return False


def init_db(reset: bool = False, db_engine: Engine = None) -> bool:
    """
    Initialize the database schema.

    Args:
        reset: Whether to drop and recreate all tables
        db_engine: Engine to initialize (defaults to the application engine)

    Returns:
        True if initialization succeeds, False otherwise
    """
    db_engine = db_engine or engine
    logger.info("Initializing database schema...")

    if not verify_db_connection(db_engine):
        logger.error("Engine connection test failed before create_all")
        return False

    try:
        if reset:
            logger.info("Dropping all tables for reset...")
            Base.metadata.drop_all(bind=db_engine)
            logger.info("Tables dropped successfully")

        logger.info("Creating tables via SQLAlchemy...")
        Base.metadata.create_all(bind=db_engine)

        table_count = len(inspect(db_engine).get_table_names())
        logger.info(f"Database schema initialized with {table_count} tables")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database schema initialization failed: {str(e)}")
        logger.exception("Database initialization error details:")
        return False
