"""
Database connection management for the multitenant timesheet service.

Provides database engine, session management, and connection utilities.
"""
import logging
import os
from typing import Generator
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from .models import Base

logger = logging.getLogger(__name__)

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./timesheets.db")


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine, applying the SQLite-specific pool and thread settings."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False}
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


engine = build_engine(DATABASE_URL, echo=os.getenv("SQL_ECHO", "false").lower() == "true")

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Enable foreign key constraints for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    if "sqlite" in type(dbapi_connection).__module__:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_tables(bind: Engine = engine):
    """Create all database tables."""
    Base.metadata.create_all(bind=bind)


def drop_tables(bind: Engine = engine):
    """Drop all database tables."""
    Base.metadata.drop_all(bind=bind)


# PUBLIC_INTERFACE
def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get a request-scoped database session.

    Anything not committed when the request ends, including work abandoned
    by an exception or a cancelled request, is rolled back.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()


class DatabaseManager:
    """Database management utilities."""

    @staticmethod
    def init_db():
        """Initialize the database with tables."""
        create_tables()
        logger.info("Database tables ensured at %s", engine.url.render_as_string(hide_password=True))

    @staticmethod
    def reset_db():
        """Reset database by dropping and recreating tables."""
        drop_tables()
        create_tables()
