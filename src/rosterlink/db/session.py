"""
Database session management for Rosterlink.

Provides SQLAlchemy engine and session factory with proper
connection pooling configuration. Uses the settings from config.py.

The engine is built on first use rather than at import, so importing
the package never needs a database driver.

Usage:
    # As a context manager (recommended for scripts)
    from rosterlink.db import get_session

    with get_session() as session:
        players = session.query(Player).all()
        session.add(new_player)
        # Commits automatically on exit, rolls back on exception

    # As the factory handed to the SQL-backed stores
    from rosterlink.db import get_session_factory, SqlPlayerStore

    store = SqlPlayerStore(get_session_factory())
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from rosterlink.config import settings


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    The engine is configured with:
    - Connection pool for efficient reuse (server databases only)
    - Echo mode disabled (set LOG_LEVEL=DEBUG for SQL logging)
    - Pre-ping to verify connections before use (handles stale connections)
    """
    url = database_url or settings.database_url
    kwargs = {
        "pool_pre_ping": True,  # Verify connection is alive before using
        "echo": settings.log_level == "DEBUG",  # Log SQL only in debug mode
    }
    if not url.startswith("sqlite"):
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow
    return create_engine(url, **kwargs)


# Engine and factory singletons (module-level, created lazily)
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _get_engine() -> Engine:
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the session factory bound to the singleton engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            autocommit=False,  # We'll handle commits explicitly
            autoflush=False,  # Don't auto-flush before queries (more control)
            expire_on_commit=False,  # Rows are read back after commit
            bind=_get_engine(),
        )
    return _session_factory


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.
    This is the recommended way to use sessions in scripts.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
