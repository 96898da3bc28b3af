"""
Database module for Rosterlink.

Provides SQLAlchemy ORM models, session management, and the SQL-backed
stores the identity service runs against.

Usage:
    from rosterlink.db import get_session_factory, SqlPlayerStore

    store = SqlPlayerStore(get_session_factory())
"""

from rosterlink.db.models import (
    Base,
    Player,
    AppUser,
    LinkageAuditLog,
)
from rosterlink.db.session import get_session, get_engine, get_session_factory
from rosterlink.db.stores import SqlAuditSink, SqlPlayerStore, SqlUserAccountStore

__all__ = [
    # Base
    "Base",
    # Models
    "Player",
    "AppUser",
    "LinkageAuditLog",
    # Session
    "get_session",
    "get_engine",
    "get_session_factory",
    # Stores
    "SqlPlayerStore",
    "SqlUserAccountStore",
    "SqlAuditSink",
]
