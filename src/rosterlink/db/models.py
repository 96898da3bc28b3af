"""
SQLAlchemy ORM models for Rosterlink.

This module defines the tables the signup identity-resolution core reads
and writes. The player and user tables are owned by the wider roster
platform; only the columns this package touches are mapped here.

Key design decisions:
- A player record has at most one linked user account (linked_user_id)
- A user account points back at its player via linked_player_id
- Linkage decisions are recorded in an append-only audit table
- JSON (not JSONB) columns so the schema also builds on SQLite for tests

Tables:
- players: Roster player records
- app_users: Platform user accounts
- linkage_audit_log: Audit trail of link/create decisions
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    false,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current UTC time, used for all stamps."""
    return datetime.now(timezone.utc)


def empty_profile_files() -> dict:
    """File-attachment placeholders for a freshly created player profile."""
    return {
        "photos": [],
        "school_id": None,
        "report_cards": [],
        "highlight_video": None,
    }


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Player Models
# =============================================================================

class Player(Base):
    """
    Roster player record.

    Names, contact details and school are what signup matching searches
    on. Phone numbers are stored normalized (digits only, no US country
    code) and emails lower-cased, so equality filters line up with the
    normalized signup values.
    """
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Identity fields used by the matching strategies
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="", server_default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="", server_default="")
    email_address: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False, default="", server_default="")
    high_school_irn: Mapped[str] = mapped_column(String(20), nullable=False, default="", server_default="")
    high_school: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")

    # Back-reference to the user account claiming this record
    linked_user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    linked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Profile attributes (filled in by the player after signup)
    middle_name: Mapped[str] = mapped_column(String(100), nullable=False, default="", server_default="")
    suffix: Mapped[str] = mapped_column(String(20), nullable=False, default="", server_default="")
    nickname: Mapped[str] = mapped_column(String(100), nullable=False, default="", server_default="")
    position: Mapped[str] = mapped_column(String(50), nullable=False, default="", server_default="")
    class_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    stars: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    id_number: Mapped[str] = mapped_column(String(50), nullable=False, default="", server_default="")
    dob: Mapped[str] = mapped_column(String(20), nullable=False, default="", server_default="")
    caption: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    profile_files: Mapped[dict] = mapped_column(JSON, nullable=False, default=empty_profile_files)

    # Provenance
    created_from_signup: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_players_email", "email_address"),
        Index("idx_players_name", "first_name", "last_name"),
        Index("idx_players_last_name", "last_name"),
    )

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name='{self.first_name} {self.last_name}')>"


# =============================================================================
# User Models
# =============================================================================

class AppUser(Base):
    """
    Platform user account.

    User ids come from the authentication provider, so they are opaque
    strings rather than integers. The linkage columns are written when an
    operator links a signup to an existing player or creates a new one.
    """
    __tablename__ = "app_users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")

    role: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending", server_default="pending")
    invitation_status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending", server_default="pending")
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Linkage to a player record
    linked_player_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    player_profile_created: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    player_profile_linked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    player_profile_created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    linked_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<AppUser(id='{self.id}', status='{self.status}')>"


# =============================================================================
# Audit Models
# =============================================================================

class LinkageAuditLog(Base):
    """
    Audit trail for signup linkage decisions.

    One row per decision ('user_linked' or 'player_created'). Rows are
    only ever inserted.
    """
    __tablename__ = "linkage_audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)

    action: Mapped[str] = mapped_column(String(30), nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    player_id: Mapped[int] = mapped_column(Integer, nullable=False)
    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)

    # Details about the decision (varies by action)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_linkage_audit_user", "user_id", "created_at"),
        Index("idx_linkage_audit_player", "player_id"),
    )

    def __repr__(self) -> str:
        return f"<LinkageAuditLog(action='{self.action}', user='{self.user_id}', player={self.player_id})>"
