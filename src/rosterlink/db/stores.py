"""
SQLAlchemy-backed collaborators for the identity service.

Each store takes a session factory and opens a fresh session per call
inside a worker thread (asyncio.to_thread). Sessions are never shared
between calls, so the strategy engine can run its queries concurrently.

Database errors are re-raised as RecordStoreError so the service sees a
single store error type regardless of backend.
"""

import asyncio
import logging
from typing import Any, Mapping, Optional

from sqlalchemy import inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from rosterlink.db.models import AppUser, LinkageAuditLog, Player
from rosterlink.players.errors import (
    RecordNotFoundError,
    RecordStoreError,
    StaleRecordError,
)
from rosterlink.players.types import LinkageAudit, PlayerRecord

logger = logging.getLogger(__name__)

# Columns a caller may filter, create or patch on
PLAYER_FIELDS = frozenset(c.key for c in inspect(Player).column_attrs)
USER_FIELDS = frozenset(c.key for c in inspect(AppUser).column_attrs)


def _to_record(player: Player) -> PlayerRecord:
    """Detach an ORM row into a PlayerRecord snapshot."""
    return PlayerRecord(
        id=player.id,
        first_name=player.first_name or "",
        last_name=player.last_name or "",
        email_address=player.email_address or "",
        phone_number=player.phone_number or "",
        high_school_irn=player.high_school_irn or "",
        high_school=player.high_school or "",
        linked_user_id=player.linked_user_id,
        linked_at=player.linked_at,
        middle_name=player.middle_name or "",
        suffix=player.suffix or "",
        nickname=player.nickname or "",
        position=player.position or "",
        class_year=player.class_year,
        stars=player.stars or 0,
        id_number=player.id_number or "",
        dob=player.dob or "",
        caption=player.caption or "",
        profile_files=dict(player.profile_files or {}),
        created_from_signup=bool(player.created_from_signup),
        created_by=player.created_by,
        created_at=player.created_at,
        updated_at=player.updated_at,
    )


def _check_fields(fields, allowed: frozenset, table: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise RecordStoreError(f"Unknown {table} field(s): {', '.join(sorted(unknown))}")


class SqlPlayerStore:
    """Record store over the players table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def query_players(self, filters: Mapping[str, Any], limit: int) -> list[PlayerRecord]:
        return await asyncio.to_thread(self._query_players, dict(filters), limit)

    async def create_player(self, data: Mapping[str, Any]) -> PlayerRecord:
        return await asyncio.to_thread(self._create_player, dict(data))

    async def update_player(
        self,
        player_id: int,
        patch: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> PlayerRecord:
        return await asyncio.to_thread(
            self._update_player, player_id, dict(patch), dict(expected or {})
        )

    def _query_players(self, filters: dict, limit: int) -> list[PlayerRecord]:
        _check_fields(filters, PLAYER_FIELDS, "player")

        stmt = select(Player)
        for field, value in filters.items():
            stmt = stmt.where(getattr(Player, field) == value)
        stmt = stmt.order_by(Player.id).limit(limit)

        try:
            with self.session_factory() as session:
                return [_to_record(p) for p in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Player query failed: {exc}") from exc

    def _create_player(self, data: dict) -> PlayerRecord:
        _check_fields(data, PLAYER_FIELDS - {"id"}, "player")

        try:
            with self.session_factory() as session:
                player = Player(**data)
                session.add(player)
                session.commit()
                session.refresh(player)
                return _to_record(player)
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Player create failed: {exc}") from exc

    def _update_player(self, player_id: int, patch: dict, expected: dict) -> PlayerRecord:
        _check_fields(patch, PLAYER_FIELDS - {"id"}, "player")
        _check_fields(expected, PLAYER_FIELDS, "player")

        # Single conditional UPDATE: the guard and the write are atomic
        stmt = update(Player).where(Player.id == player_id)
        for field, value in expected.items():
            column = getattr(Player, field)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        stmt = stmt.values(**patch).execution_options(synchronize_session=False)

        try:
            with self.session_factory() as session:
                result = session.execute(stmt)
                if result.rowcount == 0:
                    session.rollback()
                    if session.get(Player, player_id) is None:
                        raise RecordNotFoundError(f"Player {player_id} not found")
                    raise StaleRecordError(
                        f"Player {player_id} no longer matches {sorted(expected)}"
                    )
                session.commit()
                return _to_record(session.get(Player, player_id))
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Player update failed: {exc}") from exc


class SqlUserAccountStore:
    """User-account store over the app_users table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def update_user_account(self, user_id: str, patch: Mapping[str, Any]) -> AppUser:
        return await asyncio.to_thread(self._update_user_account, user_id, dict(patch))

    def _update_user_account(self, user_id: str, patch: dict) -> AppUser:
        _check_fields(patch, USER_FIELDS - {"id"}, "user")

        try:
            with self.session_factory() as session:
                user = session.get(AppUser, user_id)
                if user is None:
                    raise RecordNotFoundError(f"User {user_id} not found")
                for field, value in patch.items():
                    setattr(user, field, value)
                session.commit()
                session.refresh(user)
                session.expunge(user)
                return user
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"User update failed: {exc}") from exc


class SqlAuditSink:
    """Audit sink that inserts into linkage_audit_log."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def append_audit_entry(self, entry: LinkageAudit) -> None:
        await asyncio.to_thread(self._append, entry)

    def _append(self, entry: LinkageAudit) -> None:
        row = LinkageAuditLog(
            action=entry.action.value,
            user_id=entry.user_id,
            player_id=entry.player_id,
            performed_by=entry.performed_by,
            details=entry.details,
            created_at=entry.timestamp,
        )
        with self.session_factory() as session:
            session.add(row)
            session.commit()
        logger.debug("Audit %s: user=%s player=%d", entry.action.value, entry.user_id, entry.player_id)
