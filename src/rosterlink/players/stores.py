"""
Collaborator interfaces the identity service depends on.

The service never reaches for a global client: a record store, a
user-account store and an audit sink are passed in at construction.
rosterlink.db.stores provides SQLAlchemy-backed implementations; tests
use in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from rosterlink.players.types import LinkageAudit, PlayerRecord

FieldEqualityMap = Mapping[str, Any]


class RecordStore(Protocol):
    """Player record store. Filters are field-equality only."""

    async def query_players(self, filters: FieldEqualityMap, limit: int) -> list[PlayerRecord]:
        ...

    async def create_player(self, data: Mapping[str, Any]) -> PlayerRecord:
        ...

    async def update_player(
        self,
        player_id: int,
        patch: Mapping[str, Any],
        expected: Optional[FieldEqualityMap] = None,
    ) -> PlayerRecord:
        """
        Apply a partial update.

        When expected is given the write only happens if every listed
        field still holds that value; otherwise StaleRecordError is
        raised and nothing is written.
        """
        ...


class UserAccountStore(Protocol):
    async def update_user_account(self, user_id: str, patch: Mapping[str, Any]) -> Any:
        ...


class AuditSink(Protocol):
    async def append_audit_entry(self, entry: LinkageAudit) -> None:
        ...
