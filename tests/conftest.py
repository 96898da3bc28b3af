"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests: in-memory fakes for the three
collaborators the identity service depends on, and a throwaway
SQLite database for the SQL-backed stores.
"""

import asyncio
import dataclasses
from itertools import count

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from rosterlink.db.models import Base
from rosterlink.players.errors import (
    RecordNotFoundError,
    RecordStoreError,
    StaleRecordError,
)
from rosterlink.players.identity import PlayerIdentityService
from rosterlink.players.types import PlayerRecord


class InMemoryPlayerStore:
    """
    Record store backed by a dict.

    Test hooks:
    - fail_when: callable(filters) -> bool; matching queries raise
    - delays: filter field -> seconds to sleep before answering
    - calls: every (filters, limit) the store was queried with
    """

    def __init__(self):
        self.players: dict[int, PlayerRecord] = {}
        self.calls: list[tuple[dict, int]] = []
        self.updates: list[tuple[int, dict, dict]] = []
        self.fail_when = lambda filters: False
        self.fail_create = False
        self.delays: dict[str, float] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self._ids = count(1)

    def add(self, **fields) -> PlayerRecord:
        record = PlayerRecord(id=next(self._ids), **fields)
        self.players[record.id] = record
        return record

    async def query_players(self, filters, limit):
        filters = dict(filters)
        self.calls.append((filters, limit))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = max((self.delays.get(f, 0.0) for f in filters), default=0.0)
            await asyncio.sleep(delay)
            if self.fail_when(filters):
                raise RecordStoreError(f"store unavailable for {sorted(filters)}")
            hits = [
                dataclasses.replace(p)
                for p in self.players.values()
                if all(getattr(p, k) == v for k, v in filters.items())
            ]
            return hits[:limit]
        finally:
            self.in_flight -= 1

    async def create_player(self, data):
        if self.fail_create:
            raise RecordStoreError("create failed")
        return dataclasses.replace(self.add(**dict(data)))

    async def update_player(self, player_id, patch, expected=None):
        self.updates.append((player_id, dict(patch), dict(expected or {})))
        player = self.players.get(player_id)
        if player is None:
            raise RecordNotFoundError(f"Player {player_id} not found")
        for field, value in (expected or {}).items():
            if getattr(player, field) != value:
                raise StaleRecordError(f"Player {player_id} changed")
        for field, value in patch.items():
            setattr(player, field, value)
        return dataclasses.replace(player)


class InMemoryUserStore:
    def __init__(self):
        self.users: dict[str, dict] = {}
        self.fail = False

    async def update_user_account(self, user_id, patch):
        if self.fail:
            raise RecordStoreError("user store unavailable")
        if user_id not in self.users:
            raise RecordNotFoundError(f"User {user_id} not found")
        self.users[user_id].update(patch)
        return self.users[user_id]


class InMemoryAuditSink:
    def __init__(self):
        self.entries = []
        self.fail = False

    async def append_audit_entry(self, entry):
        if self.fail:
            raise ConnectionError("audit log unreachable")
        self.entries.append(entry)


@pytest.fixture
def player_store():
    return InMemoryPlayerStore()


@pytest.fixture
def user_store():
    store = InMemoryUserStore()
    store.users["user-1"] = {"email": "jane@x.com", "status": "pending"}
    return store


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def service(player_store, user_store, audit_sink):
    """Identity service wired to the in-memory fakes."""
    return PlayerIdentityService(
        player_store, user_store, audit_sink, dedup_policy="first_seen"
    )


@pytest.fixture
def session_factory(tmp_path):
    """
    Session factory over a throwaway SQLite file.

    A file (not :memory:) so every worker thread the SQL stores use
    sees the same database.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'rosterlink.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()
