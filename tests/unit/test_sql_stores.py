"""
Tests for the SQLAlchemy-backed stores against a throwaway SQLite file.
"""

import pytest
from sqlalchemy import DateTime, select, text

from rosterlink.db.models import AppUser, LinkageAuditLog, Player
from rosterlink.db.stores import SqlAuditSink, SqlPlayerStore, SqlUserAccountStore
from rosterlink.players.errors import (
    PlayerAlreadyLinkedError,
    RecordNotFoundError,
    RecordStoreError,
    StaleRecordError,
)
from rosterlink.players.identity import PlayerIdentityService
from rosterlink.players.types import MatchStrategy, SignupInfo


def _insert_players(session_factory, *rows):
    with session_factory() as session:
        players = [Player(**row) for row in rows]
        session.add_all(players)
        session.commit()
        return [p.id for p in players]


def _insert_user(session_factory, user_id="user-1", email="jane@x.com"):
    with session_factory() as session:
        session.add(AppUser(id=user_id, email=email))
        session.commit()


# =============================================================================
# SqlPlayerStore
# =============================================================================

class TestSqlPlayerStore:
    @pytest.mark.asyncio
    async def test_query_by_equality(self, session_factory):
        _insert_players(
            session_factory,
            {"first_name": "Jane", "last_name": "Doe", "email_address": "jane@x.com"},
            {"first_name": "Jane", "last_name": "Smith"},
            {"first_name": "Tom", "last_name": "Doe"},
        )
        store = SqlPlayerStore(session_factory)

        by_first = await store.query_players({"first_name": "Jane"}, 10)
        by_both = await store.query_players({"first_name": "Jane", "last_name": "Doe"}, 10)
        by_email = await store.query_players({"email_address": "jane@x.com"}, 10)

        assert [p.last_name for p in by_first] == ["Doe", "Smith"]
        assert [p.id for p in by_both] == [by_email[0].id]
        assert by_email[0].full_name == "Jane Doe"

    @pytest.mark.asyncio
    async def test_query_limit(self, session_factory):
        _insert_players(session_factory, *({"first_name": "Jane", "last_name": f"T{i}"} for i in range(5)))
        store = SqlPlayerStore(session_factory)

        assert len(await store.query_players({"first_name": "Jane"}, 3)) == 3

    @pytest.mark.asyncio
    async def test_query_unknown_field(self, session_factory):
        store = SqlPlayerStore(session_factory)

        with pytest.raises(RecordStoreError):
            await store.query_players({"favourite_colour": "red"}, 10)

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_defaults(self, session_factory):
        store = SqlPlayerStore(session_factory)

        record = await store.create_player({"first_name": "Jane", "last_name": "Doe"})

        assert record.id is not None
        assert record.high_school_irn == ""
        assert record.stars == 0
        assert record.profile_files["photos"] == []
        assert record.linked_user_id is None

    @pytest.mark.asyncio
    async def test_update_unconditional(self, session_factory):
        (player_id,) = _insert_players(session_factory, {"first_name": "Jane", "email_address": "old@x.com"})
        store = SqlPlayerStore(session_factory)

        record = await store.update_player(player_id, {"email_address": "new@x.com"})

        assert record.email_address == "new@x.com"

    @pytest.mark.asyncio
    async def test_update_guard_on_null(self, session_factory):
        (player_id,) = _insert_players(session_factory, {"first_name": "Jane"})
        store = SqlPlayerStore(session_factory)

        record = await store.update_player(
            player_id, {"linked_user_id": "user-1"}, expected={"linked_user_id": None}
        )

        assert record.linked_user_id == "user-1"

    @pytest.mark.asyncio
    async def test_update_stale_guard(self, session_factory):
        (player_id,) = _insert_players(session_factory, {"first_name": "Jane", "linked_user_id": "user-2"})
        store = SqlPlayerStore(session_factory)

        with pytest.raises(StaleRecordError):
            await store.update_player(
                player_id, {"linked_user_id": "user-1"}, expected={"linked_user_id": None}
            )

        (record,) = await store.query_players({"id": player_id}, 1)
        assert record.linked_user_id == "user-2"

    @pytest.mark.asyncio
    async def test_update_missing_row(self, session_factory):
        store = SqlPlayerStore(session_factory)

        with pytest.raises(RecordNotFoundError):
            await store.update_player(999, {"email_address": "x@x.com"})


# =============================================================================
# SqlUserAccountStore / SqlAuditSink
# =============================================================================

@pytest.mark.asyncio
async def test_user_account_update(session_factory):
    _insert_user(session_factory)
    store = SqlUserAccountStore(session_factory)

    user = await store.update_user_account("user-1", {"linked_player_id": 7, "status": "active"})

    assert user.linked_player_id == 7
    assert user.status == "active"


@pytest.mark.asyncio
async def test_user_account_missing(session_factory):
    store = SqlUserAccountStore(session_factory)

    with pytest.raises(RecordNotFoundError):
        await store.update_user_account("nobody", {"status": "active"})


@pytest.mark.asyncio
async def test_user_account_unknown_field(session_factory):
    _insert_user(session_factory)
    store = SqlUserAccountStore(session_factory)

    with pytest.raises(RecordStoreError):
        await store.update_user_account("user-1", {"shoe_size": 11})


# =============================================================================
# End to end over SQLite
# =============================================================================

@pytest.mark.asyncio
async def test_service_over_sql_stores(session_factory):
    (jane_id, _) = _insert_players(
        session_factory,
        {"first_name": "Jane", "last_name": "Doe", "email_address": "old@x.com",
         "high_school_irn": "012345"},
        {"first_name": "Jane", "last_name": "Smith"},
    )
    _insert_user(session_factory)
    _insert_user(session_factory, user_id="user-2", email="tom@x.com")
    service = PlayerIdentityService(
        SqlPlayerStore(session_factory),
        SqlUserAccountStore(session_factory),
        SqlAuditSink(session_factory),
        dedup_policy="first_seen",
    )

    candidates = await service.find_potential_matches(
        SignupInfo(full_name="Jane Doe", email="jane@x.com", school_irn="012345")
    )
    assert candidates[0].player_id == jane_id
    assert candidates[0].strategy is MatchStrategy.NAME_SCHOOL_MATCH

    result = await service.link_user_to_player(
        "user-1", jane_id, "jane@x.com", "admin@club.org", require_unlinked=True
    )
    assert result.email_updated is True

    with pytest.raises(PlayerAlreadyLinkedError):
        await service.link_user_to_player(
            "user-2", jane_id, "tom@x.com", "admin@club.org", require_unlinked=True
        )

    created = await service.create_player_from_signup(
        "user-2", SignupInfo(full_name="Tom Roe", email="tom@x.com"), "admin@club.org"
    )

    with session_factory() as session:
        jane = session.get(Player, jane_id)
        assert jane.linked_user_id == "user-1"
        assert jane.email_address == "jane@x.com"

        tom = session.get(AppUser, "user-2")
        assert tom.linked_player_id == created.player_id
        assert tom.player_profile_created is True

        audit = session.scalars(select(LinkageAuditLog).order_by(LinkageAuditLog.id)).all()
        assert [row.action for row in audit] == ["user_linked", "player_created"]
        assert audit[0].details["email_updated"] is True
        assert audit[1].player_id == created.player_id

    assert await service.check_auto_approval("tom@x.com") is True


# =============================================================================
# Schema
# =============================================================================

@pytest.mark.parametrize("model", [Player, AppUser, LinkageAuditLog])
def test_timestamps_are_timezone_aware(model):
    stamps = [c for c in model.__table__.columns if isinstance(c.type, DateTime)]
    assert stamps
    assert all(c.type.timezone for c in stamps)


def test_raw_insert_gets_server_defaults(session_factory):
    with session_factory() as session:
        session.execute(text("INSERT INTO players (profile_files) VALUES ('{}')"))
        session.execute(text("INSERT INTO app_users (id) VALUES ('raw-user')"))
        session.commit()

        player = session.scalars(select(Player)).one()
        assert player.first_name == ""
        assert player.high_school_irn == ""
        assert player.stars == 0
        assert player.created_from_signup is False

        user = session.get(AppUser, "raw-user")
        assert user.email == ""
        assert user.status == "pending"
        assert user.invitation_status == "pending"
