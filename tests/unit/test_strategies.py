"""
Unit tests for the concurrent strategy engine.
"""

import pytest

from rosterlink.players.normalize import normalize_signup
from rosterlink.players.strategies import StrategyEngine
from rosterlink.players.types import MatchStrategy, SignupInfo

FULL_SIGNUP = SignupInfo(
    full_name="Jane Doe",
    phone_number="(614) 555-0100",
    email="Jane@X.com",
    school_irn="012345",
    school_name="Central High",
)


def _seed(store):
    store.add(first_name="Jane", last_name="Doe", email_address="jane@x.com",
              phone_number="6145550100", high_school_irn="012345")
    store.add(first_name="Jane", last_name="Smith")
    store.add(first_name="Tom", last_name="Doe")


@pytest.mark.asyncio
async def test_results_in_priority_order(player_store):
    _seed(player_store)
    engine = StrategyEngine(player_store, exact_limit=10, partial_limit=20)

    results = await engine.search(normalize_signup(FULL_SIGNUP))

    assert [s for s, _ in results] == [
        MatchStrategy.EMAIL_MATCH,
        MatchStrategy.NAME_SCHOOL_MATCH,
        MatchStrategy.NAME_PHONE_MATCH,
        MatchStrategy.PARTIAL_NAME_MATCH,
    ]
    by_strategy = {s: [r.id for r in records] for s, records in results}
    assert by_strategy[MatchStrategy.EMAIL_MATCH] == [1]
    assert by_strategy[MatchStrategy.NAME_SCHOOL_MATCH] == [1]
    assert by_strategy[MatchStrategy.NAME_PHONE_MATCH] == [1]
    # first-name query then last-name query, record 1 appears in both
    assert by_strategy[MatchStrategy.PARTIAL_NAME_MATCH] == [1, 2, 1, 3]


@pytest.mark.asyncio
async def test_order_fixed_even_when_email_is_slowest(player_store):
    _seed(player_store)
    player_store.delays = {"email_address": 0.05}
    engine = StrategyEngine(player_store)

    results = await engine.search(normalize_signup(FULL_SIGNUP))

    assert results[0][0] is MatchStrategy.EMAIL_MATCH
    assert [r.id for r in results[0][1]] == [1]


@pytest.mark.asyncio
async def test_queries_run_concurrently(player_store):
    _seed(player_store)
    player_store.delays = {"email_address": 0.02, "high_school_irn": 0.02, "phone_number": 0.02}
    engine = StrategyEngine(player_store)

    await engine.search(normalize_signup(FULL_SIGNUP))

    assert player_store.max_in_flight > 1


@pytest.mark.asyncio
async def test_filters_and_limits(player_store):
    engine = StrategyEngine(player_store, exact_limit=10, partial_limit=20)

    await engine.search(normalize_signup(FULL_SIGNUP))

    assert sorted(player_store.calls, key=repr) == sorted(
        [
            ({"email_address": "jane@x.com"}, 10),
            ({"first_name": "Jane", "last_name": "Doe", "high_school_irn": "012345"}, 10),
            ({"first_name": "Jane", "last_name": "Doe", "phone_number": "6145550100"}, 10),
            ({"first_name": "Jane"}, 20),
            ({"last_name": "Doe"}, 20),
        ],
        key=repr,
    )


@pytest.mark.asyncio
async def test_strategies_skipped_without_inputs(player_store):
    engine = StrategyEngine(player_store)

    results = await engine.search(normalize_signup(SignupInfo(full_name="Cher")))

    assert player_store.calls == [({"first_name": "Cher"}, 20)]
    assert all(records == [] for _, records in results)


@pytest.mark.asyncio
async def test_nothing_to_search(player_store):
    engine = StrategyEngine(player_store)

    results = await engine.search(normalize_signup(SignupInfo()))

    assert player_store.calls == []
    assert len(results) == 4


@pytest.mark.asyncio
async def test_failing_strategy_is_isolated(player_store, caplog):
    _seed(player_store)
    player_store.fail_when = lambda filters: "phone_number" in filters
    engine = StrategyEngine(player_store)

    results = dict(await engine.search(normalize_signup(FULL_SIGNUP)))

    assert results[MatchStrategy.NAME_PHONE_MATCH] == []
    assert [r.id for r in results[MatchStrategy.EMAIL_MATCH]] == [1]
    assert [r.id for r in results[MatchStrategy.NAME_SCHOOL_MATCH]] == [1]
    assert results[MatchStrategy.PARTIAL_NAME_MATCH]
    assert "name_phone" in caplog.text


@pytest.mark.asyncio
async def test_partial_strategy_fails_as_a_whole(player_store):
    _seed(player_store)
    player_store.fail_when = lambda filters: filters == {"last_name": "Doe"}
    engine = StrategyEngine(player_store)

    results = dict(await engine.search(normalize_signup(FULL_SIGNUP)))

    assert results[MatchStrategy.PARTIAL_NAME_MATCH] == []
    assert [r.id for r in results[MatchStrategy.EMAIL_MATCH]] == [1]


@pytest.mark.asyncio
async def test_limit_applied(player_store):
    for i in range(15):
        player_store.add(first_name="Jane", last_name=f"Test{i}", email_address="shared@x.com")
    engine = StrategyEngine(player_store, exact_limit=10, partial_limit=20)

    results = dict(await engine.search(normalize_signup(SignupInfo(full_name="Jane", email="shared@x.com"))))

    assert len(results[MatchStrategy.EMAIL_MATCH]) == 10
    assert len(results[MatchStrategy.PARTIAL_NAME_MATCH]) == 15
