"""
Candidate search strategies for signup matching.

Four independent searches run against the record store:
1. Email - exact email address (capped at 10)
2. Name + school - exact first, last name and school IRN (capped at 10)
3. Name + phone - exact first, last name and phone (capped at 10)
4. Partial name - first name alone and last name alone (20 each)

The queries are issued concurrently, but results are always handed
back in the priority order above, because first-seen deduplication
depends on that order. A strategy whose query fails logs the error and
contributes nothing; the other strategies are unaffected.
"""

import asyncio
import logging
from typing import Optional

from rosterlink.config import settings
from rosterlink.players.stores import RecordStore
from rosterlink.players.types import MatchStrategy, NormalizedSignupInfo, PlayerRecord

logger = logging.getLogger(__name__)

StrategyResults = list[tuple[MatchStrategy, list[PlayerRecord]]]


class StrategyEngine:
    """
    Runs the four match strategies against a record store.

    Usage:
        engine = StrategyEngine(record_store)
        for strategy, records in await engine.search(normalized):
            ...
    """

    def __init__(
        self,
        record_store: RecordStore,
        exact_limit: Optional[int] = None,
        partial_limit: Optional[int] = None,
    ):
        self.record_store = record_store
        self.exact_limit = exact_limit or settings.match_exact_limit
        self.partial_limit = partial_limit or settings.match_partial_limit

    async def search(self, criteria: NormalizedSignupInfo) -> StrategyResults:
        """
        Run every strategy concurrently.

        Returns:
            (strategy, records) pairs in priority order, one per strategy.
            Skipped or failed strategies carry an empty list.
        """
        order = [
            (MatchStrategy.EMAIL_MATCH, self._email_match),
            (MatchStrategy.NAME_SCHOOL_MATCH, self._name_school_match),
            (MatchStrategy.NAME_PHONE_MATCH, self._name_phone_match),
            (MatchStrategy.PARTIAL_NAME_MATCH, self._partial_name_match),
        ]

        # gather() returns results in argument order, not completion order
        results = await asyncio.gather(
            *(self._run_isolated(strategy, runner, criteria) for strategy, runner in order)
        )

        return [(strategy, records) for (strategy, _), records in zip(order, results)]

    async def _run_isolated(self, strategy, runner, criteria) -> list[PlayerRecord]:
        try:
            records = await runner(criteria)
        except Exception as exc:
            logger.warning("Strategy %s failed, skipping: %s", strategy.label, exc)
            return []

        logger.debug("Strategy %s found %d record(s)", strategy.label, len(records))
        return records

    # =========================================================================
    # Strategies
    # =========================================================================

    async def _email_match(self, criteria: NormalizedSignupInfo) -> list[PlayerRecord]:
        if not criteria.normalized_email:
            return []

        return await self.record_store.query_players(
            {"email_address": criteria.normalized_email}, self.exact_limit
        )

    async def _name_school_match(self, criteria: NormalizedSignupInfo) -> list[PlayerRecord]:
        if not (criteria.school_irn and criteria.first_name and criteria.last_name):
            return []

        return await self.record_store.query_players(
            {
                "first_name": criteria.first_name,
                "last_name": criteria.last_name,
                "high_school_irn": criteria.school_irn,
            },
            self.exact_limit,
        )

    async def _name_phone_match(self, criteria: NormalizedSignupInfo) -> list[PlayerRecord]:
        if not (criteria.normalized_phone and criteria.first_name and criteria.last_name):
            return []

        return await self.record_store.query_players(
            {
                "first_name": criteria.first_name,
                "last_name": criteria.last_name,
                "phone_number": criteria.normalized_phone,
            },
            self.exact_limit,
        )

    async def _partial_name_match(self, criteria: NormalizedSignupInfo) -> list[PlayerRecord]:
        # Either query failing fails the whole strategy
        records: list[PlayerRecord] = []

        if criteria.first_name:
            records.extend(
                await self.record_store.query_players(
                    {"first_name": criteria.first_name}, self.partial_limit
                )
            )

        if criteria.last_name:
            records.extend(
                await self.record_store.query_players(
                    {"last_name": criteria.last_name}, self.partial_limit
                )
            )

        return records
