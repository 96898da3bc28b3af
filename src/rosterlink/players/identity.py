"""
Player identity service for matching signups to roster records.

This is the core service for signup linkage. It handles:
- Finding existing players that may belong to a new account
- Linking an account to the player an operator picked
- Creating a new player when no candidate is acceptable
- Recording an audit entry for every decision

The search runs four strategies concurrently (see strategies.py):
1. Exact email - near-certain identity signal
2. Exact name + school - very reliable
3. Exact name + phone - very reliable
4. Partial name (first or last alone) - suggestions only

Hits are scored, duplicate records collapsed and the result ranked by
confidence. The operator then picks a candidate (link) or none (create).

Concurrency note: two signups may both link to the same unlinked player.
Pass require_unlinked=True to make the player write conditional on the
back-reference read before linking; without it the last writer wins.
"""

import logging
from typing import Optional

from rosterlink.config import settings
from rosterlink.db.models import empty_profile_files, utcnow
from rosterlink.players.errors import (
    LinkageError,
    PlayerAlreadyLinkedError,
    PlayerNotFoundError,
    StaleRecordError,
)
from rosterlink.players.normalize import normalize_email, normalize_signup
from rosterlink.players.scoring import DEDUP_POLICIES, deduplicate, rank, score_candidate
from rosterlink.players.stores import AuditSink, RecordStore, UserAccountStore
from rosterlink.players.strategies import StrategyEngine
from rosterlink.players.types import (
    LinkageAction,
    LinkageAudit,
    LinkageResult,
    MatchCandidate,
    PlayerRecord,
    SignupInfo,
)

logger = logging.getLogger(__name__)


class PlayerIdentityService:
    """
    Service for resolving a new signup to a roster player.

    All collaborators are injected, so tests can substitute in-memory
    fakes and production code can pass the SQL-backed stores.

    Usage:
        service = PlayerIdentityService(record_store, user_store, audit_sink)

        candidates = await service.find_potential_matches(signup)

        if operator_picked:
            result = await service.link_user_to_player(
                user_id, candidates[0].player_id, signup.email, "admin@club.org"
            )
        else:
            result = await service.create_player_from_signup(
                user_id, signup, "admin@club.org"
            )
    """

    def __init__(
        self,
        record_store: RecordStore,
        user_store: UserAccountStore,
        audit_sink: AuditSink,
        engine: Optional[StrategyEngine] = None,
        dedup_policy: Optional[str] = None,
    ):
        """
        Initialize the identity service.

        Args:
            record_store: Player record store
            user_store: User account store
            audit_sink: Append-only audit log
            engine: Strategy engine (defaults to one over record_store)
            dedup_policy: 'first_seen' or 'max_score' (defaults to settings)

        Raises:
            ValueError: If dedup_policy is not a known policy
        """
        policy = dedup_policy or settings.match_dedup_policy
        if policy not in DEDUP_POLICIES:
            raise ValueError(
                f"Unknown dedup policy: {policy!r} (expected one of {', '.join(DEDUP_POLICIES)})"
            )

        self.record_store = record_store
        self.user_store = user_store
        self.audit_sink = audit_sink
        self.engine = engine or StrategyEngine(record_store)
        self.dedup_policy = policy

    # =========================================================================
    # Main Public Methods
    # =========================================================================

    async def find_potential_matches(self, signup: SignupInfo) -> list[MatchCandidate]:
        """
        Find existing players that may correspond to a signup.

        Never raises for search problems: failed strategies just contribute
        fewer candidates.

        Args:
            signup: Raw signup attributes

        Returns:
            Deduplicated candidates, highest confidence first (may be empty)
        """
        try:
            criteria = normalize_signup(signup)
            logger.debug(
                "Searching matches for first=%r last=%r school=%r phone?=%s email?=%s",
                criteria.first_name,
                criteria.last_name,
                criteria.school_irn,
                bool(criteria.normalized_phone),
                bool(criteria.normalized_email),
            )

            raw: list[MatchCandidate] = []
            for strategy, records in await self.engine.search(criteria):
                raw.extend(score_candidate(record, strategy, criteria) for record in records)

            candidates = rank(deduplicate(raw, self.dedup_policy))
        except Exception:
            logger.exception("Unexpected error while searching for player matches")
            return []

        logger.info(
            "Signup search found %d candidate(s) (%d raw hits)", len(candidates), len(raw)
        )
        return candidates

    async def link_user_to_player(
        self,
        user_id: str,
        player_id: int,
        user_email: str,
        performed_by: str,
        require_unlinked: bool = False,
    ) -> LinkageResult:
        """
        Link a user account to an existing player record.

        Args:
            user_id: Account being linked
            player_id: Player the operator chose
            user_email: Email the account signed up with
            performed_by: Operator making the decision (for audit)
            require_unlinked: Refuse if another user already holds the player,
                and make the player write conditional on its current link

        Returns:
            LinkageResult with action 'linked' and the player as last written

        Raises:
            PlayerNotFoundError: If player_id does not exist
            PlayerAlreadyLinkedError: If require_unlinked and the player
                belongs to another user
            LinkageError: If any store write fails (earlier writes stay)
        """
        player = await self._get_player(player_id)

        if (
            require_unlinked
            and player.linked_user_id
            and player.linked_user_id != user_id
        ):
            raise PlayerAlreadyLinkedError(
                f"Player {player_id} is already linked to user {player.linked_user_id}"
            )

        email = normalize_email(user_email)
        email_updated = (player.email_address or "") != email
        now = utcnow()

        player_patch = {"linked_user_id": user_id, "linked_at": now}
        if email_updated:
            player_patch["email_address"] = email

        stored_email = player.email_address

        try:
            # Guarded links claim the player first, so losing a race
            # leaves the user account untouched
            if require_unlinked:
                player = await self.record_store.update_player(
                    player_id,
                    player_patch,
                    expected={"linked_user_id": player.linked_user_id},
                )

            await self.user_store.update_user_account(
                user_id,
                {
                    "linked_player_id": player_id,
                    "player_profile_created": False,  # Using existing profile
                    "player_profile_linked_at": now,
                    "linked_by": performed_by,
                    "status": "active",
                    "role": "Player",
                    "invitation_status": "approved",
                    "approved_at": now,
                    "approved_by": performed_by,
                },
            )

            if email_updated and not require_unlinked:
                player = await self.record_store.update_player(player_id, player_patch)
        except StaleRecordError as exc:
            raise PlayerAlreadyLinkedError(
                f"Player {player_id} was linked by another user while linking {user_id}"
            ) from exc
        except Exception as exc:
            logger.error("Linking user %s to player %d failed: %s", user_id, player_id, exc)
            raise LinkageError("Failed to link user to player profile") from exc

        await self._append_audit(
            LinkageAudit(
                action=LinkageAction.USER_LINKED,
                user_id=user_id,
                player_id=player_id,
                performed_by=performed_by,
                timestamp=now,
                details={
                    "user_email": email,
                    "player_email": stored_email,
                    "email_updated": email_updated,
                },
            )
        )

        logger.info("Linked user %s to player %d (email updated: %s)", user_id, player_id, email_updated)
        return LinkageResult(
            success=True,
            action="linked",
            player_id=player_id,
            message="User successfully linked to existing player profile",
            player=player,
            email_updated=email_updated,
        )

    async def create_player_from_signup(
        self,
        user_id: str,
        signup: SignupInfo,
        performed_by: str,
    ) -> LinkageResult:
        """
        Create a new player record from signup information.

        Only call this when the operator decided no candidate is the
        signup's player.

        Args:
            user_id: Account the new player belongs to
            signup: Raw signup attributes
            performed_by: Operator making the decision (for audit)

        Returns:
            LinkageResult with action 'created' and the new record

        Raises:
            LinkageError: If any store write fails (earlier writes stay)
        """
        criteria = normalize_signup(signup)
        now = utcnow()

        player_data = {
            "first_name": criteria.first_name,
            "last_name": criteria.last_name,
            "email_address": criteria.normalized_email,
            "phone_number": criteria.normalized_phone,
            "high_school_irn": criteria.school_irn,
            "high_school": criteria.school_name,
            "linked_user_id": user_id,
            "linked_at": now,
            "created_from_signup": True,
            "created_by": performed_by,
            # Profile fields the player fills in later
            "profile_files": empty_profile_files(),
            "position": "",
            "class_year": None,
            "stars": 0,
            "id_number": "",
            "middle_name": "",
            "suffix": "",
            "nickname": "",
            "dob": "",
            "caption": "",
        }

        try:
            new_player = await self.record_store.create_player(player_data)

            await self.user_store.update_user_account(
                user_id,
                {
                    "linked_player_id": new_player.id,
                    "player_profile_created": True,
                    "player_profile_created_at": now,
                    "created_by": performed_by,
                    "status": "active",
                    "invitation_status": "approved",
                    "approved_at": now,
                    "approved_by": performed_by,
                },
            )
        except Exception as exc:
            logger.error("Creating player for user %s failed: %s", user_id, exc)
            raise LinkageError("Failed to create new player profile") from exc

        await self._append_audit(
            LinkageAudit(
                action=LinkageAction.PLAYER_CREATED,
                user_id=user_id,
                player_id=new_player.id,
                performed_by=performed_by,
                timestamp=now,
                details={
                    "created_from_signup": True,
                    "player_data": {
                        "name": f"{criteria.first_name} {criteria.last_name}".strip(),
                        "email": signup.email,
                        "school": signup.school_name,
                        "phone": signup.phone_number,
                    },
                },
            )
        )

        logger.info("Created player %d for user %s", new_player.id, user_id)
        return LinkageResult(
            success=True,
            action="created",
            player_id=new_player.id,
            message="New player profile created successfully",
            player=new_player,
        )

    async def check_auto_approval(self, email: str) -> bool:
        """
        Check whether an email already belongs to a roster player.

        Signups whose email is on a player record can skip manual approval.
        Store errors count as "not approved".
        """
        normalized = normalize_email(email)
        if not normalized:
            return False

        try:
            matches = await self.record_store.query_players({"email_address": normalized}, 1)
        except Exception as exc:
            logger.warning("Auto-approval check failed for %s: %s", normalized, exc)
            return False

        return bool(matches)

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    async def _get_player(self, player_id: int) -> PlayerRecord:
        try:
            players = await self.record_store.query_players({"id": player_id}, 1)
        except Exception as exc:
            raise LinkageError("Failed to link user to player profile") from exc

        if not players:
            raise PlayerNotFoundError(f"Player {player_id} not found")
        return players[0]

    async def _append_audit(self, entry: LinkageAudit) -> None:
        # Audit is best effort: a failure here never fails the decision
        try:
            await self.audit_sink.append_audit_entry(entry)
        except Exception:
            logger.exception(
                "Failed to append %s audit entry for user %s", entry.action.value, entry.user_id
            )
