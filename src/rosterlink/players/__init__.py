"""
Player identity resolution for new signups.

This module decides whether a signup is a player already on the roster
or a brand-new one. Getting this wrong either splits one player across
two records or hands a stranger someone else's profile.

Key components:
- PlayerIdentityService: Search for candidates, then link or create
- StrategyEngine: The four concurrent candidate searches
- score_candidate / deduplicate / rank: Confidence model
- normalize_*: Phone, email and name canonicalization

The matching strategies (in priority order):
1. Exact email
2. Exact name + school
3. Exact name + phone
4. Partial name (first or last alone)
"""

from rosterlink.players.errors import (
    LinkageError,
    PlayerAlreadyLinkedError,
    PlayerNotFoundError,
    RecordNotFoundError,
    RecordStoreError,
    StaleRecordError,
)
from rosterlink.players.identity import PlayerIdentityService
from rosterlink.players.normalize import (
    name_similarity,
    normalize_email,
    normalize_phone_number,
    normalize_signup,
    parse_full_name,
)
from rosterlink.players.scoring import categorize, deduplicate, rank, score_candidate
from rosterlink.players.strategies import StrategyEngine
from rosterlink.players.types import (
    ConfidenceCategory,
    LinkageAction,
    LinkageAudit,
    LinkageResult,
    MatchCandidate,
    MatchStrategy,
    NormalizedSignupInfo,
    PlayerRecord,
    SignupInfo,
)

__all__ = [
    "PlayerIdentityService",
    "StrategyEngine",
    "categorize",
    "deduplicate",
    "rank",
    "score_candidate",
    "name_similarity",
    "normalize_email",
    "normalize_phone_number",
    "normalize_signup",
    "parse_full_name",
    "ConfidenceCategory",
    "LinkageAction",
    "LinkageAudit",
    "LinkageResult",
    "MatchCandidate",
    "MatchStrategy",
    "NormalizedSignupInfo",
    "PlayerRecord",
    "SignupInfo",
    "LinkageError",
    "PlayerAlreadyLinkedError",
    "PlayerNotFoundError",
    "RecordNotFoundError",
    "RecordStoreError",
    "StaleRecordError",
]
