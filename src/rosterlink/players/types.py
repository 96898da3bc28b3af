"""
Value types passed through signup identity resolution.

Everything here is transient: signup info comes from the onboarding
flow, player records are detached snapshots of store rows, and match
candidates only live for the duration of one search.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass
class SignupInfo:
    """Raw attributes a new account supplies during onboarding."""

    full_name: str = ""
    phone_number: str = ""
    email: str = ""
    school_irn: str = ""  # Opaque school key selected at signup
    school_name: str = ""  # Display name for that school


@dataclass(frozen=True)
class NormalizedSignupInfo:
    """Signup info after name parsing and phone/email normalization."""

    first_name: str
    last_name: str
    full_name: str  # Original full name, kept for scoring
    normalized_phone: str
    normalized_email: str
    school_irn: str
    school_name: str


@dataclass
class PlayerRecord:
    """
    Snapshot of a player record as returned by a record store.

    Only id and the identity fields matter to matching; the profile
    attributes are carried through so callers can display candidates.
    """

    id: int
    first_name: str = ""
    last_name: str = ""
    email_address: str = ""
    phone_number: str = ""
    high_school_irn: str = ""
    high_school: str = ""
    linked_user_id: Optional[str] = None
    linked_at: Optional[datetime] = None
    middle_name: str = ""
    suffix: str = ""
    nickname: str = ""
    position: str = ""
    class_year: Optional[int] = None
    stars: int = 0
    id_number: str = ""
    dob: str = ""
    caption: str = ""
    profile_files: dict[str, Any] = field(default_factory=dict)
    created_from_signup: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class MatchStrategy(enum.Enum):
    """
    The four candidate searches, declared in priority order.

    Priority feeds scoring and the first-seen dedup tie-break; it never
    filters candidates out.
    """

    EMAIL_MATCH = ("email_match", 0)
    NAME_SCHOOL_MATCH = ("name_school", 1)
    NAME_PHONE_MATCH = ("name_phone", 2)
    PARTIAL_NAME_MATCH = ("name_partial", 3)

    def __init__(self, label: str, priority: int):
        self.label = label
        self.priority = priority


class ConfidenceCategory(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class MatchCandidate:
    """
    A player record surfaced by one strategy, with its confidence.

    Returned (ranked, deduplicated) by find_potential_matches().
    """

    player: PlayerRecord
    strategy: MatchStrategy
    confidence_score: float  # 0.0 to 1.0
    confidence_category: ConfidenceCategory
    factors: list[str] = field(default_factory=list)  # Why it scored what it did

    @property
    def player_id(self) -> int:
        return self.player.id

    def __repr__(self) -> str:
        return (
            f"<MatchCandidate(id={self.player_id}, conf={self.confidence_score:.2f}, "
            f"strategy='{self.strategy.label}')>"
        )


class LinkageAction(str, enum.Enum):
    USER_LINKED = "user_linked"
    PLAYER_CREATED = "player_created"


@dataclass(frozen=True)
class LinkageAudit:
    """Immutable record of one linkage decision."""

    action: LinkageAction
    user_id: str
    player_id: int
    performed_by: str
    timestamp: datetime
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class LinkageResult:
    """Outcome of link_user_to_player() or create_player_from_signup()."""

    success: bool
    action: str  # 'linked' or 'created'
    player_id: int
    message: str
    player: Optional[PlayerRecord] = None
    email_updated: bool = False
