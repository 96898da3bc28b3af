"""
Confidence scoring, deduplication and ranking of match candidates.

Every raw strategy hit is scored on its own, from two inputs:
1. The strategy that found it (email > name+school > name+phone > partial)
2. How closely the record's name fields agree with what the signup typed

Score bands:
- Email match: 0.95
- Name+school / name+phone: 0.85 for exact first and last name, sliding
  toward 0.60 as the name agreement weakens (e.g. nickname vs full name)
- Partial name: 0.30 to 0.50, scaled by name overlap

Categories are fixed: >= 0.8 high, >= 0.5 medium, anything lower is low.
"""

from typing import Iterable

from rosterlink.players.normalize import name_similarity
from rosterlink.players.types import (
    ConfidenceCategory,
    MatchCandidate,
    MatchStrategy,
    NormalizedSignupInfo,
    PlayerRecord,
)

EMAIL_MATCH_SCORE = 0.95

EXACT_NAME_SCORE = 0.85
EXACT_NAME_FLOOR = 0.60

PARTIAL_NAME_FLOOR = 0.30
PARTIAL_NAME_CEILING = 0.50

# A requested name token counts as found when it is identical to, or a
# substring of, some token in the candidate's name
TOKEN_MATCH_THRESHOLD = 0.8

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5

DEDUP_POLICIES = ("first_seen", "max_score")


def categorize(score: float) -> ConfidenceCategory:
    """Map a confidence score onto its fixed category."""
    if score >= HIGH_CONFIDENCE:
        return ConfidenceCategory.HIGH
    if score >= MEDIUM_CONFIDENCE:
        return ConfidenceCategory.MEDIUM
    return ConfidenceCategory.LOW


def _clamp(score: float) -> float:
    return round(max(0.0, min(1.0, score)), 4)


def _score_exact_name(
    player: PlayerRecord, criteria: NormalizedSignupInfo, factors: list[str]
) -> float:
    first_sim = name_similarity(criteria.first_name, player.first_name)
    last_sim = name_similarity(criteria.last_name, player.last_name)
    mean = (first_sim + last_sim) / 2

    if mean == 1.0:
        factors.append("Exact first and last name match")
    else:
        factors.append(f"Partial name match ({mean:.0%})")

    return EXACT_NAME_FLOOR + (EXACT_NAME_SCORE - EXACT_NAME_FLOOR) * mean


def _score_partial_name(
    player: PlayerRecord, criteria: NormalizedSignupInfo, factors: list[str]
) -> float:
    requested = [t for t in (criteria.first_name, criteria.last_name) if t]
    candidate_tokens = player.full_name.split()

    matched = 0
    for token in requested:
        best = max((name_similarity(token, c) for c in candidate_tokens), default=0.0)
        if best >= TOKEN_MATCH_THRESHOLD:
            matched += 1
    token_fraction = matched / len(requested) if requested else 0.0

    search_full = criteria.full_name or f"{criteria.first_name} {criteria.last_name}"
    full_sim = name_similarity(search_full, player.full_name)

    if matched:
        factors.append(f"{matched} of {len(requested)} name parts matched")
    factors.append(f"Name similarity: {full_sim:.0%}")

    overlap = (token_fraction + full_sim) / 2
    return PARTIAL_NAME_FLOOR + (PARTIAL_NAME_CEILING - PARTIAL_NAME_FLOOR) * overlap


def score_candidate(
    player: PlayerRecord,
    strategy: MatchStrategy,
    criteria: NormalizedSignupInfo,
) -> MatchCandidate:
    """
    Score one raw strategy hit.

    Never raises: a record missing a comparable field just contributes
    zero similarity for that field.

    Args:
        player: Record returned by the strategy's query
        strategy: Strategy that found it
        criteria: Normalized signup the search ran for

    Returns:
        MatchCandidate with score, category and explanatory factors
    """
    factors: list[str] = []

    if strategy is MatchStrategy.EMAIL_MATCH:
        score = EMAIL_MATCH_SCORE
        factors.append("Email address match")
    elif strategy in (MatchStrategy.NAME_SCHOOL_MATCH, MatchStrategy.NAME_PHONE_MATCH):
        score = _score_exact_name(player, criteria, factors)
        if strategy is MatchStrategy.NAME_SCHOOL_MATCH:
            factors.append("Same school")
        else:
            factors.append("Phone number match")
    else:
        score = _score_partial_name(player, criteria, factors)

    score = _clamp(score)
    return MatchCandidate(
        player=player,
        strategy=strategy,
        confidence_score=score,
        confidence_category=categorize(score),
        factors=factors,
    )


def deduplicate(
    candidates: Iterable[MatchCandidate], policy: str = "first_seen"
) -> list[MatchCandidate]:
    """
    Collapse candidates that refer to the same player record.

    Policies:
    - 'first_seen': keep the first occurrence in arrival order. Strategy
      results arrive in priority order, so the record found by the
      highest-priority strategy survives even when a later duplicate
      scored higher.
    - 'max_score': keep the highest-scoring occurrence, placed where the
      record first appeared. Equal scores keep the earlier entry.

    Raises:
        ValueError: If policy is unknown
    """
    if policy not in DEDUP_POLICIES:
        raise ValueError(f"Unknown dedup policy: {policy}")

    kept: dict[int, MatchCandidate] = {}
    for candidate in candidates:
        existing = kept.get(candidate.player_id)
        if existing is None:
            kept[candidate.player_id] = candidate
        elif policy == "max_score" and candidate.confidence_score > existing.confidence_score:
            kept[candidate.player_id] = candidate

    # dict preserves first-insertion order, even when a value is replaced
    return list(kept.values())


def rank(candidates: Iterable[MatchCandidate]) -> list[MatchCandidate]:
    """Sort by confidence, highest first; ties keep their input order."""
    return sorted(candidates, key=lambda c: c.confidence_score, reverse=True)
