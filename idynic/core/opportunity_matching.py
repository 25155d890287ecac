"""Match an opportunity's requirements against a user's claims.

Each requirement is embedded and run as a nearest-neighbour query over the
user's claims. The best surviving candidate becomes the requirement's match;
requirements without one are gaps. Category scores are the matched share of
each category, blended into an overall score with a configurable must-have
weight.

Output is fully determined by the input: candidates are ordered by
similarity, then confidence, then claim id.
"""

from __future__ import annotations

import asyncio
import math

from idynic.core.config import get_settings
from idynic.core.embeddings import embed_texts_async
from idynic.core.logging import get_logger
from idynic.core.retrieval import search_claims
from idynic.core.schemas_identity import MatchedClaim
from idynic.core.schemas_matching import (
    OpportunityMatch,
    Requirement,
    RequirementMatch,
    RequirementType,
)
from idynic.db.opportunities import get_opportunity

logger = get_logger(__name__)


# Claim types that can satisfy each requirement type
VALID_CLAIM_TYPES: dict[RequirementType, frozenset[str]] = {
    "education": frozenset({"education"}),
    "certification": frozenset({"certification"}),
    "skill": frozenset({"skill", "achievement"}),
    "experience": frozenset({"skill", "achievement", "attribute"}),
}

# (lower bound, label), checked top down
SCORE_LABELS: list[tuple[int, str]] = [
    (90, "Exceptional Match"),
    (80, "Strong Alignment"),
    (60, "Good Alignment"),
    (40, "Developing Match"),
    (0, "Low Alignment"),
]


def score_label(score: int) -> str:
    """Human label for an overall score."""
    for lower, label in SCORE_LABELS:
        if score >= lower:
            return label
    return SCORE_LABELS[-1][1]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _candidate_key(claim: MatchedClaim) -> tuple[float, float, str]:
    return (-claim.similarity, -claim.confidence, claim.id)


def rank_candidates(
    requirement: Requirement,
    candidates: list[MatchedClaim],
    threshold: float,
    max_kept: int,
) -> list[MatchedClaim]:
    """
    Filter and order the candidates for one requirement.

    Drops claims below the threshold or of a type that cannot satisfy the
    requirement, orders the rest by similarity desc, confidence desc, id asc,
    and keeps the first ``max_kept``.
    """
    allowed = VALID_CLAIM_TYPES[requirement.type]
    eligible = [c for c in candidates if c.type in allowed and c.similarity >= threshold]
    return sorted(eligible, key=_candidate_key)[:max_kept]


def score_requirement_matches(
    requirement_matches: list[RequirementMatch],
    must_have_weight: float,
) -> OpportunityMatch:
    """
    Aggregate per-requirement matches into category and overall scores.

    A category with no requirements scores 100 so it does not drag the blend
    down; with no requirements at all every score is 0.

    Args:
        requirement_matches: One entry per requirement, in requirement order
        must_have_weight: Weight of the must-have score in the overall score

    Returns:
        OpportunityMatch with strengths sorted by best similarity
    """
    if not requirement_matches:
        return OpportunityMatch(overall_score=0, must_have_score=0, nice_to_have_score=0)

    def category_score(category: str) -> int:
        in_category = [rm for rm in requirement_matches if rm.category == category]
        if not in_category:
            return 100
        matched = sum(1 for rm in in_category if rm.best_match is not None)
        return _round_half_up(100 * matched / len(in_category))

    must_have_score = category_score("must_have")
    nice_to_have_score = category_score("nice_to_have")
    overall_score = _round_half_up(
        must_have_score * must_have_weight + nice_to_have_score * (1 - must_have_weight)
    )

    strengths = sorted(
        (rm for rm in requirement_matches if rm.best_match is not None),
        key=lambda rm: _candidate_key(rm.best_match),
    )
    gaps = [rm.requirement for rm in requirement_matches if rm.best_match is None]

    return OpportunityMatch(
        overall_score=overall_score,
        must_have_score=must_have_score,
        nice_to_have_score=nice_to_have_score,
        requirement_matches=requirement_matches,
        strengths=strengths,
        gaps=gaps,
    )


async def match_opportunity(user_id: str, requirements: list[Requirement]) -> OpportunityMatch:
    """
    Match requirements against the user's claims and score the result.

    Retrieval failures degrade rather than raise: a failed requirement query
    leaves that requirement unmatched, and if the requirement texts cannot be
    embedded at all every requirement is unmatched. A score is always
    returned.

    Args:
        user_id: Owner of the claims to match against
        requirements: Opportunity requirements, must-haves and nice-to-haves

    Returns:
        OpportunityMatch
    """
    settings = get_settings()

    if not requirements:
        return score_requirement_matches([], settings.MUST_HAVE_WEIGHT)

    try:
        embeddings: list[list[float] | None] = list(
            await embed_texts_async([r.text for r in requirements])
        )
    except Exception as e:
        logger.warning(
            f"Requirement embedding failed, scoring without matches: {e}",
            extra={"user_id": str(user_id), "requirements": len(requirements)},
        )
        embeddings = [None] * len(requirements)

    async def _search(embedding: list[float] | None) -> list[MatchedClaim]:
        if embedding is None:
            return []
        return await search_claims(
            user_id, embedding, settings.MATCH_THRESHOLD, settings.MATCH_CANDIDATE_COUNT
        )

    results = await asyncio.gather(*[_search(e) for e in embeddings], return_exceptions=True)

    requirement_matches: list[RequirementMatch] = []
    for requirement, result in zip(requirements, results, strict=True):
        candidates: list[MatchedClaim] = []
        if isinstance(result, BaseException):
            logger.warning(
                f"Claim search failed for requirement {requirement.text!r}: {result}",
                extra={"user_id": str(user_id)},
            )
        else:
            candidates = result

        matches = rank_candidates(
            requirement,
            candidates,
            settings.MATCH_THRESHOLD,
            settings.MATCH_MAX_CANDIDATES_KEPT,
        )
        requirement_matches.append(
            RequirementMatch(
                requirement=requirement,
                matches=matches,
                best_match=matches[0] if matches else None,
            )
        )

    result = score_requirement_matches(requirement_matches, settings.MUST_HAVE_WEIGHT)

    logger.info(
        f"Matched {len(requirements)} requirements: overall={result.overall_score}",
        extra={
            "user_id": str(user_id),
            "must_have_score": result.must_have_score,
            "nice_to_have_score": result.nice_to_have_score,
            "gaps": len(result.gaps),
        },
    )

    return result


async def match_opportunity_for_user(user_id: str, opportunity_id: str) -> OpportunityMatch:
    """
    Load an opportunity and match its requirements.

    Raises:
        NotFoundError: If the opportunity does not exist for this user
    """
    opportunity = await asyncio.to_thread(get_opportunity, user_id, opportunity_id)
    return await match_opportunity(user_id, opportunity.requirements)
