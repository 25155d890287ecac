"""API endpoints for opportunity matching and tailoring."""

import asyncio
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from idynic.api.deps import rate_limited_user
from idynic.core.logging import get_logger
from idynic.core.opportunity_matching import match_opportunity_for_user, score_label
from idynic.core.tailored_profile import get_or_generate

logger = get_logger(__name__)

router = APIRouter()

# Strengths shown in the match summary
MAX_STRENGTHS = 5


class TailorRequest(BaseModel):
    regenerate: bool = False


@router.get("/{opportunity_id}/match")
async def get_opportunity_match(
    opportunity_id: UUID,
    user_id: str = Depends(rate_limited_user),
) -> dict:
    """
    Score the user's claims against an opportunity's requirements.

    Returns:
        Dict with scores, label, top strengths and gaps

    Raises:
        NotFoundError (404): If the opportunity doesn't exist for this user
    """
    match = await match_opportunity_for_user(user_id, str(opportunity_id))

    return {
        "scores": {
            "overall": match.overall_score,
            "must_have": match.must_have_score,
            "nice_to_have": match.nice_to_have_score,
        },
        "label": score_label(match.overall_score),
        "strengths": [
            {
                "requirement": m.requirement.model_dump(),
                "best_match": m.best_match.model_dump() if m.best_match else None,
            }
            for m in match.strengths[:MAX_STRENGTHS]
        ],
        "gaps": [g.model_dump() for g in match.gaps],
    }


@router.post("/{opportunity_id}/tailor")
async def tailor_profile(
    opportunity_id: UUID,
    request: TailorRequest | None = None,
    user_id: str = Depends(rate_limited_user),
) -> dict:
    """
    Get the tailored profile for an opportunity, generating it on a cache miss.

    Args:
        opportunity_id: Opportunity to tailor for
        request: Optional body; ``regenerate`` forces a fresh profile

    Returns:
        Dict with profile, cached flag and outcome (hit, generated, race)

    Raises:
        NotFoundError (404): If the opportunity doesn't exist for this user
        GenerationError (502): If a generation step fails
    """
    regenerate = request.regenerate if request else False

    result = await asyncio.to_thread(get_or_generate, user_id, str(opportunity_id), regenerate)

    logger.info(
        f"Tailor request finished: {result.outcome}",
        extra={"user_id": user_id, "opportunity_id": str(opportunity_id)},
    )
    return result.model_dump(mode="json")
