"""Database operations for job opportunities."""

from typing import Any

from pydantic import ValidationError

from idynic.core.errors import NotFoundError
from idynic.core.logging import get_logger
from idynic.core.schemas_matching import Opportunity, Requirement, RequirementCategory
from idynic.db.supabase_client import get_supabase

logger = get_logger(__name__)

# Storage keys of the requirements JSON -> requirement category
_REQUIREMENT_KEYS: dict[str, RequirementCategory] = {
    "mustHave": "must_have",
    "niceToHave": "nice_to_have",
}


def normalize_requirements(raw: dict[str, Any] | None) -> list[Requirement]:
    """
    Flatten the stored requirements JSON into typed requirements.

    Storage holds ``{"mustHave": [...], "niceToHave": [...]}`` where each item
    is either a plain string (legacy, typed as ``skill``) or a classified
    ``{"text", "type"}`` object. Must-haves come first, input order preserved.
    Blank or malformed items are dropped.
    """
    if not raw:
        return []

    requirements: list[Requirement] = []
    for key, category in _REQUIREMENT_KEYS.items():
        for item in raw.get(key) or []:
            if isinstance(item, str):
                text, req_type = item, "skill"
            elif isinstance(item, dict):
                text, req_type = item.get("text"), item.get("type") or "skill"
            else:
                continue

            if not isinstance(text, str) or not text.strip():
                continue

            try:
                requirements.append(Requirement(text=text.strip(), category=category, type=req_type))
            except ValidationError:
                logger.warning(f"Unknown requirement type {req_type!r}, treating as skill")
                requirements.append(Requirement(text=text.strip(), category=category, type="skill"))

    return requirements


def get_opportunity(user_id: str, opportunity_id: str) -> Opportunity:
    """
    Load an opportunity owned by the given user.

    Args:
        user_id: Caller identity; opportunities of other users are not visible
        opportunity_id: Opportunity UUID

    Returns:
        Opportunity with normalized requirements

    Raises:
        NotFoundError: If the opportunity does not exist or belongs to someone else
        Exception: If the database query fails
    """
    supabase = get_supabase()

    response = (
        supabase.table("opportunities")
        .select("id, user_id, title, company, requirements")
        .eq("id", str(opportunity_id))
        .eq("user_id", str(user_id))
        .limit(1)
        .execute()
    )

    if not response.data:
        raise NotFoundError("Opportunity", str(opportunity_id))

    row = response.data[0]
    return Opportunity(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        title=row.get("title") or "",
        company=row.get("company"),
        requirements=normalize_requirements(row.get("requirements")),
    )
