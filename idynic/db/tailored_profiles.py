"""Database operations for tailored profiles.

The table carries ``UNIQUE (user_id, opportunity_id)``. Inserts rely on that
constraint for atomic insert-if-absent: a duplicate surfaces as
ConflictError and the caller re-reads the row that won.
"""

from typing import Any

from postgrest.exceptions import APIError

from idynic.core.errors import ConflictError
from idynic.core.logging import get_logger
from idynic.core.schemas_tailoring import ResumeData, TailoredProfile, TalkingPoints
from idynic.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "tailored_profiles"

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def _to_profile(row: dict[str, Any]) -> TailoredProfile:
    return TailoredProfile(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        opportunity_id=str(row["opportunity_id"]),
        talking_points=row.get("talking_points") or {},
        narrative=row.get("narrative") or "",
        narrative_original=row.get("narrative_original"),
        resume_data=row.get("resume_data") or {},
        resume_data_original=row.get("resume_data_original"),
        edited_fields=row.get("edited_fields") or [],
        created_at=row.get("created_at"),
    )


def get_tailored_profile(user_id: str, opportunity_id: str) -> TailoredProfile | None:
    """
    Get the stored profile for a (user, opportunity) pair.

    Returns:
        The profile, or None if none exists

    Raises:
        Exception: If the database query fails
    """
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("user_id", str(user_id))
        .eq("opportunity_id", str(opportunity_id))
        .limit(1)
        .execute()
    )

    if not response.data:
        return None

    return _to_profile(response.data[0])


def delete_tailored_profile(user_id: str, opportunity_id: str) -> int:
    """
    Delete the stored profile for a (user, opportunity) pair, if any.

    Returns:
        Number of rows deleted

    Raises:
        Exception: If the database operation fails
    """
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .delete()
        .eq("user_id", str(user_id))
        .eq("opportunity_id", str(opportunity_id))
        .execute()
    )

    deleted = len(response.data or [])
    logger.info(
        f"Deleted {deleted} tailored profile(s)",
        extra={"user_id": str(user_id), "opportunity_id": str(opportunity_id)},
    )
    return deleted


def insert_tailored_profile(
    user_id: str,
    opportunity_id: str,
    talking_points: TalkingPoints,
    narrative: str,
    resume_data: ResumeData,
) -> TailoredProfile:
    """
    Insert a freshly generated profile, snapshotting the *_original fields.

    Args:
        user_id: Profile owner
        opportunity_id: Opportunity the profile is tailored to
        talking_points: Generated talking points
        narrative: Generated narrative
        resume_data: Generated resume content

    Returns:
        The stored profile

    Raises:
        ConflictError: If a profile for the pair already exists
        Exception: If the database operation fails
    """
    supabase = get_supabase()
    resume_json = resume_data.model_dump()

    try:
        response = (
            supabase.table(TABLE)
            .insert(
                {
                    "user_id": str(user_id),
                    "opportunity_id": str(opportunity_id),
                    "talking_points": talking_points.model_dump(),
                    "narrative": narrative,
                    "narrative_original": narrative,
                    "resume_data": resume_json,
                    "resume_data_original": resume_json,
                    "edited_fields": [],
                }
            )
            .execute()
        )
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            raise ConflictError(
                "Tailored profile already exists",
                user_id=str(user_id),
                opportunity_id=str(opportunity_id),
            ) from e
        raise

    if not response.data:
        raise ValueError("No data returned from insert_tailored_profile")

    profile = _to_profile(response.data[0])
    logger.info(
        f"Inserted tailored profile {profile.id}",
        extra={"user_id": str(user_id), "opportunity_id": str(opportunity_id)},
    )
    return profile


def update_tailored_profile(profile_id: str, payload: dict[str, Any]) -> None:
    """
    Update editable columns of a stored profile.

    Raises:
        Exception: If the database operation fails
    """
    supabase = get_supabase()
    supabase.table(TABLE).update(payload).eq("id", str(profile_id)).execute()
