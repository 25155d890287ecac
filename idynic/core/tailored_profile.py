"""Get-or-generate cache for tailored profiles, plus field edit/revert.

Edits either take user text as is or ask the model to rewrite the current
text following an instruction.

A profile is keyed by (user_id, opportunity_id) and stored at most once per
key; storage enforces the uniqueness. Regeneration deletes the stored row
and runs the whole pipeline again. Generation is all-or-nothing: the row is
inserted only after every step has succeeded.

When two requests miss the cache at the same time, both generate and one
insert loses on the unique constraint. The loser re-reads and returns the
winner's row with ``outcome="race"``.
"""

import copy
import logging
from typing import Any

from idynic.chains.rewrite_content import ContentType, rewrite_content
from idynic.core.config import get_settings
from idynic.core.errors import ConflictError, GenerationError, InputValidationError, NotFoundError
from idynic.core.logging import get_logger, log_with_context
from idynic.core.schemas_tailoring import FieldEdit, ProfileResult, TailoredProfile, TextSelection
from idynic.db.opportunities import get_opportunity
from idynic.db.tailored_profiles import (
    delete_tailored_profile,
    get_tailored_profile,
    update_tailored_profile,
)
from idynic.graphs.tailor_profile_graph import run_tailor_profile_pipeline

logger = get_logger(__name__)

NARRATIVE_FIELD = "narrative"


def get_or_generate(user_id: str, opportunity_id: str, regenerate: bool = False) -> ProfileResult:
    """
    Return the cached profile for an opportunity, generating it if needed.

    Args:
        user_id: Caller identity
        opportunity_id: Opportunity to tailor for
        regenerate: Delete any stored profile and generate a new one

    Returns:
        ProfileResult with ``cached`` and ``outcome`` describing which path ran

    Raises:
        NotFoundError: If the opportunity does not exist for this user
        GenerationError: If a pipeline step fails; nothing is stored
    """
    opportunity = get_opportunity(user_id, opportunity_id)

    if regenerate:
        delete_tailored_profile(user_id, opportunity_id)
    else:
        existing = get_tailored_profile(user_id, opportunity_id)
        if existing is not None:
            logger.info(
                f"Tailored profile cache hit {existing.id}",
                extra={"user_id": user_id, "opportunity_id": opportunity_id},
            )
            return ProfileResult(profile=existing, cached=True, outcome="hit")

    try:
        profile = run_tailor_profile_pipeline(user_id, opportunity)
    except ConflictError:
        winner = get_tailored_profile(user_id, opportunity_id)
        if winner is None:
            # The winning row was deleted again before we could read it
            raise
        logger.warning(
            f"Lost tailored profile insert race, returning {winner.id}",
            extra={"user_id": user_id, "opportunity_id": opportunity_id},
        )
        return ProfileResult(profile=winner, cached=True, outcome="race")

    return ProfileResult(profile=profile, cached=False, outcome="generated")


# =============================================================================
# Field editing
# =============================================================================


def _path_keys(path: str) -> list[str | int]:
    keys: list[str | int] = []
    for part in path.split("."):
        if not part:
            raise InputValidationError(f"Invalid field path: {path!r}")
        keys.append(int(part) if part.isdigit() else part)
    return keys


def get_nested_value(data: Any, path: str) -> Any:
    """Read a dotted path (``experience.0.bullets.2``); None if absent."""
    current = data
    for key in _path_keys(path):
        if isinstance(current, dict) and isinstance(key, str):
            current = current.get(key)
        elif isinstance(current, list) and isinstance(key, int) and key < len(current):
            current = current[key]
        else:
            return None
    return current


def set_nested_value(data: Any, path: str, value: Any) -> None:
    """
    Overwrite an existing value at a dotted path.

    Raises:
        InputValidationError: If any segment of the path does not exist
    """
    keys = _path_keys(path)
    current = data
    for key in keys[:-1]:
        current = get_nested_value(current, str(key))
        if current is None:
            raise InputValidationError(f"Cannot set nested value: path {path!r} does not exist")

    last = keys[-1]
    if isinstance(current, dict) and isinstance(last, str) and last in current:
        current[last] = value
    elif isinstance(current, list) and isinstance(last, int) and last < len(current):
        current[last] = value
    else:
        raise InputValidationError(f"Cannot set nested value: path {path!r} does not exist")


def _require_profile(user_id: str, opportunity_id: str) -> TailoredProfile:
    profile = get_tailored_profile(user_id, opportunity_id)
    if profile is None:
        raise NotFoundError("Tailored profile", opportunity_id)
    return profile


def infer_content_type(field: str) -> ContentType:
    """Map a field path to the kind of text it holds."""
    if field == NARRATIVE_FIELD:
        return "narrative"
    if field == "summary":
        return "summary"
    return "bullet"


def edit_profile_field(
    user_id: str,
    opportunity_id: str,
    field: str,
    value: str | None = None,
    instruction: str | None = None,
    selection: TextSelection | None = None,
) -> FieldEdit:
    """
    Replace the narrative or one resume field.

    The new text is either ``value`` as given, or, when only an
    ``instruction`` is given, the field's current text rewritten by the model
    (optionally just the ``selection`` range of it). ``value`` wins when both
    are present. The field is recorded in ``edited_fields`` so it can be
    reverted to the generated original later.

    Raises:
        InputValidationError: If neither value nor instruction is given, the
            field path does not exist, or the rewrite request is invalid
        NotFoundError: If there is no profile for the opportunity
        GenerationError: If the rewrite model call fails; nothing is stored
    """
    if not field:
        raise InputValidationError("field is required")
    if value is None and not instruction:
        raise InputValidationError("Either value or instruction is required")

    profile = _require_profile(user_id, opportunity_id)
    payload: dict[str, Any] = {}
    was_ai_generated = False

    if value is None:
        if field == NARRATIVE_FIELD:
            current = profile.narrative or ""
        else:
            current = str(get_nested_value(profile.resume_data, field) or "")
        try:
            value = rewrite_content(
                content=current,
                content_type=infer_content_type(field),
                instruction=instruction,
                settings=get_settings(),
                selection=selection,
            )
        except InputValidationError:
            raise
        except Exception as e:
            raise GenerationError(str(e), step="rewrite") from e
        was_ai_generated = True

    if field == NARRATIVE_FIELD:
        profile.narrative = value
        payload["narrative"] = value
    else:
        resume_data = copy.deepcopy(profile.resume_data)
        set_nested_value(resume_data, field, value)
        profile.resume_data = resume_data
        payload["resume_data"] = resume_data

    if field not in profile.edited_fields:
        profile.edited_fields = [*profile.edited_fields, field]
    payload["edited_fields"] = profile.edited_fields

    update_tailored_profile(profile.id, payload)
    log_with_context(
        logger,
        logging.INFO,
        f"Edited tailored profile field {field}",
        profile_id=profile.id,
        was_ai_generated=was_ai_generated,
    )
    return FieldEdit(field=field, value=value, was_ai_generated=was_ai_generated, profile=profile)


def revert_profile_field(user_id: str, opportunity_id: str, field: str) -> TailoredProfile:
    """
    Restore a field from the generated original and clear its edited flag.

    Raises:
        InputValidationError: If the field path does not exist in the profile
        NotFoundError: If there is no profile for the opportunity
    """
    if not field:
        raise InputValidationError("field is required")

    profile = _require_profile(user_id, opportunity_id)
    payload: dict[str, Any] = {}

    if field == NARRATIVE_FIELD:
        original = profile.narrative_original or ""
        profile.narrative = original
        payload["narrative"] = original
    else:
        original = get_nested_value(profile.resume_data_original or {}, field)
        resume_data = copy.deepcopy(profile.resume_data)
        set_nested_value(resume_data, field, "" if original is None else original)
        profile.resume_data = resume_data
        payload["resume_data"] = resume_data

    profile.edited_fields = [f for f in profile.edited_fields if f != field]
    payload["edited_fields"] = profile.edited_fields

    update_tailored_profile(profile.id, payload)
    logger.info(f"Reverted tailored profile field {field}", extra={"profile_id": profile.id})
    return profile
