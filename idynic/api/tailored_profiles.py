"""API endpoints for editing generated tailored profiles."""

import asyncio
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from idynic.api.deps import rate_limited_user
from idynic.core.schemas_tailoring import TextSelection
from idynic.core.tailored_profile import edit_profile_field, revert_profile_field

router = APIRouter()


class EditFieldRequest(BaseModel):
    field: str = Field(..., min_length=1, description="'narrative' or a dotted resume_data path")
    value: str | None = Field(default=None, description="Replacement text; wins over instruction")
    instruction: str | None = Field(default=None, description="Ask the model to rewrite the field")
    selection: TextSelection | None = Field(
        default=None, description="Rewrite only this range of the current text"
    )


class RevertFieldRequest(BaseModel):
    field: str = Field(..., min_length=1)


@router.patch("/{opportunity_id}")
async def edit_tailored_profile(
    opportunity_id: UUID,
    request: EditFieldRequest,
    user_id: str = Depends(rate_limited_user),
) -> dict:
    """
    Overwrite one field and mark it as edited.

    Returns:
        Dict with field, the new value, was_ai_generated and the full profile

    Raises:
        InputValidationError (400): Neither value nor instruction, unknown
            field path, or a selection outside the current text
        NotFoundError (404): If there is no profile for the opportunity
        GenerationError (502): If the rewrite model call fails
    """
    edit = await asyncio.to_thread(
        edit_profile_field,
        user_id,
        str(opportunity_id),
        request.field,
        request.value,
        request.instruction,
        request.selection,
    )
    return edit.model_dump(mode="json")


@router.post("/{opportunity_id}/revert")
async def revert_tailored_profile(
    opportunity_id: UUID,
    request: RevertFieldRequest,
    user_id: str = Depends(rate_limited_user),
) -> dict:
    """Restore one field to its generated original."""
    profile = await asyncio.to_thread(revert_profile_field, user_id, str(opportunity_id), request.field)
    return profile.model_dump(mode="json")
