"""Schemas for opportunity requirements and requirement->claim matching."""

from typing import Literal

from pydantic import BaseModel, Field

from idynic.core.schemas_identity import MatchedClaim

RequirementCategory = Literal["must_have", "nice_to_have"]
RequirementType = Literal["education", "certification", "skill", "experience"]


class Requirement(BaseModel):
    """One condition from an opportunity's must-have or nice-to-have list."""

    text: str = Field(..., min_length=1)
    category: RequirementCategory
    type: RequirementType = "skill"


class Opportunity(BaseModel):
    """A job opportunity owned by one user."""

    id: str
    user_id: str
    title: str
    company: str | None = None
    requirements: list[Requirement] = Field(default_factory=list)


class RequirementMatch(BaseModel):
    """Match outcome for a single requirement.

    ``best_match`` is None when no claim cleared the match threshold; the
    requirement is then a gap.
    """

    requirement: Requirement
    matches: list[MatchedClaim] = Field(default_factory=list)
    best_match: MatchedClaim | None = None

    @property
    def category(self) -> RequirementCategory:
        return self.requirement.category


class OpportunityMatch(BaseModel):
    """Aggregated scores for an opportunity against a user's claims."""

    overall_score: int = Field(ge=0, le=100)
    must_have_score: int = Field(ge=0, le=100)
    nice_to_have_score: int = Field(ge=0, le=100)
    requirement_matches: list[RequirementMatch] = Field(default_factory=list)
    strengths: list[RequirementMatch] = Field(default_factory=list)
    gaps: list[Requirement] = Field(default_factory=list)
