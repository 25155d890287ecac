"""Schemas for tailored profiles and the LLM payloads that build them."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# =========================
# Talking points (LLM output)
# =========================


class TalkingPointStrength(BaseModel):
    requirement: str
    requirement_type: str = "skill"
    claim_id: str | None = None
    claim_label: str
    evidence_summary: str = ""
    framing: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class TalkingPointGap(BaseModel):
    requirement: str
    requirement_type: str = "skill"
    mitigation: str = ""
    related_claims: list[str] = Field(default_factory=list)


class TalkingPointInference(BaseModel):
    inferred_claim: str
    derived_from: list[str] = Field(default_factory=list)
    reasoning: str = ""


class TalkingPoints(BaseModel):
    """How a candidate's claims map onto an opportunity's requirements."""

    strengths: list[TalkingPointStrength] = Field(default_factory=list)
    gaps: list[TalkingPointGap] = Field(default_factory=list)
    inferences: list[TalkingPointInference] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.strengths or self.gaps or self.inferences)


# =========================
# Resume data (LLM output)
# =========================


class ResumeExperience(BaseModel):
    work_history_id: str | None = None
    company: str
    title: str
    dates: str = ""
    location: str | None = None
    bullets: list[str] = Field(default_factory=list)


class ResumeEducation(BaseModel):
    institution: str
    degree: str
    year: str | None = None


class ResumeData(BaseModel):
    summary: str
    skills: list[str] = Field(default_factory=list)
    experience: list[ResumeExperience] = Field(default_factory=list)
    education: list[ResumeEducation] = Field(default_factory=list)

    @field_validator("summary")
    @classmethod
    def summary_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("summary must be non-empty")
        return v.strip()


class WorkHistory(BaseModel):
    """A position from the user's work history, input to resume bullets."""

    id: str
    company: str
    title: str
    start_date: str | None = None
    end_date: str | None = None
    location: str | None = None

    @property
    def dates(self) -> str:
        return f"{self.start_date or ''} - {self.end_date or 'Present'}".strip()


# =========================
# Stored profile
# =========================


class TailoredProfile(BaseModel):
    """A generated narrative + resume for one (user, opportunity) pair."""

    id: str
    user_id: str
    opportunity_id: str
    talking_points: dict[str, Any] = Field(default_factory=dict)
    narrative: str = ""
    narrative_original: str | None = None
    resume_data: dict[str, Any] = Field(default_factory=dict)
    resume_data_original: dict[str, Any] | None = None
    edited_fields: list[str] = Field(default_factory=list)
    created_at: str | None = None


class ProfileResult(BaseModel):
    """Result of get-or-generate.

    ``outcome`` tells a genuine cache hit apart from a lost insert race, where
    another request stored the profile between our read and our insert.
    """

    profile: TailoredProfile
    cached: bool
    outcome: Literal["hit", "generated", "race"]


# =========================
# Field edits
# =========================


class TextSelection(BaseModel):
    """Character range [start, end) of a field's current text."""

    start: int
    end: int


class FieldEdit(BaseModel):
    """Result of editing one profile field."""

    field: str
    value: str
    was_ai_generated: bool = False
    profile: TailoredProfile
