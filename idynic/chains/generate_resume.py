"""LLM chain for tailored resume content."""

import json

from openai import OpenAI
from pydantic import ValidationError

from idynic.core.config import Settings
from idynic.core.logging import get_logger
from idynic.core.schemas_matching import Opportunity
from idynic.core.schemas_tailoring import ResumeData, TalkingPoints, WorkHistory

logger = get_logger(__name__)


# ruff: noqa: E501
SYSTEM_PROMPT = """You are a professional resume writer. Generate tailored resume content that emphasizes relevant experience while maintaining a complete, honest career narrative. Use action verbs, quantify achievements where possible, and subtly emphasize concepts that align with the target role.

You MUST output ONLY valid JSON matching this exact schema:

{
  "summary": "string - 2-3 sentence professional summary",
  "skills": ["string"],
  "experience": [
    {
      "work_history_id": "string - id of the position from the data",
      "company": "string",
      "title": "string",
      "dates": "string",
      "location": "string or null",
      "bullets": ["3-5 bullets: action verb + achievement + impact; **bold** 1-2 key concepts"]
    }
  ],
  "education": [
    {"institution": "string", "degree": "string", "year": "string or null"}
  ]
}

RULES:
- Include every position, even those with few relevant claims (2-3 bullets), to keep the career narrative complete
- Only include what the evidence supports
- Don't keyword-stuff or mirror exact job posting language
"""


def _build_user_prompt(
    opportunity: Opportunity,
    talking_points: TalkingPoints,
    work_history: list[WorkHistory],
) -> str:
    company = opportunity.company or "a company"
    lines = [f"## Target Role: {opportunity.title} at {company}", "", "## Requirements (for emphasis)"]
    lines += [f"- {r.text}" for r in opportunity.requirements[:10]]

    lines += ["", "## Positions"]
    for job in work_history:
        location = f", {job.location}" if job.location else ""
        lines.append(f"- [id: {job.id}] {job.title} at {job.company} ({job.dates}{location})")

    lines += ["", "## Strengths and Framing"]
    lines += [
        f"- {s.claim_label} -> {s.requirement}: {s.evidence_summary} (framing: {s.framing})"
        for s in talking_points.strengths
    ]

    lines += ["", "## Inferred Skills"]
    lines += [f"- {i.inferred_claim}" for i in talking_points.inferences]

    return "\n".join(lines)


def generate_resume(
    opportunity: Opportunity,
    talking_points: TalkingPoints,
    work_history: list[WorkHistory],
    settings: Settings,
) -> ResumeData:
    """
    Generate resume data tailored to an opportunity.

    Args:
        opportunity: Target opportunity with requirements
        talking_points: Strengths/gaps/inferences from the talking points chain
        work_history: The user's positions in display order
        settings: Application settings

    Returns:
        Validated ResumeData with a non-empty summary

    Raises:
        ValueError: If the LLM call fails or the output doesn't match the schema
    """
    client = OpenAI(api_key=settings.OPENAI_API_KEY)
    model = settings.RESUME_MODEL

    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": _build_user_prompt(opportunity, talking_points, work_history)},
            ],
            temperature=settings.RESUME_TEMPERATURE,
            max_tokens=4000,
            response_format={"type": "json_object"},
        )
    except Exception as e:
        logger.error(f"Resume LLM call failed: {e}")
        raise ValueError(f"Resume generation failed: {e}") from e

    raw_output = response.choices[0].message.content
    if not raw_output:
        raise ValueError("Resume generation returned no content")

    try:
        resume_data = ResumeData(**json.loads(raw_output))
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.error(f"Failed to parse resume data: {e}")
        logger.error(f"Raw output: {raw_output[:500]}")
        raise ValueError(f"Resume output is not valid: {e}") from e

    logger.info(
        "Generated resume data",
        extra={
            "model": model,
            "experience": len(resume_data.experience),
            "skills": len(resume_data.skills),
        },
    )

    return resume_data
