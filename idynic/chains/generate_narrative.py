"""LLM chain for the cover-letter style narrative of a tailored profile."""

from openai import OpenAI

from idynic.core.config import Settings
from idynic.core.logging import get_logger
from idynic.core.schemas_tailoring import TalkingPoints

logger = get_logger(__name__)


SYSTEM_PROMPT = (
    "You are a professional writer helping job candidates craft compelling narratives "
    "for cover letters and applications. Write in first person, professional but warm tone. "
    "Be authentic - emphasize genuine strengths, honestly address gaps."
)


def _build_user_prompt(talking_points: TalkingPoints, job_title: str, company: str | None) -> str:
    company_text = f" at {company}" if company else ""

    strengths = "\n".join(
        f"- {s.claim_label}: {s.evidence_summary}\n  Framing: {s.framing}"
        for s in talking_points.strengths
    )
    gaps = "\n".join(f"- {g.requirement}: {g.mitigation}" for g in talking_points.gaps)
    inferences = "\n".join(
        f"- {i.inferred_claim}: {i.reasoning}" for i in talking_points.inferences
    )

    return f"""Write a 2-3 paragraph narrative (200-300 words) for a cover letter applying to the {job_title} role{company_text}.

## Strengths to Highlight
{strengths}

## Gaps to Address
{gaps}

## Inferences to Weave In
{inferences}

## Guidelines
- First person voice ("I led...", "My experience...")
- Lead with strongest value proposition
- Acknowledge gaps honestly with mitigation (1 sentence max per gap)
- Don't keyword-stuff or mirror job posting language exactly
- End with genuine enthusiasm for the role

Return ONLY the narrative text, no JSON or markdown formatting."""


def generate_narrative(
    talking_points: TalkingPoints,
    job_title: str,
    company: str | None,
    settings: Settings,
) -> str:
    """
    Write the narrative from talking points.

    With no strengths and no gaps there is nothing to write about and the
    narrative is empty; the model is not called.

    Raises:
        ValueError: If the LLM call fails or returns no text
    """
    if not talking_points.strengths and not talking_points.gaps:
        return ""

    client = OpenAI(api_key=settings.OPENAI_API_KEY)

    try:
        response = client.chat.completions.create(
            model=settings.NARRATIVE_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": _build_user_prompt(talking_points, job_title, company)},
            ],
            temperature=settings.NARRATIVE_TEMPERATURE,
            max_tokens=1000,
        )
    except Exception as e:
        logger.error(f"Narrative LLM call failed: {e}")
        raise ValueError(f"Narrative generation failed: {e}") from e

    content = (response.choices[0].message.content or "").strip()
    if not content:
        raise ValueError("Narrative generation returned no content")

    logger.info(f"Generated narrative: {len(content)} characters", extra={"model": settings.NARRATIVE_MODEL})
    return content
