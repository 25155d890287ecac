"""LLM chain for mapping a candidate's claims onto an opportunity's requirements."""

import json
from typing import Any

from openai import OpenAI
from pydantic import ValidationError

from idynic.core.config import Settings
from idynic.core.logging import get_logger
from idynic.core.schemas_matching import Requirement
from idynic.core.schemas_tailoring import TalkingPoints

logger = get_logger(__name__)


# ruff: noqa: E501
SYSTEM_PROMPT = """You are a career coach helping candidates prepare for job applications. Analyze how a candidate's experience maps to job requirements. Be honest but strategic - find genuine strengths and acknowledge real gaps with constructive mitigation strategies.

You MUST output ONLY valid JSON matching this exact schema:

{
  "strengths": [
    {
      "requirement": "string - the requirement text",
      "requirement_type": "education|certification|skill|experience",
      "claim_id": "string - id of the claim that addresses it (use ids from the data)",
      "claim_label": "string",
      "evidence_summary": "string - brief summary of the supporting evidence",
      "framing": "string - which angle to emphasize",
      "confidence": 0.0
    }
  ],
  "gaps": [
    {
      "requirement": "string",
      "requirement_type": "education|certification|skill|experience",
      "mitigation": "string - related experience, transferable skills, eagerness to learn",
      "related_claims": ["claim ids that partially address it"]
    }
  ],
  "inferences": [
    {
      "inferred_claim": "string - skill or experience implied but not stated",
      "derived_from": ["claim ids"],
      "reasoning": "string"
    }
  ]
}

RULES:
- Use actual claim ids from the data provided
- Be honest about gaps - don't spin weaknesses as strengths
- Framing should be authentic emphasis, not keyword stuffing
"""


def _build_user_prompt(requirements: list[Requirement], claims: list[dict[str, Any]]) -> str:
    lines = ["## Job Requirements", "", "### Must Have:"]
    lines += [f"- {r.text} ({r.type})" for r in requirements if r.category == "must_have"]
    lines += ["", "### Nice to Have:"]
    lines += [f"- {r.text} ({r.type})" for r in requirements if r.category == "nice_to_have"]

    lines += ["", "## Candidate's Claims (with evidence)"]
    for claim in claims:
        lines.append("")
        lines.append(f"### {claim['label']} ({claim['type']}) [id: {claim['id']}]")
        if claim.get("description"):
            lines.append(claim["description"])
        lines.append("Evidence:")
        lines += [f"- {e['text']}" for e in claim.get("evidence", [])]

    return "\n".join(lines)


def generate_talking_points(
    requirements: list[Requirement],
    claims: list[dict[str, Any]],
    settings: Settings,
) -> TalkingPoints:
    """
    Generate strengths, gaps and inferences for an opportunity.

    Args:
        requirements: The opportunity's requirements
        claims: The user's claims with evidence text
            ({id, label, type, description, evidence: [{text, type}]})
        settings: Application settings

    Returns:
        TalkingPoints; empty when there are no requirements or no claims

    Raises:
        ValueError: If the LLM call fails or returns unusable output
    """
    if not requirements or not claims:
        logger.info(
            "Skipping talking points: nothing to compare",
            extra={"requirements": len(requirements), "claims": len(claims)},
        )
        return TalkingPoints()

    client = OpenAI(api_key=settings.OPENAI_API_KEY)
    model = settings.TALKING_POINTS_MODEL

    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": _build_user_prompt(requirements, claims)},
            ],
            temperature=settings.TALKING_POINTS_TEMPERATURE,
            max_tokens=4000,
            response_format={"type": "json_object"},
        )
    except Exception as e:
        logger.error(f"Talking points LLM call failed: {e}")
        raise ValueError(f"Talking points generation failed: {e}") from e

    raw_output = response.choices[0].message.content
    if not raw_output:
        raise ValueError("Talking points generation returned no content")

    try:
        talking_points = TalkingPoints(**json.loads(raw_output))
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.error(f"Failed to parse talking points: {e}")
        logger.error(f"Raw output: {raw_output[:500]}")
        raise ValueError(f"Talking points output is not valid: {e}") from e

    logger.info(
        "Generated talking points",
        extra={
            "model": model,
            "strengths": len(talking_points.strengths),
            "gaps": len(talking_points.gaps),
            "inferences": len(talking_points.inferences),
        },
    )

    return talking_points
