"""LLM chain for instructed rewrites of a single profile field.

Rewrites either the whole text or only a selected character range of it; in
the second case the model sees the surrounding text for context and returns
the complete text with just the selection changed.
"""

from typing import Literal

from openai import OpenAI

from idynic.core.config import Settings
from idynic.core.errors import InputValidationError
from idynic.core.logging import get_logger
from idynic.core.schemas_tailoring import TextSelection

logger = get_logger(__name__)

ContentType = Literal["bullet", "summary", "narrative"]

CONTENT_TYPE_CONTEXT: dict[str, str] = {
    "bullet": "a resume bullet point describing a professional achievement",
    "summary": "a professional summary for the top of a resume",
    "narrative": "a cover letter paragraph",
}

SYSTEM_PROMPT = (
    "You are a professional resume and cover letter editor. Make precise edits as instructed. "
    "Preserve the original voice and style unless told otherwise."
)


def validate_rewrite_input(content: str, instruction: str, selection: TextSelection | None = None) -> None:
    """
    Check a rewrite request before any model call.

    Raises:
        InputValidationError: On empty content or instruction, or a selection
            outside the content
    """
    if not content or not content.strip():
        raise InputValidationError("Content cannot be empty")
    if not instruction or not instruction.strip():
        raise InputValidationError("Instruction cannot be empty")

    if selection is None:
        return
    if selection.start < 0 or selection.end < 0:
        raise InputValidationError("Selection indices cannot be negative")
    if selection.start > selection.end:
        raise InputValidationError("Selection start must be less than or equal to end")
    if selection.end > len(content):
        raise InputValidationError("Selection end is out of bounds")


def _build_selection_prompt(
    content: str, context: str, instruction: str, selection: TextSelection
) -> str:
    before = content[: selection.start]
    selected = content[selection.start : selection.end]
    after = content[selection.end :]

    return f"""You are editing {context}.

The full text is:
"{content}"

The user has selected this portion to modify:
"{selected}"

Text before selection: "{before}"
Text after selection: "{after}"

Instruction: {instruction}

Rewrite ONLY the selected portion according to the instruction. Return the COMPLETE text with your modification applied to the selected portion. Keep the text before and after the selection unchanged.

Return ONLY the complete modified text, no quotes or explanation."""


def _build_full_prompt(content: str, context: str, instruction: str) -> str:
    return f"""You are editing {context}.

Current text:
"{content}"

Instruction: {instruction}

Rewrite the text according to the instruction. Keep similar length unless the instruction asks for a change in length. Maintain professional tone.

Return ONLY the rewritten text, no quotes or explanation."""


def _strip_wrapping_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text


def rewrite_content(
    content: str,
    content_type: ContentType,
    instruction: str,
    settings: Settings,
    selection: TextSelection | None = None,
) -> str:
    """
    Rewrite text following a user instruction.

    Args:
        content: Current text of the field
        content_type: What kind of text it is; shapes the prompt
        instruction: What to change ("make it shorter", "add metrics")
        settings: Application settings (model, temperature, API key)
        selection: Optional range to rewrite; the rest is kept as is

    Returns:
        The complete rewritten text

    Raises:
        InputValidationError: If the request is invalid (see validate_rewrite_input)
        ValueError: If the LLM call fails or returns no text
    """
    validate_rewrite_input(content, instruction, selection)

    context = CONTENT_TYPE_CONTEXT.get(content_type, CONTENT_TYPE_CONTEXT["bullet"])
    if selection is not None:
        prompt = _build_selection_prompt(content, context, instruction, selection)
    else:
        prompt = _build_full_prompt(content, context, instruction)

    client = OpenAI(api_key=settings.OPENAI_API_KEY)

    try:
        response = client.chat.completions.create(
            model=settings.REWRITE_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=settings.REWRITE_TEMPERATURE,
            max_tokens=500,
        )
    except Exception as e:
        logger.error(f"Rewrite LLM call failed: {e}")
        raise ValueError(f"Content rewrite failed: {e}") from e

    text = _strip_wrapping_quotes((response.choices[0].message.content or "").strip())
    if not text:
        raise ValueError("Content rewrite returned no content")

    logger.info(
        f"Rewrote {content_type}: {len(content)} -> {len(text)} characters",
        extra={"model": settings.REWRITE_MODEL, "has_selection": selection is not None},
    )
    return text
