"""Tailored profile generation LangGraph pipeline.

load_context -> generate_talking_points -> generate_narrative ->
generate_resume -> persist_profile

Nothing is written until persist_profile, the last node, so a failure in any
generation step leaves storage untouched.
"""

from dataclasses import dataclass, field
from typing import Any

from langgraph.graph import END, StateGraph

from idynic.chains.generate_narrative import generate_narrative
from idynic.chains.generate_resume import generate_resume
from idynic.chains.generate_talking_points import generate_talking_points
from idynic.core.config import get_settings
from idynic.core.errors import ConflictError, GenerationError
from idynic.core.logging import get_logger
from idynic.core.schemas_matching import Opportunity
from idynic.core.schemas_tailoring import ResumeData, TailoredProfile, TalkingPoints, WorkHistory
from idynic.db.identity_claims import list_claims_for_talking_points
from idynic.db.tailored_profiles import insert_tailored_profile
from idynic.db.work_history import list_work_history

logger = get_logger(__name__)

MAX_STEPS = 6


@dataclass
class TailorProfileState:
    """State for the tailored profile graph."""

    # Input fields
    user_id: str
    opportunity: Opportunity

    # Processing state
    step_count: int = 0
    claims: list[dict[str, Any]] = field(default_factory=list)
    work_history: list[WorkHistory] = field(default_factory=list)
    talking_points: TalkingPoints | None = None
    narrative: str | None = None
    resume_data: ResumeData | None = None

    # Output
    profile: TailoredProfile | None = None


def _check_max_steps(state: TailorProfileState) -> TailorProfileState:
    """Check and increment step count, raise if exceeded."""
    state.step_count += 1
    if state.step_count > MAX_STEPS:
        raise RuntimeError(f"Graph exceeded max steps ({MAX_STEPS})")
    return state


def load_context(state: TailorProfileState) -> dict[str, Any]:
    """Load the user's claims (with evidence) and work history."""
    state = _check_max_steps(state)

    try:
        claims = list_claims_for_talking_points(state.user_id)
        work_history = list_work_history(state.user_id)
    except Exception as e:
        logger.error(f"Failed to load tailoring context: {e}", extra={"user_id": state.user_id})
        raise GenerationError(f"Failed to load claims: {e}", step="load_context") from e

    logger.info(
        f"Loaded tailoring context: {len(claims)} claims, {len(work_history)} positions",
        extra={"user_id": state.user_id, "opportunity_id": state.opportunity.id},
    )

    return {"claims": claims, "work_history": work_history, "step_count": state.step_count}


def talking_points_step(state: TailorProfileState) -> dict[str, Any]:
    """Map claims onto the opportunity's requirements."""
    state = _check_max_steps(state)

    try:
        talking_points = generate_talking_points(
            requirements=state.opportunity.requirements,
            claims=state.claims,
            settings=get_settings(),
        )
    except Exception as e:
        raise GenerationError(str(e), step="talking_points") from e

    return {"talking_points": talking_points, "step_count": state.step_count}


def narrative_step(state: TailorProfileState) -> dict[str, Any]:
    """Write the narrative from the talking points."""
    state = _check_max_steps(state)

    try:
        narrative = generate_narrative(
            talking_points=state.talking_points,
            job_title=state.opportunity.title,
            company=state.opportunity.company,
            settings=get_settings(),
        )
    except Exception as e:
        raise GenerationError(str(e), step="narrative") from e

    return {"narrative": narrative, "step_count": state.step_count}


def resume_step(state: TailorProfileState) -> dict[str, Any]:
    """Generate tailored resume content."""
    state = _check_max_steps(state)

    try:
        resume_data = generate_resume(
            opportunity=state.opportunity,
            talking_points=state.talking_points,
            work_history=state.work_history,
            settings=get_settings(),
        )
    except Exception as e:
        raise GenerationError(str(e), step="resume") from e

    return {"resume_data": resume_data, "step_count": state.step_count}


def persist_profile(state: TailorProfileState) -> dict[str, Any]:
    """Insert the profile row. ConflictError propagates to the caller."""
    state = _check_max_steps(state)

    if state.talking_points is None or state.narrative is None or state.resume_data is None:
        raise GenerationError("Pipeline reached persist without all outputs", step="persist")

    try:
        profile = insert_tailored_profile(
            user_id=state.user_id,
            opportunity_id=state.opportunity.id,
            talking_points=state.talking_points,
            narrative=state.narrative,
            resume_data=state.resume_data,
        )
    except ConflictError:
        raise
    except Exception as e:
        logger.error(
            f"Failed to store tailored profile: {e}",
            extra={"user_id": state.user_id, "opportunity_id": state.opportunity.id},
        )
        raise GenerationError(f"Failed to store profile: {e}", step="persist") from e

    return {"profile": profile, "step_count": state.step_count}


def _build_graph() -> StateGraph:
    """Build the LangGraph for tailored profile generation."""
    graph = StateGraph(TailorProfileState)

    graph.add_node("load_context", load_context)
    graph.add_node("generate_talking_points", talking_points_step)
    graph.add_node("generate_narrative", narrative_step)
    graph.add_node("generate_resume", resume_step)
    graph.add_node("persist_profile", persist_profile)

    graph.set_entry_point("load_context")
    graph.add_edge("load_context", "generate_talking_points")
    graph.add_edge("generate_talking_points", "generate_narrative")
    graph.add_edge("generate_narrative", "generate_resume")
    graph.add_edge("generate_resume", "persist_profile")
    graph.add_edge("persist_profile", END)

    return graph


# Compile the graph once at module load
_compiled_graph = _build_graph().compile()


def run_tailor_profile_pipeline(user_id: str, opportunity: Opportunity) -> TailoredProfile:
    """
    Run the full generation pipeline and store the result.

    Args:
        user_id: Profile owner
        opportunity: Target opportunity (already ownership-checked)

    Returns:
        The newly stored profile

    Raises:
        GenerationError: If any step fails, including a storage failure on
            insert; nothing is stored
        ConflictError: If another request stored a profile for the pair first
    """
    initial_state = TailorProfileState(user_id=user_id, opportunity=opportunity)

    final_state = _compiled_graph.invoke(initial_state)

    if isinstance(final_state, dict):
        profile = final_state.get("profile")
    else:
        profile = final_state.profile

    if profile is None:
        raise GenerationError("Pipeline finished without a stored profile", step="persist")

    logger.info(
        "Completed tailored profile pipeline",
        extra={"user_id": user_id, "opportunity_id": opportunity.id, "profile_id": profile.id},
    )

    return profile
