"""API endpoints for the identity graph and skill cluster views."""

import asyncio

from fastapi import APIRouter, Depends

from idynic.api.deps import rate_limited_user
from idynic.core.identity_graph import load_identity_graph
from idynic.core.logging import get_logger
from idynic.core.skill_clusters import load_skill_clusters

logger = get_logger(__name__)

router = APIRouter()


@router.get("/graph")
async def get_identity_graph(user_id: str = Depends(rate_limited_user)) -> dict:
    """
    Get the user's claims as a graph of evidence-sharing edges.

    Returns:
        Dict with nodes, edges and evidence arrays

    Raises:
        RetrievalError (503): If claims cannot be read
    """
    graph = await asyncio.to_thread(load_identity_graph, user_id)
    return graph.model_dump(by_alias=True)


@router.get("/clusters")
async def get_skill_clusters(user_id: str = Depends(rate_limited_user)) -> dict:
    """
    Get a 2D layout of the user's claims grouped into similarity regions.

    Returns:
        Dict with nodes, regions and embedding counts
    """
    projection = await asyncio.to_thread(load_skill_clusters, user_id)
    return projection.model_dump(exclude_none=True)
