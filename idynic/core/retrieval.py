"""Semantic retrieval of a user's claims from evidence embeddings.

One nearest-neighbour query per evidence item, fanned out concurrently, merged
by claim id. Used to build focused LLM context during claim synthesis, and
(via search_claims) by the requirement matcher.

Usage:
    from idynic.core.retrieval import retrieve_relevant_claims

    claims = await retrieve_relevant_claims(
        user_id="5b0c...",
        evidence_items=[EvidenceWithEmbedding(id="ev-1", embedding=[...])],
    )
    for claim_id, claim in claims.items():
        ...
"""

from __future__ import annotations

import asyncio

from idynic.core.config import get_settings
from idynic.core.logging import get_logger
from idynic.core.schemas_identity import EvidenceWithEmbedding, MatchedClaim
from idynic.db.identity_claims import match_identity_claims

logger = get_logger(__name__)


async def search_claims(
    user_id: str,
    embedding: list[float],
    threshold: float,
    max_results: int,
) -> list[MatchedClaim]:
    """Single nearest-neighbour query, ranked by similarity. Raises on failure."""
    return await asyncio.to_thread(match_identity_claims, user_id, embedding, threshold, max_results)


async def retrieve_relevant_claims(
    user_id: str,
    evidence_items: list[EvidenceWithEmbedding],
    threshold: float | None = None,
    max_per_query: int | None = None,
) -> dict[str, MatchedClaim]:
    """
    Find the user's claims relevant to a batch of evidence.

    Queries run concurrently. Results are merged in evidence input order and
    deduplicated by claim id; the first occurrence wins and later ones are
    dropped without re-ranking. A failed query is logged and skipped, so the
    batch always completes with whatever the other queries returned.

    Args:
        user_id: Owner of the claims to search
        evidence_items: Evidence with embeddings to query with
        threshold: Minimum similarity (defaults to RAG_SIMILARITY_THRESHOLD)
        max_per_query: Cap per query (defaults to RAG_MAX_CLAIMS_PER_QUERY)

    Returns:
        Mapping of claim id -> matched claim. Treat it as a set: iteration
        order carries no meaning.
    """
    if not evidence_items:
        return {}

    settings = get_settings()
    if threshold is None:
        threshold = settings.RAG_SIMILARITY_THRESHOLD
    if max_per_query is None:
        max_per_query = settings.RAG_MAX_CLAIMS_PER_QUERY

    results = await asyncio.gather(
        *[search_claims(user_id, ev.embedding, threshold, max_per_query) for ev in evidence_items],
        return_exceptions=True,
    )

    claims: dict[str, MatchedClaim] = {}
    failed = 0

    for evidence, result in zip(evidence_items, results, strict=True):
        if isinstance(result, BaseException):
            failed += 1
            logger.warning(
                f"Claim retrieval failed for evidence {evidence.id}: {result}",
                extra={"user_id": str(user_id), "evidence_id": evidence.id},
            )
            continue

        for claim in result:
            if claim.id not in claims:
                claims[claim.id] = claim

    logger.info(
        f"Retrieved {len(claims)} relevant claims for {len(evidence_items)} evidence items",
        extra={"user_id": str(user_id), "failed_queries": failed},
    )

    return claims
