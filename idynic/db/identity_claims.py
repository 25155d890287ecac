"""Database operations for identity claims, their evidence and vector search."""

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from idynic.core.logging import get_logger
from idynic.core.schemas_identity import (
    DEFAULT_CLAIM_CONFIDENCE,
    Claim,
    ClaimEvidenceLink,
    Evidence,
    MatchedClaim,
)
from idynic.db.supabase_client import get_supabase

logger = get_logger(__name__)

CLAIMS_TABLE = "identity_claims"
MATCH_CLAIMS_RPC = "match_identity_claims"

_CLAIM_WITH_EVIDENCE_SELECT = """
    id,
    type,
    label,
    description,
    confidence,
    claim_evidence(
        evidence_id,
        strength,
        evidence:evidence_id(
            id,
            text,
            evidence_type,
            source_type,
            evidence_date,
            document_id
        )
    )
"""


@dataclass
class IdentitySnapshot:
    """A user's claims with their evidence links, flattened into typed rows."""

    claims: list[Claim] = field(default_factory=list)
    links: list[ClaimEvidenceLink] = field(default_factory=list)
    evidence: list[Evidence] = field(default_factory=list)


def _confidence(value: Any) -> float:
    return DEFAULT_CLAIM_CONFIDENCE if value is None else float(value)


def _to_matched_claim(row: dict[str, Any]) -> MatchedClaim:
    # Cosine similarity can drift a hair past 1.0 in float arithmetic
    similarity = min(1.0, max(0.0, float(row.get("similarity") or 0.0)))
    return MatchedClaim(
        id=str(row["id"]),
        type=row.get("type") or "skill",
        label=row.get("label") or "",
        description=row.get("description"),
        confidence=_confidence(row.get("confidence")),
        similarity=similarity,
    )


def match_identity_claims(
    user_id: str,
    embedding: list[float],
    threshold: float,
    max_results: int,
) -> list[MatchedClaim]:
    """
    Nearest-neighbour search over one user's claims.

    Args:
        user_id: Owner of the claims; the RPC filters on it server-side
        embedding: Query vector
        threshold: Minimum cosine similarity
        max_results: Maximum rows returned

    Returns:
        Claims ranked by similarity, most similar first

    Raises:
        ValueError: If the embedding is empty or not numeric
        Exception: If the RPC call fails
    """
    if not embedding or not all(isinstance(x, (int, float)) for x in embedding):
        raise ValueError("Query embedding must be a non-empty list of numbers")

    supabase = get_supabase()
    response = supabase.rpc(
        MATCH_CLAIMS_RPC,
        {
            "query_embedding": embedding,
            "match_user_id": str(user_id),
            "match_threshold": threshold,
            "match_count": max_results,
        },
    ).execute()

    claims = [_to_matched_claim(row) for row in response.data or []]
    return [c for c in claims if c.similarity >= threshold][:max_results]


def list_claims_with_evidence(user_id: str) -> IdentitySnapshot:
    """
    Load every claim for a user together with its evidence links.

    Evidence rows are deduplicated by id. Rows that fail validation are
    logged and skipped rather than failing the whole snapshot.

    Args:
        user_id: Owner of the claims

    Returns:
        IdentitySnapshot with claims in creation order

    Raises:
        Exception: If the database query fails
    """
    supabase = get_supabase()

    response = (
        supabase.table(CLAIMS_TABLE)
        .select(_CLAIM_WITH_EVIDENCE_SELECT)
        .eq("user_id", str(user_id))
        .order("created_at")
        .execute()
    )

    snapshot = IdentitySnapshot()
    seen_evidence: set[str] = set()

    for row in response.data or []:
        try:
            claim = Claim(
                id=str(row["id"]),
                type=row["type"],
                label=row["label"],
                description=row.get("description"),
                confidence=_confidence(row.get("confidence")),
            )
        except (KeyError, ValidationError) as e:
            logger.warning(f"Skipping malformed claim row {row.get('id')}: {e}")
            continue

        snapshot.claims.append(claim)

        for link_row in row.get("claim_evidence") or []:
            evidence_id = link_row.get("evidence_id")
            if not evidence_id:
                continue

            snapshot.links.append(
                ClaimEvidenceLink(
                    claim_id=claim.id,
                    evidence_id=str(evidence_id),
                    strength=link_row.get("strength") or "medium",
                )
            )

            ev = link_row.get("evidence")
            if ev and str(ev["id"]) not in seen_evidence:
                seen_evidence.add(str(ev["id"]))
                snapshot.evidence.append(
                    Evidence(
                        id=str(ev["id"]),
                        text=ev.get("text") or "",
                        evidence_type=ev.get("evidence_type") or "unknown",
                        source_type=ev.get("source_type"),
                        date=ev.get("evidence_date"),
                        document_id=ev.get("document_id"),
                    )
                )

    logger.info(
        f"Loaded {len(snapshot.claims)} claims with {len(snapshot.evidence)} evidence items",
        extra={"user_id": str(user_id), "links": len(snapshot.links)},
    )

    return snapshot


def list_claims_with_embeddings(user_id: str) -> list[Claim]:
    """
    Load a user's claims including their embedding vectors.

    Claims whose stored embedding cannot be parsed come back with
    ``embedding=None``.

    Args:
        user_id: Owner of the claims

    Returns:
        Claims in creation order

    Raises:
        Exception: If the database query fails
    """
    supabase = get_supabase()

    response = (
        supabase.table(CLAIMS_TABLE)
        .select("id, type, label, confidence, embedding")
        .eq("user_id", str(user_id))
        .order("created_at")
        .execute()
    )

    claims: list[Claim] = []
    for row in response.data or []:
        try:
            claims.append(
                Claim(
                    id=str(row["id"]),
                    type=row["type"],
                    label=row["label"],
                    confidence=_confidence(row.get("confidence")),
                    embedding=row.get("embedding"),
                )
            )
        except (KeyError, ValidationError) as e:
            logger.warning(f"Skipping malformed claim row {row.get('id')}: {e}")

    return claims


def list_claims_for_talking_points(user_id: str) -> list[dict[str, Any]]:
    """
    Load claims with evidence text, shaped for the talking points prompt.

    Returns:
        List of {id, label, type, description, evidence: [{text, type}]}
    """
    snapshot = list_claims_with_evidence(user_id)
    evidence_by_id = {ev.id: ev for ev in snapshot.evidence}

    claims: list[dict[str, Any]] = []
    for claim in snapshot.claims:
        evidence = [
            {"text": evidence_by_id[link.evidence_id].text, "type": evidence_by_id[link.evidence_id].evidence_type}
            for link in snapshot.links
            if link.claim_id == claim.id and link.evidence_id in evidence_by_id
        ]
        claims.append(
            {
                "id": claim.id,
                "label": claim.label,
                "type": claim.type,
                "description": claim.description,
                "evidence": evidence,
            }
        )

    return claims
