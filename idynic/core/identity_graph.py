"""Claim relationship graph built from shared evidence.

Two claims are connected when at least one piece of evidence supports both.
Edge construction compares every pair of claims, O(n^2) in the number of a
user's claims. That is fine for tens to low hundreds of claims; past that,
index evidence_id -> claim ids and emit edges per evidence item instead.
"""

from idynic.core.errors import RetrievalError
from idynic.core.logging import get_logger
from idynic.core.schemas_identity import (
    Claim,
    ClaimEvidenceLink,
    Evidence,
    GraphEdge,
    GraphEvidence,
    GraphNode,
    GraphNodeEvidence,
    IdentityGraph,
)
from idynic.db.identity_claims import list_claims_with_evidence

logger = get_logger(__name__)


def build_identity_graph(
    claims: list[Claim],
    links: list[ClaimEvidenceLink],
    evidence: list[Evidence],
) -> IdentityGraph:
    """
    Build nodes, shared-evidence edges and the evidence collection.

    Args:
        claims: The user's claims; node and edge order follow this order
        links: Claim-evidence links (strength is carried but not used)
        evidence: Evidence rows the links may refer to

    Returns:
        IdentityGraph. Empty claims give an empty graph.
    """
    if not claims:
        return IdentityGraph()

    claim_ids = {c.id for c in claims}
    evidence_by_id = {ev.id: ev for ev in evidence}

    # claim_id -> evidence ids in link encounter order, without repeats
    claim_evidence: dict[str, list[str]] = {c.id: [] for c in claims}
    node_links: dict[str, list[GraphNodeEvidence]] = {c.id: [] for c in claims}
    for link in links:
        if link.claim_id not in claim_ids:
            continue
        if link.evidence_id not in claim_evidence[link.claim_id]:
            claim_evidence[link.claim_id].append(link.evidence_id)
            node_links[link.claim_id].append(
                GraphNodeEvidence(evidence_id=link.evidence_id, strength=link.strength)
            )

    nodes = [
        GraphNode(
            id=c.id,
            type=c.type,
            label=c.label,
            confidence=c.confidence,
            description=c.description,
            claim_evidence=node_links[c.id],
        )
        for c in claims
    ]

    edges: list[GraphEdge] = []
    for i in range(len(claims)):
        first = claim_evidence[claims[i].id]
        if not first:
            continue
        for j in range(i + 1, len(claims)):
            second = set(claim_evidence[claims[j].id])
            shared = [ev_id for ev_id in first if ev_id in second]
            if shared:
                edges.append(
                    GraphEdge(source=claims[i].id, target=claims[j].id, shared_evidence=shared)
                )

    graph_evidence: list[GraphEvidence] = []
    seen: set[str] = set()
    for claim in claims:
        for ev_id in claim_evidence[claim.id]:
            if ev_id in seen or ev_id not in evidence_by_id:
                continue
            seen.add(ev_id)
            ev = evidence_by_id[ev_id]
            graph_evidence.append(
                GraphEvidence(id=ev.id, text=ev.text, source_type=ev.source_type, date=ev.date)
            )

    return IdentityGraph(nodes=nodes, edges=edges, evidence=graph_evidence)


def load_identity_graph(user_id: str) -> IdentityGraph:
    """
    Build the identity graph for a user from stored claims and evidence.

    Raises:
        RetrievalError: If the claims cannot be read
    """
    try:
        snapshot = list_claims_with_evidence(user_id)
    except Exception as e:
        logger.error(f"Failed to load claims for identity graph: {e}", extra={"user_id": str(user_id)})
        raise RetrievalError("Failed to fetch graph data") from e

    graph = build_identity_graph(snapshot.claims, snapshot.links, snapshot.evidence)

    logger.info(
        "Built identity graph",
        extra={
            "user_id": str(user_id),
            "nodes": len(graph.nodes),
            "edges": len(graph.edges),
            "evidence_items": len(graph.evidence),
        },
    )

    return graph
