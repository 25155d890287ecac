"""Typed projections of identity data: claims, evidence and the claim graph.

These are the only shapes that leave ``idynic.db``; raw PostgREST join rows
are converted into them at the storage boundary.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from idynic.core.embeddings import parse_embedding

ClaimType = Literal["skill", "achievement", "attribute", "education", "certification"]
EvidenceStrength = Literal["weak", "medium", "strong"]

DEFAULT_CLAIM_CONFIDENCE = 0.5


# =========================
# Stored entities
# =========================


class Claim(BaseModel):
    """A skill, achievement or attribute the user can be matched on."""

    id: str
    type: ClaimType
    label: str
    description: str | None = None
    confidence: float = Field(default=DEFAULT_CLAIM_CONFIDENCE, ge=0.0, le=1.0)
    embedding: list[float] | None = None
    source: str | None = None

    @field_validator("embedding", mode="before")
    @classmethod
    def coerce_embedding(cls, v: Any) -> list[float] | None:
        """Accept pgvector text; anything unparseable counts as no embedding."""
        return parse_embedding(v)


class Evidence(BaseModel):
    """A text fragment (resume line, story excerpt) supporting claims."""

    id: str
    text: str
    evidence_type: str
    source_type: str | None = None
    date: str | None = None
    document_id: str | None = None
    embedding: list[float] | None = None


class ClaimEvidenceLink(BaseModel):
    """Join row between a claim and one piece of evidence.

    ``strength`` is informational only; nothing scores on it.
    """

    claim_id: str
    evidence_id: str
    strength: EvidenceStrength = "medium"


class EvidenceWithEmbedding(BaseModel):
    """Retriever input: one evidence item to search claims with."""

    id: str
    embedding: list[float]


class MatchedClaim(BaseModel):
    """A claim returned by vector search, with its similarity to the query."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    label: str
    description: str | None = None
    confidence: float = DEFAULT_CLAIM_CONFIDENCE
    similarity: float = Field(ge=0.0, le=1.0)


# =========================
# Identity graph
# =========================


class GraphNodeEvidence(BaseModel):
    """Evidence link as shown on a graph node."""

    evidence_id: str
    strength: EvidenceStrength


class GraphNode(BaseModel):
    id: str
    type: str
    label: str
    confidence: float
    description: str | None = None
    claim_evidence: list[GraphNodeEvidence] = Field(default_factory=list)


class GraphEdge(BaseModel):
    """Undirected edge between two claims that share evidence."""

    model_config = ConfigDict(populate_by_name=True)

    source: str
    target: str
    shared_evidence: list[str] = Field(alias="sharedEvidence")


class GraphEvidence(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    source_type: str | None = Field(default=None, alias="sourceType")
    date: str | None = None


class IdentityGraph(BaseModel):
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    evidence: list[GraphEvidence] = Field(default_factory=list)
