"""Schemas for the 2D skill cluster projection."""

from pydantic import BaseModel, Field


class ClusterNode(BaseModel):
    id: str
    label: str
    type: str
    confidence: float
    x: float
    y: float
    cluster_id: int | None = None


class ClusterRegion(BaseModel):
    """A DBSCAN cluster summarized by its centroid and dominant claim type."""

    id: int
    label: str
    keywords: list[str] = Field(default_factory=list)
    x: float
    y: float
    count: int


class ClusterProjection(BaseModel):
    nodes: list[ClusterNode] = Field(default_factory=list)
    regions: list[ClusterRegion] | None = None
    has_embeddings: bool
    message: str | None = None
    embedding_count: int | None = None
    total_count: int | None = None
