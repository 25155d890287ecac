"""2D projection of claim embeddings for the skill cluster view.

The dimensionality reduction itself is delegated to a reducer callable
(default: scikit-learn PCA); this module owns everything around it:
choosing which embeddings are usable, the minimum-data guard, normalization to the unit square,
DBSCAN regions and placement of claims that have no embedding.
"""

import math
from collections import Counter
from typing import Callable

import numpy as np
from sklearn.cluster import DBSCAN
from sklearn.decomposition import PCA

from idynic.core.config import get_settings
from idynic.core.errors import RetrievalError
from idynic.core.logging import get_logger
from idynic.core.schemas_clusters import ClusterNode, ClusterProjection, ClusterRegion
from idynic.core.schemas_identity import Claim
from idynic.db.identity_claims import list_claims_with_embeddings

logger = get_logger(__name__)

# (n_claims, dim) -> (n_claims, 2)
Reducer = Callable[[np.ndarray], np.ndarray]

NO_EMBEDDINGS_MESSAGE = (
    "Claims don't have embeddings yet. Embeddings are generated when processing "
    "documents with AI."
)

# Percentage of a cluster one claim type must exceed before the region is named after it
DOMINANT_TYPE_PERCENT = 70


def pca_reducer(matrix: np.ndarray) -> np.ndarray:
    """Project to two principal components."""
    return PCA(n_components=2).fit_transform(matrix)


def _normalize(coords: np.ndarray) -> np.ndarray:
    """Scale each axis to [0, 1]; a zero-width axis maps to 0."""
    mins = coords.min(axis=0)
    spans = coords.max(axis=0) - mins
    spans[spans == 0] = 1.0
    return (coords - mins) / spans


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def region_label(types: list[str]) -> str:
    """Name a region after its dominant claim type, or just count it.

    The dominant share is compared as a whole percentage, rounded half up.
    """
    count = len(types)
    if not count:
        return "0 items"
    dominant, dominant_count = Counter(types).most_common(1)[0]
    if _round_half_up(dominant_count / count * 100) > DOMINANT_TYPE_PERCENT:
        return f"{count} {dominant.capitalize()}s"
    return f"{count} items"


def _grid_nodes(claims: list[Claim]) -> list[ClusterNode]:
    return [
        ClusterNode(
            id=c.id,
            label=c.label,
            type=c.type,
            confidence=c.confidence,
            x=(i % 10) * 0.1,
            y=(i // 10) * 0.1,
        )
        for i, c in enumerate(claims)
    ]


def _corner_nodes(claims: list[Claim]) -> list[ClusterNode]:
    return [
        ClusterNode(
            id=c.id,
            label=c.label,
            type=c.type,
            confidence=c.confidence,
            x=0.9 + (i % 5) * 0.02,
            y=0.9 + (i // 5) * 0.02,
            cluster_id=-1,
        )
        for i, c in enumerate(claims)
    ]


def project_skill_clusters(claims: list[Claim], reducer: Reducer | None = None) -> ClusterProjection:
    """
    Lay out claims in 2D by embedding similarity and group them into regions.

    Claims whose embedding is missing, or whose dimension differs from the
    majority, are not projected; they are appended in the corner with
    cluster_id -1.

    Args:
        claims: The user's claims with embeddings
        reducer: Dimensionality reduction to 2D (default PCA)

    Returns:
        ClusterProjection. When fewer than CLUSTER_MIN_EMBEDDINGS claims have
        embeddings, a grid layout with has_embeddings=False and a message.

    Raises:
        ValueError: If the reducer returns coordinates of the wrong shape
    """
    settings = get_settings()
    reducer = reducer or pca_reducer

    if not claims:
        return ClusterProjection(nodes=[], has_embeddings=False, embedding_count=0, total_count=0)

    dims = Counter(len(c.embedding) for c in claims if c.embedding)
    dim = dims.most_common(1)[0][0] if dims else 0
    embedded = [c for c in claims if c.embedding and len(c.embedding) == dim]

    if len(embedded) < settings.CLUSTER_MIN_EMBEDDINGS:
        return ClusterProjection(
            nodes=_grid_nodes(claims),
            has_embeddings=False,
            message=NO_EMBEDDINGS_MESSAGE,
            embedding_count=len(embedded),
            total_count=len(claims),
        )

    matrix = np.array([c.embedding for c in embedded], dtype=float)
    coords = np.asarray(reducer(matrix), dtype=float)
    if coords.shape != (len(embedded), 2):
        raise ValueError(f"Reducer returned shape {coords.shape}, expected ({len(embedded)}, 2)")

    coords = _normalize(coords)
    labels = DBSCAN(
        eps=settings.CLUSTER_DBSCAN_EPS,
        min_samples=settings.CLUSTER_DBSCAN_MIN_SAMPLES,
    ).fit_predict(coords)

    nodes = [
        ClusterNode(
            id=c.id,
            label=c.label,
            type=c.type,
            confidence=c.confidence,
            x=float(coords[i, 0]),
            y=float(coords[i, 1]),
            cluster_id=int(labels[i]),
        )
        for i, c in enumerate(embedded)
    ]

    regions: list[ClusterRegion] = []
    for cluster_id in sorted(set(int(label) for label in labels) - {-1}):
        members = [n for n in nodes if n.cluster_id == cluster_id]
        regions.append(
            ClusterRegion(
                id=cluster_id,
                label=region_label([n.type for n in members]),
                x=sum(n.x for n in members) / len(members),
                y=sum(n.y for n in members) / len(members),
                count=len(members),
            )
        )

    embedded_ids = {c.id for c in embedded}
    nodes += _corner_nodes([c for c in claims if c.id not in embedded_ids])

    return ClusterProjection(
        nodes=nodes,
        regions=regions,
        has_embeddings=True,
        embedding_count=len(embedded),
        total_count=len(claims),
    )


def load_skill_clusters(user_id: str, reducer: Reducer | None = None) -> ClusterProjection:
    """
    Project a user's stored claims.

    Raises:
        RetrievalError: If the claims cannot be read
    """
    try:
        claims = list_claims_with_embeddings(user_id)
    except Exception as e:
        logger.error(f"Failed to fetch claims for clusters: {e}", extra={"user_id": str(user_id)})
        raise RetrievalError("Failed to fetch claims") from e

    projection = project_skill_clusters(claims, reducer)

    logger.info(
        "Projected skill clusters",
        extra={
            "user_id": str(user_id),
            "embedding_count": projection.embedding_count,
            "regions": len(projection.regions or []),
        },
    )
    return projection
