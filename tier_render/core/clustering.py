"""
Text Clustering
===============

Groups rendered documents of the same tier by the similarity of their
extracted text. Each tier gets its own sorted vocabulary; documents become
term-frequency vectors over it and are assigned greedily to the first
cluster whose first member is similar enough.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Union
import json
import math
import re

from tier_render.config.logging import get_logger
from tier_render.core.aggregator import GroupedResults, ResultWriteError
from tier_render.models.schemas import RenderSuccess

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 0.8

Vector = List[float]
Clusters = List[List[str]]

_TOKEN_SPLIT = re.compile(r"[\W_]+")


def tokenize(text: str) -> List[str]:
    """Lowercase ``text`` and split it on anything that is not a letter or digit."""
    return [token for token in _TOKEN_SPLIT.split(text.lower()) if token]


def build_vocabulary(texts: Iterable[str]) -> List[str]:
    vocabulary = set()
    for text in texts:
        vocabulary.update(tokenize(text))
    return sorted(vocabulary)


def vectorize(text: str, vocabulary: Sequence[str]) -> Vector:
    """Term counts of ``text`` in vocabulary order. Unknown terms are dropped."""
    counts: Dict[str, float] = {}
    for token in tokenize(text):
        counts[token] = counts.get(token, 0.0) + 1.0
    return [counts.get(term, 0.0) for term in vocabulary]


def cosine_similarity(left: Vector, right: Vector) -> float:
    """Cosine of the angle between two vectors, 0.0 if either is all zeros."""
    if len(left) != len(right):
        raise ValueError("Vectors must have the same size")

    dot = sum(l_value * r_value for l_value, r_value in zip(left, right))
    left_norm = math.sqrt(sum(value * value for value in left))
    right_norm = math.sqrt(sum(value * value for value in right))
    if left_norm == 0.0 or right_norm == 0.0:
        return 0.0
    return dot / (left_norm * right_norm)


def cluster_documents(
    documents: Sequence[RenderSuccess], threshold: float = DEFAULT_THRESHOLD
) -> Clusters:
    """
    Cluster one tier's documents by text similarity.

    A document joins the first existing cluster whose first member has a
    similarity of at least ``threshold``; otherwise it starts a new one.

    Returns:
        Clusters of filenames, in order of their first member
    """
    vocabulary = build_vocabulary(document.text for document in documents)
    vectors = [vectorize(document.text, vocabulary) for document in documents]

    clusters: List[List[int]] = []
    for index, vector in enumerate(vectors):
        for cluster in clusters:
            if cosine_similarity(vector, vectors[cluster[0]]) >= threshold:
                cluster.append(index)
                break
        else:
            clusters.append([index])

    return [[documents[index].filename for index in cluster] for cluster in clusters]


def cluster_results(
    grouped: GroupedResults, threshold: float = DEFAULT_THRESHOLD
) -> Dict[str, Clusters]:
    """
    Cluster every tier independently.

    Failed renders carry no text and are left out. Documents are taken in
    tier order so the greedy assignment does not depend on completion order.
    """
    clustered: Dict[str, Clusters] = {}
    for tier in sorted(grouped):
        documents = sorted(
            (outcome for outcome in grouped[tier] if isinstance(outcome, RenderSuccess)),
            key=lambda outcome: outcome.tier_index,
        )
        clustered[tier] = cluster_documents(documents, threshold)
        logger.debug(
            "Tier clustered", tier=tier, documents=len(documents), clusters=len(clustered[tier])
        )
    return clustered


def write_clusters(clusters: Dict[str, Clusters], destination: Union[str, Path]) -> Path:
    """
    Serialize tier clusters to ``destination``.

    Raises:
        ResultWriteError: If the directory or file cannot be written
    """
    destination = Path(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(
            json.dumps(clusters, indent=2, ensure_ascii=False), encoding="utf-8"
        )
    except OSError as e:
        logger.error("Failed to write clusters", destination=str(destination), error=str(e))
        raise ResultWriteError(f"Failed to write clusters to {destination}: {e}") from e

    logger.info(
        "Clusters written",
        destination=str(destination),
        tiers=len(clusters),
        clusters=sum(len(tier_clusters) for tier_clusters in clusters.values()),
    )
    return destination
