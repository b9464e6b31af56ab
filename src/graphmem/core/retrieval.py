"""Brute-force vector similarity over node embeddings"""

from typing import Iterable, List, Sequence, Tuple

import numpy as np

from graphmem.core.models import Node


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Compute cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1, 1]; 0.0 for zero vectors or mismatched lengths
    """
    if len(a) != len(b):
        return 0.0

    a_arr = np.asarray(a, dtype=float)
    b_arr = np.asarray(b, dtype=float)

    norm_a = np.linalg.norm(a_arr)
    norm_b = np.linalg.norm(b_arr)

    # Guard against zero vectors (avoid NaN)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a_arr, b_arr) / (norm_a * norm_b))


def rank_by_similarity(
    query_embedding: Sequence[float],
    candidates: Iterable[Node],
    limit: int = 10,
    threshold: float = 0.7,
) -> List[Tuple[Node, float]]:
    """
    Score candidates against a query vector.

    Nodes without an embedding are skipped. Scores below threshold are
    dropped; the rest are sorted by score descending and truncated to limit.

    Raises:
        ValueError: If limit is negative

    Returns:
        List of (Node, similarity) tuples
    """
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")

    scored = []
    for node in candidates:
        if node.embedding is None:
            continue
        score = cosine_similarity(query_embedding, node.embedding)
        if score >= threshold:
            scored.append((node, score))

    scored.sort(key=lambda x: x[1], reverse=True)
    return scored[:limit]
