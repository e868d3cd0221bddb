"""
Cosine Similarity Scoring

Pure numpy helpers shared by the hybrid searcher and anything else that
needs to compare stored embeddings with a query vector.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from core.models import Document


def cosine_similarity(
    vec1: Optional[Sequence[float]],
    vec2: Optional[Sequence[float]]
) -> float:
    """
    Compute cosine similarity between two vectors.

    Missing, empty or length-mismatched vectors carry no semantic signal
    and score 0, as does a zero-norm vector.

    Args:
        vec1: First vector
        vec2: Second vector

    Returns:
        Cosine similarity score (-1 to 1)
    """
    if vec1 is None or vec2 is None:
        return 0.0
    if len(vec1) == 0 or len(vec2) == 0 or len(vec1) != len(vec2):
        return 0.0

    a = np.asarray(vec1, dtype=np.float64)
    b = np.asarray(vec2, dtype=np.float64)

    norm1 = np.linalg.norm(a)
    norm2 = np.linalg.norm(b)

    if norm1 == 0 or norm2 == 0:
        return 0.0

    score = float(np.dot(a, b) / (norm1 * norm2))
    # Float error can push |score| a hair past 1
    return max(-1.0, min(1.0, score))


def find_similar_documents(
    query_vec: Sequence[float],
    documents: Iterable[Document],
    threshold: float = 0.3
) -> List[Tuple[Document, float]]:
    """
    Score documents against a query vector.

    Documents without an embedding are skipped.

    Args:
        query_vec: Query embedding
        documents: Candidate documents
        threshold: Minimum similarity to keep

    Returns:
        List of (document, similarity) tuples, sorted by score descending
    """
    scored = []
    for doc in documents:
        if not doc.has_embedding:
            continue
        score = cosine_similarity(query_vec, doc.embedding)
        if score >= threshold:
            scored.append((doc, score))

    scored.sort(key=lambda item: item[1], reverse=True)
    return scored
