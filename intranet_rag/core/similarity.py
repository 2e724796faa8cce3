"""
Cosine similarity ranking.

Ranking is exhaustive over the candidate documents (the store is small and
in memory). Ordering is descending by similarity; equal similarities keep
insertion order because ``sorted`` is stable, which makes result order fully
deterministic.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from intranet_rag.core.documents import StoredDocument


@dataclass(frozen=True)
class ScoredDocument:
    """A stored document paired with its similarity to a query."""

    document: StoredDocument
    similarity: float

    def __str__(self) -> str:
        return f"ScoredDocument(id={self.document.id}, similarity={self.similarity:.3f})"


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity ``dot(a, b) / (|a| * |b|)``.

    Returns 0.0 when either vector has zero magnitude or when the lengths
    differ.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    magnitude = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if magnitude == 0.0:
        return 0.0
    return float(np.dot(va, vb) / magnitude)


def rank(
    query_embedding: Sequence[float],
    documents: Iterable[StoredDocument],
    limit: int,
    min_similarity: float = 0.0,
) -> list[ScoredDocument]:
    """
    Score ``documents`` against ``query_embedding`` and return the best.

    Args:
        query_embedding: Query vector.
        documents: Candidates, in insertion order.
        limit: Maximum number of results.
        min_similarity: Matches below this value are dropped.

    Returns:
        At most ``limit`` scored documents, descending by similarity,
        ties in insertion order.
    """
    if limit <= 0:
        return []

    scored = []
    for document in documents:
        similarity = cosine_similarity(query_embedding, document.embedding)
        if similarity >= min_similarity:
            scored.append(ScoredDocument(document, similarity))

    # reverse=True keeps equal elements in their original order
    scored = sorted(scored, key=lambda item: item.similarity, reverse=True)
    return scored[:limit]
