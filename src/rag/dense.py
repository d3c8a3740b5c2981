"""
In-memory dense vector index using numpy cosine similarity.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .index import MemoryItem, Passage
from .schemas import VectorHit

logger = logging.getLogger(__name__)


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


def rank_by_cosine(
    embeddings: np.ndarray,
    query_vector: Sequence[float],
    top_k: int,
) -> List[Tuple[int, float]]:
    """
    Rank rows of embeddings (n, dim) by cosine similarity to query_vector.

    Returns [(row_index, score), ...] best first; empty when there is nothing
    to rank or the query dimension does not match.
    """
    if embeddings.size == 0 or top_k <= 0:
        return []
    q = np.asarray(query_vector, dtype=np.float32)
    if q.ndim != 1 or q.shape[0] != embeddings.shape[1]:
        logger.warning(
            "Query vector dimension %s does not match index dimension %s",
            q.shape[0] if q.ndim == 1 else q.shape,
            embeddings.shape[1],
        )
        return []
    q_norm = float(np.linalg.norm(q))
    if q_norm == 0.0:
        return []
    sims = _normalize_rows(embeddings) @ (q / q_norm)
    # Stable sort keeps insertion order among equal scores
    idxs = np.argsort(-sims, kind="stable")[:top_k]
    return [(int(i), float(sims[i])) for i in idxs]


class InMemoryVectorIndex:
    """Vector index over passages or memory items held in process memory."""

    def __init__(self, records: Sequence[Passage | MemoryItem] = (), dimension: Optional[int] = None):
        self.dimension = dimension
        self._records: List[Passage | MemoryItem] = []
        self._rows: List[np.ndarray] = []
        self._matrix: Optional[np.ndarray] = None
        for record in records:
            self.add(record)

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: Passage | MemoryItem) -> bool:
        """Add a record; records without an embedding of the index dimension are skipped."""
        if not record.embedding:
            logger.warning("Skipping %s without embedding", getattr(record, "id", record))
            return False
        if self.dimension is None:
            self.dimension = len(record.embedding)
        elif len(record.embedding) != self.dimension:
            logger.warning(
                "Skipping %s: embedding dimension %s != %s",
                record.id,
                len(record.embedding),
                self.dimension,
            )
            return False
        self._records.append(record)
        self._rows.append(np.asarray(record.embedding, dtype=np.float32))
        self._matrix = None
        return True

    async def append(self, item: MemoryItem) -> None:
        if not self.add(item):
            raise ValueError(f"memory item {item.id} does not fit this index")

    def _matching(self, filter: Optional[Mapping[str, Any]]) -> List[int]:
        if not filter:
            return list(range(len(self._records)))
        return [
            i
            for i, r in enumerate(self._records)
            if all(getattr(r, field, None) == value for field, value in filter.items())
        ]

    async def count(self, filter: Optional[Mapping[str, Any]] = None) -> int:
        return len(self._matching(filter))

    async def search(
        self,
        query_vector: Sequence[float],
        *,
        filter: Optional[Mapping[str, Any]] = None,
        candidate_pool: int = 100,
        top_k: int = 10,
    ) -> List[VectorHit]:
        """Search for top-k records using cosine similarity."""
        if not self._records:
            return []
        if self._matrix is None:
            self._matrix = np.vstack(self._rows)
        rows = self._matching(filter)
        if not rows:
            return []
        ranked = rank_by_cosine(self._matrix[rows], query_vector, min(candidate_pool, top_k))
        hits: List[VectorHit] = []
        for pos, score in ranked:
            record = self._records[rows[pos]]
            hits.append(
                VectorHit(
                    content=record.content,
                    id=record.id,
                    score=score,
                    role=getattr(record, "role", None),
                )
            )
        return hits
