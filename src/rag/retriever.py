"""
Result types and the store protocols the retrieval core depends on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Protocol, Sequence

from .schemas import LexicalHit, VectorHit

VECTOR = "vector"
LEXICAL = "lexical"


@dataclass
class RetrievalCandidate:
    """Scored reference to a passage or memory item, mid-pipeline."""

    content: str
    rank: int
    provenance: str
    source_id: Optional[str] = None
    score: float = 0.0
    role: Optional[str] = None

    @classmethod
    def from_vector_hits(cls, hits: Sequence[VectorHit]) -> List["RetrievalCandidate"]:
        return [
            cls(content=h.content, rank=i, provenance=VECTOR, source_id=h.id, score=h.score, role=h.role)
            for i, h in enumerate(hits)
        ]

    @classmethod
    def from_lexical_hits(cls, hits: Sequence[LexicalHit]) -> List["RetrievalCandidate"]:
        return [
            cls(content=h.content, rank=i, provenance=LEXICAL, source_id=h.id)
            for i, h in enumerate(hits)
        ]


@dataclass
class RankedResult:
    """Result handed to prompt construction."""

    content: str
    score: float
    source_id: Optional[str] = None
    role: Optional[str] = None


class Embedder(Protocol):
    """Maps text to a fixed-length vector."""

    async def embed(self, text: str) -> List[float]:
        ...


class VectorIndex(Protocol):
    """Similarity search over embedded records."""

    async def search(
        self,
        query_vector: Sequence[float],
        *,
        filter: Optional[Mapping[str, Any]] = None,
        candidate_pool: int = 100,
        top_k: int = 10,
    ) -> List[VectorHit]:
        """
        Return up to top_k records ordered by descending cosine similarity.

        Args:
            query_vector: Embedded query
            filter: Equality constraints on record fields, e.g. {"thread_id": "t1"}
            candidate_pool: Number of candidates scanned before truncation
            top_k: Number of results to return
        """
        ...

    async def count(self, filter: Optional[Mapping[str, Any]] = None) -> int:
        """Number of embedded records matching filter."""
        ...


class LexicalStore(Protocol):
    """Regex search over passage content."""

    async def find_by_pattern(self, pattern: str, limit: int) -> List[LexicalHit]:
        """Return up to limit passages whose content matches pattern, case-insensitively."""
        ...
