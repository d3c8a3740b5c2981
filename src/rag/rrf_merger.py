"""
Weighted Reciprocal Rank Fusion (RRF) for combining ranked candidate lists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .retriever import RankedResult, RetrievalCandidate

KEY_PREFIX_CHARS = 64


@dataclass
class RankedList:
    """One retriever's ranked output and the weight its ranks carry."""

    items: Sequence[RetrievalCandidate]
    weight: float
    boost: Optional[Callable[[RetrievalCandidate], bool]] = None
    boosted_weight: Optional[float] = None

    def weight_of(self, item: RetrievalCandidate) -> float:
        if self.boost is not None and self.boosted_weight is not None and self.boost(item):
            return self.boosted_weight
        return self.weight


def candidate_key(item: RetrievalCandidate, rank: int) -> str:
    """Persistent id when known; otherwise content prefix plus list position."""
    if item.source_id:
        return item.source_id
    return f"{item.content[:KEY_PREFIX_CHARS]}#{item.provenance}:{rank}"


def fuse(
    lists: Sequence[RankedList],
    rank_constant: int = 60,
    limit: int = 10,
) -> List[RankedResult]:
    """
    Merge ranked lists using weighted Reciprocal Rank Fusion.

    Args:
        lists: Ranked lists, each item's position in its own list is its rank.
        rank_constant: Smoothing constant K in weight / (rank + 1 + K).
        limit: Number of results to return.

    Returns:
        Fused results sorted by accumulated score; ties keep first-seen order.
    """
    scores: Dict[str, float] = {}
    first: Dict[str, RetrievalCandidate] = {}

    for ranked in lists:
        for rank, item in enumerate(ranked.items):
            key = candidate_key(item, rank)
            contribution = ranked.weight_of(item) / (rank + 1 + rank_constant)
            if key not in scores:
                scores[key] = 0.0
                first[key] = item
            scores[key] += contribution

    merged = sorted(scores.items(), key=lambda x: x[1], reverse=True)
    return [
        RankedResult(
            content=first[key].content,
            score=score,
            source_id=first[key].source_id,
            role=first[key].role,
        )
        for key, score in merged[: max(limit, 0)]
    ]
