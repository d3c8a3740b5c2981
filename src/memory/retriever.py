"""
Long-term conversation memory: recall earlier messages of the same thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from src.rag.config import RetrievalConfig
from src.rag.retriever import Embedder, RankedResult, VectorIndex
from src.rag.utils import normalize_whitespace

logger = logging.getLogger(__name__)


@dataclass
class MemoryRetriever:
    """Finds prior exchanges of a thread that relate to the current query."""

    embedder: Embedder
    memory_index: VectorIndex
    config: RetrievalConfig = field(default_factory=RetrievalConfig)

    async def retrieve(
        self,
        query: str,
        thread_id: str,
        limit: Optional[int] = None,
    ) -> List[RankedResult]:
        """
        Return up to limit memory items of thread_id, most similar first.

        Memory is an enhancement: any failure is logged and yields [].
        """
        if limit is None:
            limit = self.config.memory_limit
        if limit <= 0:
            return []
        thread_filter = {"thread_id": thread_id}
        try:
            if await self.memory_index.count(thread_filter) == 0:
                return []
            query_vector = await self.embedder.embed(normalize_whitespace(query or ""))
            hits = await self.memory_index.search(
                query_vector,
                filter=thread_filter,
                candidate_pool=max(self.config.memory_candidate_pool, limit),
                top_k=limit,
            )
        except Exception as e:
            logger.warning("Memory retrieval failed for thread %s: %s", thread_id, e)
            return []

        hits = sorted(hits, key=lambda h: h.score, reverse=True)
        return [
            RankedResult(content=h.content, score=h.score, source_id=h.id, role=h.role)
            for h in hits[:limit]
        ]
