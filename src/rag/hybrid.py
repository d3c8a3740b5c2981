"""
Corpus retriever combining vector and regex search with weighted RRF fusion.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import RetrievalConfig
from .identifiers import anchored_pattern, detect_identifiers, mentions_identifier
from .retriever import (
    Embedder,
    LexicalStore,
    RankedResult,
    RetrievalCandidate,
    VectorIndex,
)
from .rrf_merger import RankedList, fuse
from .utils import alternation, normalize_whitespace, query_terms

logger = logging.getLogger(__name__)


@dataclass
class CorpusRetriever:
    """Selects textbook passages for a tutoring prompt."""

    embedder: Embedder
    vector_index: VectorIndex
    lexical_store: LexicalStore
    config: RetrievalConfig = field(default_factory=RetrievalConfig)

    async def retrieve(self, query: str, limit: int = 4) -> List[RankedResult]:
        """
        Return up to limit passages for query, best first.

        Never raises for store or embedding failures; an empty list means no
        context is available.
        """
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        query = query or ""
        try:
            if await self._embedded_count() == 0:
                logger.info("No embedded passages, using lexical fallback")
                return await self._lexical_fallback(query, limit)
            return await self._hybrid(query, limit)
        except Exception as e:
            logger.error("Corpus retrieval failed: %s", e)
            return []

    async def _embedded_count(self) -> Optional[int]:
        try:
            return await self.vector_index.count()
        except Exception as e:
            logger.warning("Vector index unavailable (%s), continuing without vector candidates", e)
            return None

    async def _lexical_fallback(self, query: str, limit: int) -> List[RankedResult]:
        pattern = alternation(query_terms(query))
        if not pattern:
            return []
        hits = await self.lexical_store.find_by_pattern(pattern, limit)
        return [
            RankedResult(content=h.content, score=self.config.fallback_score, source_id=h.id)
            for h in hits[:limit]
        ]

    def _short_circuit_allowed(self, identifiers: List[str]) -> bool:
        if not identifiers or not self.config.identifier_short_circuit:
            return False
        cap = self.config.max_short_circuit_identifiers
        return cap is None or len(identifiers) <= cap

    async def _hybrid(self, query: str, limit: int) -> List[RankedResult]:
        cfg = self.config
        identifiers = detect_identifiers(query, cfg.identifier_pattern)
        lexical_pattern = alternation([*identifiers, *query_terms(query)])

        tasks = [
            self._vector_candidates(query, limit * cfg.vector_overfetch),
            self._lexical_candidates(lexical_pattern, limit * cfg.lexical_overfetch),
        ]
        if self._short_circuit_allowed(identifiers):
            tasks.append(self._lexical_candidates(anchored_pattern(identifiers), limit))
        results = await asyncio.gather(*tasks)
        vector, lexical = results[0], results[1]
        exact = results[2] if len(results) > 2 else []

        logger.debug(
            "identifiers=%s vector=%d lexical=%d exact=%d",
            identifiers,
            len(vector),
            len(lexical),
            len(exact),
        )

        if exact:
            logger.info("Exact identifier match for %s, skipping fusion", identifiers)
            return [
                RankedResult(content=c.content, score=cfg.exact_match_score, source_id=c.source_id)
                for c in exact[:limit]
            ]

        return fuse(
            [
                RankedList(items=vector, weight=cfg.vector_weight),
                RankedList(
                    items=lexical,
                    weight=cfg.lexical_weight,
                    boost=lambda c: mentions_identifier(c.content, identifiers),
                    boosted_weight=cfg.identifier_weight if identifiers else None,
                ),
            ],
            rank_constant=cfg.rank_constant,
            limit=limit,
        )

    async def _vector_candidates(self, query: str, top_k: int) -> List[RetrievalCandidate]:
        try:
            query_vector = await self.embedder.embed(normalize_whitespace(query))
            hits = await self.vector_index.search(
                query_vector,
                candidate_pool=max(self.config.vector_candidate_pool, top_k),
                top_k=top_k,
            )
        except Exception as e:
            logger.warning("Vector search failed, continuing lexical-only: %s", e)
            return []
        return RetrievalCandidate.from_vector_hits(hits)

    async def _lexical_candidates(self, pattern: str, limit: int) -> List[RetrievalCandidate]:
        if not pattern:
            return []
        try:
            hits = await self.lexical_store.find_by_pattern(pattern, limit)
        except Exception as e:
            logger.warning("Lexical search failed for %r: %s", pattern, e)
            return []
        return RetrievalCandidate.from_lexical_hits(hits[:limit])
