"""
Retrieval boundary used by prompt construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from src.memory.retriever import MemoryRetriever

from .config import RetrievalConfig
from .dense import InMemoryVectorIndex
from .embeddings import embed_passages
from .hybrid import CorpusRetriever
from .index import Passage
from .lexical import InMemoryLexicalStore
from .retriever import Embedder, RankedResult


@dataclass
class RetrievalService:
    """Corpus and memory retrieval behind one object."""

    corpus: CorpusRetriever
    memory: MemoryRetriever

    async def retrieve_corpus(self, query: str, limit: int = 4) -> List[RankedResult]:
        return await self.corpus.retrieve(query, limit)

    async def retrieve_memory(
        self, query: str, thread_id: str, limit: Optional[int] = None
    ) -> List[RankedResult]:
        return await self.memory.retrieve(query, thread_id, limit)


async def build_in_memory_service(
    passages: Sequence[Passage],
    embedder: Embedder,
    *,
    config: RetrievalConfig | None = None,
    memory_index: InMemoryVectorIndex | None = None,
    embed_missing: bool = False,
) -> RetrievalService:
    """
    Wire both retrievers over in-process stores.

    With embed_missing, passages lacking an embedding are embedded first;
    otherwise they are only reachable through lexical search.
    """
    if config is None:
        config = RetrievalConfig()
    if embed_missing:
        passages = await embed_passages(passages, embedder)
    corpus = CorpusRetriever(
        embedder=embedder,
        vector_index=InMemoryVectorIndex([p for p in passages if p.embedding]),
        lexical_store=InMemoryLexicalStore(list(passages)),
        config=config,
    )
    memory = MemoryRetriever(
        embedder=embedder,
        memory_index=memory_index if memory_index is not None else InMemoryVectorIndex(),
        config=config,
    )
    return RetrievalService(corpus=corpus, memory=memory)
