"""
RAG (Retrieval-Augmented Generation) module.

Selects textbook passages for tutoring prompts:
- Dense vector search over embedded passages
- Regex lexical search
- Problem identifier detection and exact-match short-circuit
- Weighted RRF fusion of the two candidate lists
"""

from .config import RetrievalConfig
from .dense import InMemoryVectorIndex
from .embeddings import (
    OpenAIEmbedder,
    SentenceTransformerEmbedder,
    create_embedder,
    embed_passages,
)
from .hybrid import CorpusRetriever
from .identifiers import anchored_pattern, detect_identifiers, mentions_identifier
from .index import MemoryItem, Passage, load_passages
from .lexical import InMemoryLexicalStore
from .retriever import (
    Embedder,
    LexicalStore,
    RankedResult,
    RetrievalCandidate,
    VectorIndex,
)
from .rrf_merger import RankedList, fuse
from .schemas import LexicalHit, VectorHit
from .service import RetrievalService, build_in_memory_service

__all__ = [
    "Passage",
    "MemoryItem",
    "load_passages",
    "RetrievalConfig",
    "Embedder",
    "VectorIndex",
    "LexicalStore",
    "VectorHit",
    "LexicalHit",
    "RetrievalCandidate",
    "RankedResult",
    "RankedList",
    "fuse",
    "detect_identifiers",
    "anchored_pattern",
    "mentions_identifier",
    "SentenceTransformerEmbedder",
    "OpenAIEmbedder",
    "create_embedder",
    "embed_passages",
    "InMemoryVectorIndex",
    "InMemoryLexicalStore",
    "CorpusRetriever",
    "RetrievalService",
    "build_in_memory_service",
]
