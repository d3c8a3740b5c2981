"""
Embedding backends: local sentence-transformers or the OpenAI embeddings API.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
from openai import AsyncOpenAI
from sentence_transformers import SentenceTransformer

from .index import PASSAGES_PATH, Passage
from .retriever import Embedder
from .utils import normalize_whitespace

logger = logging.getLogger(__name__)

EMBEDDING_BACKEND = os.getenv("EMBEDDING_BACKEND", "sentence-transformers")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "all-MiniLM-L6-v2")
OPENAI_EMBEDDING_MODEL = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_CACHE_PATH = PASSAGES_PATH.with_name("embeddings_cache.npz")


@dataclass
class SentenceTransformerEmbedder:
    """Local embedder; encoding runs in a worker thread."""

    model_name: str = EMBEDDING_MODEL

    def __post_init__(self) -> None:
        self._model = SentenceTransformer(self.model_name)

    def _encode(self, texts: List[str]) -> np.ndarray:
        return self._model.encode(
            texts,
            batch_size=64,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )

    async def embed(self, text: str) -> List[float]:
        emb = await asyncio.to_thread(self._encode, [normalize_whitespace(text)])
        return emb[0].tolist()

    async def embed_many(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        emb = await asyncio.to_thread(self._encode, [normalize_whitespace(t) for t in texts])
        return emb.tolist()


class OpenAIEmbedder:
    """Embedder backed by the OpenAI embeddings endpoint."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("API key required. Set OPENAI_API_KEY to use the openai embedding backend.")
        self.model_name = model_name or OPENAI_EMBEDDING_MODEL
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url or os.getenv("OPENAI_BASE_URL"))

    async def embed(self, text: str) -> List[float]:
        resp = await self.client.embeddings.create(model=self.model_name, input=normalize_whitespace(text))
        return list(resp.data[0].embedding)

    async def embed_many(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        resp = await self.client.embeddings.create(
            model=self.model_name,
            input=[normalize_whitespace(t) for t in texts],
        )
        return [list(d.embedding) for d in resp.data]


def create_embedder(backend: Optional[str] = None, model_name: Optional[str] = None) -> Embedder:
    """Create the embedder selected by EMBEDDING_BACKEND."""
    backend = (backend or EMBEDDING_BACKEND).lower()
    if backend == "openai":
        return OpenAIEmbedder(model_name=model_name)
    if backend in ("sentence-transformers", "local"):
        return SentenceTransformerEmbedder(model_name=model_name or EMBEDDING_MODEL)
    raise ValueError(f"Unknown embedding backend: {backend!r}")


def _load_cached_embeddings(ids: List[str], cache_path: Path) -> np.ndarray | None:
    """Try to load cached embeddings matching the given passage IDs."""
    if not cache_path.exists():
        return None
    try:
        data = np.load(cache_path, allow_pickle=True)
        if data["passage_ids"].tolist() == ids:
            return data["embeddings"]
    except Exception as e:
        logger.warning("Failed to load embedding cache: %s", e)
        return None
    return None


def _save_cached_embeddings(embeddings: np.ndarray, ids: List[str], cache_path: Path) -> None:
    """Persist embeddings to disk for faster subsequent startups."""
    try:
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        np.savez(cache_path, embeddings=embeddings, passage_ids=np.array(ids, dtype=object))
    except Exception as e:
        logger.warning("Failed to save embedding cache: %s", e)


async def embed_passages(
    passages: Sequence[Passage],
    embedder: Embedder,
    cache_path: Path | None = EMBEDDING_CACHE_PATH,
) -> List[Passage]:
    """
    Return passages with every missing embedding filled in.

    Passages that already carry an embedding are passed through untouched.
    The embedded text is the optional title followed by the content.
    """
    missing = [p for p in passages if not p.embedding]
    if not missing:
        return list(passages)

    ids = [p.id for p in missing]
    emb = _load_cached_embeddings(ids, cache_path) if cache_path is not None else None
    if emb is None:
        texts = [p.embedding_text for p in missing]
        embed_many = getattr(embedder, "embed_many", None)
        if embed_many is not None:
            vectors = await embed_many(texts)
        else:
            vectors = [await embedder.embed(t) for t in texts]
        emb = np.asarray(vectors, dtype=np.float32)
        if cache_path is not None:
            _save_cached_embeddings(emb, ids, cache_path)

    by_id = {pid: tuple(float(x) for x in row) for pid, row in zip(ids, emb)}
    return [
        p if p.embedding else dataclasses.replace(p, embedding=by_id[p.id])
        for p in passages
    ]
