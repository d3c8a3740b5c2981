"""
Append conversation messages to long-term memory as they happen.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Dict, Optional, Protocol

from src.rag.index import MEMORY_ROLES, MemoryItem
from src.rag.retriever import Embedder, VectorIndex
from src.rag.utils import normalize_whitespace

logger = logging.getLogger(__name__)


class MemoryStore(VectorIndex, Protocol):
    """A memory vector index that also accepts new items."""

    async def append(self, item: MemoryItem) -> None:
        ...


class MemoryRecorder:
    """
    Embeds each message and stores it with the next turn index of its thread.

    Turn assignment and append run under a per-thread lock, so concurrent
    record() calls for one thread get consecutive turns. The lock only covers
    this recorder; writers in other processes rely on the store's unique
    (thread_id, turn) constraint and lose the race with a logged warning.
    """

    def __init__(self, embedder: Embedder, store: MemoryStore):
        self.embedder = embedder
        self.store = store
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def record(self, thread_id: str, role: str, content: str) -> Optional[MemoryItem]:
        if role not in MEMORY_ROLES:
            raise ValueError(f"role must be one of {MEMORY_ROLES}, got {role!r}")
        if not content or not content.strip():
            return None
        try:
            embedding = await self.embedder.embed(normalize_whitespace(content))
            async with self._locks[thread_id]:
                turn = await self.store.count({"thread_id": thread_id}) + 1
                item = MemoryItem(
                    thread_id=thread_id,
                    role=role,
                    turn=turn,
                    content=content,
                    embedding=tuple(float(x) for x in embedding),
                )
                await self.store.append(item)
        except Exception as e:
            logger.warning("Failed to record memory for thread %s: %s", thread_id, e)
            return None
        return item
