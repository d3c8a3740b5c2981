"""
SQL-backed passage and memory stores.

Embeddings live in a JSON column; similarity is computed in process with
numpy over the rows that pass the equality filter.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence

import numpy as np
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.rag.dense import rank_by_cosine
from src.rag.index import MemoryItem, Passage
from src.rag.schemas import LexicalHit, VectorHit

from .models import Base, MemoryRecord, PassageRecord

logger = logging.getLogger(__name__)


class _SqlVectorStore:
    model: type[Base]

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _where(self, stmt, filter: Optional[Mapping[str, Any]]):
        stmt = stmt.where(self.model.embedding.is_not(None))
        for field, value in (filter or {}).items():
            stmt = stmt.where(getattr(self.model, field) == value)
        return stmt

    async def count(self, filter: Optional[Mapping[str, Any]] = None) -> int:
        stmt = self._where(select(func.count()).select_from(self.model), filter)
        async with self.session_factory() as session:
            return int((await session.execute(stmt)).scalar_one())

    async def search(
        self,
        query_vector: Sequence[float],
        *,
        filter: Optional[Mapping[str, Any]] = None,
        candidate_pool: int = 100,
        top_k: int = 10,
    ) -> List[VectorHit]:
        async with self.session_factory() as session:
            rows = (await session.execute(self._where(select(self.model), filter))).scalars().all()

        dim = len(query_vector)
        usable = [r for r in rows if r.embedding and len(r.embedding) == dim]
        if len(usable) < len(rows):
            logger.warning(
                "%s: skipped %d rows whose embedding dimension != %d",
                self.model.__tablename__,
                len(rows) - len(usable),
                dim,
            )
        if not usable:
            return []

        matrix = np.asarray([r.embedding for r in usable], dtype=np.float32)
        ranked = rank_by_cosine(matrix, query_vector, min(candidate_pool, top_k))
        return [self._hit(usable[i], score) for i, score in ranked]

    def _hit(self, row, score: float) -> VectorHit:
        raise NotImplementedError


class SqlPassageStore(_SqlVectorStore):
    """Passages table as both a vector index and a lexical store."""

    model = PassageRecord

    def _hit(self, row: PassageRecord, score: float) -> VectorHit:
        return VectorHit(content=row.content, id=row.id, score=score)

    async def replace_all(self, passages: Sequence[Passage]) -> int:
        """Replace the whole corpus; passages keep their sequence order."""
        async with self.session_factory() as session:
            await session.execute(delete(PassageRecord))
            session.add_all(PassageRecord.from_passage(p, i) for i, p in enumerate(passages))
            await session.commit()
        return len(passages)

    async def find_by_pattern(self, pattern: str, limit: int) -> List[LexicalHit]:
        if not pattern or limit <= 0:
            return []
        async with self.session_factory() as session:
            dialect = session.get_bind().dialect.name
            if dialect == "sqlite":
                # SQLite's REGEXP takes no flags argument
                clause = PassageRecord.content.regexp_match(f"(?i){pattern}")
            else:
                clause = PassageRecord.content.regexp_match(pattern, flags="i")
            stmt = (
                select(PassageRecord.id, PassageRecord.content)
                .where(clause)
                .order_by(PassageRecord.ordinal)
                .limit(limit)
            )
            rows = (await session.execute(stmt)).all()
        return [LexicalHit(content=content, id=pid) for pid, content in rows]


class SqlMemoryStore(_SqlVectorStore):
    """chat_memory table as a thread-filterable vector index."""

    model = MemoryRecord

    def _hit(self, row: MemoryRecord, score: float) -> VectorHit:
        return VectorHit(content=row.content, id=f"{row.thread_id}:{row.turn}", score=score, role=row.role)

    async def append(self, item: MemoryItem) -> None:
        async with self.session_factory() as session:
            session.add(MemoryRecord.from_item(item))
            await session.commit()

    async def items(self, thread_id: str) -> List[MemoryItem]:
        """All memory items of a thread in turn order."""
        stmt = select(MemoryRecord).where(MemoryRecord.thread_id == thread_id).order_by(MemoryRecord.turn)
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [r.to_item() for r in rows]
