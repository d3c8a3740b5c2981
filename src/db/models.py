from __future__ import annotations

import datetime as dt
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.rag.index import MemoryItem, Passage


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class PassageRecord(Base):
    __tablename__ = "passages"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    # Corpus order; lexical matches are returned in this order
    ordinal: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    breadcrumb: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    problem_id: Mapped[Optional[str]] = mapped_column(String(16), nullable=True, index=True)
    subpart: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    embedding: Mapped[Optional[List[float]]] = mapped_column(JSON(none_as_null=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    @classmethod
    def from_passage(cls, passage: Passage, ordinal: int) -> "PassageRecord":
        return cls(
            id=passage.id,
            ordinal=ordinal,
            content=passage.content,
            title=passage.title,
            breadcrumb=passage.breadcrumb,
            problem_id=passage.problem_id,
            subpart=passage.subpart,
            embedding=list(passage.embedding) if passage.embedding else None,
            created_at=passage.created_at,
        )


class MemoryRecord(Base):
    __tablename__ = "chat_memory"
    __table_args__ = (UniqueConstraint("thread_id", "turn", name="uq_chat_memory_thread_turn"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    thread_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    turn: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[List[float]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    @classmethod
    def from_item(cls, item: MemoryItem) -> "MemoryRecord":
        return cls(
            thread_id=item.thread_id,
            role=item.role,
            turn=item.turn,
            content=item.content,
            embedding=list(item.embedding),
            created_at=item.created_at,
        )

    def to_item(self) -> MemoryItem:
        return MemoryItem(
            thread_id=self.thread_id,
            role=self.role,
            turn=self.turn,
            content=self.content,
            embedding=tuple(self.embedding),
            created_at=self.created_at,
        )
