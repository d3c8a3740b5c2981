"""
Tests for the SQL passage and memory stores against in-memory SQLite.
"""

from __future__ import annotations

from typing import List

import pytest
from sqlalchemy.pool import StaticPool

from src.db.models import Base
from src.db.session import create_engine, create_session_factory
from src.db.stores import SqlMemoryStore, SqlPassageStore
from src.memory import MemoryRecorder, MemoryRetriever
from src.rag import CorpusRetriever, Passage, anchored_pattern


@pytest.fixture
async def session_factory(anyio_backend):
    engine = create_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def corpus() -> list[Passage]:
    return [
        Passage(id="p1", content="P1: Define latency.", problem_id="P1", embedding=(1.0, 0.0)),
        Passage(id="prop", content="Propagation delay is distance/speed.", embedding=(0.0, 1.0)),
        Passage(id="p1-follow", content="P1 follow-up: compute for 1000km link.", problem_id="P1", embedding=(0.7, 0.7)),
        Passage(id="raw", content="Unembedded passage about latency."),
    ]


class _AxisEmbedder:
    async def embed(self, text: str) -> List[float]:
        return [1.0, 0.0] if "latency" in text.lower() else [0.0, 1.0]


@pytest.mark.anyio
async def test_passage_store_counts_only_embedded(session_factory, corpus):
    store = SqlPassageStore(session_factory)
    assert await store.replace_all(corpus) == 4
    assert await store.count() == 3
    assert await store.count({"problem_id": "P1"}) == 2


@pytest.mark.anyio
async def test_passage_store_replace_all_is_wholesale(session_factory, corpus):
    store = SqlPassageStore(session_factory)
    await store.replace_all(corpus)
    await store.replace_all(corpus[:1])
    assert await store.count() == 1


@pytest.mark.anyio
async def test_passage_store_regex_is_case_insensitive_and_ordered(session_factory, corpus):
    store = SqlPassageStore(session_factory)
    await store.replace_all(corpus)

    hits = await store.find_by_pattern("LATENCY|speed", 10)
    assert [h.id for h in hits] == ["p1", "prop", "raw"]

    exact = await store.find_by_pattern(anchored_pattern(["P1"]), 10)
    assert [h.id for h in exact] == ["p1", "p1-follow"]


@pytest.mark.anyio
async def test_passage_store_vector_search(session_factory, corpus):
    store = SqlPassageStore(session_factory)
    await store.replace_all(corpus)

    hits = await store.search([0.0, 2.0], top_k=2)
    assert [h.id for h in hits] == ["prop", "p1-follow"]
    assert hits[0].score == pytest.approx(1.0)
    assert await store.search([1.0, 0.0, 0.0], top_k=2) == []


@pytest.mark.anyio
async def test_corpus_retriever_over_sql_store(session_factory, corpus):
    store = SqlPassageStore(session_factory)
    await store.replace_all(corpus)
    retriever = CorpusRetriever(embedder=_AxisEmbedder(), vector_index=store, lexical_store=store)

    exact = await retriever.retrieve("Let's do p1", 4)
    assert [(r.source_id, r.score) for r in exact] == [("p1", 1.0), ("p1-follow", 1.0)]

    fused = await retriever.retrieve("explain latency", 4)
    assert fused[0].source_id == "p1"


@pytest.mark.anyio
async def test_memory_store_records_and_recalls_per_thread(session_factory):
    store = SqlMemoryStore(session_factory)
    recorder = MemoryRecorder(_AxisEmbedder(), store)

    await recorder.record("t1", "user", "What is latency?")
    await recorder.record("t1", "assistant", "Propagation plus queuing and more.")
    await recorder.record("t2", "user", "What is latency in 5G?")

    items = await store.items("t1")
    assert [(i.turn, i.role) for i in items] == [(1, "user"), (2, "assistant")]
    assert await store.count({"thread_id": "t2"}) == 1

    retriever = MemoryRetriever(embedder=_AxisEmbedder(), memory_index=store)
    results = await retriever.retrieve("back to latency", "t1", 6)
    assert [r.source_id for r in results] == ["t1:1", "t1:2"]
    assert results[0].role == "user"
    assert results[0].score == pytest.approx(1.0)

    assert await retriever.retrieve("latency", "unknown-thread", 6) == []
