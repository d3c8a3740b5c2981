"""
Tests for conversation memory: recording turns and recalling related ones.
"""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from src.memory import MemoryRecorder, MemoryRetriever
from src.rag import InMemoryVectorIndex, MemoryItem, RetrievalConfig


class _TopicEmbedder:
    """Embeds text onto (delay, throughput, security) axes by keyword."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        lowered = text.lower()
        return [
            1.0 if "delay" in lowered else 0.0,
            1.0 if "throughput" in lowered else 0.0,
            1.0 if "security" in lowered else 0.0,
            0.05,
        ]


class _FailingEmbedder:
    async def embed(self, text: str) -> List[float]:
        raise TimeoutError("embedding request timed out")


def _item(thread_id: str, turn: int, role: str, content: str, embedding) -> MemoryItem:
    return MemoryItem(thread_id=thread_id, role=role, turn=turn, content=content, embedding=tuple(embedding))


@pytest.fixture
def memory_index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex(
        [
            _item("t1", 1, "user", "What is queuing delay?", (1.0, 0.0, 0.0, 0.05)),
            _item("t1", 2, "assistant", "Queuing delay depends on traffic intensity.", (1.0, 0.0, 0.0, 0.05)),
            _item("t1", 3, "user", "And throughput?", (0.0, 1.0, 0.0, 0.05)),
            _item("t2", 1, "user", "Explain delay in P3 (c).", (1.0, 0.0, 0.0, 0.05)),
        ]
    )


@pytest.mark.anyio
async def test_empty_thread_skips_embedding(memory_index):
    embedder = _TopicEmbedder()
    retriever = MemoryRetriever(embedder=embedder, memory_index=memory_index)

    assert await retriever.retrieve("continue with part (c)", "new-thread", 6) == []
    assert embedder.calls == []


@pytest.mark.anyio
async def test_retrieve_is_scoped_to_thread_and_sorted(memory_index):
    retriever = MemoryRetriever(embedder=_TopicEmbedder(), memory_index=memory_index)

    results = await retriever.retrieve("back to the delay question", "t1", 6)

    assert [r.source_id for r in results] == ["t1:1", "t1:2", "t1:3"]
    assert [r.role for r in results] == ["user", "assistant", "user"]
    assert results[0].score >= results[1].score > results[2].score


@pytest.mark.anyio
async def test_retrieve_respects_limit(memory_index):
    retriever = MemoryRetriever(embedder=_TopicEmbedder(), memory_index=memory_index)
    results = await retriever.retrieve("throughput", "t1", 1)
    assert [r.source_id for r in results] == ["t1:3"]


@pytest.mark.anyio
async def test_default_limit_comes_from_config(memory_index):
    retriever = MemoryRetriever(
        embedder=_TopicEmbedder(),
        memory_index=memory_index,
        config=RetrievalConfig(memory_limit=2),
    )
    assert len(await retriever.retrieve("delay", "t1")) == 2


@pytest.mark.anyio
async def test_embedding_failure_yields_empty_memory(memory_index):
    retriever = MemoryRetriever(embedder=_FailingEmbedder(), memory_index=memory_index)
    assert await retriever.retrieve("delay", "t1", 6) == []


@pytest.mark.anyio
async def test_recorder_assigns_increasing_turns_per_thread():
    index = InMemoryVectorIndex()
    recorder = MemoryRecorder(_TopicEmbedder(), index)

    first = await recorder.record("t1", "user", "What is\nnodal delay?")
    second = await recorder.record("t1", "assistant", "Processing, queuing, transmission, propagation delay.")
    other = await recorder.record("t2", "user", "What about security?")

    assert (first.turn, second.turn, other.turn) == (1, 2, 1)
    assert first.content == "What is\nnodal delay?"
    assert await index.count({"thread_id": "t1"}) == 2

    retriever = MemoryRetriever(embedder=_TopicEmbedder(), memory_index=index)
    results = await retriever.retrieve("security", "t2", 6)
    assert [r.content for r in results] == ["What about security?"]


@pytest.mark.anyio
async def test_recorder_skips_blank_and_rejects_bad_role():
    recorder = MemoryRecorder(_TopicEmbedder(), InMemoryVectorIndex())
    assert await recorder.record("t1", "user", "   ") is None
    with pytest.raises(ValueError):
        await recorder.record("t1", "system", "hello")


@pytest.mark.anyio
async def test_recorder_failure_returns_none():
    index = InMemoryVectorIndex()
    recorder = MemoryRecorder(_FailingEmbedder(), index)
    assert await recorder.record("t1", "user", "What is delay?") is None
    assert await index.count() == 0


def test_memory_item_validates_role_and_turn():
    with pytest.raises(ValueError):
        MemoryItem(thread_id="t", role="system", turn=1, content="x", embedding=(1.0,))
    with pytest.raises(ValueError):
        MemoryItem(thread_id="t", role="user", turn=0, content="x", embedding=(1.0,))
    assert MemoryItem(thread_id="t", role="user", turn=4, content="x", embedding=(1.0,)).id == "t:4"


class _YieldingMemoryIndex(InMemoryVectorIndex):
    """Suspends between count and append, as a database round-trip would."""

    async def count(self, filter=None) -> int:
        n = await super().count(filter)
        await asyncio.sleep(0)
        return n

    async def append(self, item: MemoryItem) -> None:
        await asyncio.sleep(0)
        await super().append(item)


@pytest.mark.anyio
async def test_concurrent_records_on_one_thread_get_distinct_turns():
    index = _YieldingMemoryIndex()
    recorder = MemoryRecorder(_TopicEmbedder(), index)

    items = await asyncio.gather(
        recorder.record("t1", "user", "What is queuing delay?"),
        recorder.record("t1", "assistant", "It depends on traffic intensity."),
        recorder.record("t1", "user", "And throughput?"),
    )

    assert sorted(i.turn for i in items) == [1, 2, 3]
    assert await index.count({"thread_id": "t1"}) == 3
