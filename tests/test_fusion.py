"""
Tests for weighted reciprocal rank fusion.
"""

from __future__ import annotations

import pytest

from src.rag import RankedList, RankedResult, RetrievalCandidate, fuse


def _vec(*ids: str) -> list[RetrievalCandidate]:
    return [
        RetrievalCandidate(content=f"passage {i}", rank=r, provenance="vector", source_id=i)
        for r, i in enumerate(ids)
    ]


def _lex(*ids: str) -> list[RetrievalCandidate]:
    return [
        RetrievalCandidate(content=f"passage {i}", rank=r, provenance="lexical", source_id=i)
        for r, i in enumerate(ids)
    ]


def test_fuse_double_match_at_rank_zero_scores_one_over_61():
    results = fuse(
        [RankedList(items=_vec("a"), weight=0.6), RankedList(items=_lex("a"), weight=0.4)],
        rank_constant=60,
        limit=5,
    )
    assert len(results) == 1
    assert isinstance(results[0], RankedResult)
    assert results[0].source_id == "a"
    assert results[0].score == pytest.approx(0.6 / 61 + 0.4 / 61)
    assert results[0].score == pytest.approx(1 / 61)


def test_fuse_item_in_both_lists_beats_single_list_items():
    vector = _vec("A", "B", "C")
    lexical = _lex("B", "D")
    results = fuse(
        [RankedList(items=vector, weight=0.6), RankedList(items=lexical, weight=0.4)],
        rank_constant=60,
        limit=10,
    )
    order = [r.source_id for r in results]
    assert order == ["B", "A", "C", "D"]
    assert results[0].score == pytest.approx(0.6 / 62 + 0.4 / 61)
    assert results[1].score == pytest.approx(0.6 / 61)
    assert results[-1].score == pytest.approx(0.4 / 62)


def test_fuse_is_deterministic():
    lists = [
        RankedList(items=_vec("x", "y", "z"), weight=0.6),
        RankedList(items=_lex("z", "w", "x"), weight=0.4),
    ]
    first = fuse(lists, rank_constant=60, limit=10)
    second = fuse(lists, rank_constant=60, limit=10)
    assert [(r.source_id, r.score) for r in first] == [(r.source_id, r.score) for r in second]


def test_fuse_ties_keep_first_seen_order():
    results = fuse(
        [RankedList(items=_vec("first"), weight=0.5), RankedList(items=_lex("second"), weight=0.5)],
        rank_constant=60,
        limit=10,
    )
    assert [r.source_id for r in results] == ["first", "second"]
    assert results[0].score == results[1].score


def test_fuse_truncates_to_limit():
    results = fuse([RankedList(items=_vec("a", "b", "c", "d"), weight=1.0)], rank_constant=60, limit=2)
    assert [r.source_id for r in results] == ["a", "b"]


def test_fuse_keeps_unidentified_candidates_apart():
    same_text = [
        RetrievalCandidate(content="Repeated text", rank=0, provenance="lexical"),
        RetrievalCandidate(content="Repeated text", rank=1, provenance="lexical"),
    ]
    results = fuse([RankedList(items=same_text, weight=0.4)], rank_constant=60, limit=10)
    assert len(results) == 2
    assert all(r.source_id is None for r in results)


def test_fuse_boosted_weight_applies_only_to_matching_items():
    lexical = _lex("plain", "boosted")
    results = fuse(
        [
            RankedList(
                items=lexical,
                weight=0.4,
                boost=lambda c: c.source_id == "boosted",
                boosted_weight=0.8,
            )
        ],
        rank_constant=60,
        limit=10,
    )
    scores = {r.source_id: r.score for r in results}
    assert scores["plain"] == pytest.approx(0.4 / 61)
    assert scores["boosted"] == pytest.approx(0.8 / 62)
    assert results[0].source_id == "boosted"


def test_fuse_empty_lists():
    assert fuse([RankedList(items=[], weight=0.6), RankedList(items=[], weight=0.4)], limit=4) == []
