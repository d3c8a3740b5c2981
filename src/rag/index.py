"""
Corpus and memory records, plus the JSONL corpus loader.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import json
import re
from pathlib import Path
from typing import List, Optional, Tuple


ROOT = Path(__file__).resolve().parents[2]
PASSAGES_PATH = ROOT / "data" / "passages.jsonl"

MEMORY_ROLES = ("user", "assistant")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclasses.dataclass(frozen=True)
class Passage:
    """An indexed unit of textbook content."""

    id: str
    content: str
    title: Optional[str] = None
    breadcrumb: Optional[str] = None
    problem_id: Optional[str] = None
    subpart: Optional[str] = None
    embedding: Optional[Tuple[float, ...]] = None
    created_at: dt.datetime = dataclasses.field(default_factory=_utcnow)

    @property
    def embedding_text(self) -> str:
        """Text that gets embedded: optional title line, then the content."""
        if self.title:
            return f"{self.title}\n{self.content}"
        return self.content


@dataclasses.dataclass(frozen=True)
class MemoryItem:
    """One embedded message of a conversation thread."""

    thread_id: str
    role: str
    turn: int
    content: str
    embedding: Tuple[float, ...]
    created_at: dt.datetime = dataclasses.field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.role not in MEMORY_ROLES:
            raise ValueError(f"role must be one of {MEMORY_ROLES}, got {self.role!r}")
        if self.turn < 1:
            raise ValueError(f"turn must be >= 1, got {self.turn}")

    @property
    def id(self) -> str:
        return f"{self.thread_id}:{self.turn}"


def _parse_breadcrumb(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        parts = [str(v).strip() for v in value if str(v).strip()]
        return " > ".join(parts) or None
    return str(value) or None


def _parse_created_at(value) -> dt.datetime:
    if not value:
        return _utcnow()
    parsed = dt.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def passage_from_dict(obj: dict) -> Passage:
    """Build a Passage from a loosely-typed document, validating required fields."""
    if not isinstance(obj.get("id"), (str, int)) or str(obj["id"]) == "":
        raise ValueError("passage is missing 'id'")
    if not isinstance(obj.get("content"), str):
        raise ValueError(f"passage {obj['id']!r} is missing 'content'")
    embedding = obj.get("embedding")
    problem_id = obj.get("problem_id") or obj.get("problemId")
    subpart = obj.get("subpart")
    return Passage(
        id=str(obj["id"]),
        content=obj["content"],
        title=obj.get("title") or None,
        breadcrumb=_parse_breadcrumb(obj.get("breadcrumb", obj.get("breadcrumbs"))),
        problem_id=str(problem_id).upper() if problem_id else None,
        subpart=re.sub(r"[^a-z]", "", str(subpart).lower())[:1] or None if subpart else None,
        embedding=tuple(float(x) for x in embedding) if embedding else None,
        created_at=_parse_created_at(obj.get("created_at")),
    )


def load_passages(path: Path | None = None) -> List[Passage]:
    """Load passages from a JSONL file."""
    if path is None:
        path = PASSAGES_PATH
    if not path.exists():
        raise FileNotFoundError(f"passages.jsonl not found at {path}")

    passages: List[Passage] = []
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                passages.append(passage_from_dict(json.loads(line)))
            except (json.JSONDecodeError, ValueError, TypeError) as e:
                raise ValueError(f"{path}:{lineno}: invalid passage: {e}") from e
    return passages

