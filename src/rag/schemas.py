"""
Typed shapes for rows read back from vector and lexical stores.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class LexicalHit(BaseModel):
    """A passage matched by a regex search."""

    content: str
    id: Optional[str] = None


class VectorHit(BaseModel):
    """A record returned by vector similarity search."""

    content: str
    id: Optional[str] = None
    score: float = Field(..., description="Cosine similarity, higher is closer")
    role: Optional[str] = None
