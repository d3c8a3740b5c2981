"""
Regex-based lexical search over passage content.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Sequence

from .index import Passage
from .schemas import LexicalHit

logger = logging.getLogger(__name__)


@dataclass
class InMemoryLexicalStore:
    """Case-insensitive regex matching over passages, in corpus order."""

    passages: Sequence[Passage] = field(default_factory=list)

    async def find_by_pattern(self, pattern: str, limit: int) -> List[LexicalHit]:
        if not pattern or limit <= 0:
            return []
        regex = re.compile(pattern, re.IGNORECASE)
        hits: List[LexicalHit] = []
        for p in self.passages:
            if regex.search(p.content):
                hits.append(LexicalHit(content=p.content, id=p.id))
                if len(hits) >= limit:
                    break
        logger.debug("Pattern %r matched %d passages", pattern, len(hits))
        return hits
