"""
Utility functions for query handling.
"""

from __future__ import annotations

import re
from typing import Iterable, List

WHITESPACE_RE = re.compile(r"\s+")
EDGE_PUNCT_RE = re.compile(r"^[^\w]+|[^\w]+$")


def normalize_whitespace(text: str) -> str:
    """Collapse newlines into spaces before embedding."""
    return text.replace("\r", " ").replace("\n", " ")


def query_terms(text: str, min_len: int = 3) -> List[str]:
    """
    Lowercase whitespace tokens of at least min_len characters, de-duplicated.

    Leading and trailing punctuation is stripped ("UDP?" -> "udp"); inner
    punctuation such as "connection-oriented" is kept.
    """
    seen: List[str] = []
    for tok in WHITESPACE_RE.split(text.lower()):
        tok = EDGE_PUNCT_RE.sub("", tok)
        if len(tok) < min_len:
            continue
        if tok not in seen:
            seen.append(tok)
    return seen


def alternation(terms: Iterable[str]) -> str:
    """Escape terms and join them into a regex alternation; empty when no terms."""
    return "|".join(re.escape(t) for t in terms if t)
