"""
Detection of textbook problem / review-question identifiers such as "P3" or "R12".

Queries that name a problem explicitly are resolved by looking for the
passage that *states* that problem (the identifier opening a line) before
any approximate ranking is attempted.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Sequence

from .config import DEFAULT_IDENTIFIER_PATTERN


@lru_cache(maxsize=16)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def detect_identifiers(text: str, pattern: str = DEFAULT_IDENTIFIER_PATTERN) -> List[str]:
    """
    Return the problem identifiers mentioned in text.

    Matches are uppercased, stripped of inner whitespace and de-duplicated,
    keeping first-seen order: "compare p3 and R1, then P3 again" -> ["P3", "R1"].
    """
    found: List[str] = []
    for match in _compile(pattern).finditer(text or ""):
        token = "".join(g for g in match.groups() if g) if match.groups() else match.group(0)
        token = re.sub(r"\s+", "", token).upper()
        if token and token not in found:
            found.append(token)
    return found


def anchored_pattern(identifiers: Sequence[str]) -> str:
    """
    Regex that matches an identifier opening a line.

    The identifier may be preceded by the word "Problem" and must be followed
    by ".", ":", ")", "-", whitespace or the end of the text, so "P1" does not
    match "P12". The pattern sticks to syntax shared by Python ``re`` and
    PostgreSQL regular expressions; callers apply case-insensitivity.
    """
    if not identifiers:
        return ""
    alts = "|".join(re.escape(i) for i in identifiers)
    return rf"(^|\n)[ \t]*(problem[ \t]+)?({alts})([.:)-]|\s|$)"


def mentions_identifier(content: str, identifiers: Iterable[str]) -> bool:
    """True when content contains any identifier as a whole token."""
    for ident in identifiers:
        if re.search(rf"\b{re.escape(ident)}\b", content, re.IGNORECASE):
            return True
    return False
