"""
Configuration for the textbook retrieval core.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if it exists
project_root = Path(__file__).resolve().parents[2]
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)


DEFAULT_IDENTIFIER_PATTERN = r"\b([PR])(\d+)\b"


@dataclass
class RetrievalConfig:
    """Tuning knobs for corpus and memory retrieval."""

    rank_constant: int = 60
    vector_weight: float = 0.6
    lexical_weight: float = 0.4
    # Lexical weight for candidates that contain a detected problem identifier
    identifier_weight: float = 0.8
    vector_candidate_pool: int = 100
    vector_overfetch: int = 2
    lexical_overfetch: int = 3
    fallback_score: float = 0.7
    exact_match_score: float = 1.0
    memory_candidate_pool: int = 100
    memory_limit: int = 6
    identifier_pattern: str = DEFAULT_IDENTIFIER_PATTERN
    identifier_short_circuit: bool = True
    # None means any number of detected identifiers may trigger the short-circuit
    max_short_circuit_identifiers: Optional[int] = None

    @classmethod
    def from_env(cls) -> "RetrievalConfig":
        """Build a config from RAG_* environment variables, e.g. RAG_RANK_CONSTANT=30."""
        config = cls()
        for f in fields(cls):
            raw = os.getenv(f"RAG_{f.name.upper()}")
            if raw is None or raw == "":
                continue
            setattr(config, f.name, _coerce(f.name, raw, getattr(config, f.name)))
        return config


def _coerce(name: str, raw: str, current: object) -> object:
    if name == "max_short_circuit_identifiers":
        return None if raw.lower() in ("none", "off") else int(raw)
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw
