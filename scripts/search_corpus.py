"""
CLI to run corpus retrieval over a passages JSONL file.

Recommended usage (run as a module so package imports work):

    python -m scripts.search_corpus "what is propagation delay"
    python -m scripts.search_corpus "walk me through P3" --limit 6
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from src.rag import (
    RetrievalConfig,
    build_in_memory_service,
    create_embedder,
    detect_identifiers,
    load_passages,
)


async def _demo(query: str, path: Path | None, limit: int) -> None:
    config = RetrievalConfig.from_env()
    identifiers = detect_identifiers(query, config.identifier_pattern)
    if identifiers:
        print(f"Problem identifiers in query: {', '.join(identifiers)}")
    passages = load_passages(path)
    service = await build_in_memory_service(
        passages,
        create_embedder(),
        config=config,
        embed_missing=True,
    )
    results = await service.retrieve_corpus(query, limit)
    print(f"Top {len(results)} results for: {query!r}")
    for r in results:
        print("\n====", r.source_id or "-", "====")
        print(f"Score: {r.score:.4f}")
        print(r.content[:400].replace("\n", " "), "...")


def main() -> None:
    parser = argparse.ArgumentParser(description="Search the textbook corpus")
    parser.add_argument("query", nargs="+")
    parser.add_argument("--corpus", type=Path, default=None, help="passages JSONL (default data/passages.jsonl)")
    parser.add_argument("--limit", type=int, default=4)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(_demo(" ".join(args.query), args.corpus, args.limit))


if __name__ == "__main__":
    main()
