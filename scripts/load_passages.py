"""
Load a passages JSONL corpus into the database.

Two modes:
- Default (dry-run): summarize the corpus file (passage count, embedded
  count, problem identifiers, embedding dimensions), no DB writes.
- Apply mode (--apply): embed passages that lack an embedding and replace
  the passages table with the corpus.

Usage:
  python -m scripts.load_passages data/passages.jsonl --apply
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections import Counter
from pathlib import Path
from typing import List

from src.db.session import create_engine, create_session_factory
from src.db.stores import SqlPassageStore
from src.rag import Passage, create_embedder, embed_passages, load_passages


def summarize_passages(passages: List[Passage]) -> None:
    total = len(passages)
    print(f"Loaded {total} passages")
    if total == 0:
        return

    dims: Counter = Counter(len(p.embedding) for p in passages if p.embedding)
    problems = sorted({p.problem_id for p in passages if p.problem_id})

    print(f"Embedded: {sum(dims.values())}/{total}")
    for dim, count in dims.most_common():
        print(f"  dim={dim}: {count}")
    if len(dims) > 1:
        print("WARNING: mixed embedding dimensions; minority rows will be skipped by vector search")
    print(f"Problem identifiers ({len(problems)}): {', '.join(problems) or '-'}")


async def apply_passages(passages: List[Passage]) -> None:
    embedder = create_embedder()
    passages = await embed_passages(passages, embedder)
    engine = create_engine()
    try:
        store = SqlPassageStore(create_session_factory(engine))
        written = await store.replace_all(passages)
        print(f"Wrote {written} passages")
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("path", type=Path, nargs="?", default=None, help="passages JSONL (default data/passages.jsonl)")
    parser.add_argument("--apply", action="store_true", help="write passages to DATABASE_URL")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    passages = load_passages(args.path)
    summarize_passages(passages)
    if args.apply:
        asyncio.run(apply_passages(passages))


if __name__ == "__main__":
    main()
