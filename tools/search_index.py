"""
Query an existing index and print the best matching chunks.

Uso:
    python -m tools.search_index <index_id> <consulta...>
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from config.settings import settings
from core.components import build_embedder, build_index_ingestor, configure_logging
from domain.models import SearchHit
from indexstore import IngestionError


def format_hit(hit: SearchHit) -> str:
    page = hit.page if hit.page is not None else "-"
    ord_ = hit.ord if hit.ord is not None else "-"
    return f"score={hit.score:.4f} page={page} ord={ord_} id={hit.id}\n{hit.text}\n---"


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Search a retrieval index")
    parser.add_argument("index_id")
    parser.add_argument("query", nargs="+")
    parser.add_argument("--top-k", type=int, default=settings.SEARCH_TOP_K)
    parser.add_argument("--store", choices=["memory", "chroma"], default=None)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    query = " ".join(args.query).strip()
    if not query:
        print("Usage: search_index <index_id> <query...>", file=sys.stderr)
        return 1

    configure_logging("WARNING")
    ingestor = build_index_ingestor(build_embedder(), provider=args.store)
    try:
        hits = ingestor.search(args.index_id, query, top_k=args.top_k)
    except IngestionError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return 1

    for hit in hits:
        print(format_hit(hit))
    return 0


if __name__ == "__main__":
    sys.exit(main())
