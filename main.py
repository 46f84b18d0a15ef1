"""
Ingesta de PDFs de cursos — índice de recuperación por niveau / matiere.

Layout aceptado:
  PDFs/<NIVEAU>/*.pdf             (matiere = <NIVEAU>)
  PDFs/<NIVEAU>/<MATIERE>/*.pdf   (matiere = nombre de la subcarpeta)

Uso:
    python main.py [root=PDFs] [--dry] [--recursive] [--workers N]

Variables de entorno: CHUNK_SIZE (800), CHUNK_OVERLAP (300),
INDEX_STORE_TYPE, EMBEDDING_PROVIDER, ... (ver config/settings.py)
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from config.settings import settings
from core.components import (
    build_chunker,
    build_embedder,
    build_index_ingestor,
    build_orchestrator,
    configure_logging,
)
from embeddings import DummyEmbedding
from ingestion.pipeline import RunSummary
from ingestion.walker import RootNotFoundError

logger = logging.getLogger(__name__)

W = 60  # ancho de la caja


def _titulo(texto: str) -> None:
    """Imprime un encabezado de sección."""
    barra = "─" * W
    relleno = max(0, W - len(texto) - 2)
    print(f"\n┌{barra}┐")
    print(f"│  {texto}{' ' * relleno}│")
    print(f"└{barra}┘\n")


def _error(msg: str) -> None:
    print(f"  ✗  {msg}", file=sys.stderr)


def print_summary(summary: RunSummary) -> None:
    _titulo("SUMMARY")
    if not summary.results:
        print("  No PDFs found.")
        return
    for line in summary.lines():
        print(f"  {line}")
    print(
        f"\n  {summary.successful}/{summary.total_files} ok · "
        f"{summary.failed} failed · {summary.total_chunks} chunks"
    )


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ingest course PDFs into per-document retrieval indexes"
    )
    parser.add_argument(
        "root",
        nargs="?",
        default=settings.PDF_ROOT,
        help="Carpeta raíz con <NIVEAU>/<MATIERE?>/*.pdf (default: %(default)s)",
    )
    parser.add_argument(
        "--dry",
        action="store_true",
        help="Solo calcula y muestra los metadatos; sin extracción ni indexado",
    )
    parser.add_argument(
        "--recursive",
        action="store_true",
        help="Busca PDFs a cualquier profundidad (matiere = segunda carpeta)",
    )
    parser.add_argument("--workers", type=int, default=None, help="PDFs procesados en paralelo")
    parser.add_argument("--chunk-size", type=int, default=None)
    parser.add_argument("--chunk-overlap", type=int, default=None)
    parser.add_argument(
        "--store",
        choices=["memory", "chroma"],
        default=None,
        help="Servicio de índice (default: INDEX_STORE_TYPE)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging()

    try:
        chunker = build_chunker(args.chunk_size, args.chunk_overlap)
    except ValueError as exc:
        _error(f"Invalid chunking configuration: {exc}")
        return 2

    print(f"Root: {args.root}{' (dry run)' if args.dry else ''}")

    if args.dry:
        # Nothing is embedded or stored in a dry run
        ingestor = build_index_ingestor(DummyEmbedding(), provider="memory")
    else:
        ingestor = build_index_ingestor(build_embedder(), provider=args.store)
    orchestrator = build_orchestrator(
        ingestor=ingestor,
        chunker=chunker,
        dry_run=args.dry,
        recursive=args.recursive,
        max_workers=args.workers,
    )

    try:
        summary = orchestrator.run(args.root)
    except RootNotFoundError as exc:
        _error(str(exc))
        return 1

    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
