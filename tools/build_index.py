"""
Build one index from a single PDF (local path or http(s) URL).

Uso:
    python -m tools.build_index <pdf> [--name NOMBRE] [niveau=PCEM2] [matiere=...] [cours=...]
"""
from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional
from urllib.parse import urlparse

import requests

from core.components import (
    build_chunker,
    build_embedder,
    build_index_ingestor,
    build_orchestrator,
    configure_logging,
)
from domain.models import FileStatus, SourceDocument
from ingestion.walker import UNKNOWN_NIVEAU

logger = logging.getLogger(__name__)

METADATA_KEYS = ("niveau", "matiere", "cours")
DOWNLOAD_TIMEOUT = 60

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


class DownloadError(Exception):
    """Raised when a remote PDF cannot be fetched"""
    pass


def is_url(value: str) -> bool:
    return bool(_URL_RE.match(value))


def parse_metadata_pairs(pairs: List[str]) -> Dict[str, str]:
    """
    Parse key=value arguments. Unknown keys, empty values and
    arguments without "=" are ignored.
    """
    meta: Dict[str, str] = {}
    for part in pairs:
        key, sep, value = part.partition("=")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if value and key in METADATA_KEYS:
            meta[key] = value
    return meta


def read_pdf(source: str) -> bytes:
    """Read a local PDF or download a remote one."""
    if not is_url(source):
        logger.info(f"Reading local PDF: {source}")
        return Path(source).read_bytes()

    logger.info(f"Downloading PDF: {source}")
    try:
        response = requests.get(source, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        raise DownloadError(f"Failed to download PDF: {e}") from e
    except requests.exceptions.RequestException as e:
        raise DownloadError(f"Failed to download PDF from {source}: {e}") from e
    return response.content


def document_for(source: str, meta: Dict[str, str]) -> SourceDocument:
    """Describe a standalone PDF with the same fields a batch run would compute."""
    if is_url(source):
        stem = PurePosixPath(urlparse(source).path).stem or "document"
        absolute_path = Path(stem)
    else:
        absolute_path = Path(source).resolve()
        stem = absolute_path.stem
    niveau = meta.get("niveau", UNKNOWN_NIVEAU)
    return SourceDocument(
        absolute_path=absolute_path,
        relative_path=source,
        niveau=niveau,
        matiere=meta.get("matiere", niveau),
        cours=meta.get("cours", stem),
    )


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build a retrieval index from one PDF")
    parser.add_argument("pdf", help="Ruta local o URL http(s) del PDF")
    parser.add_argument("meta", nargs="*", help="niveau=... matiere=... cours=...")
    parser.add_argument("--name", default=None, help="Nombre del índice (default: niveau__matiere__cours)")
    parser.add_argument("--chunk-size", type=int, default=None)
    parser.add_argument("--chunk-overlap", type=int, default=None)
    parser.add_argument("--store", choices=["memory", "chroma"], default=None)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging()

    try:
        chunker = build_chunker(args.chunk_size, args.chunk_overlap)
    except ValueError as exc:
        print(f"Invalid chunking configuration: {exc}", file=sys.stderr)
        return 2

    meta = parse_metadata_pairs(args.meta)
    document = document_for(args.pdf, meta)
    if meta:
        print(f"Meta: {document.metadata.to_dict()}")

    try:
        data = read_pdf(args.pdf)
    except (OSError, DownloadError) as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return 1

    ingestor = build_index_ingestor(build_embedder(), provider=args.store)
    orchestrator = build_orchestrator(ingestor=ingestor, chunker=chunker)
    result = orchestrator.process_document(document, data=data, index_name=args.name)

    if result.status is not FileStatus.DONE:
        print(f"✗ {result.error_message}", file=sys.stderr)
        return 1

    print(f"{result.chunk_count} chunks embedded")
    print(f"Done. Index ID: {result.index_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
