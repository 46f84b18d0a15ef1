"""
Component wiring shared by the command-line entry points.
Every builder reads its defaults from `config.settings`.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

from config.settings import settings
from domain.models import ChunkingConfig
from embeddings import BaseEmbedding, EmbeddingConfig, create_embedder
from indexstore import BaseIndexIngestor, create_index_ingestor
from ingestion.chunking import TextChunker
from ingestion.pipeline import BatchOrchestrator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )


def build_embedder() -> BaseEmbedding:
    emb_cfg = EmbeddingConfig(
        model_name=settings.EMBEDDING_MODEL,
        dimension=settings.EMBEDDING_DIMENSION,
        batch_size=settings.EMBEDDING_BATCH_SIZE,
    )
    embedder = create_embedder(provider=settings.EMBEDDING_PROVIDER, config=emb_cfg)
    logger.info("Embedder ready: %s (dim=%d)", settings.EMBEDDING_PROVIDER, embedder.get_dimension())
    return embedder


def build_index_ingestor(
    embedder: BaseEmbedding,
    provider: Optional[str] = None,
) -> BaseIndexIngestor:
    """Index service from settings; falls back to memory if the provider is unknown."""
    provider = provider or settings.INDEX_STORE_TYPE
    retry_kwargs = dict(
        batch_size=settings.EMBEDDING_BATCH_SIZE,
        retry_attempts=settings.EMBEDDING_RETRY_ATTEMPTS,
        retry_base_delay=max(100, settings.EMBEDDING_RETRY_BASE_MS) / 1000.0,
    )
    provider_kwargs = dict(retry_kwargs)
    if provider == "chroma":
        provider_kwargs["persist_directory"] = settings.CHROMA_PERSIST_DIRECTORY

    try:
        ingestor = create_index_ingestor(provider=provider, embedder=embedder, **provider_kwargs)
        logger.info("Index service ready: %s", provider)
    except ValueError as exc:
        logger.warning("%s; falling back to in-memory index", exc)
        ingestor = create_index_ingestor(provider="memory", embedder=embedder, **retry_kwargs)
    return ingestor


def build_chunker(
    chunk_size: Optional[int] = None,
    chunk_overlap: Optional[int] = None,
) -> TextChunker:
    config = ChunkingConfig(
        chunk_size=chunk_size if chunk_size is not None else settings.CHUNK_SIZE,
        chunk_overlap=chunk_overlap if chunk_overlap is not None else settings.CHUNK_OVERLAP,
    )
    return TextChunker(config=config)


def build_orchestrator(
    ingestor: Optional[BaseIndexIngestor] = None,
    chunker: Optional[TextChunker] = None,
    dry_run: bool = False,
    recursive: bool = False,
    max_workers: Optional[int] = None,
) -> BatchOrchestrator:
    if ingestor is None:
        ingestor = build_index_ingestor(build_embedder())
    return BatchOrchestrator(
        ingestor=ingestor,
        chunker=chunker or build_chunker(),
        dry_run=dry_run,
        recursive=recursive,
        max_workers=max_workers if max_workers is not None else settings.INGEST_MAX_WORKERS,
    )
