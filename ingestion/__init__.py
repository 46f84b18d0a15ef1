"""
Ingestion module.

Everything between a curriculum folder on disk and the index service:

  ingestion.walker         — PDF discovery and niveau/matiere/cours metadata
  ingestion.pdf_extractor  — per-page text extraction
  ingestion.normalizer     — text cleanup before chunking
  ingestion.chunking       — text splitting with overlap
  ingestion.pipeline       — batch orchestration over a whole tree
"""
from ingestion.walker import (
    DirectoryReadError,
    DirectoryWalker,
    GENERAL_MATIERE,
    RootNotFoundError,
    is_pdf,
    is_real_dir,
)
from ingestion.pdf_extractor import (
    DocumentExtractionError,
    PdfPageExtractor,
    ensure_parser_environment,
)
from ingestion.normalizer import TextNormalizer, normalize_text
from ingestion.chunking import TextChunker, ChunkingException, split_into_chunks
from ingestion.pipeline import BatchOrchestrator, FileResult, RunSummary

__all__ = [
    # Discovery
    "DirectoryReadError",
    "DirectoryWalker",
    "GENERAL_MATIERE",
    "RootNotFoundError",
    "is_pdf",
    "is_real_dir",
    # Extraction
    "DocumentExtractionError",
    "PdfPageExtractor",
    "ensure_parser_environment",
    # Normalization
    "TextNormalizer",
    "normalize_text",
    # Chunking
    "TextChunker",
    "ChunkingException",
    "split_into_chunks",
    # Pipeline
    "BatchOrchestrator",
    "FileResult",
    "RunSummary",
]
