"""
Batch ingestion pipeline.
Drives walker → extractor → normalizer → chunker → index service across a
whole curriculum tree, isolating per-file failures.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional
import logging
import threading

from domain.models import Chunk, FileStatus, SourceDocument
from indexstore.base import BaseIndexIngestor
from ingestion.chunking import TextChunker
from ingestion.normalizer import TextNormalizer
from ingestion.pdf_extractor import PdfPageExtractor
from ingestion.walker import DirectoryWalker, RootNotFoundError

logger = logging.getLogger(__name__)

__all__ = [
    "BatchOrchestrator",
    "FileResult",
    "RootNotFoundError",
    "RunSummary",
]


@dataclass
class FileResult:
    """Result of processing a single file"""
    relative_path: str
    status: FileStatus
    index_id: Optional[str] = None
    chunk_count: int = 0
    error_message: Optional[str] = None
    processing_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.status in (FileStatus.DONE, FileStatus.SKIPPED)

    def summary_line(self) -> str:
        if not self.success:
            return f"✗ {self.relative_path} => {self.error_message}"
        if self.status is FileStatus.SKIPPED:
            return f"✔ {self.relative_path} => (dry run)"
        return f"✔ {self.relative_path} => {self.index_id}"


@dataclass
class RunSummary:
    """Append-only record of a batch run"""
    root: str
    dry_run: bool = False
    results: List[FileResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, result: FileResult) -> None:
        with self._lock:
            self.results.append(result)

    @property
    def total_files(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_chunks(self) -> int:
        return sum(r.chunk_count for r in self.results if r.success)

    def get_failed_files(self) -> List[str]:
        return [r.relative_path for r in self.results if not r.success]

    def get_successful_files(self) -> List[str]:
        return [r.relative_path for r in self.results if r.success]

    def lines(self) -> List[str]:
        return [r.summary_line() for r in self.results]


class BatchOrchestrator:
    """
    Batch processing pipeline for ingesting a tree of course PDFs.

    Every file goes discovered → extracting → normalizing → chunking →
    ingesting → done, or stops at failed; a failure never affects the
    files around it.
    """

    def __init__(
        self,
        ingestor: BaseIndexIngestor,
        chunker: Optional[TextChunker] = None,
        extractor: Optional[PdfPageExtractor] = None,
        normalizer: Optional[TextNormalizer] = None,
        walker: Optional[DirectoryWalker] = None,
        dry_run: bool = False,
        recursive: bool = False,
        max_workers: int = 1,
    ):
        self.ingestor = ingestor
        self.chunker = chunker or TextChunker()
        self.extractor = extractor or PdfPageExtractor()
        self.normalizer = normalizer or TextNormalizer()
        self.walker = walker or DirectoryWalker()
        self.dry_run = dry_run
        self.recursive = recursive
        self.max_workers = max(1, max_workers)

        logger.info(
            f"BatchOrchestrator initialized with "
            f"ingestor={ingestor.__class__.__name__}, "
            f"dry_run={dry_run}, recursive={recursive}, max_workers={self.max_workers}"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, root: str | Path, dry_run: Optional[bool] = None) -> RunSummary:
        """
        Process every PDF under root.

        Args:
            root: Curriculum root folder
            dry_run: Overrides the instance setting; only metadata is computed

        Returns:
            RunSummary with one entry per discovered file

        Raises:
            RootNotFoundError: If root does not exist (nothing is processed)
        """
        dry = self.dry_run if dry_run is None else dry_run
        root_dir = self.walker.validate_root(root)

        documents = self.discover(root_dir)
        logger.info(
            f"Starting batch of {len(documents)} PDF(s) under {root_dir}"
            f"{' (dry run)' if dry else ''}"
        )

        summary = RunSummary(root=str(root_dir), dry_run=dry)

        if self.max_workers == 1 or len(documents) <= 1:
            for document in documents:
                summary.add(self._safe_process(document, dry))
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = [
                    pool.submit(self._safe_process, document, dry) for document in documents
                ]
                # Discovery order, one entry per document
                for future in futures:
                    summary.add(future.result())

        summary.completed_at = datetime.now()
        logger.info(
            f"Batch completed: {summary.successful}/{summary.total_files} successful, "
            f"{summary.total_chunks} total chunks"
        )
        return summary

    def discover(self, root: str | Path) -> List[SourceDocument]:
        """List the documents of a run, following the configured layout."""
        if self.recursive:
            return [
                self.walker.parse_metadata(root, pdf)
                for pdf in self.walker.find_pdfs(root)
            ]
        return self.walker.discover(root)

    def process_document(
        self,
        document: SourceDocument,
        dry_run: bool = False,
        data: Optional[bytes] = None,
        index_name: Optional[str] = None,
    ) -> FileResult:
        """
        Run one document through the pipeline. Never raises.

        Args:
            document: Document to ingest
            dry_run: Only log the metadata
            data: PDF bytes; read from document.absolute_path when None
            index_name: Overrides document.index_name
        """
        index_name = index_name or document.index_name
        start_time = datetime.now()
        status = FileStatus.DISCOVERED
        logger.info(
            f"→ {document.relative_path} "
            f"(niveau={document.niveau}, matiere={document.matiere}, cours={document.cours})"
        )

        if dry_run:
            logger.info(f"[dry] {document.relative_path} → index {index_name}")
            return FileResult(relative_path=document.relative_path, status=FileStatus.SKIPPED)

        try:
            status = FileStatus.EXTRACTING
            if data is None:
                pages = self.extractor.extract_file(document.absolute_path)
            else:
                pages = self.extractor.extract(data)

            status = FileStatus.NORMALIZING
            texts = [(page.page_number, self.normalizer.normalize(page.raw_text)) for page in pages]

            status = FileStatus.CHUNKING
            chunks: List[Chunk] = []
            metadata = document.metadata
            for page_number, text in texts:
                chunks.extend(self.chunker.chunk_page(text, page_number, metadata))
            if not chunks:
                logger.warning(
                    f"No extractable text in {document.relative_path} ({len(pages)} pages)"
                )

            status = FileStatus.INGESTING
            index_id = self.ingestor.create_or_get_index(index_name)
            self.ingestor.add_chunks(index_id, chunks)

        except Exception as e:
            processing_time = (datetime.now() - start_time).total_seconds()
            logger.error(
                f"Failed to process {document.relative_path} while {status.value}: {e}",
                exc_info=True
            )
            return FileResult(
                relative_path=document.relative_path,
                status=FileStatus.FAILED,
                error_message=str(e) or e.__class__.__name__,
                processing_time=processing_time,
            )

        processing_time = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"  {document.relative_path}: {len(chunks)} chunks → {index_id} "
            f"in {processing_time:.2f}s"
        )
        return FileResult(
            relative_path=document.relative_path,
            status=FileStatus.DONE,
            index_id=index_id,
            chunk_count=len(chunks),
            processing_time=processing_time,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _safe_process(self, document: SourceDocument, dry_run: bool) -> FileResult:
        try:
            return self.process_document(document, dry_run)
        except Exception as e:
            logger.error(f"Unexpected error on {document.relative_path}: {e}", exc_info=True)
            return FileResult(
                relative_path=document.relative_path,
                status=FileStatus.FAILED,
                error_message=str(e) or e.__class__.__name__,
            )
