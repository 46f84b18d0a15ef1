"""
PDF page extractor.
Extracts raw per-page text from a PDF byte buffer using PyPDF2.
"""
from io import BytesIO
from pathlib import Path
from typing import List
import logging
import threading

import PyPDF2

from domain.models import ExtractedPage

logger = logging.getLogger(__name__)

# PyPDF2 reports recoverable syntax problems through these loggers
_PARSER_LOGGERS = ("PyPDF2", "PyPDF2._reader", "PyPDF2._page", "PyPDF2.generic")

_parser_ready = False
_parser_lock = threading.Lock()


class DocumentExtractionError(Exception):
    """Raised when a whole PDF cannot be read (corrupt, encrypted, unsupported)"""
    pass


def ensure_parser_environment() -> bool:
    """
    Prepare the PDF parser once per process.

    Returns:
        True if this call performed the setup, False if it was already done
    """
    global _parser_ready
    if _parser_ready:
        return False
    with _parser_lock:
        if _parser_ready:
            return False
        for name in _PARSER_LOGGERS:
            logging.getLogger(name).setLevel(logging.ERROR)
        _parser_ready = True
    logger.debug("PDF parser environment initialized")
    return True


class PdfPageExtractor:
    """
    Extracts the text of every page of a PDF.
    Each page's text is the space-joined sequence of its text runs.
    """

    def extract(self, data: bytes) -> List[ExtractedPage]:
        """
        Extract pages 1..N from a PDF buffer.

        Raises:
            DocumentExtractionError: If the document cannot be parsed
        """
        ensure_parser_environment()

        if not data:
            raise DocumentExtractionError("Empty PDF buffer")

        try:
            reader = PyPDF2.PdfReader(BytesIO(data))
            self._unlock(reader)

            pages: List[ExtractedPage] = []
            for page_number, page in enumerate(reader.pages, start=1):
                pages.append(
                    ExtractedPage(page_number=page_number, raw_text=self._page_text(page))
                )
        except DocumentExtractionError:
            raise
        except Exception as e:
            raise DocumentExtractionError(f"Error reading PDF: {str(e)}") from e

        logger.debug(f"Extracted {len(pages)} pages")
        return pages

    def extract_file(self, file_path: str | Path) -> List[ExtractedPage]:
        """Read a PDF from disk and extract its pages."""
        path = Path(file_path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise DocumentExtractionError(f"Cannot read {path}: {str(e)}") from e
        return self.extract(data)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _unlock(reader) -> None:
        if not reader.is_encrypted:
            return
        try:
            result = reader.decrypt("")
        except Exception as e:
            raise DocumentExtractionError(f"Encrypted PDF: {str(e)}") from e
        if not result:
            raise DocumentExtractionError("Encrypted PDF: a password is required")

    @staticmethod
    def _page_text(page) -> str:
        runs: List[str] = []

        def visitor(text, *_):
            if text and text.strip():
                runs.append(text.strip())

        extracted = page.extract_text(visitor_text=visitor)
        if runs:
            return " ".join(runs)
        return extracted or ""
