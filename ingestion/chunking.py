"""
Text chunking module.
Splits normalized page text into overlapping chunks sized for an embedding index.
"""
from typing import List, Optional, Sequence
import logging

from domain.models import Chunk, ChunkMetadata, ChunkingConfig

logger = logging.getLogger(__name__)

# Paragraph, line, sentence, word
SEPARATORS = ("\n\n", "\n", ". ", " ")


class ChunkingException(Exception):
    """Exception raised for chunking errors"""
    pass


class TextChunker:
    """
    Splits long text into overlapping chunks for better context preservation.

    The text is cut on the highest-priority separator it contains; pieces
    that are still too long are cut again with the next separators. Every
    chunk after the first starts with the tail of its predecessor.
    """

    def __init__(self, config: Optional[ChunkingConfig] = None):
        self.config = config or ChunkingConfig()
        self.config.validate()
        logger.info(
            f"TextChunker initialized — "
            f"chunk_size={self.config.chunk_size}, "
            f"overlap={self.config.chunk_overlap}"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, text: str) -> List[str]:
        """
        Split text into ordered, non-empty chunks.

        Args:
            text: Normalized text

        Returns:
            List of chunk strings
        """
        if not text or not text.strip():
            return []

        if len(text) <= self.config.chunk_size:
            return [text.strip()]

        if not any(sep in text for sep in SEPARATORS):
            return self._split_by_window(
                text,
                size=self.config.chunk_size,
                step=self.config.chunk_size - self.config.chunk_overlap,
            )

        segments = self._split_recursive(text, SEPARATORS)
        return self._apply_overlap(segments)

    def chunk_page(
        self,
        text: str,
        page_number: int,
        metadata: ChunkMetadata,
    ) -> List[Chunk]:
        """
        Split one page and tag every piece with page number, ordinal and metadata.

        Raises:
            ChunkingException: On processing error
        """
        try:
            pieces = self.split(text)
        except Exception as e:
            msg = f"Error chunking page {page_number} of {metadata.source}: {str(e)}"
            logger.error(msg)
            raise ChunkingException(msg) from e

        return [
            Chunk(text=piece, page_number=page_number, ordinal=idx, metadata=metadata)
            for idx, piece in enumerate(pieces)
        ]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @property
    def _pack_limit(self) -> int:
        # Room left once the overlap prefix and its space are prepended
        overlap = self.config.chunk_overlap
        if overlap <= 0:
            return self.config.chunk_size
        return max(1, self.config.chunk_size - overlap - 1)

    def _split_recursive(self, text: str, separators: Sequence[str]) -> List[str]:
        limit = self._pack_limit
        stripped = text.strip()
        if not stripped:
            return []
        if len(stripped) <= limit:
            return [stripped]

        for position, sep in enumerate(separators):
            if sep not in stripped:
                continue

            remaining = separators[position + 1:]
            segments: List[str] = []
            current = ""

            parts = stripped.split(sep)
            for idx, part in enumerate(parts):
                if not part.strip():
                    continue
                # A part keeps the separator that follows it in the text
                piece = part + sep if idx < len(parts) - 1 else part

                if len(piece.strip()) > limit:
                    if current.strip():
                        segments.append(current.strip())
                    current = ""
                    segments.extend(self._split_recursive(piece, remaining))
                    continue

                if current and len((current + piece).strip()) > limit:
                    segments.append(current.strip())
                    current = ""
                current += piece

            if current.strip():
                segments.append(current.strip())
            return segments

        return self._split_by_window(stripped, size=limit, step=limit)

    def _split_by_window(self, text: str, size: int, step: int) -> List[str]:
        chunks: List[str] = []
        start = 0
        while start < len(text):
            piece = text[start : start + size].strip()
            if piece:
                chunks.append(piece)
            if start + size >= len(text):
                break
            start += step
        return chunks

    def _apply_overlap(self, segments: List[str]) -> List[str]:
        overlap = self.config.chunk_overlap
        if len(segments) <= 1 or overlap <= 0:
            return segments

        overlapped = [segments[0]]
        for segment in segments[1:]:
            prev = overlapped[-1]
            if len(prev) > overlap:
                overlapped.append(prev[-overlap:] + " " + segment)
            else:
                overlapped.append(segment)
        return overlapped


# ------------------------------------------------------------------
# Convenience function
# ------------------------------------------------------------------

def split_into_chunks(
    text: str,
    chunk_size: int = 800,
    chunk_overlap: int = 300,
) -> List[str]:
    """Quick chunking helper with default settings."""
    config = ChunkingConfig(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    return TextChunker(config).split(text)
