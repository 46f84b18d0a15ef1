"""
Directory walker module.
Discovers PDF files under a curriculum tree and infers their metadata:

    root/<NIVEAU>/*.pdf             → matiere = NIVEAU
    root/<NIVEAU>/<MATIERE>/*.pdf   → matiere = MATIERE
"""
from collections import deque
from pathlib import Path
from typing import List
import logging

from domain.models import SourceDocument

logger = logging.getLogger(__name__)

PDF_SUFFIX = ".pdf"
UNKNOWN_NIVEAU = "UNKNOWN"
GENERAL_MATIERE = "General"


class DirectoryReadError(Exception):
    """Raised when a directory cannot be listed"""
    pass


class RootNotFoundError(Exception):
    """Raised when the root directory of a run does not exist"""
    pass


def is_pdf(path: Path) -> bool:
    return path.suffix.lower() == PDF_SUFFIX


def is_real_dir(path: Path) -> bool:
    """Directory that is not a symlink; linked folders are never followed."""
    return path.is_dir() and not path.is_symlink()


class DirectoryWalker:
    """
    Recorre el árbol de PDFs.
    Los directorios ilegibles se tratan como vacíos.
    """

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def find_pdfs(self, root: str | Path) -> List[Path]:
        """
        Find every PDF below root, at any depth.

        Args:
            root: Directory to walk

        Returns:
            Absolute paths of the PDF files, in discovery order

        Raises:
            RootNotFoundError: If root is missing or not a directory
        """
        root_dir = self.validate_root(root)

        found: List[Path] = []
        pending = deque([root_dir])
        while pending:
            directory = pending.popleft()
            for entry in self._safe_list(directory):
                if is_real_dir(entry):
                    pending.append(entry)
                elif entry.is_file() and is_pdf(entry):
                    found.append(entry)

        logger.info(f"Found {len(found)} PDF(s) under {root_dir}")
        return found

    def parse_metadata(self, root: str | Path, file_path: str | Path) -> SourceDocument:
        """
        Infer niveau / matiere / cours from the position of file_path under root.

        A file directly under root takes its own name as niveau and
        GENERAL_MATIERE as matiere.
        """
        root_dir = Path(root).resolve()
        path = Path(file_path).resolve()
        relative = path.relative_to(root_dir).as_posix()
        parts = relative.split("/")

        niveau = parts[0] or UNKNOWN_NIVEAU
        if len(parts) >= 3:
            matiere = parts[1]
        elif len(parts) == 2:
            matiere = niveau
        else:
            matiere = GENERAL_MATIERE

        return SourceDocument(
            absolute_path=path,
            relative_path=relative,
            niveau=niveau,
            matiere=matiere,
            cours=path.stem,
        )

    def discover(self, root: str | Path) -> List[SourceDocument]:
        """
        List the PDFs of the niveau layout: direct PDFs of each niveau folder
        and PDFs one level deeper, inside matiere folders.

        Raises:
            RootNotFoundError: If root is missing or not a directory
        """
        root_dir = self.validate_root(root)
        documents: List[SourceDocument] = []

        for niveau_dir in self._safe_list(root_dir):
            if not is_real_dir(niveau_dir):
                continue

            entries = self._safe_list(niveau_dir)
            direct_pdfs = [e for e in entries if e.is_file() and is_pdf(e)]
            matiere_dirs = [e for e in entries if is_real_dir(e)]

            if not direct_pdfs and not matiere_dirs:
                logger.info(f"(skip) {niveau_dir.name}: no PDFs")
                continue

            if direct_pdfs:
                logger.info(
                    f"Niveau {niveau_dir.name} (no matiere subfolder): "
                    f"{len(direct_pdfs)} PDF(s)"
                )
            for pdf in direct_pdfs:
                documents.append(self._document(root_dir, pdf, niveau_dir.name, niveau_dir.name))

            for matiere_dir in matiere_dirs:
                pdfs = [e for e in self._safe_list(matiere_dir) if e.is_file() and is_pdf(e)]
                if not pdfs:
                    continue
                logger.info(
                    f"Niveau {niveau_dir.name} / Matiere {matiere_dir.name}: "
                    f"{len(pdfs)} PDF(s)"
                )
                for pdf in pdfs:
                    documents.append(
                        self._document(root_dir, pdf, niveau_dir.name, matiere_dir.name)
                    )

        return documents

    def validate_root(self, root: str | Path) -> Path:
        root_dir = Path(root).resolve()
        if not root_dir.exists():
            raise RootNotFoundError(f"Root folder not found: {root_dir}")
        if not root_dir.is_dir():
            raise RootNotFoundError(f"Root path is not a directory: {root_dir}")
        return root_dir

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _list_dir(self, directory: Path) -> List[Path]:
        try:
            return sorted(directory.iterdir())
        except OSError as e:
            raise DirectoryReadError(f"Cannot list {directory}: {str(e)}") from e

    def _safe_list(self, directory: Path) -> List[Path]:
        try:
            return self._list_dir(directory)
        except DirectoryReadError as e:
            logger.warning(f"{e}; treated as empty")
            return []

    @staticmethod
    def _document(root: Path, pdf: Path, niveau: str, matiere: str) -> SourceDocument:
        return SourceDocument(
            absolute_path=pdf,
            relative_path=pdf.relative_to(root).as_posix(),
            niveau=niveau,
            matiere=matiere,
            cours=pdf.stem,
        )
