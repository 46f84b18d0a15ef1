"""
Domain models for the curriculum PDF ingestion pipeline.
Defines the core entities and their behaviors.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class FileStatus(Enum):
    """Estados del procesamiento de un PDF dentro de un lote"""
    DISCOVERED = "discovered"
    EXTRACTING = "extracting"
    NORMALIZING = "normalizing"
    CHUNKING = "chunking"
    INGESTING = "ingesting"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"  # dry run


@dataclass(frozen=True)
class ChunkMetadata:
    """Metadatos curriculares copiados a cada chunk"""
    source: str  # ruta relativa con "/"
    niveau: str
    matiere: str
    cours: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "source": self.source,
            "niveau": self.niveau,
            "matiere": self.matiere,
            "cours": self.cours,
        }


@dataclass(frozen=True)
class SourceDocument:
    """Representa un PDF descubierto bajo la carpeta raíz"""
    absolute_path: Path
    relative_path: str
    niveau: str
    matiere: str
    cours: str

    @property
    def index_name(self) -> str:
        """Nombre del índice: <niveau>__<matiere>__<archivo sin extensión>"""
        return f"{self.niveau}__{self.matiere}__{self.cours}"

    @property
    def metadata(self) -> ChunkMetadata:
        return ChunkMetadata(
            source=self.relative_path,
            niveau=self.niveau,
            matiere=self.matiere,
            cours=self.cours,
        )


@dataclass(frozen=True)
class ExtractedPage:
    """Texto crudo de una página física del PDF"""
    page_number: int  # 1-based
    raw_text: str


@dataclass(frozen=True)
class Chunk:
    """Representa un fragmento de texto listo para indexar"""
    text: str
    page_number: int
    ordinal: int  # posición dentro de la página, desde 0
    metadata: ChunkMetadata

    def to_record(self) -> Dict[str, Any]:
        """Metadatos adjuntados al registro en el índice"""
        record: Dict[str, Any] = self.metadata.to_dict()
        record["page"] = self.page_number
        record["ord"] = self.ordinal
        return record


@dataclass(frozen=True)
class IndexRef:
    """Contenedor lógico de chunks en el almacén externo"""
    id: str
    name: str


@dataclass
class SearchHit:
    """Resultado de una búsqueda en un índice"""
    id: str
    text: str
    score: float
    page: Optional[int] = None
    ord: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChunkingConfig:
    """Configuración para el chunking de páginas"""
    chunk_size: int = 800  # Caracteres por chunk
    chunk_overlap: int = 300  # Overlap entre chunks

    def validate(self):
        """Valida la configuración"""
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be greater than 0")
        if self.chunk_overlap < 0:
            raise ValueError("chunk_overlap cannot be negative")
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
