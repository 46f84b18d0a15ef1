"""
Base module for index ingestion.
Defines the contract the pipeline uses to hand chunks to a retrieval index:

    create_or_get_index(name) -> index id
    add_chunks(index_id, chunks)

Embedding generation happens here, in batches, with retries on transient
failures. Every failure reaches the caller as a single IngestionError.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging
import math
import random
import re
import threading
import time
import uuid

from domain.models import Chunk, IndexRef, SearchHit
from embeddings.base import BaseEmbedding, EmbeddingException

logger = logging.getLogger(__name__)

_TRANSIENT_PATTERN = re.compile(
    r"503|timeout|timed out|temporar|ECONNRESET|ETIMEDOUT|ENOTFOUND|"
    r"connection reset|connection refused|fetch failed",
    re.IGNORECASE,
)
_RETRY_JITTER_SECONDS = 0.2


class IngestionError(Exception):
    """Exception raised when the index service rejects or fails a call"""
    pass


def cosine_similarity(vec1: List[float], vec2: List[float]) -> float:
    """
    Calcula la similitud coseno entre dos vectores.

    Raises:
        ValueError: Si los vectores tienen diferentes dimensiones
    """
    if len(vec1) != len(vec2):
        raise ValueError(
            f"Vector dimension mismatch: {len(vec1)} vs {len(vec2)}"
        )

    if not vec1 or not vec2:
        raise ValueError("Vectors cannot be empty")

    dot_product = sum(a * b for a, b in zip(vec1, vec2))
    magnitude1 = math.sqrt(sum(a * a for a in vec1))
    magnitude2 = math.sqrt(sum(b * b for b in vec2))

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    return dot_product / (magnitude1 * magnitude2)


def is_transient_error(error: Exception) -> bool:
    """True for failures worth retrying (timeouts, 503, dropped connections)."""
    if isinstance(error, (TimeoutError, ConnectionError)):
        return True
    return bool(_TRANSIENT_PATTERN.search(str(error)))


class BaseIndexIngestor(ABC):
    """
    Clase base abstracta para los servicios de índice.
    Las subclases sólo implementan el almacenamiento; el embedding
    por lotes y los reintentos se resuelven aquí.
    """

    def __init__(
        self,
        embedder: BaseEmbedding,
        batch_size: int = 64,
        retry_attempts: int = 5,
        retry_base_delay: float = 0.5,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.embedder = embedder
        self.batch_size = max(1, batch_size)
        self.retry_attempts = max(1, retry_attempts)
        self.retry_base_delay = max(0.0, retry_base_delay)
        self._sleep = sleep or time.sleep
        logger.info(
            f"{self.__class__.__name__} initialized with "
            f"embedder={embedder.__class__.__name__}, batch_size={self.batch_size}"
        )

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    def create_or_get_index(self, name: str) -> str:
        """
        Devuelve el id del índice con ese nombre, creándolo si no existe.

        Raises:
            IngestionError: Si el servicio falla
        """
        pass

    def add_chunks(self, index_id: str, chunks: List[Chunk]) -> None:
        """
        Embed chunks and append them to an index.

        Raises:
            IngestionError: On any embedding or storage failure
        """
        if not chunks:
            logger.warning(f"Empty chunks list provided for index {index_id}")
            return

        try:
            embeddings = self._embed([chunk.text for chunk in chunks])
            self._store(index_id, chunks, embeddings)
        except IngestionError:
            raise
        except Exception as e:
            error_msg = f"Error adding chunks to index {index_id}: {str(e)}"
            logger.error(error_msg)
            raise IngestionError(error_msg) from e

        logger.info(f"Added {len(chunks)} chunks to index {index_id}")

    def search(self, index_id: str, query: str, top_k: int = 8) -> List[SearchHit]:
        """
        Rank the chunks of an index against a free-text query.

        Raises:
            IngestionError: If the index is unknown or the query cannot be embedded
        """
        try:
            query_embedding = self.embedder.embed_query(query)
            return self._query(index_id, query_embedding, top_k)
        except IngestionError:
            raise
        except Exception as e:
            raise IngestionError(f"Error searching index {index_id}: {str(e)}") from e

    @abstractmethod
    def count(self, index_id: str) -> int:
        """Número de chunks almacenados en un índice."""
        pass

    @abstractmethod
    def _store(self, index_id: str, chunks: List[Chunk], embeddings: List[List[float]]) -> None:
        pass

    @abstractmethod
    def _query(self, index_id: str, query_embedding: List[float], top_k: int) -> List[SearchHit]:
        pass

    # ------------------------------------------------------------------
    # Embedding with retries
    # ------------------------------------------------------------------

    def _embed(self, texts: List[str]) -> List[List[float]]:
        embeddings: List[List[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start:start + self.batch_size]
            embeddings.extend(self._embed_batch(batch, start))
        return embeddings

    def _embed_batch(self, batch: List[str], start: int) -> List[List[float]]:
        end = start + len(batch) - 1
        attempt = 0
        while True:
            attempt += 1
            try:
                vectors = self.embedder.embed_texts(batch)
                if len(vectors) != len(batch):
                    raise EmbeddingException(
                        f"Embedding count mismatch: got {len(vectors)} expected {len(batch)}"
                    )
                if attempt > 1:
                    logger.info(
                        f"Embedding batch {start}-{end} succeeded after retry #{attempt - 1}"
                    )
                return vectors
            except Exception as e:
                if not is_transient_error(e) or attempt >= self.retry_attempts:
                    raise IngestionError(
                        f"Failed embedding batch {start}-{end} after "
                        f"{attempt} attempt(s): {str(e)}"
                    ) from e
                delay = (
                    self.retry_base_delay * (2 ** (attempt - 1))
                    + random.uniform(0, _RETRY_JITTER_SECONDS)
                )
                logger.warning(
                    f"Retry {attempt}/{self.retry_attempts - 1} for embedding batch "
                    f"{start}-{end} in {delay:.2f}s (reason: {e})"
                )
                self._sleep(delay)


@dataclass
class _IndexRecord:
    id: str
    text: str
    embedding: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


class InMemoryIndexIngestor(BaseIndexIngestor):
    """
    Implementación en memoria del servicio de índice.
    Útil para desarrollo, testing y corridas en seco.
    No persistente - los datos se pierden al terminar el proceso.
    """

    def __init__(self, embedder: BaseEmbedding, **kwargs):
        super().__init__(embedder, **kwargs)
        self._lock = threading.Lock()
        self._indexes: Dict[str, IndexRef] = {}  # por nombre
        self._records: Dict[str, List[_IndexRecord]] = {}  # por id

    def create_or_get_index(self, name: str) -> str:
        if not name:
            raise IngestionError("Index name cannot be empty")
        with self._lock:
            existing = self._indexes.get(name)
            if existing:
                logger.debug(f"Reusing index {existing.id} ({name})")
                return existing.id
            ref = IndexRef(id=f"idx_{uuid.uuid4().hex[:16]}", name=name)
            self._indexes[name] = ref
            self._records[ref.id] = []
        logger.info(f"Created index {ref.id} ({name})")
        return ref.id

    def count(self, index_id: str) -> int:
        with self._lock:
            return len(self._records.get(index_id, []))

    def list_indexes(self) -> List[IndexRef]:
        with self._lock:
            return list(self._indexes.values())

    def get_records(self, index_id: str) -> List[Dict[str, Any]]:
        """
        Registros de un índice (texto + metadatos).
        Útil para debugging y testing.
        """
        with self._lock:
            return [
                {"id": r.id, "text": r.text, "meta": dict(r.metadata)}
                for r in self._records.get(index_id, [])
            ]

    def _store(self, index_id: str, chunks: List[Chunk], embeddings: List[List[float]]) -> None:
        with self._lock:
            if index_id not in self._records:
                raise IngestionError(f"Unknown index id: {index_id}")
            self._records[index_id].extend(
                _IndexRecord(
                    id=str(uuid.uuid4()),
                    text=chunk.text,
                    embedding=embedding,
                    metadata=chunk.to_record(),
                )
                for chunk, embedding in zip(chunks, embeddings)
            )

    def _query(self, index_id: str, query_embedding: List[float], top_k: int) -> List[SearchHit]:
        with self._lock:
            if index_id not in self._records:
                raise IngestionError(f"Unknown index id: {index_id}")
            records = list(self._records[index_id])

        scored = [(record, cosine_similarity(query_embedding, record.embedding)) for record in records]
        scored.sort(key=lambda item: item[1], reverse=True)

        return [
            SearchHit(
                id=record.id,
                text=record.text,
                score=score,
                page=record.metadata.get("page"),
                ord=record.metadata.get("ord"),
                metadata=dict(record.metadata),
            )
            for record, score in scored[:top_k]
        ]
