"""
ChromaDB implementation of the index service.
Each logical index is one ChromaDB collection, persisted on disk.
"""
import hashlib
import logging
import re
import unicodedata
import uuid
from typing import Any, Dict, List, Optional

try:
    import chromadb
    from chromadb.config import Settings
    CHROMADB_AVAILABLE = True
except ImportError:
    CHROMADB_AVAILABLE = False
    chromadb = None  # type: ignore

from domain.models import Chunk, SearchHit
from embeddings.base import BaseEmbedding
from indexstore.base import BaseIndexIngestor, IngestionError

logger = logging.getLogger(__name__)

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]+")
_MAX_SLUG_LENGTH = 50


def collection_name_for(index_name: str) -> str:
    """
    Map an index name to a valid, stable ChromaDB collection name.
    The name hash keeps distinct index names from colliding after slugging.
    """
    ascii_name = (
        unicodedata.normalize("NFKD", index_name).encode("ascii", "ignore").decode("ascii")
    )
    slug = _INVALID_NAME_CHARS.sub("-", ascii_name)
    slug = re.sub(r"\.{2,}", ".", slug)
    slug = slug[:_MAX_SLUG_LENGTH].strip("._-")
    digest = hashlib.sha1(index_name.encode("utf-8")).hexdigest()[:8]
    return f"{slug}-{digest}" if slug else f"idx-{digest}"


class ChromaIndexIngestor(BaseIndexIngestor):
    """
    Index service implementation using ChromaDB.
    The index id is the collection name, so it stays valid across processes.
    """

    def __init__(
        self,
        embedder: BaseEmbedding,
        persist_directory: str = "data/chroma",
        persist: bool = True,
        **kwargs
    ):
        """
        Raises:
            IngestionError: If ChromaDB is not available or cannot start
        """
        if not CHROMADB_AVAILABLE:
            raise IngestionError(
                "ChromaDB is not installed. Install with: pip install chromadb"
            )

        super().__init__(embedder, **kwargs)
        self.persist_directory = persist_directory

        try:
            self.client = chromadb.Client(  # type: ignore[misc]
                Settings(  # type: ignore[misc]
                    persist_directory=persist_directory,
                    is_persistent=persist,
                    anonymized_telemetry=False,
                )
            )
            logger.info(f"ChromaIndexIngestor ready: persist_dir='{persist_directory}'")
        except Exception as e:
            error_msg = f"Failed to initialize ChromaDB: {str(e)}"
            logger.error(error_msg)
            raise IngestionError(error_msg) from e

    def create_or_get_index(self, name: str) -> str:
        if not name:
            raise IngestionError("Index name cannot be empty")

        collection_name = collection_name_for(name)
        try:
            self.client.get_or_create_collection(
                name=collection_name,
                metadata={"index_name": name, "hnsw:space": "cosine"},
            )
        except Exception as e:
            error_msg = f"Error creating index '{name}' in ChromaDB: {str(e)}"
            logger.error(error_msg)
            raise IngestionError(error_msg) from e

        logger.info(f"Index ready: {collection_name} ({name})")
        return collection_name

    def count(self, index_id: str) -> int:
        return self._collection(index_id).count()

    def _collection(self, index_id: str):
        try:
            return self.client.get_collection(name=index_id)
        except Exception as e:
            raise IngestionError(f"Unknown index id: {index_id}") from e

    def _store(self, index_id: str, chunks: List[Chunk], embeddings: List[List[float]]) -> None:
        collection = self._collection(index_id)
        collection.add(
            ids=[str(uuid.uuid4()) for _ in chunks],
            embeddings=embeddings,
            documents=[chunk.text for chunk in chunks],
            metadatas=[chunk.to_record() for chunk in chunks],
        )
        logger.debug(f"Added {len(chunks)} chunks to ChromaDB collection {index_id}")

    def _query(self, index_id: str, query_embedding: List[float], top_k: int) -> List[SearchHit]:
        collection = self._collection(index_id)
        results = collection.query(
            query_embeddings=[query_embedding],
            n_results=top_k,
        )

        hits: List[SearchHit] = []
        if not results.get("ids") or not results["ids"][0]:  # type: ignore[index]
            return hits

        documents = (results.get("documents") or [[]])[0] or []  # type: ignore[index]
        metadatas = (results.get("metadatas") or [[]])[0] or []  # type: ignore[index]
        distances = (results.get("distances") or [[]])[0] or []  # type: ignore[index]

        for i, hit_id in enumerate(results["ids"][0]):  # type: ignore[index]
            metadata: Dict[str, Any] = dict(metadatas[i]) if i < len(metadatas) else {}
            distance: Optional[float] = distances[i] if i < len(distances) else None
            hits.append(
                SearchHit(
                    id=hit_id,
                    text=str(documents[i]) if i < len(documents) else "",
                    # cosine space: distance = 1 - similarity
                    score=1.0 - distance if distance is not None else 0.0,
                    page=metadata.get("page"),
                    ord=metadata.get("ord"),
                    metadata=metadata,
                )
            )
        return hits
