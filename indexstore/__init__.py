"""
Index service module: where chunks end up after ingestion.
"""
# Import factory first
from indexstore.factory import (
    create_index_ingestor,
    list_index_ingestors,
    register_index_ingestor,
    is_provider_available
)

from indexstore.base import (
    BaseIndexIngestor,
    InMemoryIndexIngestor,
    IngestionError,
    cosine_similarity,
    is_transient_error
)

register_index_ingestor("memory")(InMemoryIndexIngestor)

# Import implementations to trigger registration
try:
    from indexstore.implementations.chroma import ChromaIndexIngestor, CHROMADB_AVAILABLE
    CHROMA_AVAILABLE = CHROMADB_AVAILABLE
    if CHROMA_AVAILABLE:
        register_index_ingestor("chroma")(ChromaIndexIngestor)
except ImportError:
    ChromaIndexIngestor = None  # type: ignore
    CHROMA_AVAILABLE = False

__all__ = [
    # Factory
    "create_index_ingestor",
    "list_index_ingestors",
    "is_provider_available",
    # Base classes
    "BaseIndexIngestor",
    "InMemoryIndexIngestor",
    "ChromaIndexIngestor",
    "IngestionError",
    # Utilities
    "cosine_similarity",
    "is_transient_error",
    "CHROMA_AVAILABLE"
]
