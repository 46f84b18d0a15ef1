"""
Embeddings module for chunk vectorization.
"""
from embeddings.base import (
    BaseEmbedding,
    DummyEmbedding,
    EmbeddingConfig,
    EmbeddingException
)
from embeddings.factory import (
    create_embedder,
    list_providers,
    register_provider
)

register_provider("dummy")(DummyEmbedding)

# Import providers to auto-register them
import embeddings.providers  # noqa: F401,E402

__all__ = [
    "BaseEmbedding",
    "DummyEmbedding",
    "EmbeddingConfig",
    "EmbeddingException",
    "create_embedder",
    "list_providers",
    "register_provider",
]
