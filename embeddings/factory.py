"""
Registry of embedding providers used by the index service.
"""
from typing import Dict, List, Optional, Type
import logging

from embeddings.base import BaseEmbedding, EmbeddingConfig

logger = logging.getLogger(__name__)

_EMBEDDING_PROVIDERS: Dict[str, Type[BaseEmbedding]] = {}


def register_provider(name: str):
    """
    Decorator to register an embedding provider under a name.

    Usage:
        @register_provider("hf-e5")
        class HFMultilingualE5Embedding(BaseEmbedding):
            ...
    """
    def decorator(cls: Type[BaseEmbedding]) -> Type[BaseEmbedding]:
        if name in _EMBEDDING_PROVIDERS and _EMBEDDING_PROVIDERS[name] is not cls:
            logger.warning(f"Embedding provider '{name}' re-registered with {cls.__name__}")
        _EMBEDDING_PROVIDERS[name] = cls
        return cls
    return decorator


def create_embedder(provider: str, config: Optional[EmbeddingConfig] = None) -> BaseEmbedding:
    """
    Instantiate a registered provider.

    Raises:
        ValueError: If the provider is not registered
        EmbeddingException: If the provider cannot start (model download, ...)
    """
    if provider not in _EMBEDDING_PROVIDERS:
        raise ValueError(
            f"Unknown embedding provider: '{provider}'. "
            f"Available providers: {', '.join(list_providers())}"
        )

    embedder = _EMBEDDING_PROVIDERS[provider](config or EmbeddingConfig())
    logger.debug(f"Created embedder {embedder!r}")
    return embedder


def list_providers() -> List[str]:
    return sorted(_EMBEDDING_PROVIDERS.keys())
