"""
Factory Pattern for index ingestion providers.
Allows registration and creation of different index service implementations.
"""
from typing import Dict, Type, List
import logging

from embeddings.base import BaseEmbedding
from indexstore.base import BaseIndexIngestor

logger = logging.getLogger(__name__)

# Global registry of index providers
_INDEX_INGESTOR_REGISTRY: Dict[str, Type[BaseIndexIngestor]] = {}


def register_index_ingestor(name: str):
    """
    Decorator to register an index provider.

    Usage:
        @register_index_ingestor("chroma")
        class ChromaIndexIngestor(BaseIndexIngestor):
            ...
    """
    def decorator(cls: Type[BaseIndexIngestor]) -> Type[BaseIndexIngestor]:
        if name in _INDEX_INGESTOR_REGISTRY:
            logger.warning(
                f"Index provider '{name}' is already registered. "
                f"Overwriting with {cls.__name__}"
            )

        _INDEX_INGESTOR_REGISTRY[name] = cls
        logger.debug(f"Registered index provider: {name} -> {cls.__name__}")
        return cls

    return decorator


def create_index_ingestor(
    provider: str,
    embedder: BaseEmbedding,
    **kwargs
) -> BaseIndexIngestor:
    """
    Factory function to create an index service by provider name.

    Usage:
        ingestor = create_index_ingestor(
            provider="chroma",
            embedder=embedder,
            persist_directory="data/chroma"
        )

    Raises:
        ValueError: If provider is not registered
    """
    if provider not in _INDEX_INGESTOR_REGISTRY:
        available = list_index_ingestors()
        raise ValueError(
            f"Index provider '{provider}' not found. "
            f"Available providers: {available}"
        )

    provider_class = _INDEX_INGESTOR_REGISTRY[provider]

    try:
        instance = provider_class(embedder=embedder, **kwargs)
        logger.info(f"Created index service: {provider} ({provider_class.__name__})")
        return instance
    except Exception as e:
        logger.error(f"Error creating index service '{provider}': {str(e)}")
        raise


def list_index_ingestors() -> List[str]:
    """Get list of all registered index providers."""
    return sorted(_INDEX_INGESTOR_REGISTRY.keys())


def is_provider_available(provider: str) -> bool:
    """Check if an index provider is registered."""
    return provider in _INDEX_INGESTOR_REGISTRY
