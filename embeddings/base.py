"""
Base module for embeddings generation.
Defines the abstract interface for embedding providers.
"""
from abc import ABC, abstractmethod
from typing import List, Optional
from dataclasses import dataclass
import hashlib
import logging
import random

logger = logging.getLogger(__name__)


class EmbeddingException(Exception):
    """Exception raised for embedding generation errors"""
    pass


@dataclass
class EmbeddingConfig:
    """Configuration for embedding generation"""
    model_name: str = "default-embedding-model"
    dimension: int = 384  # Dimensión del vector de embedding
    batch_size: int = 64  # Tamaño de lote para procesamiento batch
    normalize: bool = True  # Normalizar vectores

    def validate(self):
        """Valida la configuración"""
        if self.dimension <= 0:
            raise ValueError("dimension debe ser mayor a 0")
        if self.batch_size <= 0:
            raise ValueError("batch_size debe ser mayor a 0")


class BaseEmbedding(ABC):
    """
    Clase base abstracta para proveedores de embeddings.
    Define la interfaz que deben implementar todos los proveedores.
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self.config = config or EmbeddingConfig()
        self.config.validate()
        self._validate_provider()
        logger.info(
            f"{self.__class__.__name__} initialized with model={self.config.model_name}, "
            f"dimension={self.config.dimension}"
        )

    @abstractmethod
    def _validate_provider(self):
        """
        Valida que el proveedor esté correctamente configurado.

        Raises:
            EmbeddingException: Si la validación falla
        """
        pass

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """
        Genera el embedding de un fragmento a indexar.

        Raises:
            EmbeddingException: Si hay error en la generación
        """
        pass

    def embed_query(self, query: str) -> List[float]:
        """Embedding for a search query. Providers with query prefixes override this."""
        return self.embed_text(query)

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """
        Genera embeddings para múltiples textos.
        Las subclases pueden sobrescribir para optimización.

        Raises:
            EmbeddingException: Si hay error en la generación
        """
        if not texts:
            return []

        try:
            embeddings = [self.embed_text(text) for text in texts]
        except EmbeddingException:
            raise
        except Exception as e:
            error_msg = f"Error generating batch embeddings: {str(e)}"
            logger.error(error_msg)
            raise EmbeddingException(error_msg) from e

        logger.debug(f"Generated {len(embeddings)} embeddings")
        return embeddings

    def get_dimension(self) -> int:
        return self.config.dimension

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"model={self.config.model_name}, "
            f"dimension={self.config.dimension})"
        )


class DummyEmbedding(BaseEmbedding):
    """
    Implementación dummy para testing y corridas sin modelo.
    Genera vectores pseudo-aleatorios deterministas a partir del texto.
    """

    def __init__(
        self,
        config: Optional[EmbeddingConfig] = None,
        use_zeros: bool = False
    ):
        self.use_zeros = use_zeros
        super().__init__(config)

    def _validate_provider(self):
        logger.debug("DummyEmbedding provider validated")

    def embed_text(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingException("Cannot embed empty text")

        if self.use_zeros:
            return [0.0] * self.config.dimension

        # Same text, same vector, across processes
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        rng = random.Random(seed)
        embedding = [rng.uniform(-1.0, 1.0) for _ in range(self.config.dimension)]

        if self.config.normalize:
            magnitude = sum(x ** 2 for x in embedding) ** 0.5
            if magnitude > 0:
                embedding = [x / magnitude for x in embedding]

        return embedding
