import logging
import torch
import torch.nn.functional as F
from transformers import AutoTokenizer, AutoModel
from typing import List

from embeddings.base import (
    BaseEmbedding,
    EmbeddingConfig,
    EmbeddingException,
)
from embeddings.factory import register_provider

logger = logging.getLogger(__name__)


@register_provider("hf-e5")
class HFMultilingualE5Embedding(BaseEmbedding):
    """
    Embedding provider using intfloat/multilingual-e5 from HuggingFace.

    The model expects prefixes:
    - "passage: " for course chunks
    - "query: " for search queries

    Provider name: "hf-e5"
    """

    def __init__(self, config: EmbeddingConfig):
        if not config.model_name:
            config.model_name = "intfloat/multilingual-e5-small"
        super().__init__(config)

    def _validate_provider(self) -> None:
        """Load the HuggingFace model and align the configured dimension."""
        try:
            logger.info(f"Loading model: {self.config.model_name}")
            self.tokenizer = AutoTokenizer.from_pretrained(self.config.model_name)
            self.model = AutoModel.from_pretrained(self.config.model_name)
            self.model.eval()

            inferred_dim = len(self._encode(["query: test"])[0])
            if self.config.dimension != inferred_dim:
                logger.warning(
                    f"Config dimension ({self.config.dimension}) differs from model "
                    f"dimension ({inferred_dim}). Updating to {inferred_dim}."
                )
                self.config.dimension = inferred_dim

        except Exception as e:
            logger.error(f"Failed to initialize HF E5 embedding provider: {e}")
            raise EmbeddingException(
                f"Failed to initialize HF E5 embedding provider: {e}"
            ) from e

    @staticmethod
    def _average_pool(
        last_hidden_states: torch.Tensor,
        attention_mask: torch.Tensor,
    ) -> torch.Tensor:
        masked = last_hidden_states.masked_fill(
            ~attention_mask[..., None].bool(), 0.0
        )
        return masked.sum(dim=1) / attention_mask.sum(dim=1)[..., None]

    def _encode(self, prefixed_texts: List[str]) -> List[List[float]]:
        batch = self.tokenizer(
            prefixed_texts,
            max_length=512,
            padding=True,
            truncation=True,
            return_tensors="pt",
        )
        with torch.no_grad():
            output = self.model(**batch)
            pooled = self._average_pool(output.last_hidden_state, batch["attention_mask"])
            if self.config.normalize:
                pooled = F.normalize(pooled, p=2, dim=1)
        return pooled.tolist()

    def embed_text(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingException("Cannot embed empty text")
        return self.embed_texts([text])[0]

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """Embed course chunks in one forward pass per call."""
        if not texts:
            return []
        try:
            return self._encode([f"passage: {text}" for text in texts])
        except Exception as e:
            logger.error(f"Error generating embeddings: {e}")
            raise EmbeddingException(f"Error generating embeddings: {e}") from e

    def embed_query(self, query: str) -> List[float]:
        if not query or not query.strip():
            raise EmbeddingException("Cannot embed empty query")
        try:
            return self._encode([f"query: {query}"])[0]
        except Exception as e:
            logger.error(f"Error generating query embedding: {e}")
            raise EmbeddingException(f"Error generating query embedding: {e}") from e
