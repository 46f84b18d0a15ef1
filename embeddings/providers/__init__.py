"""
Embedding providers.
Auto-imports all providers to register them with the factory.
"""

# HF E5 requires torch/transformers - optional dependency (extra "hf")
try:
    from embeddings.providers.hf_e5_embedding import HFMultilingualE5Embedding
except ImportError:
    HFMultilingualE5Embedding = None  # type: ignore

__all__ = [
    "HFMultilingualE5Embedding",
]
