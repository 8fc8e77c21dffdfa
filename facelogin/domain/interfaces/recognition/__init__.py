from .embedding_engine import EmbeddingEngine

__all__ = ["EmbeddingEngine"]
