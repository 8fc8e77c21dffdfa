from .insight_face import InsightFaceEmbeddingEngine

__all__ = ["InsightFaceEmbeddingEngine"]
