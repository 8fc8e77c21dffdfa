"""Service interfaces package."""
from .camera import VideoSource
from .recognition import EmbeddingEngine
from .storage import ReferenceImageStore

__all__ = ["EmbeddingEngine", "ReferenceImageStore", "VideoSource"]
