from .image_store import ReferenceImageStore

__all__ = ["ReferenceImageStore"]
