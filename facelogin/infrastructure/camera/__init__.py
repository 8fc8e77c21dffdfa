from .opencv import OpenCVVideoSource

__all__ = ["OpenCVVideoSource"]
