from .video_source import VideoSource

__all__ = ["VideoSource"]
