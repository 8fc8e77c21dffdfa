"""Live video source interface."""
from abc import ABC, abstractmethod

import numpy as np

from facelogin.domain.value_objects.recognition import VideoConstraints


class VideoSource(ABC):
    """Interface for a camera stream polled by the recognition session."""

    @abstractmethod
    async def start(self, constraints: VideoConstraints) -> None:
        """
        Acquire the camera and start playback.

        Resolves once the first frame is available.

        Raises:
            CameraUnavailableError: If no camera can be acquired
        """
        pass

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        """Whether the stream is actively playing (not paused, not ended)."""
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def resume(self) -> None:
        pass

    @abstractmethod
    async def read_frame(self) -> np.ndarray:
        """
        Return the current frame.

        Raises:
            CameraUnavailableError: If the stream can no longer be read
        """
        pass

    @abstractmethod
    async def release(self) -> None:
        """Stop playback and release the device."""
        pass
