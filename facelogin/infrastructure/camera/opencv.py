"""OpenCV-backed live video source."""
import asyncio
from typing import Optional

import cv2
import numpy as np

from facelogin.core.exceptions import CameraUnavailableError
from facelogin.core.logging import get_logger
from facelogin.domain.interfaces.camera.video_source import VideoSource
from facelogin.domain.value_objects.recognition import VideoConstraints

logger = get_logger(__name__)


class OpenCVVideoSource(VideoSource):
    """Camera stream read through ``cv2.VideoCapture``.

    OpenCV has no notion of facing mode; the device is chosen by
    ``constraints.device_index`` and the facing mode is only logged.
    """

    def __init__(self) -> None:
        self._capture: Optional[cv2.VideoCapture] = None
        self._paused = False
        self._ended = False
        self._last_frame: Optional[np.ndarray] = None
        self._start_lock = asyncio.Lock()

    @property
    def is_playing(self) -> bool:
        return (
            self._capture is not None
            and self._capture.isOpened()
            and not self._paused
            and not self._ended
        )

    async def start(self, constraints: VideoConstraints) -> None:
        async with self._start_lock:
            if self.is_playing:
                return
            if self._capture is not None:
                # Paused or ended stream still holds the device
                await self.release()
            logger.info(
                "Starting camera",
                device_index=constraints.device_index,
                facing_mode=constraints.facing_mode,
                ideal_size=(constraints.ideal_width, constraints.ideal_height)
            )
            self._capture = await asyncio.to_thread(self._open, constraints)
            self._paused = False
            self._ended = False

            # Ready once the first frame arrives
            self._last_frame = await self.read_frame()
            height, width = self._last_frame.shape[:2]
            logger.info("Camera ready", width=width, height=height)

    def _open(self, constraints: VideoConstraints) -> cv2.VideoCapture:
        capture = cv2.VideoCapture(constraints.device_index)
        if not capture.isOpened():
            capture.release()
            raise CameraUnavailableError(
                f"Camera {constraints.device_index} could not be opened",
                details={"device_index": constraints.device_index}
            )
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.ideal_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.ideal_height)
        return capture

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    async def read_frame(self) -> np.ndarray:
        if self._capture is None:
            raise CameraUnavailableError("Camera not started")

        ok, frame = await asyncio.to_thread(self._capture.read)
        if not ok or frame is None:
            self._ended = True
            raise CameraUnavailableError("Camera stream ended")
        self._last_frame = frame
        return frame

    async def release(self) -> None:
        if self._capture is None:
            return
        capture, self._capture = self._capture, None
        await asyncio.to_thread(capture.release)
        self._last_frame = None
        logger.info("Camera released")
