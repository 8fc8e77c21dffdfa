"""Shared fixtures and in-memory fakes for the face login tests."""
import asyncio
from collections import deque
from typing import Deque, Dict, List, Optional, Union

import cv2
import numpy as np
import pytest

from facelogin.core.exceptions import CameraUnavailableError, ImageFetchError
from facelogin.domain.interfaces.camera.video_source import VideoSource
from facelogin.domain.interfaces.recognition.embedding_engine import EmbeddingEngine
from facelogin.domain.interfaces.storage.image_store import ReferenceImageStore
from facelogin.domain.value_objects.recognition import DetectorOptions, VideoConstraints

IMAGE_OPTIONS = DetectorOptions(input_size=640, score_threshold=0.3)
VIDEO_OPTIONS = DetectorOptions(input_size=320, score_threshold=0.5)


def marker_image(marker: int) -> np.ndarray:
    """Small BGR image whose pixels all equal ``marker``; the fake engine keys on it."""
    return np.full((8, 8, 3), marker, dtype=np.uint8)


def encode_marker_image(marker: int) -> bytes:
    """PNG bytes of ``marker_image`` (lossless, so the marker survives decoding)."""
    ok, buffer = cv2.imencode(".png", marker_image(marker))
    assert ok
    return buffer.tobytes()


class FakeEmbeddingEngine(EmbeddingEngine):
    """Engine mapping the first pixel value of an image to a configured result.

    With ``hold_calls`` set, every detection waits on a future the test resolves.
    """

    def __init__(
        self,
        embeddings: Optional[Dict[int, Union[np.ndarray, Exception, None]]] = None,
        load_error: Optional[Exception] = None,
        ready: bool = True,
    ) -> None:
        self.embeddings = embeddings or {}
        self.load_error = load_error
        self.ready = ready
        self.loaded = False
        self.hold_calls = False
        self.pending: Deque[asyncio.Future] = deque()
        self.calls: List[DetectorOptions] = []

    @property
    def is_ready(self) -> bool:
        return self.loaded and self.ready

    async def load_weights(self) -> None:
        await asyncio.sleep(0)
        if self.load_error is not None:
            raise self.load_error
        self.loaded = True

    async def detect_embedding(self, image, options):
        self.calls.append(options)
        if self.hold_calls:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            return await future

        value = self.embeddings.get(int(image[0, 0, 0]))
        if isinstance(value, Exception):
            raise value
        return value

    def resolve_next(self, value: Optional[np.ndarray]) -> None:
        self.pending.popleft().set_result(value)


class FakeImageStore(ReferenceImageStore):
    """Store serving bytes from a dict; missing refs fail like a 404."""

    def __init__(self, images: Optional[Dict[str, bytes]] = None) -> None:
        self.images = images or {}
        self.fetched: List[str] = []

    async def fetch(self, ref: str) -> bytes:
        self.fetched.append(ref)
        if ref not in self.images:
            raise ImageFetchError(f"File not found: {ref}")
        return self.images[ref]


class FakeVideoSource(VideoSource):
    """Camera whose frames carry a settable marker value."""

    def __init__(self, marker: int = 0, start_error: Optional[Exception] = None) -> None:
        self.marker = marker
        self.start_error = start_error
        self.started = False
        self.released = False
        self.paused = False
        self.constraints: Optional[VideoConstraints] = None

    @property
    def is_playing(self) -> bool:
        return self.started and not self.paused and not self.released

    async def start(self, constraints: VideoConstraints) -> None:
        await asyncio.sleep(0)
        if self.start_error is not None:
            raise self.start_error
        self.constraints = constraints
        self.started = True
        self.released = False

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    async def read_frame(self) -> np.ndarray:
        if not self.started:
            raise CameraUnavailableError("Camera not started")
        return marker_image(self.marker)

    async def release(self) -> None:
        self.released = True


@pytest.fixture
def engine() -> FakeEmbeddingEngine:
    return FakeEmbeddingEngine()


@pytest.fixture
def video_source() -> FakeVideoSource:
    return FakeVideoSource()


@pytest.fixture
def image_store() -> FakeImageStore:
    return FakeImageStore()
