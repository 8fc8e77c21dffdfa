"""
Recognition session: the live probing loop and its lock.

A session moves through ``IDLE -> PROBING -> LOCKED | FAILED``. While probing,
a periodic timer fires every ``probe_interval`` seconds. Each tick starts at
most one probe: ticks are no-ops while a probe is in flight, while the video
source is paused or ended, or once the session has left ``PROBING``. A probe
reads one frame, asks the engine for one embedding and classifies it. The
first known label locks the session, stops the timer and is never
overwritten; results that resolve after the session left ``PROBING`` are
discarded.

Example:
    ```python
    session = RecognitionSession(engine, camera, video_options, probe_interval=0.6)
    session.start(database)
    state = await session.wait()
    if state is SessionState.LOCKED:
        print(session.locked_label)
    ```
"""
import asyncio
from typing import Callable, Optional, Set

import numpy as np

from facelogin.core.exceptions import SessionStateError
from facelogin.core.logging import get_logger
from facelogin.domain.interfaces.camera.video_source import VideoSource
from facelogin.domain.interfaces.recognition.embedding_engine import EmbeddingEngine
from facelogin.domain.value_objects.recognition import (
    DetectorOptions,
    MatcherDatabase,
    MatchResult,
    SessionState,
)
from facelogin.services.face_matcher import classify

logger = get_logger(__name__)

LockCallback = Callable[[str, MatchResult], None]
ErrorCallback = Callable[[str], None]


class RecognitionSession:
    """Runtime state of one probing loop.

    Attributes:
        state: Current lifecycle state
        locked_label: Identity the session locked onto, set exactly once
        failure_reason: Why the session failed, if it did
        probes_started: Number of probes issued so far
    """

    def __init__(
        self,
        engine: EmbeddingEngine,
        video_source: VideoSource,
        detector_options: DetectorOptions,
        probe_interval: float = 0.6,
        on_locked: Optional[LockCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """Initialize an idle session.

        Args:
            engine: Engine used to embed video frames
            video_source: Live stream the probes read from
            detector_options: Detector options for live video
            probe_interval: Timer period in seconds
            on_locked: Called once with the label and match when the session locks
            on_error: Called with the cause when the probe timer itself breaks
        """
        if probe_interval <= 0:
            raise ValueError("probe_interval must be positive")

        self.engine = engine
        self.video_source = video_source
        self.detector_options = detector_options
        self.probe_interval = probe_interval
        self.on_locked = on_locked
        self.on_error = on_error

        self.state = SessionState.IDLE
        self.locked_label: Optional[str] = None
        self.last_match: Optional[MatchResult] = None
        self.failure_reason: Optional[str] = None
        self.probes_started = 0

        self._database: Optional[MatcherDatabase] = None
        self._probe_in_flight = False
        self._timer: Optional[asyncio.Task] = None
        self._probes: Set[asyncio.Task] = set()
        self._finished = asyncio.Event()

    @property
    def database(self) -> Optional[MatcherDatabase]:
        return self._database

    @property
    def probe_in_flight(self) -> bool:
        return self._probe_in_flight

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self, database: MatcherDatabase) -> None:
        """Enter ``PROBING`` with ``database`` and start the probe timer.

        Must be called from a running event loop.

        Raises:
            SessionStateError: If the session is not idle
        """
        if self.state is not SessionState.IDLE:
            raise SessionStateError(
                f"Cannot start a session in state {self.state.value}",
                details={"state": self.state.value}
            )

        self._database = database
        self.state = SessionState.PROBING
        self._timer = asyncio.create_task(self._run_timer())
        logger.info(
            "Recognition session started",
            identities=len(database.labeled_sets),
            threshold=database.threshold,
            probe_interval=self.probe_interval
        )

    def fail(self, reason: str) -> None:
        """Move a non-terminal session to ``FAILED`` and stop the timer."""
        if self.state.is_terminal:
            logger.debug("Ignoring failure of finished session", state=self.state.value, reason=reason)
            return

        self.state = SessionState.FAILED
        self.failure_reason = reason
        self._stop_timer()
        self._finished.set()
        logger.warning("Recognition session failed", reason=reason)

    def stop(self) -> None:
        """Stop probing. An outstanding probe is left to resolve and is discarded."""
        self.fail("stopped")

    async def wait(self) -> SessionState:
        """Wait until the session reaches a terminal state."""
        await self._finished.wait()
        return self.state

    def tick(self) -> Optional[asyncio.Task]:
        """Handle one timer tick.

        Returns:
            The started probe task, or None if the tick was a no-op
        """
        if self.state is not SessionState.PROBING or self._probe_in_flight:
            return None
        if not self.video_source.is_playing:
            return None

        self._probe_in_flight = True
        self.probes_started += 1
        task = asyncio.create_task(self._probe())
        self._probes.add(task)
        task.add_done_callback(self._probes.discard)
        return task

    def handle_probe_result(self, embedding: Optional[np.ndarray]) -> Optional[MatchResult]:
        """Act on a resolved probe.

        Results arriving after the session left ``PROBING`` are discarded.

        Returns:
            The match result, or None if nothing was classified
        """
        if self.state is not SessionState.PROBING:
            logger.debug("Discarding late probe result", state=self.state.value)
            return None
        if embedding is None:
            return None

        result = classify(embedding, self._database)
        if result.is_unknown:
            logger.debug("Probe face not recognized", distance=round(result.distance, 4))
            return result

        self._lock(result)
        return result

    async def _run_timer(self) -> None:
        while self.state is SessionState.PROBING:
            await asyncio.sleep(self.probe_interval)
            try:
                self.tick()
            except Exception as e:
                cause = f"{type(e).__name__}: {e}"
                logger.error("Probe timer failed", error=cause, exc_info=True)
                self.fail(cause)
                if self.on_error is not None:
                    self.on_error(cause)

    async def _probe(self) -> None:
        try:
            frame = await self.video_source.read_frame()
            embedding = await self.engine.detect_embedding(frame, self.detector_options)
        except Exception as e:
            logger.warning("Probe failed", error=str(e), error_type=type(e).__name__)
            return
        finally:
            self._probe_in_flight = False

        try:
            self.handle_probe_result(embedding)
        except Exception as e:
            logger.error("Failed to classify probe", error=str(e), error_type=type(e).__name__, exc_info=True)

    def _lock(self, result: MatchResult) -> None:
        self.state = SessionState.LOCKED
        self.locked_label = result.label
        self.last_match = result
        self._stop_timer()
        self._finished.set()
        logger.info("Face recognized", label=result.label, distance=round(result.distance, 4))

        if self.on_locked is not None:
            self.on_locked(result.label, result)

    def _stop_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            # The timer task may be the caller when a tick locks synchronously
            if self._timer is not asyncio.current_task():
                self._timer.cancel()
        self._timer = None
