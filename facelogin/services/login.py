"""Login service owning the current login attempt."""
import asyncio
from typing import Callable, List, Optional, Sequence

from facelogin.core.config import Settings, settings
from facelogin.core.exceptions import LoginInProgressError
from facelogin.core.logging import get_logger
from facelogin.domain.entities.identity import KnownIdentity
from facelogin.domain.interfaces.camera.video_source import VideoSource
from facelogin.domain.interfaces.recognition.embedding_engine import EmbeddingEngine
from facelogin.domain.interfaces.storage.image_store import ReferenceImageStore
from facelogin.domain.value_objects.recognition import (
    DetectorOptions,
    LoginPhase,
    LoginStatus,
    SessionState,
    VideoConstraints,
)
from facelogin.services.bootstrap import BootstrapOrchestrator
from facelogin.services.descriptor_database import (
    DescriptorDatabaseBuilder,
    roster_from_settings,
)
from facelogin.services.recognition_session import RecognitionSession

logger = get_logger(__name__)


class LoginService:
    """Runs login attempts one at a time.

    Each ``start()`` builds a fresh RecognitionSession and BootstrapOrchestrator,
    so nothing from a previous attempt leaks into the next. A new attempt is
    refused while the current one is bootstrapping or probing.

    Example:
        ```python
        service = LoginService.from_settings(engine, camera, image_store)
        await service.start()
        state = await service.wait()
        print(service.status.message)
        ```
    """

    def __init__(
        self,
        engine: EmbeddingEngine,
        video_source: VideoSource,
        image_store: ReferenceImageStore,
        roster: Sequence[KnownIdentity],
        threshold: float = 0.5,
        probe_interval: float = 0.6,
        image_detector_options: Optional[DetectorOptions] = None,
        video_detector_options: Optional[DetectorOptions] = None,
        video_constraints: Optional[VideoConstraints] = None,
        ready_timeout: Optional[float] = 3.0,
        ready_poll_interval: float = 0.016,
        max_image_pixels: Optional[int] = None,
        on_status: Optional[Callable[[LoginStatus], None]] = None,
    ) -> None:
        self.engine = engine
        self.video_source = video_source
        self.image_store = image_store
        self.roster = list(roster)
        self.threshold = threshold
        self.probe_interval = probe_interval
        self.image_detector_options = image_detector_options or DetectorOptions(input_size=640, score_threshold=0.3)
        self.video_detector_options = video_detector_options or DetectorOptions(input_size=320, score_threshold=0.5)
        self.video_constraints = video_constraints or VideoConstraints()
        self.ready_timeout = ready_timeout
        self.ready_poll_interval = ready_poll_interval
        self.max_image_pixels = max_image_pixels
        self.on_status = on_status

        self._orchestrator: Optional[BootstrapOrchestrator] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        engine: EmbeddingEngine,
        video_source: VideoSource,
        image_store: ReferenceImageStore,
        config: Settings = settings,
        **overrides,
    ) -> "LoginService":
        """Build a service from application settings."""
        kwargs = dict(
            roster=roster_from_settings(config.ROSTER),
            threshold=config.MATCH_THRESHOLD,
            probe_interval=config.PROBE_INTERVAL_MS / 1000,
            image_detector_options=DetectorOptions(
                input_size=config.IMAGE_DETECTOR.INPUT_SIZE,
                score_threshold=config.IMAGE_DETECTOR.SCORE_THRESHOLD
            ),
            video_detector_options=DetectorOptions(
                input_size=config.VIDEO_DETECTOR.INPUT_SIZE,
                score_threshold=config.VIDEO_DETECTOR.SCORE_THRESHOLD
            ),
            video_constraints=VideoConstraints(
                facing_mode=config.CAMERA_FACING_MODE,
                ideal_width=config.CAMERA_IDEAL_WIDTH,
                ideal_height=config.CAMERA_IDEAL_HEIGHT,
                device_index=config.CAMERA_DEVICE_INDEX
            ),
            ready_timeout=config.ENGINE_READY_TIMEOUT_MS / 1000 if config.ENGINE_READY_CHECK else None,
            ready_poll_interval=config.ENGINE_READY_POLL_MS / 1000,
            max_image_pixels=config.MAX_IMAGE_PIXELS,
        )
        kwargs.update(overrides)
        return cls(engine, video_source, image_store, **kwargs)

    @property
    def session(self) -> Optional[RecognitionSession]:
        return self._orchestrator.session if self._orchestrator else None

    @property
    def status(self) -> LoginStatus:
        if self._orchestrator is None:
            return LoginStatus.for_phase(LoginPhase.IDLE)
        return self._orchestrator.status

    @property
    def history(self) -> List[LoginStatus]:
        return list(self._orchestrator.history) if self._orchestrator else []

    @property
    def locked_label(self) -> Optional[str]:
        return self.session.locked_label if self.session else None

    @property
    def is_active(self) -> bool:
        """Whether an attempt is bootstrapping or probing."""
        if self._task is not None and not self._task.done():
            return True
        return self.session is not None and self.session.state is SessionState.PROBING

    @property
    def retry_enabled(self) -> bool:
        """Whether a new attempt may be started."""
        return not self.is_active

    async def start(self) -> LoginStatus:
        """Launch a new login attempt in the background.

        Raises:
            LoginInProgressError: If an attempt is already active
        """
        if self.is_active:
            raise LoginInProgressError(
                "A login attempt is already in progress",
                details={"phase": self.status.phase.value}
            )

        session = RecognitionSession(
            engine=self.engine,
            video_source=self.video_source,
            detector_options=self.video_detector_options,
            probe_interval=self.probe_interval,
        )
        builder = DescriptorDatabaseBuilder(
            engine=self.engine,
            image_store=self.image_store,
            detector_options=self.image_detector_options,
            max_image_pixels=self.max_image_pixels,
        )
        self._orchestrator = BootstrapOrchestrator(
            engine=self.engine,
            video_source=self.video_source,
            builder=builder,
            roster=self.roster,
            threshold=self.threshold,
            session=session,
            video_constraints=self.video_constraints,
            ready_timeout=self.ready_timeout,
            ready_poll_interval=self.ready_poll_interval,
            on_status=self.on_status,
        )
        self._task = asyncio.create_task(self._orchestrator.run())
        logger.info("Login attempt started", roster_size=len(self.roster))
        return self.status

    async def wait(self) -> SessionState:
        """Wait for the current attempt to finish bootstrapping and reach a terminal state."""
        if self._task is None:
            return SessionState.IDLE
        session = await self._task
        return await session.wait()

    async def stop(self) -> None:
        """Stop the current attempt, if any, whether bootstrapping or probing."""
        if self._orchestrator is not None:
            await self._orchestrator.stop()

    async def shutdown(self) -> None:
        """Stop the current attempt, wait for bootstrap to settle and release the camera."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Login attempt cancelled during bootstrap")
        await self.stop()
        await self.video_source.release()
