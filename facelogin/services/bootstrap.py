"""Bootstrap orchestration for one login attempt."""
import asyncio
from typing import Callable, List, Optional, Sequence

from facelogin.core.exceptions import (
    CameraUnavailableError,
    FaceLoginError,
    ModelLoadError,
)
from facelogin.core.logging import get_logger
from facelogin.domain.entities.identity import KnownIdentity
from facelogin.domain.interfaces.camera.video_source import VideoSource
from facelogin.domain.interfaces.recognition.embedding_engine import EmbeddingEngine
from facelogin.domain.value_objects.recognition import (
    LoginPhase,
    LoginStatus,
    MatcherDatabase,
    MatchResult,
    SessionState,
    VideoConstraints,
)
from facelogin.services.descriptor_database import DescriptorDatabaseBuilder
from facelogin.services.recognition_session import RecognitionSession

logger = get_logger(__name__)

StatusCallback = Callable[[LoginStatus], None]


class BootstrapOrchestrator:
    """Sequences engine, camera and enrollment before probing starts.

    This orchestrator:
    1. Loads the engine weights and starts the camera concurrently
    2. Optionally waits, with a bound, for the engine to report ready
    3. Builds the descriptor database from the roster
    4. Starts the recognition session against the resulting matcher database

    Every failure is mapped to a distinct LoginPhase and reported through
    ``on_status``. The orchestrator never retries on its own; a new attempt
    needs a new orchestrator.

    Example:
        ```python
        orchestrator = BootstrapOrchestrator(
            engine=engine,
            video_source=camera,
            builder=builder,
            roster=roster,
            threshold=0.5,
            session=session,
            on_status=print,
        )
        session = await orchestrator.run()
        await session.wait()
        ```
    """

    def __init__(
        self,
        engine: EmbeddingEngine,
        video_source: VideoSource,
        builder: DescriptorDatabaseBuilder,
        roster: Sequence[KnownIdentity],
        threshold: float,
        session: RecognitionSession,
        video_constraints: Optional[VideoConstraints] = None,
        ready_timeout: Optional[float] = 3.0,
        ready_poll_interval: float = 0.016,
        on_status: Optional[StatusCallback] = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            engine: Face embedding engine to load
            video_source: Camera to start
            builder: Descriptor database builder for the roster
            roster: Known identities to enroll
            threshold: Global match threshold for the matcher database
            session: Fresh idle session this attempt drives
            video_constraints: Camera acquisition constraints
            ready_timeout: Bound in seconds on the engine readiness wait, None to skip it
            ready_poll_interval: Delay between readiness checks in seconds
            on_status: Status sink called on every phase transition
        """
        self.engine = engine
        self.video_source = video_source
        self.builder = builder
        self.roster = list(roster)
        self.threshold = threshold
        self.session = session
        self.video_constraints = video_constraints or VideoConstraints()
        self.ready_timeout = ready_timeout
        self.ready_poll_interval = ready_poll_interval
        self.on_status = on_status

        self.status = LoginStatus.for_phase(LoginPhase.IDLE)
        self.history: List[LoginStatus] = []
        self.retry_enabled = True
        self._running = False

        self.session.on_locked = self._on_locked
        self.session.on_error = self._on_session_error

    async def run(self) -> RecognitionSession:
        """Run the bootstrap and report its outcome.

        This is the single top-level handler for bootstrap failures: each
        cause is mapped to its own phase, the session is failed and the
        retry trigger is re-enabled.

        Returns:
            The session, either probing or failed
        """
        self.retry_enabled = False
        self._running = True
        try:
            await self._bootstrap()
        except CameraUnavailableError as e:
            self._abort(LoginPhase.CAMERA_UNAVAILABLE, e)
        except ModelLoadError as e:
            self._abort(LoginPhase.ENGINE_UNAVAILABLE, e)
        except Exception as e:
            logger.error("Unexpected error during bootstrap", error=str(e), exc_info=True)
            self._abort(LoginPhase.FAILED, e)
        finally:
            self._running = False

        if self.session.state is SessionState.FAILED:
            await self._release_camera()
        return self.session

    async def stop(self) -> None:
        """Stop the attempt, whether it is still bootstrapping or already probing.

        Has no effect once the session locked or failed. A bootstrap in
        progress notices the stop at its next step and returns without
        starting the session.
        """
        if self.session.state.is_terminal:
            return

        self.session.stop()
        self.retry_enabled = True
        self._emit(LoginStatus.for_phase(LoginPhase.STOPPED))
        if not self._running:
            await self._release_camera()

    async def _bootstrap(self) -> None:
        self._emit(LoginStatus.for_phase(LoginPhase.INITIALIZING))
        self._emit(LoginStatus.for_phase(LoginPhase.LOADING_MODELS))

        engine_result, camera_result = await asyncio.gather(
            self.engine.load_weights(),
            self.video_source.start(self.video_constraints),
            return_exceptions=True,
        )
        if self._stopped():
            return
        if isinstance(engine_result, BaseException) and isinstance(camera_result, BaseException):
            logger.error("Camera also failed during bootstrap", error=str(camera_result))
        for result in (engine_result, camera_result):
            if isinstance(result, BaseException):
                raise result

        if self.ready_timeout is not None:
            await self.engine.wait_until_ready(self.ready_timeout, self.ready_poll_interval)
            if self._stopped():
                return

        self._emit(LoginStatus.for_phase(LoginPhase.PREPARING_FACE_DATA))
        labeled_sets = await self.builder.build(self.roster)
        if self._stopped():
            return

        if not labeled_sets:
            logger.warning("No enrolled identities available", roster_size=len(self.roster))
            self.session.fail("no enrolled identities")
            self.retry_enabled = True
            self._emit(LoginStatus.for_phase(LoginPhase.NO_ENROLLED_IDENTITIES))
            return

        database = MatcherDatabase(labeled_sets=labeled_sets, threshold=self.threshold)
        self.session.start(database)
        self._emit(LoginStatus.for_phase(LoginPhase.LOOKING_FOR_FACE))

    def _stopped(self) -> bool:
        if self.session.state.is_terminal:
            logger.info("Bootstrap interrupted", reason=self.session.failure_reason)
            return True
        return False

    def _abort(self, phase: LoginPhase, error: Exception) -> None:
        cause = str(error) if isinstance(error, FaceLoginError) else f"{type(error).__name__}: {error}"
        if self.session.state.is_terminal:
            logger.info("Ignoring bootstrap error after stop", phase=phase.value, error=cause)
            return
        logger.error("Bootstrap failed", phase=phase.value, error=cause)
        self.session.fail(cause)
        self.retry_enabled = True
        self._emit(LoginStatus.for_phase(phase, error=cause))

    async def _release_camera(self) -> None:
        try:
            await self.video_source.release()
        except Exception as e:
            logger.warning("Failed to release camera", error=str(e))

    def _on_locked(self, label: str, result: MatchResult) -> None:
        self._emit(LoginStatus.for_phase(LoginPhase.RECOGNIZED, label=label))

    def _on_session_error(self, cause: str) -> None:
        self.retry_enabled = True
        self._emit(LoginStatus.for_phase(LoginPhase.FAILED, error=cause))

    def _emit(self, status: LoginStatus) -> None:
        self.status = status
        self.history.append(status)
        logger.info("Login status", phase=status.phase.value, message=status.message)
        if self.on_status is not None:
            self.on_status(status)
