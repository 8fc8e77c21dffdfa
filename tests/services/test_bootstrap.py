"""Tests for bootstrap orchestration and failure mapping."""
import asyncio

import numpy as np

from facelogin.core.exceptions import CameraUnavailableError, ModelLoadError
from facelogin.domain.entities.identity import KnownIdentity
from facelogin.domain.value_objects.recognition import LoginPhase, SessionState
from facelogin.services.bootstrap import BootstrapOrchestrator
from facelogin.services.descriptor_database import DescriptorDatabaseBuilder
from facelogin.services.recognition_session import RecognitionSession
from tests.conftest import (
    IMAGE_OPTIONS,
    VIDEO_OPTIONS,
    FakeEmbeddingEngine,
    FakeImageStore,
    FakeVideoSource,
    encode_marker_image,
)

A_1 = np.array([1.0, 0.0, 0.0, 0.0])
A_2 = np.array([0.0, 1.0, 0.0, 0.0])
B_1 = np.array([0.0, 0.0, 1.0, 0.0])
# Distance 0.3 to A_1, farther from A_2 and B_1
PROBE_A = np.array([1.0, 0.3, 0.0, 0.0])

PROBE_MARKER = 9

ROSTER = [
    KnownIdentity.from_directory("A", "a", 2),
    KnownIdentity.from_directory("B", "b", 2),
]


def enrollment_fixtures():
    """Roster A with two valid samples, B with one valid and one faceless sample."""
    engine = FakeEmbeddingEngine({1: A_1, 2: A_2, 3: B_1, 4: None, PROBE_MARKER: PROBE_A})
    store = FakeImageStore({
        "a/1.jpg": encode_marker_image(1),
        "a/2.jpg": encode_marker_image(2),
        "b/1.jpg": encode_marker_image(3),
        "b/2.jpg": encode_marker_image(4),
    })
    return engine, store


def make_orchestrator(engine, video_source, store, roster=ROSTER, probe_interval=3600.0, **kwargs):
    statuses = []
    session = RecognitionSession(
        engine=engine,
        video_source=video_source,
        detector_options=VIDEO_OPTIONS,
        probe_interval=probe_interval,
    )
    orchestrator = BootstrapOrchestrator(
        engine=engine,
        video_source=video_source,
        builder=DescriptorDatabaseBuilder(engine, store, IMAGE_OPTIONS),
        roster=roster,
        threshold=0.5,
        session=session,
        ready_poll_interval=0.001,
        on_status=statuses.append,
        **kwargs,
    )
    return orchestrator, statuses


def phases(statuses):
    return [s.phase for s in statuses]


class TestBootstrapSuccess:

    async def test_end_to_end_lock(self):
        engine, store = enrollment_fixtures()
        video_source = FakeVideoSource(marker=PROBE_MARKER)
        orchestrator, statuses = make_orchestrator(engine, video_source, store, probe_interval=0.01)

        session = await orchestrator.run()
        state = await asyncio.wait_for(session.wait(), timeout=1.0)

        assert state is SessionState.LOCKED
        assert session.locked_label == "A"
        assert not session.timer_running
        assert session.database.labels == ("A", "B")
        assert [len(s.embeddings) for s in session.database.labeled_sets] == [2, 1]
        assert phases(statuses) == [
            LoginPhase.INITIALIZING,
            LoginPhase.LOADING_MODELS,
            LoginPhase.PREPARING_FACE_DATA,
            LoginPhase.LOOKING_FOR_FACE,
            LoginPhase.RECOGNIZED,
        ]
        assert statuses[-1].label == "A"
        assert statuses[-1].message == "Welcome, A"

        probes = len(engine.calls)
        assert session.tick() is None
        await asyncio.sleep(0.05)
        assert len(engine.calls) == probes

    async def test_enrollment_and_probes_use_their_own_detector_options(self):
        engine, store = enrollment_fixtures()
        video_source = FakeVideoSource(marker=PROBE_MARKER)
        orchestrator, _ = make_orchestrator(engine, video_source, store)

        session = await orchestrator.run()
        await session.tick()

        assert engine.calls[:4] == [IMAGE_OPTIONS] * 4
        assert engine.calls[4:] == [VIDEO_OPTIONS]
        session.stop()

    async def test_camera_and_engine_are_started(self):
        engine, store = enrollment_fixtures()
        video_source = FakeVideoSource()
        orchestrator, _ = make_orchestrator(engine, video_source, store)

        session = await orchestrator.run()

        assert engine.loaded
        assert video_source.started
        assert session.state is SessionState.PROBING
        assert not orchestrator.retry_enabled
        session.stop()


class TestBootstrapFailures:
    """Each failure cause maps to its own phase and leaves retry enabled."""

    async def test_all_failed_roster_reports_no_enrolled_identities(self):
        engine = FakeEmbeddingEngine()
        video_source = FakeVideoSource()
        orchestrator, statuses = make_orchestrator(engine, video_source, FakeImageStore())

        session = await orchestrator.run()

        assert session.state is SessionState.FAILED
        assert session.database is None
        assert statuses[-1].phase is LoginPhase.NO_ENROLLED_IDENTITIES
        assert statuses[-1].message == "Face data unavailable"
        assert orchestrator.retry_enabled
        assert video_source.released

    async def test_camera_failure_is_surfaced(self):
        engine, store = enrollment_fixtures()
        video_source = FakeVideoSource(start_error=CameraUnavailableError("Permission denied"))
        orchestrator, statuses = make_orchestrator(engine, video_source, store)

        session = await orchestrator.run()

        assert session.state is SessionState.FAILED
        assert statuses[-1].phase is LoginPhase.CAMERA_UNAVAILABLE
        assert statuses[-1].error == "Permission denied"
        assert LoginPhase.PREPARING_FACE_DATA not in phases(statuses)
        assert orchestrator.retry_enabled

    async def test_engine_failure_is_surfaced(self):
        engine, store = enrollment_fixtures()
        engine.load_error = ModelLoadError("weights unreachable")
        orchestrator, statuses = make_orchestrator(engine, FakeVideoSource(), store)

        session = await orchestrator.run()

        assert session.state is SessionState.FAILED
        assert statuses[-1].phase is LoginPhase.ENGINE_UNAVAILABLE
        assert statuses[-1].error == "weights unreachable"

    async def test_engine_failure_is_not_masked_by_camera_failure(self):
        engine, store = enrollment_fixtures()
        engine.load_error = ModelLoadError("weights unreachable")
        video_source = FakeVideoSource(start_error=CameraUnavailableError("Permission denied"))
        orchestrator, statuses = make_orchestrator(engine, video_source, store)

        await orchestrator.run()

        assert statuses[-1].phase is LoginPhase.ENGINE_UNAVAILABLE
        assert statuses[-1].error == "weights unreachable"

    async def test_readiness_timeout_is_an_engine_failure(self):
        engine, store = enrollment_fixtures()
        engine.ready = False
        orchestrator, statuses = make_orchestrator(engine, FakeVideoSource(), store, ready_timeout=0.02)

        session = await orchestrator.run()

        assert session.state is SessionState.FAILED
        assert statuses[-1].phase is LoginPhase.ENGINE_UNAVAILABLE
        assert "not ready" in statuses[-1].error

    async def test_readiness_wait_can_be_skipped(self):
        engine, store = enrollment_fixtures()
        engine.ready = False
        orchestrator, _ = make_orchestrator(engine, FakeVideoSource(), store, ready_timeout=None)

        session = await orchestrator.run()

        assert session.state is SessionState.PROBING
        session.stop()

    async def test_unexpected_error_is_reported_with_its_type(self):
        engine, store = enrollment_fixtures()
        video_source = FakeVideoSource(start_error=OSError("device busy"))
        orchestrator, statuses = make_orchestrator(engine, video_source, store)

        session = await orchestrator.run()

        assert session.state is SessionState.FAILED
        assert statuses[-1].phase is LoginPhase.FAILED
        assert statuses[-1].error == "OSError: device busy"
        assert orchestrator.retry_enabled


class FlakyVideoSource(FakeVideoSource):
    """Camera whose playback state can start failing after bootstrap."""

    broken = False

    @property
    def is_playing(self) -> bool:
        if self.broken:
            raise RuntimeError("capture device lost")
        return super().is_playing


async def test_timer_failure_is_reported():
    engine, store = enrollment_fixtures()
    video_source = FlakyVideoSource()
    orchestrator, statuses = make_orchestrator(engine, video_source, store, probe_interval=0.01)

    session = await orchestrator.run()
    video_source.broken = True
    state = await asyncio.wait_for(session.wait(), timeout=1.0)

    assert state is SessionState.FAILED
    assert statuses[-1].phase is LoginPhase.FAILED
    assert statuses[-1].error == "RuntimeError: capture device lost"
    assert orchestrator.retry_enabled


async def test_stop_before_camera_is_up_skips_enrollment():
    engine, store = enrollment_fixtures()
    video_source = FakeVideoSource()
    orchestrator, statuses = make_orchestrator(engine, video_source, store)

    run = asyncio.create_task(orchestrator.run())
    await asyncio.sleep(0)
    await orchestrator.stop()
    session = await run

    assert session.failure_reason == "stopped"
    assert phases(statuses)[-1] is LoginPhase.STOPPED
    assert LoginPhase.PREPARING_FACE_DATA not in phases(statuses)
    assert store.fetched == []
    assert video_source.released
