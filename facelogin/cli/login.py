"""CLI tool running one face login attempt against the local camera."""
import argparse
import asyncio
import sys
from typing import Optional

from facelogin.core.config import settings
from facelogin.core.container import build_engine, build_image_store
from facelogin.core.logging import get_logger, setup_logging
from facelogin.domain.value_objects.recognition import LoginStatus, SessionState
from facelogin.infrastructure.camera.opencv import OpenCVVideoSource
from facelogin.services.login import LoginService

logger = get_logger(__name__)


def print_status(status: LoginStatus) -> None:
    """Status sink writing each phase to stdout."""
    print(status.message, flush=True)


async def run_login(
    threshold: Optional[float] = None,
    interval_ms: Optional[int] = None,
    camera_index: Optional[int] = None,
    timeout: Optional[float] = None,
) -> int:
    """
    Run one login attempt and wait for it to lock or fail.

    Args:
        threshold: Override for the match threshold
        interval_ms: Override for the probe interval
        camera_index: Override for the capture device index
        timeout: Give up after this many seconds of probing

    Returns:
        Process exit code: 0 when a face was recognized, 1 otherwise
    """
    overrides = {}
    if threshold is not None:
        overrides["threshold"] = threshold
    if interval_ms is not None:
        overrides["probe_interval"] = interval_ms / 1000

    service = LoginService.from_settings(
        engine=build_engine(settings),
        video_source=OpenCVVideoSource(),
        image_store=build_image_store(settings),
        on_status=print_status,
        **overrides,
    )
    if camera_index is not None:
        service.video_constraints = service.video_constraints.model_copy(
            update={"device_index": camera_index}
        )

    try:
        await service.start()
        try:
            state = await asyncio.wait_for(service.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("No known face recognized in time", timeout=timeout)
            return 1
    finally:
        await service.shutdown()

    if state is SessionState.LOCKED:
        logger.info("Login succeeded", label=service.locked_label)
        return 0
    return 1


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Sign in by looking at the camera")
    parser.add_argument("--threshold", type=float, help="Maximum match distance (0-1]")
    parser.add_argument("--interval-ms", type=int, help="Probe interval in milliseconds")
    parser.add_argument("--camera-index", type=int, help="Capture device index")
    parser.add_argument("--timeout", type=float, help="Give up after this many seconds")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(run_login(
        threshold=args.threshold,
        interval_ms=args.interval_ms,
        camera_index=args.camera_index,
        timeout=args.timeout,
    )))


if __name__ == "__main__":
    main()
