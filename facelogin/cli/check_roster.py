"""CLI tool reporting which roster identities can be enrolled."""
import argparse
import asyncio
import sys
from typing import Optional

from facelogin.core.config import settings
from facelogin.core.container import build_engine, build_image_store
from facelogin.core.logging import get_logger, setup_logging
from facelogin.domain.value_objects.recognition import DetectorOptions
from facelogin.services.descriptor_database import DescriptorDatabaseBuilder, roster_from_settings

logger = get_logger(__name__)


async def check_roster(faces_root: Optional[str] = None) -> int:
    """
    Build the descriptor database and log per-identity sample counts.

    Args:
        faces_root: Override for the reference image root

    Returns:
        Process exit code: 0 if at least one identity enrolled, 1 otherwise
    """
    config = settings.model_copy(update={"FACES_ROOT": faces_root}) if faces_root else settings
    roster = roster_from_settings(config.ROSTER)

    engine = build_engine(config)
    await engine.load_weights()
    builder = DescriptorDatabaseBuilder(
        engine=engine,
        image_store=build_image_store(config),
        detector_options=DetectorOptions(
            input_size=config.IMAGE_DETECTOR.INPUT_SIZE,
            score_threshold=config.IMAGE_DETECTOR.SCORE_THRESHOLD
        ),
        max_image_pixels=config.MAX_IMAGE_PIXELS,
    )
    labeled_sets = await builder.build(roster)

    enrolled = {s.label: len(s.embeddings) for s in labeled_sets}
    for identity in roster:
        logger.info(
            "Roster identity",
            label=identity.label,
            samples=len(identity.sample_image_refs),
            valid=enrolled.get(identity.label, 0),
        )

    if not labeled_sets:
        logger.error("No identity could be enrolled", faces_root=config.FACES_ROOT)
        return 1
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Check which roster identities can be enrolled")
    parser.add_argument("--faces-root", help="Directory, base URL or S3 prefix of reference images")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(check_roster(args.faces_root)))


if __name__ == "__main__":
    main()
