"""Descriptor database builder for enrolling known identities."""
from typing import List, Optional, Sequence

import numpy as np

from facelogin.core.config import RosterEntry
from facelogin.core.exceptions import InvalidRosterError
from facelogin.core.logging import get_logger
from facelogin.core.utils.image import bytes_to_numpy_array, limit_image_size
from facelogin.domain.entities.identity import KnownIdentity, LabeledDescriptorSet
from facelogin.domain.interfaces.recognition.embedding_engine import EmbeddingEngine
from facelogin.domain.interfaces.storage.image_store import ReferenceImageStore
from facelogin.domain.value_objects.recognition import DetectorOptions

logger = get_logger(__name__)


def roster_from_settings(entries: Sequence[RosterEntry]) -> List[KnownIdentity]:
    """Expand configured roster entries into identities with sample image refs."""
    return [
        KnownIdentity.from_directory(entry.label, entry.dir, entry.samples)
        for entry in entries
    ]


class DescriptorDatabaseBuilder:
    """Builds labeled descriptor sets from reference images.

    Failures are contained per sample and per identity: a sample that cannot
    be fetched, decoded or that shows no face is skipped, and an identity left
    without any embedding is dropped. The build itself only fails on a
    malformed roster.

    Example:
        ```python
        builder = DescriptorDatabaseBuilder(engine, LocalImageStore("faces"), options)
        labeled_sets = await builder.build(roster)
        ```
    """

    def __init__(
        self,
        engine: EmbeddingEngine,
        image_store: ReferenceImageStore,
        detector_options: DetectorOptions,
        max_image_pixels: Optional[int] = None,
    ) -> None:
        """Initialize the builder.

        Args:
            engine: Engine used to extract one embedding per reference image
            image_store: Store the reference images are fetched from
            detector_options: Detector options for static images
            max_image_pixels: Optional downscale bound applied before detection
        """
        self.engine = engine
        self.image_store = image_store
        self.detector_options = detector_options
        self.max_image_pixels = max_image_pixels

    async def build(self, roster: Sequence[KnownIdentity]) -> List[LabeledDescriptorSet]:
        """Build the labeled descriptor sets for ``roster``.

        Args:
            roster: Known identities in enrollment order

        Returns:
            One LabeledDescriptorSet per identity that produced at least one
            embedding, in roster order. May be empty.

        Raises:
            InvalidRosterError: If the roster is malformed
        """
        self._validate_roster(roster)

        labeled_sets: List[LabeledDescriptorSet] = []
        for identity in roster:
            embeddings = []
            for ref in identity.sample_image_refs:
                embedding = await self._embed_sample(identity.label, ref)
                if embedding is not None:
                    embeddings.append(embedding)

            if not embeddings:
                logger.warning("No valid descriptors for identity", label=identity.label)
                continue

            labeled_sets.append(LabeledDescriptorSet(label=identity.label, embeddings=embeddings))
            logger.info(
                "Enrolled identity",
                label=identity.label,
                samples=len(embeddings),
                skipped=len(identity.sample_image_refs) - len(embeddings)
            )

        logger.info(
            "Descriptor database built",
            identities=len(labeled_sets),
            roster_size=len(roster)
        )
        return labeled_sets

    async def _embed_sample(self, label: str, ref: str) -> Optional[np.ndarray]:
        """Extract one embedding from a reference image, or None on any failure."""
        try:
            image_bytes = await self.image_store.fetch(ref)
            image = limit_image_size(bytes_to_numpy_array(image_bytes), self.max_image_pixels)
            embedding = await self.engine.detect_embedding(image, self.detector_options)
        except Exception as e:
            logger.warning(
                "Failed loading reference image",
                label=label,
                ref=ref,
                error=str(e),
                error_type=type(e).__name__
            )
            return None

        if embedding is None:
            logger.warning("No face found in reference image", label=label, ref=ref)
            return None
        return embedding

    @staticmethod
    def _validate_roster(roster: Sequence[KnownIdentity]) -> None:
        seen = set()
        for identity in roster:
            if not isinstance(identity, KnownIdentity):
                raise InvalidRosterError(
                    f"Roster entries must be KnownIdentity, got {type(identity).__name__}"
                )
            if identity.label in seen:
                raise InvalidRosterError(
                    f"Duplicate identity label in roster: {identity.label}",
                    details={"label": identity.label}
                )
            seen.add(identity.label)
