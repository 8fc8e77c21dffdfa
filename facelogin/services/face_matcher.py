"""Distance-threshold face matching against a labeled descriptor database."""
from typing import Sequence

import numpy as np

from facelogin.domain.entities.identity import as_embedding
from facelogin.domain.value_objects.recognition import (
    UNKNOWN_LABEL,
    MatcherDatabase,
    MatchResult,
)


def classify(probe: Sequence[float], database: MatcherDatabase) -> MatchResult:
    """Classify a probe embedding as one known identity or ``unknown``.

    Each identity is scored by the Euclidean distance from the probe to its
    nearest stored embedding, so an identity matches if any one of its samples
    is close enough. The identity with the smallest score wins; on an exact tie
    the identity appearing first in the database wins.

    Args:
        probe: Embedding of the face to classify
        database: Labeled embeddings and the acceptance threshold

    Returns:
        MatchResult with the winning label if its distance is at most the
        threshold, else ``unknown`` carrying the same minimum distance

    Raises:
        ValueError: If the probe dimension differs from the database's
    """
    vector = as_embedding(probe)
    if vector.shape[0] != database.dimension:
        raise ValueError(
            f"Probe dimension {vector.shape[0]} does not match database dimension {database.dimension}"
        )

    best_label = UNKNOWN_LABEL
    best_distance = float("inf")
    for labeled_set in database.labeled_sets:
        samples = np.stack(labeled_set.embeddings)
        distance = float(np.min(np.linalg.norm(samples - vector, axis=1)))
        # Strict comparison keeps the earlier identity on ties
        if distance < best_distance:
            best_label = labeled_set.label
            best_distance = distance

    if best_distance <= database.threshold:
        return MatchResult(label=best_label, distance=best_distance)
    return MatchResult(label=UNKNOWN_LABEL, distance=best_distance)


class FaceMatcher:
    """Matcher bound to one immutable database.

    Example:
        ```python
        matcher = FaceMatcher(MatcherDatabase(labeled_sets=sets, threshold=0.5))
        result = matcher.find_best_match(embedding)
        if not result.is_unknown:
            print(result.label)
        ```
    """

    def __init__(self, database: MatcherDatabase) -> None:
        self.database = database

    @property
    def threshold(self) -> float:
        return self.database.threshold

    def find_best_match(self, probe: Sequence[float]) -> MatchResult:
        """Classify ``probe`` against the bound database."""
        return classify(probe, self.database)
