"""Tests for the distance-threshold face matcher."""
import pytest
from pydantic import ValidationError

from facelogin.domain.entities.identity import LabeledDescriptorSet
from facelogin.domain.value_objects.recognition import UNKNOWN_LABEL, MatcherDatabase
from facelogin.services.face_matcher import FaceMatcher, classify


def make_database(*sets, threshold=0.5) -> MatcherDatabase:
    return MatcherDatabase(
        labeled_sets=[LabeledDescriptorSet(label=label, embeddings=embeddings) for label, embeddings in sets],
        threshold=threshold,
    )


class TestThreshold:
    """Acceptance is inclusive of the threshold."""

    def test_distance_equal_to_threshold_matches(self):
        db = make_database(("alice", [[0.0, 0.0, 0.0]]), threshold=0.5)

        result = classify([0.5, 0.0, 0.0], db)

        assert result.label == "alice"
        assert result.distance == 0.5

    def test_distance_just_above_threshold_is_unknown(self):
        db = make_database(("alice", [[0.0, 0.0, 0.0]]), threshold=0.5)

        result = classify([0.5 + 1e-9, 0.0, 0.0], db)

        assert result.label == UNKNOWN_LABEL
        assert result.is_unknown
        assert result.distance > 0.5

    def test_unknown_still_reports_minimum_distance(self):
        db = make_database(("alice", [[1.0, 0.0]]), ("bob", [[0.0, 3.0]]))

        result = classify([0.0, 0.0], db)

        assert result.is_unknown
        assert result.distance == pytest.approx(1.0)


class TestNearestNeighbor:
    """Identities are scored by their closest sample, not their centroid."""

    def test_any_close_sample_matches(self):
        # Centroid (0.5, 0.5) is ~0.71 away; the nearest sample is 0.1 away
        db = make_database(("alice", [[1.0, 0.0], [0.0, 1.0]]))

        result = classify([0.9, 0.0], db)

        assert result.label == "alice"
        assert result.distance == pytest.approx(0.1)

    def test_closest_identity_wins(self):
        db = make_database(
            ("alice", [[1.0, 0.0, 0.0]]),
            ("bob", [[0.0, 1.0, 0.0], [0.0, 0.2, 0.0]]),
        )

        result = classify([0.0, 0.3, 0.0], db)

        assert result.label == "bob"
        assert result.distance == pytest.approx(0.1)


class TestTieBreak:
    """Exact ties go to the identity constructed first."""

    def test_earlier_identity_wins_on_tie(self):
        db = make_database(("alice", [[1.0, 0.0]]), ("bob", [[-1.0, 0.0]]), threshold=1.0)

        results = {classify([0.0, 0.0], db).label for _ in range(10)}

        assert results == {"alice"}

    def test_tie_follows_construction_order(self):
        db = make_database(("bob", [[-1.0, 0.0]]), ("alice", [[1.0, 0.0]]), threshold=1.0)

        assert classify([0.0, 0.0], db).label == "bob"


class TestMatcherDatabase:

    def test_empty_database_is_rejected(self):
        with pytest.raises(ValidationError):
            MatcherDatabase(labeled_sets=[], threshold=0.5)

    @pytest.mark.parametrize("threshold", [0.0, -0.1, 1.5])
    def test_threshold_outside_unit_interval_is_rejected(self, threshold):
        with pytest.raises(ValidationError):
            make_database(("alice", [[0.0, 0.0]]), threshold=threshold)

    def test_duplicate_labels_are_rejected(self):
        with pytest.raises(ValidationError):
            make_database(("alice", [[0.0, 0.0]]), ("alice", [[1.0, 0.0]]))

    def test_mixed_dimensions_are_rejected(self):
        with pytest.raises(ValidationError):
            make_database(("alice", [[0.0, 0.0]]), ("bob", [[1.0, 0.0, 0.0]]))

    def test_embeddings_are_read_only(self):
        db = make_database(("alice", [[0.0, 0.0]]))

        with pytest.raises(ValueError):
            db.labeled_sets[0].embeddings[0][0] = 1.0

    def test_probe_dimension_mismatch_raises(self):
        db = make_database(("alice", [[0.0, 0.0]]))

        with pytest.raises(ValueError):
            classify([0.0, 0.0, 0.0], db)


def test_face_matcher_delegates_to_classify():
    db = make_database(("alice", [[0.0, 0.0]]), threshold=0.4)
    matcher = FaceMatcher(db)

    assert matcher.threshold == 0.4
    assert matcher.find_best_match([0.3, 0.0]).label == "alice"
    assert matcher.find_best_match([0.5, 0.0]).is_unknown
