"""
Unit tests for candidate merging.
"""

import pytest

from hole_detection.merging import merge_candidates
from hole_detection.models import DetectionSignal


class TestMergeCandidates:
    """Tests for the merge_candidates function."""

    def test_empty(self):
        assert merge_candidates([], 4.8) == []

    def test_close_candidates_merge(self, make_candidate):
        """Test that two signals on one mark become one multi-signal candidate."""
        dark = make_candidate(100, 100, DetectionSignal.DARK_ANOMALY, score=0.9)
        ring = make_candidate(103, 100, DetectionSignal.EDGE_RING, score=0.5)

        merged = merge_candidates([dark, ring], 4.8)

        assert len(merged) == 1
        candidate = merged[0]
        assert candidate.signals == {DetectionSignal.DARK_ANOMALY, DetectionSignal.EDGE_RING}
        assert candidate.raw_scores == {
            DetectionSignal.DARK_ANOMALY: pytest.approx(0.9),
            DetectionSignal.EDGE_RING: pytest.approx(0.5),
        }
        assert candidate.pixel_center == pytest.approx((101.5, 100.0))
        assert candidate.merged_count == 2

    def test_distant_candidates_stay_apart(self, make_candidate):
        a = make_candidate(100, 100)
        b = make_candidate(110, 100)
        assert len(merge_candidates([a, b], 4.8)) == 2

    def test_merge_distance_is_exclusive(self, make_candidate):
        """Test that candidates exactly one merge radius apart are not merged."""
        a = make_candidate(100, 100)
        b = make_candidate(104, 100)
        assert len(merge_candidates([a, b], 4.0)) == 2

    def test_highest_score_seeds(self, make_candidate):
        """Test that the strongest candidate is visited first and keeps its id."""
        weak = make_candidate(100, 100, score=0.2)
        strong = make_candidate(102, 100, score=0.95)

        merged = merge_candidates([weak, strong], 4.8)
        assert len(merged) == 1
        assert merged[0].id == strong.id

    def test_same_signal_keeps_best_score(self, make_candidate):
        a = make_candidate(100, 100, DetectionSignal.DARK_ANOMALY, score=0.4)
        b = make_candidate(101, 100, DetectionSignal.DARK_ANOMALY, score=0.7)

        merged = merge_candidates([a, b], 4.8)
        assert merged[0].signals == {DetectionSignal.DARK_ANOMALY}
        assert merged[0].raw_scores[DetectionSignal.DARK_ANOMALY] == pytest.approx(0.7)

    def test_inputs_not_modified(self, make_candidate):
        a = make_candidate(100, 100, DetectionSignal.DARK_ANOMALY)
        b = make_candidate(102, 100, DetectionSignal.EDGE_RING)

        merge_candidates([a, b], 4.8)
        assert a.signals == {DetectionSignal.DARK_ANOMALY}
        assert a.pixel_center == (100.0, 100.0)
        assert a.merged_count == 1

    def test_chain_collapses_over_passes(self, make_candidate):
        """Test that a chain which one pass leaves split is merged by a later pass."""
        # 105 is visited before 103 and is out of reach until 103 pulls the
        # seed toward it
        chain = [
            make_candidate(100, 100, score=0.9),
            make_candidate(105, 100, score=0.5),
            make_candidate(103, 100, score=0.3),
        ]
        merged = merge_candidates(chain, 4.8)
        assert len(merged) == 1
        assert merged[0].merged_count == 3

    def test_idempotent(self, make_candidate):
        """Test that merging merged output makes no further merges."""
        candidates = [
            make_candidate(x, y, signal, score)
            for x, y, signal, score in [
                (100, 100, DetectionSignal.DARK_ANOMALY, 0.9),
                (103, 101, DetectionSignal.EDGE_RING, 0.6),
                (106, 100, DetectionSignal.EDGE_RING, 0.5),
                (200, 150, DetectionSignal.LIGHT_ANOMALY, 0.7),
                (204, 150, DetectionSignal.EDGE_RING, 0.3),
                (300, 300, DetectionSignal.DARK_ANOMALY, 0.4),
            ]
        ]
        once = merge_candidates(candidates, 4.8)
        twice = merge_candidates(once, 4.8)

        assert len(twice) == len(once)
        assert sorted(c.pixel_center for c in twice) == sorted(c.pixel_center for c in once)
