"""Tests for BACI author normalization."""
import math
import unittest

from pydantic import ValidationError

from scoring.baci import (
    BaciConfig,
    BaciDataPoint,
    InvalidBaciInput,
    compute_baci,
    compute_baci_scores,
    team_baci,
)

TEAM = [
    BaciDataPoint(author="ana", commits=5, base_quality=6.5),
    BaciDataPoint(author="ben", commits=10, base_quality=7.2),
    BaciDataPoint(author="cal", commits=3, base_quality=5.8),
    BaciDataPoint(author="dee", commits=8, base_quality=7.0),
    BaciDataPoint(author="eli", commits=12, base_quality=8.1),
]


class BaciTests(unittest.TestCase):
    def test_empty_input(self):
        self.assertEqual(compute_baci([]), [])

    def test_team_scores_bounded_and_ordered(self):
        results = compute_baci(TEAM)
        self.assertEqual([r.author for r in results], ["ana", "ben", "cal", "dee", "eli"])
        for r in results:
            self.assertGreater(r.score, 1.0)
            self.assertLess(r.score, 10.0)
        by_author = {r.author: r.score for r in results}
        self.assertGreaterEqual(by_author["eli"], by_author["cal"])

    def test_deterministic(self):
        first = [r.score for r in compute_baci(TEAM)]
        second = [r.score for r in compute_baci(TEAM)]
        self.assertEqual(first, second)

    def test_single_author_sits_at_midpoint(self):
        [result] = compute_baci([BaciDataPoint(author="solo", commits=4, base_quality=9.0)])
        self.assertAlmostEqual(result.score, 1.0 + 8.99 / 2)

    def test_identical_authors_score_the_same(self):
        scores = compute_baci_scores([10, 10, 10], [6.0, 6.0, 6.0])
        self.assertEqual(len(set(scores.tolist())), 1)

    def test_volume_ignored_when_homogeneous(self):
        config = BaciConfig(shrinkage_strength=1e-9)
        scores = compute_baci_scores([10, 10.5], [6.0, 6.0], config)
        self.assertAlmostEqual(scores[0], scores[1], places=6)

    def test_more_commits_never_hurts_a_strong_author(self):
        scores = compute_baci_scores([2, 20, 8], [8.0, 8.0, 6.0])
        self.assertGreater(scores[1], scores[0])

    def test_extreme_values_stay_in_open_interval(self):
        scores = compute_baci_scores([1000, 0, 5], [1e6, -1e6, 5.0])
        self.assertTrue(all(1.0 < s < 10.0 for s in scores))

    def test_zero_commit_team(self):
        scores = compute_baci_scores([0, 0], [7.0, 3.0])
        self.assertTrue(all(math.isfinite(s) for s in scores))

    def test_nan_rejected(self):
        with self.assertRaises(InvalidBaciInput):
            compute_baci([BaciDataPoint(commits=3, base_quality=float("nan"))])

    def test_negative_commits_rejected(self):
        with self.assertRaises(ValueError):
            compute_baci([BaciDataPoint(commits=-1, base_quality=5.0)])

    def test_shrinkage_must_be_positive(self):
        with self.assertRaises(ValidationError):
            BaciConfig(shrinkage_strength=0)

    def test_team_baci_by_author(self):
        results = team_baci({"ana": 6.5, "ben": 7.2}, {"ana": 5, "ben": 10})
        self.assertEqual(set(results), {"ana", "ben"})
        self.assertGreater(results["ben"].score, results["ana"].score)


if __name__ == "__main__":
    unittest.main()
