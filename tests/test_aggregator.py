"""Tests for the weighted cross-agent consensus."""
import random
import unittest

from panel.aggregator import build_consensus, commit_score, normalized_estimation, rush_penalty, weighted_average
from panel.schemas import PILLARS, AnalysisPayload, MetricContribution, PillarMetrics
from panel.weights import AGENT_EXPERTISE_WEIGHTS


def payload(agent, **metrics):
    return AnalysisPayload(agent=agent, summary="s", metrics=PillarMetrics.model_validate(metrics))


class WeightedAverageTests(unittest.TestCase):
    def test_two_agents_on_code_quality(self):
        weights = {"reviewer": {"codeQuality": 0.6}, "author": {"codeQuality": 0.4}}
        consensus = build_consensus(
            [payload("reviewer", codeQuality=8), payload("author", codeQuality=6)], weights=weights,
        )
        self.assertEqual(consensus.code_quality, 7.2)

    def test_null_contributions_are_excluded(self):
        weights = {"a": {"testCoverage": 0.5}, "b": {"testCoverage": 0.5}}
        consensus = build_consensus(
            [payload("a", testCoverage=9), payload("b", testCoverage=None)], weights=weights,
        )
        self.assertEqual(consensus.test_coverage, 9.0)

    def test_pillar_nobody_scored_is_omitted(self):
        consensus = build_consensus([payload("sdet", codeQuality=7)])
        self.assertIsNone(consensus.functional_impact)
        self.assertNotIn("functionalImpact", consensus.model_dump(by_alias=True, exclude_none=True))

    def test_zero_total_weight_uses_plain_mean(self):
        contribs = [
            MetricContribution(agent="a", metric="codeQuality", value=4, weight=0),
            MetricContribution(agent="b", metric="codeQuality", value=8, weight=0),
        ]
        with self.assertLogs("panel.aggregator", level="WARNING"):
            self.assertEqual(weighted_average(contribs), 6.0)

    def test_no_contributions(self):
        self.assertIsNone(weighted_average([]))

    def test_unknown_agent_gets_equal_weight(self):
        with self.assertLogs("panel.weights", level="WARNING"):
            consensus = build_consensus([payload("mystery-guest", codeQuality=5)])
        self.assertEqual(consensus.code_quality, 5.0)

    def test_last_payload_per_agent_wins(self):
        consensus = build_consensus([payload("sdet", codeQuality=2), payload("sdet", codeQuality=9)])
        self.assertEqual(consensus.code_quality, 9.0)
        self.assertEqual(consensus.agents, ["sdet"])

    def test_hours_keep_two_decimals(self):
        weights = {"a": {"actualTimeHours": 0.5}, "b": {"actualTimeHours": 0.5}}
        consensus = build_consensus(
            [payload("a", actualTimeHours=0.25), payload("b", actualTimeHours=0.5)], weights=weights,
        )
        self.assertEqual(consensus.actual_time_hours, 0.38)

    def test_consensus_within_agent_range(self):
        rng = random.Random(7)
        roles = list(AGENT_EXPERTISE_WEIGHTS)
        for _ in range(50):
            payloads = [
                payload(role, **{p: round(rng.uniform(0, 10), 1) for p in PILLARS if rng.random() > 0.3})
                for role in rng.sample(roles, rng.randint(1, len(roles)))
            ]
            consensus = build_consensus(payloads)
            for pillar in PILLARS:
                known = [p.metrics.get(pillar) for p in payloads if p.metrics.get(pillar) is not None]
                value = consensus.get(pillar)
                if not known:
                    self.assertIsNone(value)
                    continue
                self.assertGreaterEqual(value, min(known))
                self.assertLessEqual(value, max(known))


class ConsensusSetTests(unittest.TestCase):
    def test_contributions_recorded_per_pillar(self):
        consensus = build_consensus([payload("sdet", testCoverage=3), payload("senior-architect")])
        contribs = consensus.contributions["testCoverage"]
        self.assertEqual({c.agent for c in contribs}, {"sdet", "senior-architect"})
        self.assertEqual(set(consensus.contributions), set(PILLARS))

    def test_flagged_agents_limited_to_participants(self):
        consensus = build_consensus(
            [payload("sdet", codeQuality=6)], flagged=["sdet", "sdet", "ghost"],
        )
        self.assertEqual(consensus.flagged_agents, ["sdet"])

    def test_commit_score_needs_its_inputs(self):
        self.assertIsNone(build_consensus([payload("sdet", codeQuality=6)]).commit_score)

    def test_commit_score_derived(self):
        consensus = build_consensus([payload(
            "developer-reviewer",
            codeQuality=8, codeComplexity=4, actualTimeHours=2, idealTimeHours=2,
        )])
        self.assertEqual(consensus.commit_score, 7.9)

    def test_serializes_with_camel_case(self):
        dumped = build_consensus([payload("sdet", codeQuality=6)]).model_dump(by_alias=True)
        self.assertIn("codeQuality", dumped)
        self.assertIn("flaggedAgents", dumped)


class CommitScoreTests(unittest.TestCase):
    def test_estimation(self):
        self.assertEqual(normalized_estimation(2, 2), 10.0)
        self.assertEqual(normalized_estimation(3, 2), 5.0)
        self.assertEqual(normalized_estimation(10, 2), 0.0)
        self.assertEqual(normalized_estimation(3, 0), 5.0)

    def test_penalty_fades_with_time(self):
        self.assertGreater(rush_penalty(15, 9, 3), rush_penalty(600, 9, 3))
        self.assertLessEqual(rush_penalty(0, 10, 0), 4.0)

    def test_balanced_commit(self):
        self.assertAlmostEqual(commit_score(8, 4, 2, 2), 7.872)

    def test_rushed_commit_clamped_to_floor(self):
        self.assertEqual(commit_score(3, 9, 0.25, 1), 1.0)

    def test_always_in_range(self):
        for args in [(10, 0, 100, 100), (0, 10, 0, 5), (5, 5, 0, 0)]:
            with self.subTest(args=args):
                score = commit_score(*args)
                self.assertGreaterEqual(score, 1.0)
                self.assertLessEqual(score, 10.0)


if __name__ == "__main__":
    unittest.main()
