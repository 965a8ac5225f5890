"""Tests for clarity scoring of agent analyses."""
import json
import unittest

from panel.clarity import (
    CLARITY_WEIGHTS,
    PARSE_FAILURE_QUESTION,
    PARSE_FAILURE_SCORE,
    evaluate_clarity,
)
from tests.fakes import CLEAR_ANALYSIS, FULL_METRICS, MALFORMED_ANALYSIS, VAGUE_ANALYSIS


class ClarityWeightTests(unittest.TestCase):
    def test_weights_sum_to_one(self):
        self.assertAlmostEqual(sum(CLARITY_WEIGHTS.values()), 1.0)

    def test_weights_are_non_negative(self):
        self.assertTrue(all(w >= 0 for w in CLARITY_WEIGHTS.values()))


class MalformedInputTests(unittest.TestCase):
    def assert_parse_failure(self, text):
        result = evaluate_clarity(text, 0.8)
        self.assertEqual(result.score, PARSE_FAILURE_SCORE)
        self.assertFalse(result.has_enough_info)
        self.assertEqual(result.self_questions, [PARSE_FAILURE_QUESTION])

    def test_plain_prose(self):
        self.assert_parse_failure(MALFORMED_ANALYSIS)

    def test_empty_text(self):
        self.assert_parse_failure("")

    def test_unbalanced_braces(self):
        self.assert_parse_failure('{"summary": "cut off mid-way", "metrics": {"codeQuality": 7}')

    def test_invalid_json_inside_braces(self):
        self.assert_parse_failure("{summary: 'single quotes are not JSON'}")

    def test_parse_failure_is_never_enough_even_with_low_threshold(self):
        result = evaluate_clarity("nothing here", 0.1)
        self.assertFalse(result.has_enough_info)

    def test_deeply_nested_json(self):
        self.assert_parse_failure('{"summary": "x", "details": ' + "[" * 100000 + "]" * 100000 + "}")

    def test_huge_integer_metric_does_not_raise(self):
        text = '{"summary": "x", "metrics": {"codeQuality": 1' + "0" * 400 + "}}"
        result = evaluate_clarity(text, 0.8)
        self.assertGreaterEqual(result.score, 0.0)
        self.assertLessEqual(result.score, 1.0)
        self.assertTrue(any("within valid ranges" in q for q in result.self_questions))


class ClarityScoreTests(unittest.TestCase):
    def test_generic_candidate_scores_low_and_asks_for_missing_parts(self):
        text = json.dumps({"summary": "ok", "details": "", "metrics": {}, "confidence": 0.5})
        result = evaluate_clarity(text, 0.8)

        self.assertLess(result.score, 0.2)
        self.assertFalse(result.has_enough_info)
        questions = " ".join(result.self_questions)
        self.assertIn("summary", questions)
        self.assertIn("details", questions)
        self.assertIn("Have I provided all 8 required metrics?", result.self_questions)

    def test_clear_analysis_scores_full_marks(self):
        result = evaluate_clarity(CLEAR_ANALYSIS, 0.88)
        self.assertAlmostEqual(result.score, 1.0)
        self.assertTrue(result.has_enough_info)
        self.assertEqual(result.self_questions, [])

    def test_structurally_complete_but_vague(self):
        result = evaluate_clarity(VAGUE_ANALYSIS, 0.65)
        self.assertAlmostEqual(result.score, 0.2)
        self.assertFalse(result.has_enough_info)

    def test_quality_questions_come_first(self):
        result = evaluate_clarity(VAGUE_ANALYSIS, 0.8)
        self.assertTrue(result.self_questions[0].startswith("Does my summary"))

    def test_short_specific_summary_counts_as_quality(self):
        data = json.loads(CLEAR_ANALYSIS)
        data["summary"] = "SQL injection risk in login.py"
        result = evaluate_clarity(json.dumps(data), 0.8)
        self.assertAlmostEqual(result.score, 1.0)

    def test_terse_summary_is_generic(self):
        data = json.loads(CLEAR_ANALYSIS)
        data["summary"] = "Refactors payment client"
        result = evaluate_clarity(json.dumps(data), 0.8)
        self.assertAlmostEqual(result.score, 0.8)
        self.assertTrue(result.self_questions[0].startswith("Does my summary"))

    def test_fenced_json_is_accepted(self):
        result = evaluate_clarity("```json\n" + CLEAR_ANALYSIS + "\n```", 0.8)
        self.assertAlmostEqual(result.score, 1.0)

    def test_threshold_boundary_is_inclusive(self):
        self.assertTrue(evaluate_clarity(VAGUE_ANALYSIS, 0.2).has_enough_info)

    def test_null_metric_question_for_one_or_two_nulls(self):
        data = json.loads(CLEAR_ANALYSIS)
        data["metrics"] = {**FULL_METRICS, "testCoverage": None}
        result = evaluate_clarity(json.dumps(data), 0.8)
        self.assertTrue(any("testCoverage" in q for q in result.self_questions))

    def test_no_null_question_for_many_nulls(self):
        data = json.loads(CLEAR_ANALYSIS)
        data["metrics"] = {p: None for p in FULL_METRICS}
        result = evaluate_clarity(json.dumps(data), 0.8)
        self.assertFalse(any("as null" in q for q in result.self_questions))

    def test_out_of_range_score_is_flagged(self):
        data = json.loads(CLEAR_ANALYSIS)
        data["metrics"] = {**FULL_METRICS, "codeQuality": 14}
        result = evaluate_clarity(json.dumps(data), 0.8)
        self.assertAlmostEqual(result.score, 0.95)
        self.assertTrue(any("within valid ranges" in q for q in result.self_questions))

    def test_large_hour_values_are_reasonable(self):
        data = json.loads(CLEAR_ANALYSIS)
        data["metrics"] = {**FULL_METRICS, "actualTimeHours": 40}
        self.assertAlmostEqual(evaluate_clarity(json.dumps(data), 0.8).score, 1.0)

    def test_score_always_in_unit_interval(self):
        samples = [
            CLEAR_ANALYSIS, VAGUE_ANALYSIS, MALFORMED_ANALYSIS, "{}", "[1, 2]",
            '{"summary": 42, "details": null, "metrics": "lots"}',
            '{"metrics": {"codeQuality": -3, "idealTimeHours": -1}}',
        ]
        for text in samples:
            with self.subTest(text=text[:30]):
                score = evaluate_clarity(text, 0.5).score
                self.assertGreaterEqual(score, 0.0)
                self.assertLessEqual(score, 1.0)


if __name__ == "__main__":
    unittest.main()
