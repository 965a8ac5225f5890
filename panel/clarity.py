"""Clarity scoring for agent analyses.

A clarity score says how complete and how substantively justified an agent's
JSON analysis is. It is the sum of the weights of the criteria the analysis
satisfies, in two layers:

* structural: are summary, details and the 8 metrics there at all
* quality: does the text actually say something (concrete numbers, named
  concerns, causal reasoning, enough explanation for the metrics given)

Criteria that fail turn into self-questions the agent is asked to answer on
its next refinement pass. Quality gaps are asked first.
"""
from __future__ import annotations

import re

from panel.parsing import extract_json, in_range
from panel.schemas import PILLARS, ClarityEvaluation

PARSE_FAILURE_SCORE = 0.3
PARSE_FAILURE_QUESTION = "Failed to parse analysis - need to restructure response as valid JSON"

MIN_SUMMARY_LENGTH = 20
MIN_DETAILS_LENGTH = 50
MIN_NON_NULL_METRICS = 5
MIN_DETAILED_LENGTH = 100
MAX_TERSE_WORDS = 3  # summaries this short say nothing specific
JUSTIFICATION_CHARS_PER_METRIC = 50
JUSTIFICATION_CHARS_CAP = 150
JUSTIFICATION_SLACK = 1.5

CLARITY_WEIGHTS: dict[str, float] = {
    # structural
    "has_summary": 0.10,
    "has_details": 0.10,
    "has_metrics": 0.10,
    "metrics_not_null": 0.05,
    "has_reasonable_scores": 0.05,
    "has_confidence": 0.0,
    # quality
    "summary_quality": 0.20,
    "details_quality": 0.25,
    "metrics_justified": 0.15,
}

GENERIC_SUMMARIES = frozenset({
    "ok", "okay", "fine", "good", "looks good", "looks fine", "lgtm", "no issues",
    "no concerns", "good commit", "nice work", "minor changes", "small change",
    "code changes", "updated code", "n/a", "none",
})

CONCERN_KEYWORDS = (
    "risk", "bug", "regression", "security", "vulnerab", "performance", "complexity",
    "debt", "coverage", "untested", "maintainab", "coupling", "duplicat", "edge case",
    "breaking", "race condition", "leak", "readability",
)

TECHNICAL_TERMS = (
    "function", "method", "class", "module", "interface", "api", "endpoint", "test",
    "refactor", "dependency", "dependencies", "exception", "error handling", "validation",
    "schema", "query", "database", "abstraction", "coupling", "cohesion", "algorithm",
    "concurren", "async", "cache", "config", "type", "null", "loop", "state", "migration",
)

CAUSAL_TERMS = (
    "because", "since", "therefore", "due to", "which means", "as a result", "leads to",
    "results in", "so that", "thus", "hence", "causes", "which makes",
)

SCORING_TERMS = (
    "score", "scored", "rated", "rating", "estimate", "estimated", "justif", "reflects",
    "accounts for", "out of 10", "/10", "hours", "because", "given",
)


def _terms(words: tuple[str, ...]) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + ")", re.IGNORECASE)


_CONCERN_RE = _terms(CONCERN_KEYWORDS)
_TECHNICAL_RE = _terms(TECHNICAL_TERMS)
_CAUSAL_RE = _terms(CAUSAL_TERMS)
_SCORING_RE = _terms(SCORING_TERMS)
_SCORE_MENTION_RE = re.compile(
    r"\b\d+(?:\.\d+)?\s*(?:/\s*10|out of 10|%|points?|hours?|hrs?|h\b)"
    r"|\bscor(?:e|ed|es|ing)\b\D{0,20}\d",
    re.IGNORECASE,
)
_NUMBER_RE = re.compile(r"\b\d+(?:\.\d+)?\b")
_FILE_RE = re.compile(r"\b[\w./-]+\.(?:py|ts|tsx|js|jsx|java|kt|go|rs|rb|cs|cpp|cc|c|h|php|swift|sql|json|ya?ml|toml|md|html|css)\b")
_SEPARATORS_RE = re.compile(r"[,;:]")


# ── Criteria ────────────────────────────────────────────────────────

def _is_generic_summary(summary: str) -> bool:
    normalized = re.sub(r"[^\w\s/]", "", summary.lower()).strip()
    return normalized in GENERIC_SUMMARIES or len(normalized.split()) <= MAX_TERSE_WORDS


def _summary_quality(summary: str) -> bool:
    if _is_generic_summary(summary):
        return False
    return bool(
        _SCORE_MENTION_RE.search(summary)
        or _CONCERN_RE.search(summary)
        or len(_SEPARATORS_RE.findall(summary)) >= 2
    )


def _details_quality(details: str) -> bool:
    if len(details) <= MIN_DETAILED_LENGTH or not _TECHNICAL_RE.search(details):
        return False
    concrete = _NUMBER_RE.search(details) or _FILE_RE.search(details)
    return bool(_CAUSAL_RE.search(details) or concrete)


def _justification_length(non_null: int) -> int:
    return min(JUSTIFICATION_CHARS_CAP, JUSTIFICATION_CHARS_PER_METRIC * non_null)


def _metrics_justified(details: str, non_null: int) -> bool:
    if non_null < 1:
        return False
    required = _justification_length(non_null)
    if len(details) < required:
        return False
    return bool(_SCORING_RE.search(details) or len(details) > JUSTIFICATION_SLACK * required)


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def _criteria(parsed: dict) -> tuple[dict[str, bool], list[str]]:
    """Evaluate every criterion. Also returns the pillars present with a null value."""
    summary = _text(parsed.get("summary"))
    details = _text(parsed.get("details"))
    metrics = parsed.get("metrics")
    metrics = metrics if isinstance(metrics, dict) else None

    present = [p for p in PILLARS if metrics is not None and p in metrics]
    nulls = [p for p in present if metrics[p] is None]
    non_null = len(present) - len(nulls)

    criteria = {
        "has_summary": len(summary) > MIN_SUMMARY_LENGTH,
        "has_details": len(details) > MIN_DETAILS_LENGTH,
        "has_metrics": len(present) == len(PILLARS),
        "metrics_not_null": non_null >= MIN_NON_NULL_METRICS,
        "has_reasonable_scores": metrics is not None and all(
            in_range(p, metrics[p]) for p in present if metrics[p] is not None
        ),
        "has_confidence": "confidence" in parsed,
        "summary_quality": bool(summary) and _summary_quality(summary),
        "details_quality": _details_quality(details),
        "metrics_justified": _metrics_justified(details, non_null),
    }
    return criteria, nulls


def _self_questions(criteria: dict[str, bool], nulls: list[str]) -> list[str]:
    questions: list[str] = []

    # quality first: these push towards substance, not just shape
    if not criteria["summary_quality"]:
        questions.append(
            "Does my summary name the specific concerns or scores that matter, "
            "instead of a generic verdict?"
        )
    if not criteria["details_quality"]:
        questions.append(
            "Which concrete observations (files, functions, numbers) support my analysis, "
            "and what is the cause and effect behind them?"
        )
    if not criteria["metrics_justified"]:
        questions.append("How did I arrive at each metric value, and is that reasoning written in my details?")

    if not criteria["has_summary"]:
        questions.append("What is the high-level summary of this commit from my perspective?")
    if not criteria["has_details"]:
        questions.append("What specific details support my analysis?")
    if not criteria["has_metrics"]:
        questions.append(f"Have I provided all {len(PILLARS)} required metrics?")
    if 0 < len(nulls) <= 2:
        questions.append(
            f"I marked {', '.join(nulls)} as null - do I have enough context to estimate these?"
        )
    if not criteria["has_reasonable_scores"]:
        questions.append("Are my metric scores reasonable and within valid ranges (0-10, hours >= 0)?")
    return questions


def evaluate_clarity(text: str, threshold: float) -> ClarityEvaluation:
    """Score how clear an agent analysis is. Never raises."""
    try:
        parsed = extract_json(text)
    except ValueError:
        return ClarityEvaluation(
            score=PARSE_FAILURE_SCORE,
            has_enough_info=False,
            self_questions=[PARSE_FAILURE_QUESTION],
        )

    criteria, nulls = _criteria(parsed)
    score = round(sum(CLARITY_WEIGHTS[name] for name, ok in criteria.items() if ok), 4)
    score = min(1.0, max(0.0, score))

    return ClarityEvaluation(
        score=score,
        has_enough_info=score >= threshold,
        self_questions=_self_questions(criteria, nulls),
    )
