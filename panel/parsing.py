"""Turning raw agent replies into JSON objects and AnalysisPayloads."""
from __future__ import annotations

import json
import logging
import math
import re

from panel.schemas import HOUR_PILLARS, PILLARS, SCORE_MAX, SCORE_MIN, AnalysisPayload, PillarMetrics

logger = logging.getLogger(__name__)

MAX_CONCERNS = 5

_OPEN_FENCE = re.compile(r"^```(?:json|javascript)?\s*\n?", re.IGNORECASE)
_CLOSE_FENCE = re.compile(r"\n?```\s*$")


def _strip_fences(text: str) -> str:
    text = text.strip()
    text = _OPEN_FENCE.sub("", text)
    text = _CLOSE_FENCE.sub("", text)
    return text.strip()


def extract_json(text: str) -> dict:
    """Extract the first balanced JSON object from LLM output.

    Raises ValueError when there is no object, its braces never balance, or it
    does not decode to a dict.
    """
    cleaned = _strip_fences(text)
    start = cleaned.find("{")
    if start == -1:
        raise ValueError("No JSON object found in output")

    depth = 0
    end = -1
    for i in range(start, len(cleaned)):
        ch = cleaned[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                end = i
                break
    if end == -1:
        raise ValueError("Incomplete JSON object - unmatched braces")

    try:
        data = json.loads(cleaned[start:end + 1])
    except RecursionError:
        raise ValueError("JSON object is nested too deeply")
    if not isinstance(data, dict):
        raise ValueError("JSON value is not an object")
    return data


def is_number(value) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:  # ints too large for a float
        return False


def in_range(pillar: str, value) -> bool:
    """Whether value is an acceptable reading for the given pillar."""
    if not is_number(value):
        return False
    if pillar in HOUR_PILLARS:
        return value >= 0
    return SCORE_MIN <= value <= SCORE_MAX


def parse_metrics(raw, agent: str = "") -> PillarMetrics:
    """Keep exactly the 8 pillars; anything unknown or invalid is dropped."""
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning("%s: metrics is %s, not an object; using nulls", agent, type(raw).__name__)
        return PillarMetrics()

    values: dict[str, float | None] = {}
    for pillar in PILLARS:
        value = raw.get(pillar)
        if value is None:
            values[pillar] = None
        elif in_range(pillar, value):
            values[pillar] = float(value)
        else:
            logger.warning("%s: invalid value %r for %s, setting to null", agent, value, pillar)
            values[pillar] = None
    return PillarMetrics.model_validate(values)


def parse_analysis(text: str, agent: str = "") -> AnalysisPayload:
    """Parse an agent reply into an AnalysisPayload.

    Malformed replies are not an error: the raw text becomes the summary and
    every metric is null, so the agent simply contributes nothing numeric.
    """
    try:
        data = extract_json(text)
        summary = data.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            raise ValueError("Missing or invalid summary field")
    except ValueError as e:  # json.JSONDecodeError is a ValueError
        logger.warning("%s: failed to parse analysis (%s). Raw output (first 500 chars): %s", agent, e, text[:500])
        return AnalysisPayload(
            agent=agent,
            summary=text[:500] or "Failed to parse LLM response",
        )

    details = data.get("details")
    confidence = data.get("confidence")
    if not (is_number(confidence) and 0.0 <= confidence <= 1.0):
        confidence = None
    concerns = data.get("concerns")
    concerns = [c for c in concerns if isinstance(c, str)][:MAX_CONCERNS] if isinstance(concerns, list) else []

    return AnalysisPayload(
        agent=agent,
        summary=summary.strip(),
        details=details.strip() if isinstance(details, str) else "",
        metrics=parse_metrics(data.get("metrics"), agent),
        confidence=confidence,
        concerns=concerns,
    )
