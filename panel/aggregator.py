from __future__ import annotations

import logging
from typing import Iterable

import numpy as np

from panel.schemas import HOUR_PILLARS, PILLARS, AnalysisPayload, ConsensusMetricSet, MetricContribution
from panel.weights import AGENT_EXPERTISE_WEIGHTS, WeightTable, get_weight

logger = logging.getLogger(__name__)

COMMIT_SCORE_MIN = 1.0
COMMIT_SCORE_MAX = 10.0
MAX_PENALTY = 4.0


# ── Weighted consensus ──────────────────────────────────────────────

def collect_contributions(
    payloads: Iterable[AnalysisPayload],
    weights: WeightTable = AGENT_EXPERTISE_WEIGHTS,
) -> dict[str, list[MetricContribution]]:
    """One contribution per agent per pillar, null values included.

    If an agent appears more than once, its last payload wins.
    """
    latest: dict[str, AnalysisPayload] = {}
    for payload in payloads:
        latest[payload.agent] = payload

    return {
        pillar: [
            MetricContribution(
                agent=agent,
                metric=pillar,
                value=payload.metrics.get(pillar),
                weight=get_weight(agent, pillar, weights),
            )
            for agent, payload in latest.items()
        ]
        for pillar in PILLARS
    }


def weighted_average(contributions: list[MetricContribution]) -> float | None:
    """Weighted mean of the non-null contributions, or None if there are none."""
    valid = [c for c in contributions if c.value is not None]
    if not valid:
        return None

    values = np.array([c.value for c in valid], dtype=float)
    w = np.array([c.weight for c in valid], dtype=float)
    if w.sum() <= 0:
        logger.warning("Total weight is 0 for %s, using a plain average", valid[0].metric)
        return float(values.mean())
    return float(np.average(values, weights=w))


def _round(pillar: str, value: float) -> float:
    return round(value, 2 if pillar in HOUR_PILLARS else 1)


# ── Commit score ────────────────────────────────────────────────────

def normalized_estimation(actual_time_hours: float, ideal_time_hours: float) -> float:
    """10 when the actual time matches the ideal estimate, falling to 0 at 100% off."""
    if ideal_time_hours <= 0:
        return 5.0
    return max(0.0, 10 - abs(actual_time_hours - ideal_time_hours) / ideal_time_hours * 10)


def rush_penalty(actual_time_minutes: float, code_complexity: float, code_quality: float) -> float:
    """Penalty for fast commits that are complex or sloppy; fades as duration grows."""
    time_factor = 1 / (1 + (actual_time_minutes / 60) ** 2)
    complexity_penalty = (code_complexity / 10) ** 2 * time_factor * 4
    quality_penalty = ((10 - code_quality) / 10) ** 2 * time_factor * 4
    return min(MAX_PENALTY, max(complexity_penalty, quality_penalty))


def commit_score(
    code_quality: float,
    code_complexity: float,
    actual_time_hours: float,
    ideal_time_hours: float,
) -> float:
    estimation = normalized_estimation(actual_time_hours, ideal_time_hours)
    penalty = rush_penalty(actual_time_hours * 60, code_complexity, code_quality)
    score = code_quality * 0.4 - code_complexity * 0.3 + estimation * 0.3 + 3 - penalty
    return float(np.clip(score, COMMIT_SCORE_MIN, COMMIT_SCORE_MAX))


# ── Consensus set ───────────────────────────────────────────────────

def build_consensus(
    payloads: Iterable[AnalysisPayload],
    weights: WeightTable = AGENT_EXPERTISE_WEIGHTS,
    flagged: Iterable[str] = (),
) -> ConsensusMetricSet:
    """Reconcile every agent's metrics for one commit into one metric set.

    Pillars nobody scored are left out; the commit score is only derived when
    quality, complexity and both time figures are available.
    """
    payloads = list(payloads)
    contributions = collect_contributions(payloads, weights)

    values: dict[str, float] = {}
    for pillar, contribs in contributions.items():
        avg = weighted_average(contribs)
        if avg is None:
            logger.warning("No agent scored %s, leaving it out of the consensus", pillar)
            continue
        # rounding must not push the value outside what the agents said
        known = [c.value for c in contribs if c.value is not None]
        values[pillar] = float(np.clip(_round(pillar, avg), min(known), max(known)))

    score = None
    if all(p in values for p in ("codeQuality", "codeComplexity", "actualTimeHours", "idealTimeHours")):
        score = round(commit_score(
            values["codeQuality"],
            values["codeComplexity"],
            values["actualTimeHours"],
            values["idealTimeHours"],
        ), 1)

    agents = list(dict.fromkeys(p.agent for p in payloads))
    consensus = ConsensusMetricSet.model_validate({
        **values,
        "commitScore": score,
        "agents": agents,
        "flaggedAgents": [a for a in dict.fromkeys(flagged) if a in agents],
        "contributions": contributions,
    })
    logger.info(
        "Consensus over %d agent(s): %d/%d pillars, commit score %s",
        len(agents), len(values), len(PILLARS), score,
    )
    return consensus
