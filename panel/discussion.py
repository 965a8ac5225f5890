"""Agreement between consecutive discussion rounds of the panel.

After every round the panel checks how far the team moved since the previous
one. The convergence score blends how much the agents' wording overlaps
(Jaccard over words) with how stable the mean pillar values stayed. An agent
whose own metrics did not change at all has confirmed its assessment and sits
out the remaining rounds.
"""
from __future__ import annotations

from typing import Sequence

import numpy as np

from panel.schemas import PILLARS, AnalysisPayload, TeamConcern

TEXT_WEIGHT = 0.7
METRIC_WEIGHT = 0.3
MIN_WORD_LENGTH = 4
METRIC_SCALE = 10.0


def _words(payload: AnalysisPayload) -> set[str]:
    text = f"{payload.summary} {payload.details}".lower()
    return {w for w in text.split() if len(w) >= MIN_WORD_LENGTH}


def text_similarity(a: AnalysisPayload, b: AnalysisPayload) -> float:
    """Jaccard similarity of the words in two analyses (0 if either is empty)."""
    words_a, words_b = _words(a), _words(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def metric_stability(
    current: Sequence[AnalysisPayload],
    previous: Sequence[AnalysisPayload],
) -> float:
    """1.0 when every pillar's mean is unchanged, falling by 0.1 per point of drift.

    Pillars without values in both rounds are skipped; with none left the
    rounds count as stable.
    """
    drifts = []
    for pillar in PILLARS:
        now = [p.metrics.get(pillar) for p in current if p.metrics.get(pillar) is not None]
        before = [p.metrics.get(pillar) for p in previous if p.metrics.get(pillar) is not None]
        if now and before:
            drifts.append(abs(np.mean(np.abs(now)) - np.mean(np.abs(before))) / METRIC_SCALE)
    if not drifts:
        return 1.0
    return float(np.clip(1.0 - np.mean(drifts), 0.0, 1.0))


def round_convergence(
    current: Sequence[AnalysisPayload],
    previous: Sequence[AnalysisPayload],
) -> float:
    """Convergence score in [0, 1] between two rounds; 0 for the first round."""
    if not previous:
        return 0.0
    similarities = [text_similarity(c, p) for c in current for p in previous]
    avg_similarity = float(np.mean(similarities)) if similarities else 0.0
    return TEXT_WEIGHT * avg_similarity + METRIC_WEIGHT * metric_stability(current, previous)


def metrics_stable(current: AnalysisPayload, previous: AnalysisPayload | None) -> bool:
    """Whether an agent repeated exactly the same 8 values as last round."""
    if previous is None:
        return False
    return current.metrics.by_pillar() == previous.metrics.by_pillar()


def collect_concerns(payloads: Sequence[AnalysisPayload], names: dict[str, str] | None = None) -> list[TeamConcern]:
    """Gather every non-blank concern, attributed to the agent that raised it."""
    names = names or {}
    concerns = []
    for payload in payloads:
        for concern in payload.concerns:
            if concern.strip():
                concerns.append(TeamConcern(agent=names.get(payload.agent, payload.agent), concern=concern.strip()))
    return concerns
