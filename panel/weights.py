"""Role x pillar expertise weights used to weigh each agent's vote.

Every role scores all 8 pillars but is trusted to a different degree on each:
~40-45% on its primary pillars, ~15-20% on secondary ones, ~8-13% elsewhere.
Each pillar's column sums to 1.0 across the five roles.
"""
from __future__ import annotations

import logging

from panel.schemas import PILLARS

logger = logging.getLogger(__name__)

WeightTable = dict[str, dict[str, float]]

UNKNOWN_ROLE_WEIGHT = 0.2  # equal share across five roles
WEIGHT_TOLERANCE = 0.001

AGENT_EXPERTISE_WEIGHTS: WeightTable = {
    "business-analyst": {
        "functionalImpact": 0.435,    # primary
        "idealTimeHours": 0.417,      # primary
        "testCoverage": 0.12,
        "codeQuality": 0.083,
        "codeComplexity": 0.083,
        "actualTimeHours": 0.136,
        "technicalDebtHours": 0.13,
        "debtReductionHours": 0.13,
    },
    "sdet": {
        "functionalImpact": 0.13,
        "idealTimeHours": 0.083,
        "testCoverage": 0.4,          # primary
        "codeQuality": 0.167,
        "codeComplexity": 0.125,
        "actualTimeHours": 0.091,
        "technicalDebtHours": 0.13,
        "debtReductionHours": 0.13,
    },
    "developer-author": {
        "functionalImpact": 0.13,
        "idealTimeHours": 0.167,
        "testCoverage": 0.12,
        "codeQuality": 0.125,
        "codeComplexity": 0.167,
        "actualTimeHours": 0.455,     # primary
        "technicalDebtHours": 0.13,
        "debtReductionHours": 0.13,
    },
    "senior-architect": {
        "functionalImpact": 0.174,
        "idealTimeHours": 0.208,
        "testCoverage": 0.16,
        "codeQuality": 0.208,
        "codeComplexity": 0.417,      # primary
        "actualTimeHours": 0.182,
        "technicalDebtHours": 0.435,  # primary
        "debtReductionHours": 0.435,  # primary
    },
    "developer-reviewer": {
        "functionalImpact": 0.13,
        "idealTimeHours": 0.125,
        "testCoverage": 0.2,
        "codeQuality": 0.417,         # primary
        "codeComplexity": 0.208,
        "actualTimeHours": 0.136,
        "technicalDebtHours": 0.174,
        "debtReductionHours": 0.174,
    },
}

_ROLE_ALIASES = {
    "business analyst": "business-analyst",
    "sdet (test automation engineer)": "sdet",
    "test automation engineer": "sdet",
    "developer (author)": "developer-author",
    "developer author": "developer-author",
    "senior architect": "senior-architect",
    "developer (reviewer)": "developer-reviewer",
    "developer reviewer": "developer-reviewer",
}


def validate_weights(table: WeightTable = AGENT_EXPERTISE_WEIGHTS) -> list[str]:
    """Return a list of problems; empty means every pillar column sums to 1.0."""
    errors = []
    for pillar in PILLARS:
        total = sum(weights.get(pillar, 0.0) for weights in table.values())
        # the table is written to 3 decimals, so 0.999 must pass
        if round(abs(total - 1.0), 6) > WEIGHT_TOLERANCE:
            errors.append(f"{pillar}: weights sum to {total:.3f} (expected 1.0)")
    for role, weights in table.items():
        for pillar, w in weights.items():
            if not 0.0 <= w <= 1.0:
                errors.append(f"{role}.{pillar}: weight {w} outside [0, 1]")
    return errors


def normalize_role(name: str, table: WeightTable = AGENT_EXPERTISE_WEIGHTS) -> str:
    """Map display names ("Senior Architect") to table keys ("senior-architect")."""
    if name in table:
        return name
    key = name.lower().strip()
    if key in table:
        return key
    return _ROLE_ALIASES.get(key, name)


def get_weight(role: str, pillar: str, table: WeightTable = AGENT_EXPERTISE_WEIGHTS) -> float:
    weights = table.get(normalize_role(role, table))
    if weights is None:
        logger.warning("Unknown agent role %r, using equal weight %.2f", role, UNKNOWN_ROLE_WEIGHT)
        return UNKNOWN_ROLE_WEIGHT
    return weights.get(pillar, 0.0)


def weight_label(weight: float) -> str:
    """PRIMARY / SECONDARY / TERTIARY label shown to agents in their prompt."""
    pct = f"{weight * 100:.1f}%"
    if weight >= 0.4:
        return f"PRIMARY ({pct})"
    if weight >= 0.15:
        return f"SECONDARY ({pct})"
    return f"TERTIARY ({pct})"
