"""Per-author statistics over consensus metric sets, and the team report."""
from __future__ import annotations

import logging
from typing import Sequence

from pydantic import BaseModel, Field

from panel.schemas import ConsensusMetricSet
from scoring.baci import BaciConfig, BaciResult, team_baci

logger = logging.getLogger(__name__)

STRONG_SCORE = 7.0
SIMPLE_COMPLEXITY = 4.0
MAX_HIGHLIGHTS = 2


class AuthorStats(BaseModel):
    commits: int
    quality: float = 0.0
    complexity: float = 0.0
    tests: float = 0.0
    impact: float = 0.0
    time: float = 0.0
    tech_debt: float = 0.0       # total net debt hours, not an average
    commit_score: float = 0.0


class AuthorReport(BaseModel):
    author: str
    stats: AuthorStats
    base_quality: float
    baci: BaciResult | None = None
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


def aggregate_author_stats(consensus_sets: Sequence[ConsensusMetricSet]) -> AuthorStats:
    """Average one author's consensus metrics.

    Commits with no consensus metric at all are not counted in the averages;
    missing pillars count as 0. Raises ValueError if no commit has metrics.
    """
    valid = [c for c in consensus_sets if c.non_null_count() > 0]
    if not valid:
        raise ValueError("No valid metrics found in evaluations")

    def avg(values, digits: int = 1) -> float:
        return round(sum(v or 0.0 for v in values) / len(valid), digits)

    tech_debt = sum(c.net_debt_hours or 0.0 for c in valid)
    return AuthorStats(
        commits=len(consensus_sets),
        quality=avg(c.code_quality for c in valid),
        complexity=avg(c.code_complexity for c in valid),
        tests=avg(c.test_coverage for c in valid),
        impact=avg(c.functional_impact for c in valid),
        time=avg((c.actual_time_hours for c in valid), 2),
        tech_debt=round(tech_debt, 2),
        commit_score=avg(c.commit_score for c in valid),
    )


def base_quality(stats: AuthorStats) -> float:
    """Base quality fed into BACI: mean of the non-zero headline figures."""
    scores = [s for s in (stats.commit_score, stats.tests, stats.impact) if s > 0]
    return sum(scores) / len(scores) if scores else 0.0


def identify_strengths_weaknesses(stats: AuthorStats) -> tuple[list[str], list[str]]:
    # complexity is inverted: lower is better
    metrics = [
        ("Code Quality", stats.quality, stats.quality >= STRONG_SCORE),
        ("Code Simplicity", 10 - stats.complexity, stats.complexity <= SIMPLE_COMPLEXITY),
        ("Test Coverage", stats.tests, stats.tests >= STRONG_SCORE),
        ("Business Impact", stats.impact, stats.impact >= STRONG_SCORE),
    ]
    metrics.sort(key=lambda m: m[1], reverse=True)
    strengths = [name for name, _, good in metrics if good][:MAX_HIGHLIGHTS]
    weaknesses = [name for name, _, good in metrics if not good][:MAX_HIGHLIGHTS]
    return strengths, weaknesses


def team_report(
    consensus_by_author: dict[str, Sequence[ConsensusMetricSet]],
    config: BaciConfig | None = None,
) -> dict[str, AuthorReport]:
    """Stats, highlights and BACI for every author that has usable metrics."""
    stats: dict[str, AuthorStats] = {}
    for author, sets in consensus_by_author.items():
        try:
            stats[author] = aggregate_author_stats(sets)
        except ValueError:
            logger.warning("Skipping %s: no commit with consensus metrics", author)

    bases = {author: base_quality(s) for author, s in stats.items()}
    baci = team_baci(bases, {author: s.commits for author, s in stats.items()}, config)

    reports = {}
    for author, s in stats.items():
        strengths, weaknesses = identify_strengths_weaknesses(s)
        reports[author] = AuthorReport(
            author=author,
            stats=s,
            base_quality=round(bases[author], 2),
            baci=baci.get(author),
            strengths=strengths,
            weaknesses=weaknesses,
        )
    return reports
