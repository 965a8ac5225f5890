"""BACI: Bayesian, team-normalized author quality scores bounded to (1, 10)."""
from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SCORE_FLOOR = 1.0
SCORE_SPAN = 8.99
Z_CLIP = 2.0


class InvalidBaciInput(ValueError):
    """Raised for NaN/infinite values or negative commit counts."""


class BaciConfig(BaseModel):
    quality_prior: float = 5.5              # team prior for quality on the 1-10 scale
    shrinkage_strength: float = Field(default=3.0, gt=0.0)
    volume_sensitivity: float = 0.3
    min_variation_threshold: float = 0.2    # below this commit-count RSD, volume is ignored
    sigmoid_steepness: float = 0.8


class BaciDataPoint(BaseModel):
    author: str = ""
    commits: float
    base_quality: float


class BaciResult(BaseModel):
    author: str
    score: float


def _validate(points: Sequence[BaciDataPoint]) -> None:
    for p in points:
        if not (math.isfinite(p.commits) and math.isfinite(p.base_quality)):
            raise InvalidBaciInput(f"Non-finite BACI input for {p.author or 'author'}: {p}")
        if p.commits < 0:
            raise InvalidBaciInput(f"Negative commit count for {p.author or 'author'}: {p.commits}")


def _volume_multiplier(commits: np.ndarray, config: BaciConfig) -> np.ndarray:
    """Boost busy authors and damp quiet ones, unless the team is volume-homogeneous."""
    mu = commits.mean()
    sigma = commits.std()  # population std
    rsd = sigma / mu if mu > 0 else math.inf
    if rsd < config.min_variation_threshold:
        return np.ones_like(commits)
    if sigma == 0:
        z = np.zeros_like(commits)
    else:
        z = np.clip((commits - mu) / sigma, -Z_CLIP, Z_CLIP)
    return 1.0 + config.volume_sensitivity * np.tanh(z)


def compute_baci_scores(
    commits: Sequence[float],
    base_quality: Sequence[float],
    config: BaciConfig | None = None,
) -> np.ndarray:
    """Vectorized BACI over parallel arrays of commit counts and base quality."""
    config = config or BaciConfig()
    n = np.asarray(commits, dtype=float)
    base = np.asarray(base_quality, dtype=float)
    if n.size == 0:
        return np.array([], dtype=float)

    # 1. shrink low-volume authors towards the team prior
    alpha = n / (n + config.shrinkage_strength)
    shrunk = alpha * base + (1 - alpha) * config.quality_prior

    # 2-3. volume adjustment
    raw = shrunk * _volume_multiplier(n, config)

    # 4. center on the team median and squash
    exponent = np.clip(-config.sigmoid_steepness * (raw - np.median(raw)), -700.0, 700.0)
    normalized = 1.0 / (1.0 + np.exp(exponent))

    # 5. map to (1, 10); the clip keeps the open lower bound under float underflow
    final = SCORE_FLOOR + SCORE_SPAN * normalized
    return np.clip(final, np.nextafter(SCORE_FLOOR, 10.0), SCORE_FLOOR + SCORE_SPAN)


def compute_baci(
    points: Sequence[BaciDataPoint],
    config: BaciConfig | None = None,
) -> list[BaciResult]:
    """Score a cohort of authors. Empty input gives an empty list."""
    if not points:
        return []
    _validate(points)
    scores = compute_baci_scores(
        [p.commits for p in points],
        [p.base_quality for p in points],
        config,
    )
    return [BaciResult(author=p.author, score=float(s)) for p, s in zip(points, scores)]


def team_baci(
    base_by_author: dict[str, float],
    commits_by_author: dict[str, float],
    config: BaciConfig | None = None,
) -> dict[str, BaciResult]:
    """BACI per author from a base quality map and a commit count map."""
    points = [
        BaciDataPoint(author=author, commits=commits_by_author.get(author, 0), base_quality=base)
        for author, base in base_by_author.items()
    ]
    results = compute_baci(points, config)
    logger.info("Computed BACI for %d author(s)", len(results))
    return {r.author: r for r in results}
