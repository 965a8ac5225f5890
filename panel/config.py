from __future__ import annotations

from pydantic import BaseModel, Field

PROVIDER = "gemini"
MODEL = "gemini-2.5-flash"
OPENAI_MODEL = "gpt-4o-mini"
TEMPERATURE = 0.2
MAX_CONCURRENT_EVALUATIONS = 10  # commits evaluated at once in batch mode
DEFAULT_DEPTH_MODE = "normal"


class DepthMode(BaseModel):
    """How hard each agent works on a commit before handing in its analysis."""

    max_iterations: int = Field(ge=1)
    clarity_threshold: float = Field(ge=0.0, le=1.0)
    skip_self_refinement: bool = False
    token_budget_per_agent: int = Field(gt=0)
    max_self_questions: int = Field(default=3, ge=1)


# fast: one pass, no refinement (CI, quick reviews)
# normal: a few refinement passes until the analysis is reasonably clear
# deep: many passes with a high clarity bar (tech debt, architecture reviews)
DEPTH_MODES: dict[str, DepthMode] = {
    "fast": DepthMode(
        max_iterations=1,
        clarity_threshold=0.65,
        skip_self_refinement=True,
        token_budget_per_agent=1500,
        max_self_questions=1,
    ),
    "normal": DepthMode(
        max_iterations=3,
        clarity_threshold=0.80,
        token_budget_per_agent=3500,
        max_self_questions=3,
    ),
    "deep": DepthMode(
        max_iterations=8,
        clarity_threshold=0.88,
        token_budget_per_agent=6000,
        max_self_questions=5,
    ),
}


def get_depth_mode(name: str = DEFAULT_DEPTH_MODE, **overrides) -> DepthMode:
    """Return a depth preset, optionally with some fields overridden."""
    try:
        base = DEPTH_MODES[name]
    except KeyError:
        raise ValueError(f"Unknown depth mode {name!r} (expected one of {sorted(DEPTH_MODES)})")
    if not overrides:
        return base
    return DepthMode.model_validate({**base.model_dump(), **overrides})


# Team discussion: every round re-runs the agents with the concerns the team
# raised in the previous one. Early stop on convergence only after min_rounds.
MIN_ROUNDS = 2
MAX_ROUNDS = 3
CONVERGENCE_THRESHOLD = 0.85


class DiscussionConfig(BaseModel):
    min_rounds: int = Field(default=MIN_ROUNDS, ge=1)
    max_rounds: int = Field(default=MAX_ROUNDS, ge=1)
    convergence_threshold: float = Field(default=CONVERGENCE_THRESHOLD, ge=0.0, le=1.0)
