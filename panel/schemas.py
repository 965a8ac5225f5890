from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ── Pillars ─────────────────────────────────────────────────────────

PILLARS: tuple[str, ...] = (
    "functionalImpact",
    "idealTimeHours",
    "testCoverage",
    "codeQuality",
    "codeComplexity",
    "actualTimeHours",
    "technicalDebtHours",
    "debtReductionHours",
)

HOUR_PILLARS: frozenset[str] = frozenset(
    {"idealTimeHours", "actualTimeHours", "technicalDebtHours", "debtReductionHours"}
)

SCORE_MIN = 0.0
SCORE_MAX = 10.0


class PillarMetrics(BaseModel):
    """The 8 per-commit metrics. Any of them may be missing (None)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    functional_impact: float | None = Field(default=None, ge=SCORE_MIN, le=SCORE_MAX)
    ideal_time_hours: float | None = Field(default=None, ge=0.0)
    test_coverage: float | None = Field(default=None, ge=SCORE_MIN, le=SCORE_MAX)
    code_quality: float | None = Field(default=None, ge=SCORE_MIN, le=SCORE_MAX)
    code_complexity: float | None = Field(default=None, ge=SCORE_MIN, le=SCORE_MAX)
    actual_time_hours: float | None = Field(default=None, ge=0.0)
    technical_debt_hours: float | None = Field(default=None, ge=0.0)
    debt_reduction_hours: float | None = Field(default=None, ge=0.0)

    def get(self, pillar: str) -> float | None:
        """Look up a metric by its camelCase pillar name."""
        return getattr(self, _FIELD_BY_PILLAR[pillar])

    def by_pillar(self) -> dict[str, float | None]:
        return {p: self.get(p) for p in PILLARS}

    def non_null_count(self) -> int:
        return sum(1 for p in PILLARS if self.get(p) is not None)

    @property
    def net_debt_hours(self) -> float | None:
        """Debt added minus debt paid down; a missing side counts as 0."""
        if self.technical_debt_hours is None and self.debt_reduction_hours is None:
            return None
        return round((self.technical_debt_hours or 0.0) - (self.debt_reduction_hours or 0.0), 2)


_FIELD_BY_PILLAR: dict[str, str] = {to_camel(f): f for f in PillarMetrics.model_fields}


# ── Conversation / tokens ───────────────────────────────────────────

class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class TokenUsage(BaseModel):
    """Running token totals. Only ever grows."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    calls: int = 0

    def add(self, other: TokenUsage) -> TokenUsage:
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.input_tokens + other.output_tokens
        self.calls += other.calls
        return self


# ── Agent output ────────────────────────────────────────────────────

class AnalysisPayload(BaseModel):
    agent: str = ""
    summary: str
    details: str = ""
    metrics: PillarMetrics = Field(default_factory=PillarMetrics)
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    concerns: list[str] = Field(default_factory=list)


class ClarityEvaluation(BaseModel):
    score: float = Field(ge=0.0, le=1.0)
    has_enough_info: bool
    self_questions: list[str] = Field(default_factory=list)


StopReason = Literal["forced", "single_pass", "max_iterations", "clarity_met"]


class AgentResult(BaseModel):
    agent: str
    payload: AnalysisPayload
    iterations: int
    clarity_score: float | None = None           # last evaluated, if any
    clarity_scores: list[float] = Field(default_factory=list)
    stop_reason: StopReason
    forced_stop: bool = False                    # hit the 2x iteration cap
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    raw_content: str = ""


# ── Consensus ───────────────────────────────────────────────────────

class MetricContribution(BaseModel):
    agent: str
    metric: str
    value: float | None
    weight: float = Field(ge=0.0, le=1.0)


class ConsensusMetricSet(PillarMetrics):
    commit_score: float | None = Field(default=None, ge=1.0, le=10.0)
    agents: list[str] = Field(default_factory=list)
    flagged_agents: list[str] = Field(default_factory=list)
    contributions: dict[str, list[MetricContribution]] = Field(default_factory=dict)


# ── Discussion ──────────────────────────────────────────────────────

class TeamConcern(BaseModel):
    agent: str                                   # display name of the role that raised it
    concern: str


class DiscussionRound(BaseModel):
    """One round of the panel: who answered, and how far the team moved."""

    number: int                                  # 1-based
    results: list[AgentResult]
    failed_agents: list[str] = Field(default_factory=list)
    convergence: float = Field(default=0.0, ge=0.0, le=1.0)
    converged: bool = False
    opted_out: list[str] = Field(default_factory=list)


# ── Commit evaluation ───────────────────────────────────────────────

class CommitContext(BaseModel):
    commit_hash: str
    author: str = "unknown"
    message: str = ""
    diff: str
    files_changed: list[str] = Field(default_factory=list)
    developer_overview: str | None = None


class CommitEvaluation(BaseModel):
    commit_hash: str
    author: str
    depth_mode: str
    results: list[AgentResult]
    failed_agents: list[str] = Field(default_factory=list)
    consensus: ConsensusMetricSet
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    rounds: list[DiscussionRound] = Field(default_factory=list)
    converged: bool = False
