"""Default prompt builders for panel agents.

The iteration controller only needs two callables, one for the first prompt
and one for refinement prompts; these are the ones the runner wires in.
"""
from __future__ import annotations

from panel.roles import Role
from panel.schemas import PILLARS, AnalysisPayload, CommitContext, TeamConcern
from panel.weights import AGENT_EXPERTISE_WEIGHTS, weight_label

MAX_DIFF_CHARS = 30_000

METRIC_DEFINITIONS: dict[str, str] = {
    "functionalImpact": "0-10, how much user-facing or business value the change delivers",
    "idealTimeHours": "hours a competent developer should need for this requirement",
    "testCoverage": "0-10, how well the changed behaviour is covered by automated tests",
    "codeQuality": "0-10, readability, correctness and maintainability of the code",
    "codeComplexity": "0-10, how complex the change is to understand (10 = very complex)",
    "actualTimeHours": "hours the change most likely took to implement",
    "technicalDebtHours": "hours of future work the change introduces as debt",
    "debtReductionHours": "hours of existing debt the change pays down",
}

RESPONSE_FORMAT = """\
Respond with ONLY a JSON object in this exact format (no other text):
{
  "summary": "2-3 sentence verdict naming the main concerns and scores",
  "details": "your reasoning: concrete files, functions and numbers, and why they lead to your scores",
  "metrics": {
%s
  },
  "concerns": ["up to 5 specific concerns"],
  "confidence": number_between_0_and_1
}
Use null for a metric only when the diff gives you no basis at all to estimate it.
"""


def build_system_prompt(role: Role) -> str:
    weights = AGENT_EXPERTISE_WEIGHTS.get(role.key, {})
    metric_lines = ",\n".join(
        f'    "{p}": number_or_null  // {METRIC_DEFINITIONS[p]}; your weight: {weight_label(weights.get(p, 0.0))}'
        for p in PILLARS
    )
    return role.system_prompt + "\n" + RESPONSE_FORMAT % metric_lines


def _round_label(round_number: int, max_rounds: int) -> str:
    if round_number <= 1:
        return "Initial Analysis"
    if round_number >= max_rounds:
        return "Final Review"
    return "Team Discussion"


def _discussion_section(previous: AnalysisPayload | None, team_concerns: list[TeamConcern]) -> str:
    lines = ["TEAM DISCUSSION FROM THE PREVIOUS ROUND"]
    if previous is not None:
        scores = ", ".join(f"{p}={previous.metrics.get(p)}" for p in PILLARS)
        lines.append(f"Your previous summary: {previous.summary}")
        lines.append(f"Your previous scores: {scores}")
    if team_concerns:
        lines.append("Concerns raised by the team:")
        lines.extend(f"{i}. [{c.agent}] {c.concern}" for i, c in enumerate(team_concerns, 1))
    lines.append(
        "Refine, do not repeat, your previous analysis. Address the concerns that touch your "
        "expertise and move your scores up or down from where they were if the discussion "
        "changed your view. Say in the summary what changed and why."
    )
    return "\n".join(lines)


def build_initial_prompt(
    context: CommitContext,
    *,
    role: Role,
    round_number: int = 1,
    max_rounds: int = 1,
    previous: AnalysisPayload | None = None,
    team_concerns: list[TeamConcern] | None = None,
) -> str:
    diff = context.diff
    if len(diff) > MAX_DIFF_CHARS:
        diff = diff[:MAX_DIFF_CHARS] + "\n... [diff truncated]"
    files = ", ".join(context.files_changed) or "unknown files"

    parts = [
        f"ROUND {round_number}/{max_rounds}: {_round_label(round_number, max_rounds)}",
        f"COMMIT: {context.commit_hash}",
        f"AUTHOR: {context.author}",
        f"MESSAGE: {context.message or '(no message)'}",
        f"FILES CHANGED: {files}",
    ]
    # the overview only frames the first, independent analysis
    if context.developer_overview and round_number == 1:
        parts.append(f"DEVELOPER OVERVIEW:\n{context.developer_overview}")
    parts.append(f"DIFF:\n{diff}")
    if round_number > 1 and (previous is not None or team_concerns):
        parts.append(_discussion_section(previous, team_concerns or []))
    parts.append(
        f"Evaluate this commit as the {role.name}, scoring all {len(PILLARS)} metrics. "
        "Respond with a single JSON object and nothing else."
    )
    return "\n\n".join(parts)


def build_refinement_prompt(
    context: CommitContext,
    previous_analysis: str,
    self_questions: list[str],
    clarity_score: float,
    *,
    role: Role,
    threshold: float,
) -> str:
    questions = "\n".join(f"{i}. {q}" for i, q in enumerate(self_questions, 1)) or "(none)"
    return (
        f"Your previous analysis of commit {context.commit_hash} had a clarity score of "
        f"{clarity_score * 100:.1f}% (threshold: {threshold * 100:.1f}%).\n\n"
        f"PREVIOUS ANALYSIS:\n{previous_analysis}\n\n"
        f"Answer these questions in a revised analysis:\n{questions}\n\n"
        f"Keep the perspective of the {role.name}. Return the complete revised JSON object, "
        "not just the changes."
    )
