from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Iterable

from panel.aggregator import build_consensus
from panel.config import (
    DEFAULT_DEPTH_MODE,
    MAX_CONCURRENT_EVALUATIONS,
    DepthMode,
    DiscussionConfig,
    get_depth_mode,
)
from panel.controller import IterationController
from panel.discussion import collect_concerns, metrics_stable, round_convergence
from panel.models import LLMProvider, get_provider
from panel.prompts import build_initial_prompt, build_refinement_prompt, build_system_prompt
from panel.roles import ALL_ROLES, Role
from panel.schemas import (
    AgentResult,
    CommitContext,
    CommitEvaluation,
    DiscussionRound,
    TeamConcern,
    TokenUsage,
)
from panel.weights import AGENT_EXPERTISE_WEIGHTS, WeightTable

logger = logging.getLogger(__name__)


def make_controller(
    role: Role,
    provider: LLMProvider,
    depth: DepthMode,
    token_usage: TokenUsage | None = None,
    **round_context,
) -> IterationController:
    """Wire a role's prompts into a fresh controller.

    Extra keyword arguments (round number, previous payload, team concerns)
    are passed through to the initial prompt builder.
    """
    return IterationController(
        agent=role.key,
        provider=provider,
        system_prompt=build_system_prompt(role),
        build_initial_prompt=partial(build_initial_prompt, role=role, **round_context),
        build_refinement_prompt=partial(
            build_refinement_prompt, role=role, threshold=depth.clarity_threshold,
        ),
        depth=depth,
        token_usage=token_usage,
    )


def _resolve_depth(depth: DepthMode | str) -> tuple[str, DepthMode]:
    if isinstance(depth, DepthMode):
        return "custom", depth
    return depth, get_depth_mode(depth)


async def _run_round(
    commit: CommitContext,
    roles: list[Role],
    provider: LLMProvider,
    mode: DepthMode,
    usages: dict[str, TokenUsage],
    round_number: int,
    max_rounds: int,
    previous: dict[str, AgentResult],
    concerns: list[TeamConcern],
) -> tuple[dict[str, AgentResult], list[str]]:
    """Run every active role once. Returns results by role key and the failed keys."""
    controllers = [
        make_controller(
            role, provider, mode, usages[role.key],
            round_number=round_number,
            max_rounds=max_rounds,
            previous=previous[role.key].payload if role.key in previous else None,
            team_concerns=concerns,
        )
        for role in roles
    ]
    outcomes = await asyncio.gather(
        *(c.run(commit) for c in controllers),
        return_exceptions=True,
    )

    results: dict[str, AgentResult] = {}
    failed: list[str] = []
    for role, outcome in zip(roles, outcomes):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            logger.error(
                "Agent %s failed on %s in round %d: %s",
                role.key, commit.commit_hash[:8], round_number, outcome, exc_info=outcome,
            )
            failed.append(role.key)
        else:
            results[role.key] = outcome
    return results, failed


async def evaluate_commit(
    commit: CommitContext,
    roles: list[Role] | None = None,
    provider: LLMProvider | None = None,
    depth: DepthMode | str = DEFAULT_DEPTH_MODE,
    weights: WeightTable = AGENT_EXPERTISE_WEIGHTS,
    discussion: DiscussionConfig | None = None,
) -> CommitEvaluation:
    """Run the panel on one commit over one or more discussion rounds.

    Every round runs the active roles concurrently, each with its own previous
    answer and the concerns the whole team raised last round. The discussion
    ends at max_rounds, when the team converges (after min_rounds), or when
    every role has confirmed its scores. The consensus uses each role's latest
    answer. A role whose model call fails is dropped from later rounds.
    """
    roles = roles or ALL_ROLES
    provider = provider or get_provider()
    mode_name, mode = _resolve_depth(depth)
    discussion = discussion or DiscussionConfig()
    names = {role.key: role.name for role in roles}

    usages = {role.key: TokenUsage() for role in roles}
    latest: dict[str, AgentResult] = {}
    previous: dict[str, AgentResult] = {}
    concerns: list[TeamConcern] = []
    failed: list[str] = []
    rounds: list[DiscussionRound] = []
    active = list(roles)
    converged = False

    logger.info(
        "Evaluating %s by %s with %d agents (%s mode, up to %d rounds)",
        commit.commit_hash[:8], commit.author, len(roles), mode_name, discussion.max_rounds,
    )
    for number in range(1, discussion.max_rounds + 1):
        results, round_failed = await _run_round(
            commit, active, provider, mode, usages, number, discussion.max_rounds, previous, concerns,
        )
        latest.update(results)
        failed.extend(key for key in round_failed if key not in failed)

        current = [r.payload for r in results.values()]
        score = round_convergence(current, [r.payload for r in previous.values()])
        converged = bool(previous) and score >= discussion.convergence_threshold
        opted_out = [
            key for key, r in results.items()
            if metrics_stable(r.payload, previous[key].payload if key in previous else None)
        ]
        rounds.append(DiscussionRound(
            number=number,
            results=list(results.values()),
            failed_agents=round_failed,
            convergence=round(min(1.0, max(0.0, score)), 4),
            converged=converged,
            opted_out=opted_out,
        ))
        logger.info(
            "Round %d/%d for %s: %d agent(s), convergence %.1f%%%s",
            number, discussion.max_rounds, commit.commit_hash[:8], len(results), score * 100,
            " (CONVERGED)" if converged else "",
        )

        if converged and number >= discussion.min_rounds:
            logger.info("Stopping after round %d: the team converged", number)
            break
        for key in opted_out:
            logger.info("%s confirmed its assessment (stable metrics), sitting out", key)
        active = [role for role in active if role.key in results and role.key not in opted_out]
        if not active:
            logger.info("Stopping after round %d: no agent left to discuss", number)
            break
        concerns = collect_concerns(current, names)
        previous = results

    final = [latest[role.key] for role in roles if role.key in latest]
    failed = [key for key in failed if key not in latest]
    consensus = build_consensus(
        (r.payload for r in final),
        weights=weights,
        flagged=[r.agent for r in final if r.forced_stop],
    )

    total = TokenUsage()
    for usage in usages.values():
        total.add(usage)

    return CommitEvaluation(
        commit_hash=commit.commit_hash,
        author=commit.author,
        depth_mode=mode_name,
        results=final,
        failed_agents=failed,
        consensus=consensus,
        token_usage=total,
        rounds=rounds,
        converged=converged,
    )


async def evaluate_commits(
    commits: Iterable[CommitContext],
    concurrency: int = MAX_CONCURRENT_EVALUATIONS,
    roles: list[Role] | None = None,
    provider: LLMProvider | None = None,
    depth: DepthMode | str = DEFAULT_DEPTH_MODE,
    weights: WeightTable = AGENT_EXPERTISE_WEIGHTS,
    discussion: DiscussionConfig | None = None,
) -> list[CommitEvaluation]:
    """Evaluate many commits, at most `concurrency` at a time.

    Commits that fail entirely are logged and left out of the result.
    """
    commits = list(commits)
    provider = provider or get_provider()
    semaphore = asyncio.Semaphore(concurrency)

    async def _one(commit: CommitContext) -> CommitEvaluation:
        async with semaphore:
            return await evaluate_commit(commit, roles, provider, depth, weights, discussion)

    outcomes = await asyncio.gather(*(_one(c) for c in commits), return_exceptions=True)

    evaluations: list[CommitEvaluation] = []
    for commit, outcome in zip(commits, outcomes):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            logger.error("Evaluation of %s failed: %s", commit.commit_hash[:8], outcome, exc_info=outcome)
            continue
        evaluations.append(outcome)

    logger.info("Evaluated %d/%d commits", len(evaluations), len(commits))
    return evaluations
