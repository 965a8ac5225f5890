"""Per-agent iterative refinement loop.

An agent writes an initial analysis, has it scored for clarity, and refines it
in the same conversation until it is clear enough or it runs out of
iterations. The control flow is an explicit state machine: `next_transition`
is a pure function of the state, and `IterationController.run` is a small
driver that performs whichever step the transition names.

    INITIAL -> CLARITY_CHECK -> REFINING -> CLARITY_CHECK -> ... -> TERMINATED
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, NamedTuple

from panel.clarity import evaluate_clarity
from panel.config import DepthMode
from panel.models import GenerationError, LLMProvider, LLMResponse
from panel.parsing import parse_analysis
from panel.schemas import AgentResult, ChatMessage, ClarityEvaluation, StopReason, TokenUsage

logger = logging.getLogger(__name__)

FORCED_STOP_FACTOR = 2  # hard cap at 2x max_iterations

InitialPromptBuilder = Callable[[Any], str]
RefinementPromptBuilder = Callable[[Any, str, list[str], float], str]


class IterationLimitError(RuntimeError):
    """Raised when a refinement is requested at the hard iteration cap."""


class Phase(str, Enum):
    INITIAL = "INITIAL"
    CLARITY_CHECK = "CLARITY_CHECK"
    REFINING = "REFINING"
    TERMINATED = "TERMINATED"


class Transition(NamedTuple):
    phase: Phase
    reason: StopReason | None = None


@dataclass
class AgentIterationState:
    agent: str
    max_iterations: int
    clarity_threshold: float
    phase: Phase = Phase.INITIAL
    iteration_count: int = 0
    current_analysis: str | None = None
    clarity: ClarityEvaluation | None = None     # evaluation of current_analysis, if done
    clarity_scores: list[float] = field(default_factory=list)
    history: list[ChatMessage] = field(default_factory=list)
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    stop_reason: StopReason | None = None


def next_transition(state: AgentIterationState, depth: DepthMode) -> Transition:
    """Decide what the agent does next. Rules are checked in priority order."""
    count = state.iteration_count
    if count == 0:
        return Transition(Phase.INITIAL)
    if count >= FORCED_STOP_FACTOR * state.max_iterations:
        return Transition(Phase.TERMINATED, "forced")
    if depth.skip_self_refinement and count >= 1:
        return Transition(Phase.TERMINATED, "single_pass")
    if count >= state.max_iterations:
        return Transition(Phase.TERMINATED, "max_iterations")
    if state.clarity is not None and state.clarity.has_enough_info:
        return Transition(Phase.TERMINATED, "clarity_met")
    if count == 1 and state.clarity is None:
        return Transition(Phase.CLARITY_CHECK)
    if state.clarity is not None and not state.clarity.has_enough_info:
        return Transition(Phase.REFINING)
    return Transition(Phase.CLARITY_CHECK)


class IterationController:
    """Runs one agent's analysis of one commit to completion.

    The controller exclusively owns its state. Token usage is accumulated in a
    TokenUsage object that the caller may pass in, so totals stay readable even
    if the run is cancelled half way.
    """

    def __init__(
        self,
        agent: str,
        provider: LLMProvider,
        system_prompt: str,
        build_initial_prompt: InitialPromptBuilder,
        build_refinement_prompt: RefinementPromptBuilder,
        depth: DepthMode,
        max_iterations: int | None = None,
        clarity_threshold: float | None = None,
        token_usage: TokenUsage | None = None,
    ) -> None:
        self.provider = provider
        self.system_prompt = system_prompt
        self.depth = depth
        self._build_initial_prompt = build_initial_prompt
        self._build_refinement_prompt = build_refinement_prompt
        self._context: Any = None
        self.state = AgentIterationState(
            agent=agent,
            max_iterations=depth.max_iterations if max_iterations is None else max_iterations,
            clarity_threshold=depth.clarity_threshold if clarity_threshold is None else clarity_threshold,
            token_usage=token_usage if token_usage is not None else TokenUsage(),
        )
        if self.state.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

    @property
    def token_usage(self) -> TokenUsage:
        return self.state.token_usage

    # ── Steps ───────────────────────────────────────────────────────

    async def _invoke(self, messages: list[ChatMessage]) -> LLMResponse:
        state = self.state
        try:
            response = await self.provider.invoke(messages, self.depth.token_budget_per_agent)
        except asyncio.CancelledError:
            logger.warning(
                "%s: cancelled during model call at iteration %d, discarding it (%d tokens used so far)",
                state.agent, state.iteration_count, state.token_usage.total_tokens,
            )
            raise
        except Exception as e:
            raise GenerationError(f"{state.agent}: model call failed: {e}") from e
        state.token_usage.add(response.usage)
        return response

    def _append_history(self, messages: list[ChatMessage]) -> None:
        # An empty update keeps the transcript as it is
        if messages:
            self.state.history = [*self.state.history, *messages]

    async def start(self, context: Any) -> str:
        """Generate the first analysis (iteration 1)."""
        state = self.state
        if state.iteration_count:
            raise RuntimeError(f"{state.agent}: start() called twice")
        logger.info(
            "%s: starting initial analysis (iteration 1/%d)", state.agent, state.max_iterations,
        )
        self._context = context
        system = ChatMessage(role="system", content=self.system_prompt)
        user = ChatMessage(role="user", content=self._build_initial_prompt(context))

        response = await self._invoke([system, user])

        state.current_analysis = response.content
        self._append_history([system, user, ChatMessage(role="assistant", content=response.content)])
        state.iteration_count = 1
        return response.content

    def check_clarity(self) -> ClarityEvaluation:
        state = self.state
        evaluation = evaluate_clarity(state.current_analysis or "", state.clarity_threshold)
        state.clarity = evaluation
        state.clarity_scores.append(evaluation.score)
        logger.info(
            "%s: clarity %.1f%% (threshold %.0f%%) - %s",
            state.agent,
            evaluation.score * 100,
            state.clarity_threshold * 100,
            "PASS" if evaluation.has_enough_info else "needs refinement",
        )
        return evaluation

    async def refine(self, self_questions: list[str], clarity_score: float) -> str:
        """Ask the agent to revise its analysis, continuing the same conversation."""
        state = self.state
        if state.iteration_count == 0:
            raise RuntimeError(f"{state.agent}: refine() called before start()")
        if state.iteration_count >= FORCED_STOP_FACTOR * state.max_iterations:
            raise IterationLimitError(
                f"{state.agent}: already at {state.iteration_count} iterations "
                f"(cap {FORCED_STOP_FACTOR}x{state.max_iterations})"
            )
        logger.info(
            "%s: refining analysis (iteration %d/%d)",
            state.agent, state.iteration_count + 1, state.max_iterations,
        )
        questions = self_questions[: self.depth.max_self_questions]
        prompt = self._build_refinement_prompt(
            self._context, state.current_analysis or "", questions, clarity_score,
        )
        user = ChatMessage(role="user", content=prompt)

        response = await self._invoke([*state.history, user])

        state.current_analysis = response.content
        self._append_history([user, ChatMessage(role="assistant", content=response.content)])
        state.iteration_count += 1
        # the stored evaluation described the previous analysis
        state.clarity = None
        return response.content

    # ── Driver ──────────────────────────────────────────────────────

    async def run(self, context: Any) -> AgentResult:
        state = self.state
        while True:
            transition = next_transition(state, self.depth)
            state.phase = transition.phase
            if transition.phase is Phase.TERMINATED:
                state.stop_reason = transition.reason
                break
            if transition.phase is Phase.INITIAL:
                await self.start(context)
            elif transition.phase is Phase.CLARITY_CHECK:
                self.check_clarity()
            else:
                await self.refine(state.clarity.self_questions, state.clarity.score)

        if state.stop_reason == "forced":
            logger.warning(
                "%s: force-stopping at iteration %d (%dx max_iterations=%d)",
                state.agent, state.iteration_count, FORCED_STOP_FACTOR, state.max_iterations,
            )
        else:
            logger.info(
                "%s: done after %d iteration(s) (%s), %d tokens",
                state.agent, state.iteration_count, state.stop_reason, state.token_usage.total_tokens,
            )
        return self.result()

    def result(self) -> AgentResult:
        """Package the final analysis. Only valid once the loop has terminated."""
        state = self.state
        if state.phase is not Phase.TERMINATED:
            raise RuntimeError(f"{state.agent}: result() requested in phase {state.phase.value}")
        raw = state.current_analysis or ""
        return AgentResult(
            agent=state.agent,
            payload=parse_analysis(raw, agent=state.agent),
            iterations=state.iteration_count,
            clarity_score=state.clarity_scores[-1] if state.clarity_scores else None,
            clarity_scores=list(state.clarity_scores),
            stop_reason=state.stop_reason,
            forced_stop=state.stop_reason == "forced",
            token_usage=state.token_usage,
            raw_content=raw,
        )
