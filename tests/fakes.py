"""Scripted stand-ins for the model provider, plus canned agent replies."""
from __future__ import annotations

import asyncio
import json

from panel.models import LLMProvider, LLMResponse
from panel.schemas import ChatMessage, TokenUsage

FULL_METRICS = {
    "functionalImpact": 7,
    "idealTimeHours": 3,
    "testCoverage": 4,
    "codeQuality": 8,
    "codeComplexity": 6,
    "actualTimeHours": 4,
    "technicalDebtHours": 1.5,
    "debtReductionHours": 0.5,
}

CLEAR_ANALYSIS = json.dumps({
    "summary": "Adds retry handling to the payment client; code quality 8/10 but untested failure paths are a risk.",
    "details": (
        "The new RetryPolicy class in payments/client.py wraps the charge() method with exponential backoff. "
        "Because the retry loop swallows TimeoutError after 3 attempts, callers cannot tell a declined card "
        "from a network failure, which leads to the complexity score of 6. Only 2 of the 5 new branches are "
        "exercised by tests, so test coverage is rated 4. I estimated 3 hours of ideal time for this change."
    ),
    "metrics": FULL_METRICS,
    "concerns": ["TimeoutError is swallowed", "failure branches untested"],
    "confidence": 0.8,
})

VAGUE_ANALYSIS = json.dumps({
    "summary": "Looks good",
    "details": "Fine.",
    "metrics": FULL_METRICS,
})

MALFORMED_ANALYSIS = "I think this commit is fine, scores around 7 overall."


class ScriptedProvider(LLMProvider):
    """Replies from a list (last reply repeats) or from a callable on the messages.

    A reply that is an exception instance is raised instead of returned.
    """

    def __init__(self, replies, input_tokens: int = 100, output_tokens: int = 50, delay: float = 0.0):
        self.replies = replies
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.delay = delay
        self.calls: list[list[ChatMessage]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def model_id(self) -> str:
        return "scripted"

    def _next_reply(self, messages: list[ChatMessage]):
        if callable(self.replies):
            return self.replies(messages)
        return self.replies[min(len(self.calls) - 1, len(self.replies) - 1)]

    async def invoke(self, messages: list[ChatMessage], max_tokens: int) -> LLMResponse:
        self.calls.append(list(messages))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            reply = self._next_reply(messages)
            if isinstance(reply, BaseException):
                raise reply
            return LLMResponse(
                content=reply,
                model="scripted",
                usage=TokenUsage(
                    input_tokens=self.input_tokens,
                    output_tokens=self.output_tokens,
                    total_tokens=self.input_tokens + self.output_tokens,
                    calls=1,
                ),
            )
        finally:
            self.in_flight -= 1


class HangingProvider(ScriptedProvider):
    """Answers the first call, then blocks forever."""

    def __init__(self, first_reply: str):
        super().__init__([first_reply])
        self.blocked = asyncio.Event()

    async def invoke(self, messages: list[ChatMessage], max_tokens: int) -> LLMResponse:
        if self.calls:
            self.calls.append(list(messages))
            self.blocked.set()
            await asyncio.Event().wait()
        return await super().invoke(messages, max_tokens)
