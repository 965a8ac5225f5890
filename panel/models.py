from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import google.genai as genai
from dotenv import load_dotenv
from openai import AsyncOpenAI

from panel.config import MODEL, OPENAI_MODEL, PROVIDER, TEMPERATURE
from panel.schemas import ChatMessage, TokenUsage

load_dotenv()


class GenerationError(Exception):
    """Raised when the model call for an agent fails. Not retried here."""


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)


class LLMProvider(ABC):
    @abstractmethod
    async def invoke(self, messages: list[ChatMessage], max_tokens: int) -> LLMResponse:
        ...

    @property
    @abstractmethod
    def model_id(self) -> str:
        ...


class GeminiProvider(LLMProvider):
    def __init__(self, model: str | None = None, temperature: float = TEMPERATURE):
        api_key = os.environ.get("GEMINI_API_KEY")
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY not set. Get one free at https://aistudio.google.com/apikey")
        self._model = model or os.environ.get("PANEL_MODEL") or MODEL
        self._temperature = temperature
        self._client = genai.Client(api_key=api_key)

    @property
    def model_id(self) -> str:
        return self._model

    async def invoke(self, messages: list[ChatMessage], max_tokens: int) -> LLMResponse:
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        contents = [
            genai.types.Content(
                role="model" if m.role == "assistant" else "user",
                parts=[genai.types.Part(text=m.content)],
            )
            for m in messages
            if m.role != "system"
        ]
        resp = await asyncio.to_thread(
            self._client.models.generate_content,
            model=self._model,
            contents=contents,
            config=genai.types.GenerateContentConfig(
                system_instruction=system or None,
                temperature=self._temperature,
                max_output_tokens=max_tokens,
            ),
        )
        meta = resp.usage_metadata
        input_tokens = (meta.prompt_token_count or 0) if meta else 0
        output_tokens = (meta.candidates_token_count or 0) if meta else 0
        return LLMResponse(
            content=resp.text or "",
            model=self._model,
            usage=TokenUsage(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
                calls=1,
            ),
        )


class OpenAIProvider(LLMProvider):
    def __init__(self, model: str | None = None, temperature: float = TEMPERATURE):
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY not set in .env")
        self._model = model or os.environ.get("PANEL_MODEL") or OPENAI_MODEL
        self._temperature = temperature
        self._client = AsyncOpenAI(api_key=api_key)

    @property
    def model_id(self) -> str:
        return self._model

    async def invoke(self, messages: list[ChatMessage], max_tokens: int) -> LLMResponse:
        resp = await self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": m.role, "content": m.content} for m in messages],
            temperature=self._temperature,
            max_tokens=max_tokens,
        )
        usage = resp.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0
        return LLMResponse(
            content=resp.choices[0].message.content or "",
            model=resp.model,
            usage=TokenUsage(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
                calls=1,
            ),
        )


# ── Provider selection ──────────────────────────────────────────────

PROVIDERS: dict[str, type[LLMProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
}


def get_provider(name: str | None = None) -> LLMProvider:
    """Build the configured provider (PANEL_PROVIDER, default gemini)."""
    name = (name or os.environ.get("PANEL_PROVIDER") or PROVIDER).lower()
    if name not in PROVIDERS:
        raise RuntimeError(f"Unsupported LLM provider: {name} (expected one of {sorted(PROVIDERS)})")
    return PROVIDERS[name]()
