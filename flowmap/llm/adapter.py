"""LLM access for map generation.

Every call asks for a single JSON object. Providers only implement the raw
completion; parsing, usage logging and the reply envelope are shared.
"""
import json
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from flowmap.config import Settings, get_settings

logger = structlog.get_logger()

JSON_ONLY_INSTRUCTION = "Respond with a single valid JSON object only. No markdown, no explanation."

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class LLMResponse(BaseModel):
    """Parsed reply plus the text it came from."""

    content: Any = Field(..., description="Parsed JSON, or an error object")
    raw_content: str = Field(..., description="Reply text as returned")
    metadata: dict = Field(default_factory=dict, description="Model and token usage")

    @property
    def parsed(self) -> bool:
        return not (isinstance(self.content, dict) and "error" in self.content)


def extract_json(raw_content: str) -> Any:
    """Parse a JSON reply, tolerating markdown fences and surrounding prose.

    Returns ``{"error": ..., "raw": ...}`` when nothing parseable is found.
    """
    candidates = [raw_content.strip()]

    fenced = _FENCED_BLOCK.search(raw_content)
    if fenced:
        candidates.append(fenced.group(1).strip())

    start = raw_content.find("{")
    end = raw_content.rfind("}")
    if start != -1 and end > start:
        candidates.append(raw_content[start:end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    return {"error": "Failed to parse JSON", "raw": raw_content[:500]}


class LLMAdapter(ABC):
    """A chat model that answers with one JSON object."""

    provider: str
    model: str

    @abstractmethod
    async def _complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int,
        temperature: float,
    ) -> tuple[str, dict]:
        """Reply text and usage metadata for one request."""

    async def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int = 8192,
        temperature: float = 0.2,
    ) -> LLMResponse:
        raw_content, usage = await self._complete(system_prompt, user_message, max_tokens, temperature)
        response = LLMResponse(
            content=extract_json(raw_content),
            raw_content=raw_content,
            metadata={"model": self.model, **usage},
        )

        logger.info(
            "llm_reply",
            provider=self.provider,
            model=self.model,
            parsed=response.parsed,
            reply_length=len(raw_content),
            **usage,
        )
        return response


class AnthropicAdapter(LLMAdapter):
    provider = "anthropic"

    def __init__(self, api_key: str, model: str):
        import anthropic
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model

    async def _complete(self, system_prompt, user_message, max_tokens, temperature):
        # No native JSON mode; the instruction rides on the system prompt
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTION}",
            messages=[{"role": "user", "content": user_message}],
        )
        text = "".join(block.text for block in message.content if block.type == "text")
        return text, {
            "input_tokens": message.usage.input_tokens,
            "output_tokens": message.usage.output_tokens,
            "stop_reason": message.stop_reason,
        }


class OpenAIAdapter(LLMAdapter):
    provider = "openai"

    def __init__(self, api_key: str, model: str):
        from openai import AsyncOpenAI
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def _complete(self, system_prompt, user_message, max_tokens, temperature):
        completion = await self.client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTION}"},
                {"role": "user", "content": user_message},
            ],
        )
        choice = completion.choices[0]
        usage = completion.usage
        return choice.message.content or "", {
            "input_tokens": usage.prompt_tokens if usage else 0,
            "output_tokens": usage.completion_tokens if usage else 0,
            "stop_reason": choice.finish_reason,
        }


def build_adapter(settings: Settings) -> LLMAdapter:
    """Adapter for the configured provider.

    Raises:
        ValueError: if the provider's API key is missing
    """
    if settings.llm_provider == "openai":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY not configured")
        return OpenAIAdapter(api_key=settings.openai_api_key, model=settings.openai_model)

    if not settings.anthropic_api_key:
        raise ValueError("ANTHROPIC_API_KEY not configured")
    return AnthropicAdapter(api_key=settings.anthropic_api_key, model=settings.anthropic_model)


_adapter: Optional[LLMAdapter] = None


def get_llm_adapter() -> LLMAdapter:
    """Process-wide adapter, built on first use."""
    global _adapter

    if _adapter is None:
        _adapter = build_adapter(get_settings())
        logger.info("llm_adapter_initialized", provider=_adapter.provider, model=_adapter.model)

    return _adapter


def reset_adapter():
    """Drop the cached adapter so the next call rebuilds it from settings."""
    global _adapter
    _adapter = None
