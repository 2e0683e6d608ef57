"""Unified LLM client — tries OpenAI first, falls back to Anthropic."""

import asyncio
import json
import logging

from openai import AsyncOpenAI
import anthropic

from app.config import settings

logger = logging.getLogger(__name__)


class LLMClient:
    """Unified async LLM client with OpenAI primary + Anthropic fallback.

    Every provider call is bounded by ``settings.llm_timeout_seconds``; a timeout
    is treated like any other provider failure.
    """

    def __init__(self, timeout: float | None = None):
        self._openai = None
        self._anthropic = None
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds

        if settings.openai_api_key:
            self._openai = AsyncOpenAI(api_key=settings.openai_api_key)
        if settings.anthropic_api_key:
            self._anthropic = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)

    async def complete(
        self,
        system: str,
        user: str,
        *,
        max_tokens: int = 1000,
        temperature: float = 0,
        json_mode: bool = False,
    ) -> str:
        """Get a completion from the best available LLM.

        Raises:
            RuntimeError if every configured provider fails or none is configured.
        """
        errors = []
        messages = [{"role": "user", "content": user}]

        if self._openai:
            try:
                kwargs: dict = {
                    "model": "gpt-4o-mini",
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "messages": [{"role": "system", "content": system}] + messages,
                }
                if json_mode:
                    kwargs["response_format"] = {"type": "json_object"}
                response = await asyncio.wait_for(
                    self._openai.chat.completions.create(**kwargs), timeout=self.timeout
                )
                return response.choices[0].message.content.strip()
            except Exception as e:
                errors.append(f"OpenAI: {e!r}")
                logger.warning(f"OpenAI failed, trying Anthropic: {e!r}")

        if self._anthropic:
            try:
                response = await asyncio.wait_for(
                    self._anthropic.messages.create(
                        model="claude-sonnet-4-5-20250929",
                        max_tokens=max_tokens,
                        temperature=temperature,
                        system=system,
                        messages=messages,
                    ),
                    timeout=self.timeout,
                )
                return response.content[0].text.strip()
            except Exception as e:
                errors.append(f"Anthropic: {e!r}")
                logger.warning(f"Anthropic also failed: {e!r}")

        if not errors:
            errors.append("no provider configured")
        raise RuntimeError(f"All LLM providers failed: {'; '.join(errors)}")

    async def complete_json(self, system: str, user: str, **kwargs) -> dict:
        """Completion parsed as a JSON object. Raises on provider or parse failure."""
        raw = await self.complete(system, user, json_mode=True, **kwargs)
        # Strip markdown code fences if present
        if raw.startswith("```"):
            lines = [l for l in raw.split("\n") if not l.strip().startswith("```")]
            raw = "\n".join(lines).strip()
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError("LLM response is not a JSON object")
        return parsed


# Singleton
llm_client = LLMClient()
