"""Anthropic messages provider."""

from __future__ import annotations

from typing import Optional

from ..errors import UnknownProviderError
from .base import GenerationMode, LLMProvider


class AnthropicProvider(LLMProvider):
    name = "anthropic"
    default_model = "claude-3-sonnet-20240229"
    key_prefix = "sk-ant-"
    url = "https://api.anthropic.com/v1/messages"
    api_version = "2023-06-01"

    async def generate(
        self, prompt: str, model: Optional[str], api_key: str, mode: GenerationMode
    ) -> str:
        data = await self._post_json(
            self.url,
            {
                "model": model or self.default_model,
                "max_tokens": mode.max_tokens,
                "temperature": mode.temperature,
                "messages": [{"role": "user", "content": prompt}],
            },
            headers={"x-api-key": api_key, "anthropic-version": self.api_version},
        )
        try:
            answer = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UnknownProviderError(
                self.name, "Invalid response format from Anthropic API"
            ) from exc
        if not isinstance(answer, str) or not answer:
            raise UnknownProviderError(
                self.name, "Invalid response format from Anthropic API: no text content"
            )
        return answer
