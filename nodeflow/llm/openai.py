"""OpenAI chat-completions provider."""

from __future__ import annotations

from typing import Optional

from ..errors import UnknownProviderError
from .base import GenerationMode, LLMProvider


class OpenAIProvider(LLMProvider):
    name = "openai"
    default_model = "gpt-3.5-turbo"
    key_prefix = "sk-"
    url = "https://api.openai.com/v1/chat/completions"

    async def generate(
        self, prompt: str, model: Optional[str], api_key: str, mode: GenerationMode
    ) -> str:
        data = await self._post_json(
            self.url,
            {
                "model": model or self.default_model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": mode.max_tokens,
                "temperature": mode.temperature,
            },
            headers={"Authorization": f"Bearer {api_key.strip()}"},
        )
        try:
            answer = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UnknownProviderError(
                self.name, "Invalid response format from OpenAI API"
            ) from exc
        # Refusals come back with a null content field.
        if not isinstance(answer, str) or not answer:
            raise UnknownProviderError(
                self.name, "Invalid response format from OpenAI API: no text content"
            )
        return answer
