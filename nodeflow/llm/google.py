"""Google Gemini generateContent provider."""

from __future__ import annotations

from typing import Optional

from ..errors import UnknownProviderError
from .base import GenerationMode, LLMProvider


class GoogleProvider(LLMProvider):
    name = "google"
    default_model = "gemini-2.5-flash"
    key_prefix = "AIza"
    base_url = "https://generativelanguage.googleapis.com/v1beta/models"

    async def generate(
        self, prompt: str, model: Optional[str], api_key: str, mode: GenerationMode
    ) -> str:
        data = await self._post_json(
            f"{self.base_url}/{model or self.default_model}:generateContent",
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "maxOutputTokens": mode.max_tokens,
                    "temperature": mode.temperature,
                },
            },
            params={"key": api_key},
        )
        if not isinstance(data, dict):
            raise UnknownProviderError(
                self.name, "Invalid response format from Gemini API"
            )
        try:
            candidates = data.get("candidates") or []
            content = candidates[0].get("content") if candidates else None
            if not content:
                raise UnknownProviderError(
                    self.name, "Invalid response format from Gemini API"
                )
            # Some responses put the text directly on the content object.
            parts = content.get("parts") or []
            text = parts[0].get("text") if parts else None
            if not text:
                text = content.get("text")
        except (AttributeError, KeyError, IndexError, TypeError) as exc:
            raise UnknownProviderError(
                self.name, "Invalid response format from Gemini API"
            ) from exc
        if not isinstance(text, str) or not text:
            raise UnknownProviderError(
                self.name, "No text content found in Gemini response"
            )
        return text
