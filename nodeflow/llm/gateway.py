"""Uniform entry point for calling LLM providers."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Optional, Type

import httpx

from ..constants import DEFAULT_LLM_TIMEOUT
from ..errors import InvalidKeyFormatError, UnknownProviderError
from .anthropic import AnthropicProvider
from .base import GenerationMode, LLMProvider
from .google import GoogleProvider
from .openai import OpenAIProvider

logger = logging.getLogger(__name__)


class ProviderName(str, Enum):
    OPENAI = "openai"
    GOOGLE = "google"
    ANTHROPIC = "anthropic"


PROVIDERS: Dict[ProviderName, Type[LLMProvider]] = {
    ProviderName.OPENAI: OpenAIProvider,
    ProviderName.GOOGLE: GoogleProvider,
    ProviderName.ANTHROPIC: AnthropicProvider,
}

# Unknown providers only get a length sanity check on their keys.
MIN_UNKNOWN_KEY_LENGTH = 11


def _lookup(provider: Optional[str]) -> Optional[Type[LLMProvider]]:
    if not provider:
        return None
    try:
        return PROVIDERS[ProviderName(provider.lower())]
    except ValueError:
        return None


def validate_api_key(api_key: Optional[str], provider: Optional[str]) -> bool:
    """Check that ``api_key`` has the format ``provider`` expects."""
    if not api_key:
        return False
    provider_cls = _lookup(provider)
    if provider_cls is None:
        return len(api_key) >= MIN_UNKNOWN_KEY_LENGTH
    return provider_cls().validate_key_format(api_key)


def default_model(provider: Optional[str]) -> Optional[str]:
    provider_cls = _lookup(provider)
    return provider_cls.default_model if provider_cls else None


def get_provider(
    provider: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = DEFAULT_LLM_TIMEOUT,
) -> LLMProvider:
    """Factory function to get the provider implementation for ``provider``."""
    provider_cls = _lookup(provider)
    if provider_cls is None:
        raise UnknownProviderError(provider, f"Unsupported AI provider: {provider}")
    return provider_cls(client=client, timeout=timeout)


class LLMGateway:
    """Validates keys and dispatches prompts to the selected provider.

    The gateway never substitutes text of its own: every failure surfaces as
    a :class:`~nodeflow.errors.ProviderError` and callers decide how to fall
    back.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = DEFAULT_LLM_TIMEOUT,
    ) -> None:
        self._client = client
        self._timeout = timeout

    async def generate(
        self,
        prompt: str,
        provider: str,
        model: Optional[str],
        api_key: str,
        mode: GenerationMode = GenerationMode.CONTEXT,
    ) -> str:
        if not validate_api_key(api_key, provider):
            raise InvalidKeyFormatError(
                provider, f"Invalid API key format for {provider}"
            )
        impl = get_provider(provider, client=self._client, timeout=self._timeout)
        logger.info(
            f"Calling {impl.name} ({model or impl.default_model}) in {mode.value} mode, "
            f"prompt length {len(prompt)}"
        )
        answer = await impl.generate(prompt, model, api_key, mode)
        logger.info(f"{impl.name} answered with {len(answer)} characters")
        return answer
