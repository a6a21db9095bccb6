"""LLM providers and gateway."""

from __future__ import annotations

from .anthropic import AnthropicProvider
from .base import GenerationMode, LLMProvider, classify_provider_error
from .gateway import (
    PROVIDERS,
    LLMGateway,
    ProviderName,
    default_model,
    get_provider,
    validate_api_key,
)
from .google import GoogleProvider
from .openai import OpenAIProvider
from .prompts import build_context_prompt, build_direct_prompt

__all__ = [
    "AnthropicProvider",
    "GenerationMode",
    "GoogleProvider",
    "LLMGateway",
    "LLMProvider",
    "OpenAIProvider",
    "PROVIDERS",
    "ProviderName",
    "build_context_prompt",
    "build_direct_prompt",
    "classify_provider_error",
    "default_model",
    "get_provider",
    "validate_api_key",
]
