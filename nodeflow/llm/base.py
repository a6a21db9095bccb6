"""Base provider interface for LLM answer generation."""

from __future__ import annotations

import abc
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from ..constants import DEFAULT_LLM_TIMEOUT
from ..errors import (
    AuthError,
    NetworkError,
    ProviderError,
    QuotaError,
    UnknownProviderError,
)

logger = logging.getLogger(__name__)


class GenerationMode(str, Enum):
    """Prompt style; direct answers are shorter and more deterministic."""

    CONTEXT = "context-based"
    DIRECT = "direct"

    @property
    def max_tokens(self) -> int:
        return 300 if self is GenerationMode.DIRECT else 500

    @property
    def temperature(self) -> float:
        return 0.3 if self is GenerationMode.DIRECT else 0.7


def classify_provider_error(
    provider: str, message: str, status_code: Optional[int] = None
) -> ProviderError:
    """Map a failed call to one of the provider error classes."""
    lowered = message.lower()
    if status_code == 401 or "401" in message or "unauthorized" in lowered:
        return AuthError(provider, message, status_code)
    if status_code == 429 or "429" in message or "quota" in lowered:
        return QuotaError(provider, message, status_code)
    if "network" in lowered or "enotfound" in lowered:
        return NetworkError(provider, message, status_code)
    return UnknownProviderError(provider, message, status_code)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"{response.status_code} {response.reason_phrase}".strip()


class LLMProvider(metaclass=abc.ABCMeta):
    """One external answer-generation service.

    Subclasses build the provider-specific request and pull the answer text
    out of the response. Transport failures and non-2xx answers are turned
    into :class:`ProviderError` subclasses here.
    """

    name: str = ""
    default_model: str = ""
    key_prefix: str = ""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = DEFAULT_LLM_TIMEOUT,
    ) -> None:
        self._client = client
        self.timeout = timeout

    def validate_key_format(self, api_key: str) -> bool:
        return bool(api_key) and api_key.startswith(self.key_prefix)

    @abc.abstractmethod
    async def generate(
        self, prompt: str, model: Optional[str], api_key: str, mode: GenerationMode
    ) -> str:
        """Return the generated answer text."""
        raise NotImplementedError

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def _post_json(
        self,
        url: str,
        body: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            async with self._http() as client:
                response = await client.post(
                    url, json=body, headers=headers, params=params
                )
        except httpx.TimeoutException as exc:
            raise NetworkError(self.name, f"Request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(self.name, f"Network error: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.error(
                f"{self.name} API error response ({response.status_code}): {message}"
            )
            raise classify_provider_error(self.name, message, response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise UnknownProviderError(
                self.name, f"Invalid JSON in {self.name} response"
            ) from exc
