"""Shared fixtures: an in-memory repository and a mocked LLM endpoint."""

from typing import Callable, List

import httpx
import pytest

from nodeflow.config import NodeflowConfig
from nodeflow.llm import LLMGateway
from nodeflow.nodes import ExecutionContext
from nodeflow.persistence import InMemoryRepository

LLM_ANSWER = "LLM answer"


def openai_reply(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": LLM_ANSWER}}]})


class FakeLLM:
    """Routes gateway traffic through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.reply: Callable[[httpx.Request], httpx.Response] = openai_reply
        client = httpx.AsyncClient(transport=httpx.MockTransport(self._handle))
        self.gateway = LLMGateway(client=client)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def context(repository, llm) -> ExecutionContext:
    return ExecutionContext(
        repository=repository, gateway=llm.gateway, settings=NodeflowConfig()
    )
