"""Shared fixtures: scripted chat model, mock search provider, clean settings."""

from __future__ import annotations

from typing import Any, Dict, List

import pytest
from langchain_core.messages import AIMessage, BaseMessage

from agent.core.memory import ConversationStore
from agent.core.retry import RetryPolicy, fixed_backoff
from agent.tools import ToolRegistry, WebSearchClient, build_web_search_tool
from config.settings import get_settings


class ProviderError(Exception):
    """Mimics the SDK's status error: ``status_code`` plus a parsed JSON ``body``."""

    def __init__(self, message: str, status_code: int = 500, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def tool_use_failed() -> ProviderError:
    return ProviderError(
        "Error code: 400 - tool_use_failed",
        status_code=400,
        body={"error": {"message": "Failed to call a function.", "code": "tool_use_failed"}},
    )


class FakeChatModel:
    """Returns scripted responses in order; exceptions in the script are raised."""

    def __init__(self, script: List[Any]) -> None:
        self.script = list(script)
        self.calls: List[List[BaseMessage]] = []
        self.bound_tools: List[Any] = []
        self.bind_kwargs: Dict[str, Any] = {}
        self.with_tools = True

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = list(tools)
        self.bind_kwargs = kwargs
        return _BoundFake(self)

    async def ainvoke(self, messages, *args, **kwargs):
        return self._next(messages, with_tools=False)

    def _next(self, messages, with_tools: bool):
        self.calls.append(list(messages))
        self.with_tools = with_tools
        if not self.script:
            raise AssertionError("FakeChatModel script exhausted")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class _BoundFake:
    def __init__(self, model: FakeChatModel) -> None:
        self.model = model

    async def ainvoke(self, messages, *args, **kwargs):
        return self.model._next(messages, with_tools=True)


def search_call(query: Any, call_id: str = "call_1") -> AIMessage:
    return AIMessage(
        content="",
        tool_calls=[{"name": "webSearch", "args": {"query": query}, "id": call_id}],
    )


class SearchProvider:
    """Stands in for the Tavily async client; records every search call."""

    def __init__(self, results: List[Dict[str, Any]] = None, error: Exception = None) -> None:
        self.results = results if results is not None else [{"content": "Sunny, 31C"}]
        self.error = error
        self.requests: List[Dict[str, Any]] = []

    async def search(self, query: str, **kwargs: Any) -> Dict[str, Any]:
        self.requests.append({"query": query, **kwargs})
        if self.error is not None:
            raise self.error
        return {"answer": "hint", "results": self.results}

    @property
    def payloads(self) -> List[Dict[str, Any]]:
        return self.requests


@pytest.fixture
def provider() -> SearchProvider:
    return SearchProvider()


@pytest.fixture
def search_client(provider: SearchProvider) -> WebSearchClient:
    return WebSearchClient(api_key="tvly-test", client=provider)


@pytest.fixture
def registry(search_client: WebSearchClient) -> ToolRegistry:
    return ToolRegistry([build_web_search_tool(search_client)])


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def retry(sleeps: List[float]) -> RetryPolicy:
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return RetryPolicy(max_attempts=10, backoff=fixed_backoff(1.0), sleep=_sleep)


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    monkeypatch.setenv("TAVILY_API_KEY", "tvly-test")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
