from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field, field_validator
from tavily import AsyncTavilyClient


logger = logging.getLogger("chatdpt.tools")

TOOL_NAME = "webSearch"
NO_RESULTS = "No search results found for your query."
NO_RELEVANT_RESULTS = "No relevant information found."


def _validate_query(query: Any) -> str:
    if not isinstance(query, str) or not query.strip():
        raise ValueError("Invalid search query")
    return query.strip()


class WebSearchInput(BaseModel):
    query: str = Field(..., description="The search query to perform search on.")

    @field_validator("query", mode="before")
    @classmethod
    def _non_blank(cls, value: Any) -> str:
        return _validate_query(value)


def _join_snippets(data: Dict[str, Any]) -> str:
    results: List[Dict[str, Any]] = data.get("results") or []
    if not results:
        return NO_RESULTS
    snippets = [
        item.get("content")
        for item in results
        if isinstance(item.get("content"), str) and item["content"].strip()
    ]
    return "\n\n".join(snippets) or NO_RELEVANT_RESULTS


class WebSearchClient:
    """Search adapter over the Tavily SDK."""

    def __init__(
        self,
        api_key: str,
        max_results: int = 5,
        timeout: float = 10.0,
        client: Optional[Any] = None,
    ) -> None:
        self.max_results = max_results
        self.timeout = timeout
        self._client = client if client is not None else AsyncTavilyClient(api_key=api_key)

    async def search(self, query: str) -> str:
        query = _validate_query(query)
        logger.info("Calling web search for query: %s", query)

        try:
            response = await self._client.search(
                query,
                max_results=self.max_results,
                include_answer=True,
                timeout=self.timeout,
            )
        except Exception as exc:
            raise RuntimeError(f"Web search failed: {exc}") from exc

        if not isinstance(response, dict):
            return NO_RESULTS
        return _join_snippets(response)


def build_web_search_tool(client: WebSearchClient) -> StructuredTool:
    return StructuredTool.from_function(
        coroutine=client.search,
        name=TOOL_NAME,
        description="Search the latest information and realtime data on the internet.",
        args_schema=WebSearchInput,
    )
