from agent.tools.registry import ToolRegistry
from agent.tools.web_search import WebSearchClient, WebSearchInput, build_web_search_tool

__all__ = ["ToolRegistry", "WebSearchClient", "WebSearchInput", "build_web_search_tool"]
