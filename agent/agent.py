from __future__ import annotations

import logging
from typing import Any, List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_groq import ChatGroq

from agent.core.memory import ConversationStore
from agent.core.prompt import new_conversation
from agent.core.retry import RetryPolicy, fixed_backoff
from agent.tools import ToolRegistry, WebSearchClient, build_web_search_tool
from config.settings import Settings, get_settings


logger = logging.getLogger("chatdpt.agent")

MAX_ATTEMPTS_APOLOGY = (
    "I apologize, but I could not process your request after multiple attempts. "
    "Please try again or rephrase your question."
)
FALLBACK_EMPTY_APOLOGY = (
    "I apologize, but I cannot process this request right now. "
    "Please try rephrasing your question."
)
TOOL_FAILURE_APOLOGY = (
    "I apologize, but I'm having trouble processing your request. This might be due to "
    "the complexity of the question or current system limitations. "
    "Please try rephrasing or ask something else."
)
NO_SEARCH_NOTE = (
    "Note: Unable to search the web. Please provide the best answer you can based on "
    "your knowledge. If you don't know, say so clearly."
)


class CompletionError(RuntimeError):
    """The completion API kept failing until the attempt budget ran out."""


def is_tool_use_failure(exc: BaseException) -> bool:
    """True for the provider's 400 ``tool_use_failed`` error."""
    if getattr(exc, "status_code", None) != 400:
        return False
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        inner = body.get("error") if isinstance(body.get("error"), dict) else body
        return inner.get("code") == "tool_use_failed"
    return "tool_use_failed" in str(exc)


def message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def _with_search_note(history: List[BaseMessage]) -> List[BaseMessage]:
    messages = list(history)
    for index in range(len(messages) - 1, -1, -1):
        if isinstance(messages[index], HumanMessage):
            original = message_text(messages[index])
            messages[index] = HumanMessage(content=f"{original}\n\n{NO_SEARCH_NOTE}")
            break
    return messages


class Assistant:
    """Tool-calling loop around the chat model and the conversation store."""

    def __init__(
        self,
        llm: BaseChatModel,
        store: ConversationStore,
        tools: ToolRegistry,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self.llm = llm
        self.store = store
        self.tools = tools
        self.retry = retry or RetryPolicy()
        self._llm_with_tools = llm.bind_tools(tools.definitions(), tool_choice="auto")

    async def generate(self, message: str, thread_id: str) -> str:
        history = self.store.get(thread_id)
        if history is None:
            history = new_conversation()
        history.append(HumanMessage(content=message))

        for attempt in range(1, self.retry.max_attempts + 1):
            try:
                response = await self._llm_with_tools.ainvoke(history)
            except Exception as exc:
                logger.error("Error in completion attempt %s for thread %s: %s", attempt, thread_id, exc)
                if is_tool_use_failure(exc):
                    return await self._answer_without_tools(history, thread_id)
                if self.retry.exhausted(attempt):
                    raise CompletionError(
                        f"Completion failed after {attempt} attempts: {exc}"
                    ) from exc
                await self.retry.wait(attempt)
                continue

            history.append(response)
            tool_calls = getattr(response, "tool_calls", None) or []
            invalid_calls = getattr(response, "invalid_tool_calls", None) or []

            if not tool_calls and not invalid_calls:
                self.store.save(thread_id, history)
                return message_text(response)

            for call in tool_calls:
                logger.info("Running tool %s (call %s) for thread %s", call.get("name"), call.get("id"), thread_id)
                history.append(await self.tools.execute(call))
            for call in invalid_calls:
                history.append(self.tools.reject(call))

        logger.error("Max attempts (%s) reached for thread: %s", self.retry.max_attempts, thread_id)
        return MAX_ATTEMPTS_APOLOGY

    async def _answer_without_tools(self, history: List[BaseMessage], thread_id: str) -> str:
        logger.warning("Tool calling failed for thread %s, falling back to direct response", thread_id)
        try:
            fallback = await self.llm.ainvoke(_with_search_note(history))
        except Exception as exc:
            logger.error("Fallback completion failed for thread %s: %s", thread_id, exc)
            return TOOL_FAILURE_APOLOGY

        text = message_text(fallback) or FALLBACK_EMPTY_APOLOGY
        history.append(AIMessage(content=text))
        self.store.save(thread_id, history)
        return text


def build_llm(settings: Settings) -> ChatGroq:
    # SDK retries off; RetryPolicy is the only retry layer
    return ChatGroq(
        model=settings.groq_model,
        temperature=settings.temperature,
        api_key=settings.groq_api_key,
        max_retries=0,
    )


def build_assistant(
    settings: Optional[Settings] = None,
    store: Optional[ConversationStore] = None,
    llm: Optional[BaseChatModel] = None,
    **search_options: Any,
) -> Assistant:
    settings = settings or get_settings()
    settings.require_credentials()

    search_client = WebSearchClient(
        api_key=settings.tavily_api_key,
        max_results=settings.search_max_results,
        timeout=settings.search_timeout,
        **search_options,
    )
    return Assistant(
        llm=llm if llm is not None else build_llm(settings),
        store=store if store is not None else ConversationStore(ttl_seconds=settings.conversation_ttl),
        tools=ToolRegistry([build_web_search_tool(search_client)]),
        retry=RetryPolicy(
            max_attempts=settings.max_attempts,
            backoff=fixed_backoff(settings.retry_delay),
        ),
    )
