from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from langchain_core.messages import BaseMessage, SystemMessage


SYSTEM_PROMPT = """You are a smart personal assistant.
If you know the answer to a question, answer it directly in plain English.
If the answer requires real-time, local, or up-to-date information, or if you don't know the answer, use the available tools to find it.
You have access to the following tool:
webSearch(query: string): Use this to search the internet for current or unknown information.
Decide when to use your own knowledge and when to use the tool.
Do not mention the tool unless needed.

Examples:
Q: What is the capital of France?
A: The capital of France is Paris.

Q: What's the weather in Mumbai right now?
A: (use the search tool to find the latest weather)

Q: Who is the Prime Minister of India?
A: The current Prime Minister of India is Narendra Modi.

Q: Tell me the latest IT news.
A: (use the search tool to get the latest news)"""


def format_timestamp(now: datetime) -> str:
    # RFC 1123, always in GMT
    return now.astimezone(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S GMT")


def build_system_prompt(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{SYSTEM_PROMPT}\n\ncurrent date and time: {format_timestamp(now)}"


def new_conversation(now: Optional[datetime] = None) -> List[BaseMessage]:
    return [SystemMessage(content=build_system_prompt(now))]
