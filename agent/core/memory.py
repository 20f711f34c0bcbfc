"""Server-side conversation memory.

Histories are kept per thread id in process memory only and expire after a
fixed time-to-live. Expired entries are dropped when read and by explicit
``sweep()`` passes; nothing is ever written to disk.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from langchain_core.messages import BaseMessage


logger = logging.getLogger("chatdpt.memory")

DEFAULT_TTL_SECONDS = 60 * 60 * 24


class ConversationStore:
    """Maps a thread id to its ordered message history."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[List[BaseMessage], float]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, thread_id: str) -> Optional[List[BaseMessage]]:
        """Return a copy of the history for ``thread_id``, or None if absent or expired."""
        entry = self._entries.get(thread_id)
        if entry is None:
            return None
        history, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[thread_id]
            logger.info("Conversation expired: thread=%s", thread_id)
            return None
        return list(history)

    def save(self, thread_id: str, history: List[BaseMessage]) -> None:
        self._entries[thread_id] = (list(history), self._clock() + self._ttl)

    def delete(self, thread_id: str) -> bool:
        return self._entries.pop(thread_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def sweep(self) -> int:
        """Drop every expired conversation and return how many were removed."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Swept %s expired conversation(s), %s active", len(expired), len(self._entries))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, thread_id: object) -> bool:
        return thread_id in self._entries
