"""
Conversation memory: the last N chat messages per (user, scope).

History is best-effort context for the general assistant reply, so store
failures degrade to an empty history instead of failing the turn.
"""

import json
import logging
import time
from typing import Callable, List, Optional

from pydantic import TypeAdapter

from src.clients.state_store import StateStore
from src.common.config import Config
from src.common.error_handling import safe_execute_async
from src.common.types import ChatMessage

logger = logging.getLogger(__name__)

_messages_adapter = TypeAdapter(List[ChatMessage])


def memory_key(user: str, scope: Optional[str] = None) -> str:
    return f"conversation:{scope}:{user}" if scope else f"conversation:dm:{user}"


class MemoryService:
    def __init__(
        self,
        store: StateStore,
        ttl_seconds: Optional[int] = None,
        max_messages: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else Config.CONVERSATION_HISTORY_TTL_SECONDS
        self.max_messages = max_messages if max_messages is not None else Config.CONVERSATION_HISTORY_MAX_MESSAGES
        self.clock = clock

    async def _read(self, key: str) -> List[ChatMessage]:
        raw = await self.store.get(key)
        if not raw:
            return []
        data = json.loads(raw)
        return _messages_adapter.validate_python(data.get("messages", []))

    async def get_history(self, user: str, scope: Optional[str] = None) -> List[ChatMessage]:
        history = await safe_execute_async(
            self._read,
            memory_key(user, scope),
            operation_name="conversation history read",
            logger=logger,
            fallback=None,
        )
        return history or []

    async def _append(self, key: str, message: ChatMessage) -> None:
        messages = await self._read(key)
        messages.append(message)
        payload = {
            "messages": [m.model_dump() for m in messages[-self.max_messages:]],
            "lastUpdated": int(self.clock() * 1000),
        }
        await self.store.set(key, json.dumps(payload), self.ttl_seconds)

    async def add_message(
        self,
        user: str,
        role: str,
        content: str,
        scope: Optional[str] = None,
    ) -> None:
        message = ChatMessage(role=role, content=content, timestamp=int(self.clock() * 1000))
        await safe_execute_async(
            self._append,
            memory_key(user, scope),
            message,
            operation_name="conversation history write",
            logger=logger,
        )

    async def clear_conversation(self, user: str, scope: Optional[str] = None) -> None:
        await safe_execute_async(
            self.store.delete,
            memory_key(user, scope),
            operation_name="conversation history clear",
            logger=logger,
        )

    @staticmethod
    def format_for_prompt(messages: List[ChatMessage]) -> str:
        if not messages:
            return ""
        lines = "\n".join(
            f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}" for m in messages
        )
        return f"Previous conversation:\n{lines}\n\nCurrent message:"
