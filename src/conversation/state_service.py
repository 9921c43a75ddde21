"""
Housing conversation state, persisted per (user, scope) with a staleness window.

A state older than the window is treated exactly like an absent one: it is
deleted on read and never advanced. Store failures are logged and also
treated as absence.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from src.clients.state_store import StateStore
from src.common.config import Config
from src.common.types import ConversationState

logger = logging.getLogger(__name__)


def state_key(user: str, scope: Optional[str] = None) -> str:
    return f"state:housing:{scope}:{user}" if scope else f"state:housing:dm:{user}"


class ConversationStateService:
    """
    Read / write / merge / clear housing dialogue state.

    Args:
        store: Key-value store with per-key expiry
        ttl_seconds: Staleness window (also used as the store expiry)
        clock: Returns seconds since epoch; injectable for tests
    """

    def __init__(
        self,
        store: StateStore,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else Config.CONVERSATION_STATE_TTL_SECONDS
        self.clock = clock

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    def is_expired(self, state: ConversationState) -> bool:
        return self.now_ms() - state.timestamp > self.ttl_seconds * 1000

    async def get_state(self, user: str, scope: Optional[str] = None) -> Optional[ConversationState]:
        key = state_key(user, scope)
        try:
            raw = await self.store.get(key)
            if not raw:
                return None
            state = ConversationState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable housing state {key}: {e}")
            await self.clear_state(user, scope)
            return None
        except Exception as e:
            logger.error(f"Error getting housing state: {e}")
            return None

        if self.is_expired(state):
            logger.info(f"Housing state for {key} is stale, clearing")
            await self.clear_state(user, scope)
            return None
        return state

    async def set_state(self, user: str, state: ConversationState, scope: Optional[str] = None) -> None:
        try:
            await self.store.set(state_key(user, scope), state.model_dump_json(), self.ttl_seconds)
        except Exception as e:
            logger.error(f"Error setting housing state: {e}")

    async def update_state(
        self,
        user: str,
        updates: Dict[str, Any],
        scope: Optional[str] = None,
    ) -> Optional[ConversationState]:
        """Merge ``updates`` onto the live state and refresh its timestamp."""
        current = await self.get_state(user, scope)
        if current is None:
            return None

        merged = current.model_dump()
        merged.update(updates)
        merged["timestamp"] = self.now_ms()
        new_state = ConversationState.model_validate(merged)

        await self.set_state(user, new_state, scope)
        return new_state

    async def clear_state(self, user: str, scope: Optional[str] = None) -> None:
        try:
            await self.store.delete(state_key(user, scope))
        except Exception as e:
            logger.error(f"Error clearing housing state: {e}")
