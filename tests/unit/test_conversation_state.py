"""
Unit tests for src/conversation/state_service.py

The service clock is a FakeClock; the backing in-memory store keeps its own
monotonic clock, so staleness here is decided only by the stored timestamp.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.clients.state_store import InMemoryStateStore
from src.common.types import ConversationStage, ConversationState, Demographics
from src.conversation.state_service import ConversationStateService, state_key


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def service(store, clock):
    return ConversationStateService(store, ttl_seconds=600, clock=clock)


def _state(service: ConversationStateService, **kwargs) -> ConversationState:
    return ConversationState(stage=ConversationStage.DETECTED, timestamp=service.now_ms(), **kwargs)


class TestStateKey:
    def test_scoped_key(self):
        assert state_key("U1", "C9") == "state:housing:C9:U1"

    def test_direct_message_key(self):
        assert state_key("U1") == "state:housing:dm:U1"


class TestGetState:
    @pytest.mark.asyncio
    async def test_absent_state_is_none(self, service):
        assert await service.get_state("U1") is None

    @pytest.mark.asyncio
    async def test_round_trip(self, service):
        await service.set_state("U1", _state(service, location="Austin"), "C1")

        state = await service.get_state("U1", "C1")

        assert state.stage == ConversationStage.DETECTED
        assert state.location == "Austin"
        assert await service.get_state("U1") is None

    @pytest.mark.asyncio
    async def test_exactly_at_window_is_live(self, service, clock):
        await service.set_state("U1", _state(service))
        clock.advance(600)

        assert await service.get_state("U1") is not None

    @pytest.mark.asyncio
    async def test_stale_state_is_cleared(self, service, store, clock):
        """Should treat a state older than the window as absent and delete it."""
        await service.set_state("U1", _state(service))
        clock.advance(601)

        assert await service.get_state("U1") is None
        assert await store.get(state_key("U1")) is None

    @pytest.mark.asyncio
    async def test_corrupt_state_is_cleared(self, service, store):
        await store.set(state_key("U1"), '{"stage": "nonsense"}', 600)

        assert await service.get_state("U1") is None
        assert await store.get(state_key("U1")) is None

    @pytest.mark.asyncio
    async def test_store_error_reads_as_absent(self, clock):
        broken = MagicMock()
        broken.get = AsyncMock(side_effect=ConnectionError("redis down"))
        service = ConversationStateService(broken, ttl_seconds=600, clock=clock)

        assert await service.get_state("U1") is None


class TestUpdateState:
    @pytest.mark.asyncio
    async def test_merges_and_refreshes_timestamp(self, service, clock):
        await service.set_state("U1", _state(service))
        clock.advance(30)

        updated = await service.update_state(
            "U1",
            {
                "stage": ConversationStage.COMPLETE,
                "location": "Denver",
                "demographics": Demographics(age="25"),
            },
        )

        assert updated.stage == ConversationStage.COMPLETE
        assert updated.location == "Denver"
        assert updated.demographics.age == "25"
        assert updated.timestamp == service.now_ms()
        stored = await service.get_state("U1")
        assert stored == updated

    @pytest.mark.asyncio
    async def test_update_without_state_is_noop(self, service, store):
        assert await service.update_state("U1", {"location": "Denver"}) is None
        assert await store.get(state_key("U1")) is None

    @pytest.mark.asyncio
    async def test_update_on_stale_state_is_noop(self, service, clock):
        await service.set_state("U1", _state(service))
        clock.advance(700)

        assert await service.update_state("U1", {"location": "Denver"}) is None


class TestClearState:
    @pytest.mark.asyncio
    async def test_clear_removes_state(self, service):
        await service.set_state("U1", _state(service))

        await service.clear_state("U1")

        assert await service.get_state("U1") is None

    @pytest.mark.asyncio
    async def test_clear_swallows_store_error(self, clock):
        broken = MagicMock()
        broken.delete = AsyncMock(side_effect=ConnectionError("redis down"))
        service = ConversationStateService(broken, ttl_seconds=600, clock=clock)

        await service.clear_state("U1")

        broken.delete.assert_awaited_once_with("state:housing:dm:U1")
