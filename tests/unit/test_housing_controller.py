"""
Unit tests for src/conversation/controller.py

Drives the housing dialogue through a real ConversationStateService over the
in-memory store, with a mocked recommender.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.clients.state_store import InMemoryStateStore
from src.common.error_handling import QlooApiError
from src.common.types import ConversationStage, ConversationState, Demographics
from src.conversation.controller import (
    LOCATION_PROMPT,
    LOCATION_REPROMPT,
    HousingConversationController,
)
from src.conversation.housing import HousingData, HousingQuery
from src.conversation.state_service import ConversationStateService


@pytest.fixture
def state_service(clock):
    return ConversationStateService(InMemoryStateStore(), ttl_seconds=600, clock=clock)


@pytest.fixture
def recommender():
    recommender = MagicMock()
    recommender.get_recommendations = AsyncMock(return_value=HousingData())
    recommender.generate_response = AsyncMock(return_value="Try East Austin.")
    return recommender


@pytest.fixture
def controller(state_service, recommender):
    return HousingConversationController(state_service, recommender)


async def _seed(state_service: ConversationStateService, stage: ConversationStage, **kwargs) -> None:
    await state_service.set_state(
        "U1", ConversationState(stage=stage, timestamp=state_service.now_ms(), **kwargs)
    )


class TestStartConversation:
    @pytest.mark.asyncio
    async def test_non_housing_message_is_ignored(self, controller, state_service):
        reply = await controller.handle("U1", "tell me a joke")

        assert reply.response == ""
        assert reply.continue_flow is False
        assert await state_service.get_state("U1") is None

    @pytest.mark.asyncio
    async def test_housing_intent_asks_for_location(self, controller, state_service):
        reply = await controller.handle("U1", "I need help finding an apartment")

        assert reply.response == LOCATION_PROMPT
        assert reply.continue_flow is True
        state = await state_service.get_state("U1")
        assert state.stage == ConversationStage.DETECTED

    @pytest.mark.asyncio
    async def test_stale_state_starts_over(self, controller, state_service, recommender, clock):
        """Should ignore a detected state older than the window and prompt again."""
        await _seed(state_service, ConversationStage.DETECTED)
        clock.advance(601)

        reply = await controller.handle("U1", "I'm moving to Austin")

        assert reply.response == LOCATION_PROMPT
        recommender.get_recommendations.assert_not_awaited()


class TestLocationStage:
    @pytest.mark.asyncio
    async def test_location_completes_and_clears(self, controller, state_service, recommender):
        await controller.handle("U1", "Where should I live?")

        reply = await controller.handle("U1", "Austin")

        assert reply.response == "Try East Austin."
        assert reply.continue_flow is False
        recommender.get_recommendations.assert_awaited_once_with(
            HousingQuery(location="Austin", age_range="25-29", preferences=["vibrant"])
        )
        assert recommender.generate_response.await_args.args[0] == "Looking for housing in Austin"
        assert await state_service.get_state("U1") is None

    @pytest.mark.asyncio
    async def test_missing_location_reprompts(self, controller, state_service, recommender):
        await _seed(state_service, ConversationStage.AWAITING_LOCATION)

        reply = await controller.handle("U1", "12345")

        assert reply.response == LOCATION_REPROMPT
        assert reply.continue_flow is True
        recommender.get_recommendations.assert_not_awaited()
        assert (await state_service.get_state("U1")).stage == ConversationStage.AWAITING_LOCATION

    @pytest.mark.asyncio
    async def test_recommender_failure_degrades_and_clears(self, controller, state_service, recommender):
        await _seed(state_service, ConversationStage.DETECTED)
        recommender.get_recommendations.side_effect = QlooApiError("down", status_code=502)

        reply = await controller.handle("U1", "Austin")

        assert reply.response == (
            "I apologize, but I had trouble getting housing recommendations. "
            "Let me try to help you with general advice about finding housing in Austin."
        )
        assert reply.continue_flow is False
        assert await state_service.get_state("U1") is None


class TestPreferencesStage:
    @pytest.mark.asyncio
    async def test_merges_stored_context(self, controller, state_service, recommender):
        """Should keep stored ethnicity and append the placeholder preference."""
        await _seed(
            state_service,
            ConversationStage.AWAITING_PREFERENCES,
            location="Denver",
            demographics=Demographics(ethnicity="asian"),
            preferences=["quiet"],
        )

        reply = await controller.handle("U1", "anything works")

        assert reply.response == "Try East Austin."
        recommender.get_recommendations.assert_awaited_once_with(
            HousingQuery(location="Denver", age_range="25", ethnicity="asian", preferences=["quiet", "vibrant"])
        )
        assert await state_service.get_state("U1") is None


    @pytest.mark.asyncio
    async def test_reply_details_override_placeholders(self, controller, state_service, recommender):
        """Should take age, ethnicity and preferences from the reply when mentioned."""
        await _seed(
            state_service,
            ConversationStage.AWAITING_PREFERENCES,
            location="Denver",
            preferences=["quiet"],
        )

        await controller.handle("U1", "I'm 31 years old, Korean, and want somewhere walkable and quiet")

        recommender.get_recommendations.assert_awaited_once_with(
            HousingQuery(location="Denver", age_range="31", ethnicity="asian", preferences=["quiet", "walkable"])
        )

    @pytest.mark.asyncio
    async def test_failure_without_location_degrades_cleanly(self, controller, state_service, recommender):
        await _seed(state_service, ConversationStage.AWAITING_PREFERENCES)
        recommender.get_recommendations.side_effect = QlooApiError("down", status_code=502)

        reply = await controller.handle("U1", "anything works")

        assert reply.response == (
            "I apologize, but I had trouble getting housing recommendations. "
            "Let me try to help you with general advice about finding housing."
        )
        assert "None" not in reply.response


class TestCompleteStage:
    @pytest.mark.asyncio
    async def test_leftover_complete_state_is_purged(self, controller, state_service, recommender):
        """Should drop a complete record and treat a housing message as a new conversation."""
        await _seed(state_service, ConversationStage.COMPLETE, location="Austin")

        reply = await controller.handle("U1", "where should I live?")

        assert reply.response == LOCATION_PROMPT
        assert reply.continue_flow is True
        recommender.get_recommendations.assert_not_awaited()
        state = await state_service.get_state("U1")
        assert state.stage == ConversationStage.DETECTED

    @pytest.mark.asyncio
    async def test_leftover_complete_state_cleared_for_other_messages(self, controller, state_service):
        await _seed(state_service, ConversationStage.COMPLETE, location="Austin")

        reply = await controller.handle("U1", "tell me a joke")

        assert reply.response == ""
        assert reply.continue_flow is False
        assert await state_service.get_state("U1") is None
