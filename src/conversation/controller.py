"""
Housing Conversation Controller

Finite-state dialogue that resumes across independent messages:

    (no state) --intent--> detected --location--> complete --> cleared
                           awaiting_location (handled like detected)
                           awaiting_preferences --> complete --> cleared

``complete`` is written, the recommender runs, and the state is deleted
whatever the outcome. A leftover ``complete`` record (interrupted run) is
purged on read and the message is treated as a fresh one.
"""

import logging
from typing import List, Optional

from src.common.types import ConversationReply, ConversationStage, ConversationState, Demographics
from src.conversation.housing import (
    HousingQuery,
    HousingRecommender,
    extract_demographics,
    extract_location,
    extract_preferences,
    parse_housing_query,
)
from src.conversation.state_service import ConversationStateService

logger = logging.getLogger(__name__)

# Stand-ins for demographics and preferences the user has not mentioned.
PLACEHOLDER_AGE = "25"
PLACEHOLDER_AGE_RANGE = "25-29"
PLACEHOLDER_PREFERENCES = ["vibrant"]

LOCATION_PROMPT = (
    "I'd be happy to help you find housing information! Where are you looking to move to? "
    "Please share your city or region."
)
LOCATION_REPROMPT = (
    "I didn't catch the location. Could you please tell me which city or area you're interested in? "
    "For example: 'New York', 'San Francisco Bay Area', or 'Chicago'."
)


def degraded_reply(location: Optional[str]) -> ConversationReply:
    where = f"finding housing in {location}" if location else "finding housing"
    return ConversationReply(
        response=(
            "I apologize, but I had trouble getting housing recommendations. "
            f"Let me try to help you with general advice about {where}."
        ),
        continue_flow=False,
    )


class HousingConversationController:
    def __init__(self, state_service: ConversationStateService, recommender: HousingRecommender):
        self.state_service = state_service
        self.recommender = recommender

    async def handle(self, user: str, text: str, scope: Optional[str] = None) -> ConversationReply:
        """
        Advance the housing dialogue for (user, scope).

        Returns an empty, non-continuing reply when the message is not part
        of a housing conversation so the caller can handle it otherwise.
        """
        state = await self.state_service.get_state(user, scope)

        if state is not None and state.stage == ConversationStage.COMPLETE:
            # Left behind by an interrupted or overlapping run
            logger.warning(f"Purging leftover complete state for {user}")
            await self.state_service.clear_state(user, scope)
            state = None

        if state is None:
            if not parse_housing_query(text).is_housing_query:
                return ConversationReply(response="", continue_flow=False)

            await self.state_service.set_state(
                user,
                ConversationState(stage=ConversationStage.DETECTED, timestamp=self.state_service.now_ms()),
                scope,
            )
            logger.info(f"Housing conversation started for {user}")
            return ConversationReply(response=LOCATION_PROMPT, continue_flow=True)

        if state.stage in (ConversationStage.DETECTED, ConversationStage.AWAITING_LOCATION):
            return await self._handle_location(user, text, scope)
        return await self._handle_preferences(user, text, state, scope)

    async def _handle_location(self, user: str, text: str, scope: Optional[str]) -> ConversationReply:
        location = extract_location(text)
        if not location:
            return ConversationReply(response=LOCATION_REPROMPT, continue_flow=True)

        await self.state_service.update_state(
            user,
            {
                "stage": ConversationStage.COMPLETE,
                "location": location,
                "demographics": {"age": PLACEHOLDER_AGE},
                "preferences": list(PLACEHOLDER_PREFERENCES),
            },
            scope,
        )
        query = HousingQuery(
            location=location,
            age_range=PLACEHOLDER_AGE_RANGE,
            preferences=list(PLACEHOLDER_PREFERENCES),
        )
        return await self._complete(user, query, scope)

    async def _handle_preferences(
        self,
        user: str,
        text: str,
        state: ConversationState,
        scope: Optional[str],
    ) -> ConversationReply:
        """Merge what the reply mentions into the stored context; placeholders fill the gaps."""
        stored = state.demographics or Demographics()
        mentioned = extract_demographics(text)
        demographics = Demographics(
            age=mentioned.age or PLACEHOLDER_AGE,
            ethnicity=mentioned.ethnicity or stored.ethnicity,
        )
        new_preferences = extract_preferences(text) or list(PLACEHOLDER_PREFERENCES)
        preferences: List[str] = list(dict.fromkeys(list(state.preferences or []) + new_preferences))

        await self.state_service.update_state(
            user,
            {
                "stage": ConversationStage.COMPLETE,
                "demographics": demographics.model_dump(),
                "preferences": preferences,
            },
            scope,
        )
        query = HousingQuery(
            location=state.location,
            age_range=demographics.age,
            ethnicity=demographics.ethnicity,
            preferences=preferences,
        )
        return await self._complete(user, query, scope)

    async def _complete(self, user: str, query: HousingQuery, scope: Optional[str]) -> ConversationReply:
        """Run the recommender, then clear the state whatever happened."""
        try:
            data = await self.recommender.get_recommendations(query)
            request = f"Looking for housing in {query.location}" if query.location else "Looking for housing"
            response = await self.recommender.generate_response(request, query, data)
            return ConversationReply(response=response, continue_flow=False)
        except Exception as e:
            logger.error(f"Error generating housing recommendations: {e}")
            return degraded_reply(query.location)
        finally:
            await self.state_service.clear_state(user, scope)
