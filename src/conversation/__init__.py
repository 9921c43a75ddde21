"""
Conversation: the multi-turn housing dialogue, chat memory and message routing.
"""

from src.conversation.controller import HousingConversationController
from src.conversation.housing import HousingRecommender
from src.conversation.memory import MemoryService
from src.conversation.message_router import MessageRouter
from src.conversation.state_service import ConversationStateService

__all__ = [
    "ConversationStateService",
    "HousingConversationController",
    "HousingRecommender",
    "MemoryService",
    "MessageRouter",
]
