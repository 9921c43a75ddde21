"""
Routes an inbound chat message: commands, the housing dialogue, or a general
assistant reply with conversation history as context.
"""

import logging
import re
from typing import Optional

from src.clients.text_generator import TextGenerator
from src.common.config import Config
from src.common.error_handling import TextGenerationError
from src.common.types import ConversationReply
from src.conversation.controller import HousingConversationController
from src.conversation.memory import MemoryService
from src.conversation.state_service import ConversationStateService

logger = logging.getLogger(__name__)

CLEAR_COMMANDS = {"clear", "reset", "new chat", "start over", "clear chat", "reset conversation"}
HELP_COMMANDS = {"help", "/help"}

MENTION_PATTERN = re.compile(r"<@[A-Z0-9]+>")

GREETING = 'Hi! How can I help you today? Type "help" to see what I can do!'
CLEARED = "✨ I've cleared our conversation history. Let's start fresh! How can I help you today?"
HELP_TEXT = """Here's what I can help you with:

💬 **General conversation** - Just chat with me naturally!
🏠 **Housing recommendations** - Ask me about neighborhoods, where to live, or housing options
🔄 **Clear conversation** - Say "clear", "reset", or "new chat" to start fresh
💡 **Get recommendations** - Ask about restaurants, movies, music, and more

What would you like to know?"""
APOLOGY = "Sorry, I encountered an error processing your message."

REPLY_MAX_TOKENS = 500


def detect_command(text: str) -> Optional[str]:
    lower = text.lower().strip()
    if lower in CLEAR_COMMANDS:
        return "clear"
    if lower in HELP_COMMANDS:
        return "help"
    return None


def clean_text(text: str) -> str:
    """Strip user mentions and surrounding whitespace."""
    return MENTION_PATTERN.sub("", text or "").strip()


class MessageRouter:
    def __init__(
        self,
        housing: HousingConversationController,
        memory: MemoryService,
        state_service: ConversationStateService,
        text_generator: TextGenerator,
    ):
        self.housing = housing
        self.memory = memory
        self.state_service = state_service
        self.text_generator = text_generator

    async def handle(self, user: str, text: str, scope: Optional[str] = None) -> ConversationReply:
        message = clean_text(text)
        if not message:
            return ConversationReply(response=GREETING, continue_flow=False)

        command = detect_command(message)
        if command == "clear":
            await self.memory.clear_conversation(user, scope)
            await self.state_service.clear_state(user, scope)
            logger.info(f"Cleared conversation for {user}")
            return ConversationReply(response=CLEARED, continue_flow=False)
        if command == "help":
            return ConversationReply(response=HELP_TEXT, continue_flow=False)

        reply = await self._housing_reply(user, message, scope)
        if reply is None:
            reply = ConversationReply(
                response=await self._general_reply(user, message, scope),
                continue_flow=False,
            )

        await self.memory.add_message(user, "user", message, scope)
        await self.memory.add_message(user, "assistant", reply.response, scope)
        return reply

    async def _housing_reply(self, user: str, message: str, scope: Optional[str]) -> Optional[ConversationReply]:
        try:
            reply = await self.housing.handle(user, message, scope)
        except Exception as e:
            logger.error(f"Error in housing interaction: {e}")
            return None
        return reply if reply.response else None

    async def _general_reply(self, user: str, message: str, scope: Optional[str]) -> str:
        history = await self.memory.get_history(user, scope)
        context = self.memory.format_for_prompt(history)
        prompt = f"{context} {message}" if context else message
        try:
            return await self.text_generator.generate(
                prompt,
                temperature=Config.INSIGHT_TEMPERATURE,
                max_tokens=REPLY_MAX_TOKENS,
            )
        except TextGenerationError as e:
            logger.error(f"Error generating response: {e}")
            return APOLOGY
