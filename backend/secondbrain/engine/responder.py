"""
Conversation Responder

Generates the assistant's next turn from the conversation so far.
"""
import logging
from typing import Optional, Sequence

from ..conversation import Message
from ..llm import LLMProvider
from ..prompts.conversation import CONVERSATION_SYSTEM

logger = logging.getLogger(__name__)


class ReplyGenerationError(Exception):
    """The model could not produce a reply."""
    pass


class Responder:
    def __init__(
        self,
        llm: LLMProvider,
        model: str,
        system_prompt: str = CONVERSATION_SYSTEM,
        max_tokens: int = 1024,
    ):
        self.llm = llm
        self.model = model
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens

    async def generate_reply(self, messages: Sequence[Message]) -> str:
        try:
            reply: Optional[str] = await self.llm.generate_chat(
                [message.to_chat() for message in messages],
                model=self.model,
                max_tokens=self.max_tokens,
                system_prompt=self.system_prompt,
            )
        except Exception as e:
            logger.error(f"Reply generation failed: {e}")
            raise ReplyGenerationError(f"Failed to generate response: {e}") from e

        if not reply or not reply.strip():
            raise ReplyGenerationError("Model returned an empty reply")
        return reply.strip()
