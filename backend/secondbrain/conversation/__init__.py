# SecondBrain Conversation State
from .state import (
    Role,
    Message,
    PersistenceStrategy,
    ConversationState,
    PersistedConversation,
    StatusSnapshot,
)
from .transcript import format_transcript, parse_transcript
from .store import ConversationStateStore

__all__ = [
    "Role",
    "Message",
    "PersistenceStrategy",
    "ConversationState",
    "PersistedConversation",
    "StatusSnapshot",
    "format_transcript",
    "parse_transcript",
    "ConversationStateStore",
]
