"""
Conversation State

In-memory types for per-user conversations: messages, the live
conversation state, the persisted form it is restored from and the
status snapshot handed to the transport.
"""
import asyncio
import enum
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Optional


class Role(str, enum.Enum):
    """Author of a message."""
    USER = "user"
    ASSISTANT = "assistant"


class PersistenceStrategy(str, enum.Enum):
    """How the live conversation is copied to durable storage."""
    THRESHOLDED = "thresholded-autosave"
    IDLE_TIMEOUT = "idle-timeout-autosave"
    MEMORY_ONLY = "memory-only"


@dataclass(frozen=True)
class Message:
    """One turn in a conversation."""
    role: Role
    content: str
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_chat(self) -> dict:
        return {"role": self.role.value, "content": self.content}


@dataclass
class ConversationState:
    """
    Live conversation for one user.

    `messages` is bounded: appending past the window drops the oldest
    message. `total_appended` counts every message ever added, so callers
    can tell which messages arrived after a snapshot.
    """
    conversation_id: str
    messages: Deque[Message]
    last_activity: datetime
    is_active: bool = True
    last_saved_at: Optional[datetime] = None
    messages_since_last_save: int = 0
    total_appended: int = 0
    idle_timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)
    cleanup_timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    @classmethod
    def new(cls, conversation_id: str, max_messages: int, now: datetime) -> "ConversationState":
        return cls(
            conversation_id=conversation_id,
            messages=deque(maxlen=max_messages),
            last_activity=now,
        )

    def cancel_idle_timer(self) -> None:
        if self.idle_timer is not None:
            self.idle_timer.cancel()
            self.idle_timer = None

    def cancel_timers(self) -> None:
        self.cancel_idle_timer()
        if self.cleanup_timer is not None:
            self.cleanup_timer.cancel()
            self.cleanup_timer = None


@dataclass
class PersistedConversation:
    """A conversation as read back from durable storage."""
    id: str
    user_id: str
    raw_transcript: str
    status: str
    updated_at: datetime


@dataclass(frozen=True)
class StatusSnapshot:
    """Read-only view of a user's conversation."""
    active: bool
    message_count: int
    conversation_id: Optional[str]
