"""
Conversation State Store

Owns every user's live conversation. A user has at most one current
conversation; ending it keeps it around for a grace period so status can
still be read, then discards it. Whether and when the conversation should
be copied to durable storage is decided here, per persistence strategy;
the actual write is the caller's job.

Timers use the running asyncio loop, so end() and the idle-timeout
strategy must be driven from async code.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Set

from .state import (
    ConversationState,
    Message,
    PersistedConversation,
    PersistenceStrategy,
    StatusSnapshot,
)
from .transcript import parse_transcript
from ..tracer import trace_step

logger = logging.getLogger(__name__)

IdleHandler = Callable[[str], Awaitable[None]]


class ConversationStateStore:
    """In-memory registry of per-user conversations."""

    def __init__(
        self,
        strategy: PersistenceStrategy = PersistenceStrategy.THRESHOLDED,
        max_messages: int = 200,
        save_message_threshold: int = 10,
        save_interval_seconds: float = 300.0,
        idle_timeout_seconds: float = 300.0,
        grace_period_seconds: float = 3600.0,
        clock: Callable[[], datetime] = datetime.utcnow,
        on_idle: Optional[IdleHandler] = None,
    ):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.strategy = PersistenceStrategy(strategy)
        self.max_messages = max_messages
        self.save_message_threshold = save_message_threshold
        self.save_interval = timedelta(seconds=save_interval_seconds)
        self.idle_timeout_seconds = idle_timeout_seconds
        self.grace_period_seconds = grace_period_seconds
        self._clock = clock
        self._on_idle = on_idle
        self._conversations: Dict[str, ConversationState] = {}
        self._loaded_users: Set[str] = set()
        self._idle_tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings, on_idle: Optional[IdleHandler] = None) -> "ConversationStateStore":
        return cls(
            strategy=PersistenceStrategy(settings.persistence_strategy),
            max_messages=settings.max_conversation_length,
            save_message_threshold=settings.save_message_threshold,
            save_interval_seconds=settings.save_interval_seconds,
            idle_timeout_seconds=settings.idle_timeout_seconds,
            grace_period_seconds=settings.grace_period_seconds,
            on_idle=on_idle,
        )

    def set_idle_handler(self, handler: Optional[IdleHandler]) -> None:
        self._on_idle = handler

    # ------------------------------------------------------------------
    # Conversation lifecycle
    # ------------------------------------------------------------------

    def get_or_create(self, user_id: str) -> ConversationState:
        """
        Return the user's active conversation, starting a new one if there
        is none or the current one has ended.
        """
        state = self._conversations.get(user_id)
        if state is not None and state.is_active:
            return state

        if state is not None:
            state.cancel_timers()

        state = ConversationState.new(str(uuid.uuid4()), self.max_messages, self._clock())
        self._conversations[user_id] = state
        logger.info(f"Started conversation {state.conversation_id} for user {user_id}")
        return state

    def add_message(self, user_id: str, message: Message) -> ConversationState:
        """Append a message, trimming the oldest once the window is full."""
        state = self.get_or_create(user_id)
        state.messages.append(message)
        state.last_activity = self._clock()
        state.messages_since_last_save += 1
        state.total_appended += 1

        if self.strategy is PersistenceStrategy.IDLE_TIMEOUT:
            self._arm_idle_timer(user_id, state)
        return state

    def end(self, user_id: str) -> Optional[ConversationState]:
        """
        Mark the conversation inactive. Its messages stay readable until
        the grace period expires, after which it is discarded.
        """
        state = self._conversations.get(user_id)
        if state is None:
            return None

        state.is_active = False
        state.cancel_timers()
        state.cleanup_timer = self._schedule(
            self.grace_period_seconds, self._expire, user_id, state
        )
        trace_step("conversation_store", f"Ended conversation {state.conversation_id}")
        return state

    def clear(self, user_id: str) -> None:
        """Drop the user's conversation and loaded flag immediately."""
        state = self._conversations.pop(user_id, None)
        if state is not None:
            state.cancel_timers()
        self._loaded_users.discard(user_id)

    def shutdown(self) -> None:
        """Cancel every outstanding timer and idle task."""
        for state in self._conversations.values():
            state.cancel_timers()
        for task in list(self._idle_tasks):
            task.cancel()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def get(self, user_id: str) -> Optional[ConversationState]:
        return self._conversations.get(user_id)

    def get_messages(self, user_id: str) -> List[Message]:
        state = self._conversations.get(user_id)
        return list(state.messages) if state is not None else []

    def get_conversation_id(self, user_id: str) -> Optional[str]:
        state = self._conversations.get(user_id)
        return state.conversation_id if state is not None else None

    def is_active(self, user_id: str) -> bool:
        state = self._conversations.get(user_id)
        return state is not None and state.is_active

    def status(self, user_id: str) -> StatusSnapshot:
        state = self._conversations.get(user_id)
        if state is None:
            return StatusSnapshot(active=False, message_count=0, conversation_id=None)
        return StatusSnapshot(
            active=state.is_active,
            message_count=len(state.messages),
            conversation_id=state.conversation_id,
        )

    # ------------------------------------------------------------------
    # Persistence bookkeeping
    # ------------------------------------------------------------------

    def should_persist(self, user_id: str) -> bool:
        """Whether the conversation is due to be written to storage."""
        state = self._conversations.get(user_id)
        if state is None:
            return False

        if self.strategy is PersistenceStrategy.MEMORY_ONLY:
            return False
        if self.strategy is PersistenceStrategy.IDLE_TIMEOUT:
            return state.messages_since_last_save > 0

        if state.last_saved_at is None:
            return True
        if state.messages_since_last_save >= self.save_message_threshold:
            return True
        return self._clock() - state.last_saved_at >= self.save_interval

    def mark_persisted(self, user_id: str) -> None:
        state = self._conversations.get(user_id)
        if state is None:
            return
        state.last_saved_at = self._clock()
        state.messages_since_last_save = 0

    def load_from_record(self, user_id: str, record: PersistedConversation) -> ConversationState:
        """Rebuild a live conversation from its persisted transcript."""
        previous = self._conversations.get(user_id)
        if previous is not None:
            previous.cancel_timers()

        state = ConversationState.new(record.id, self.max_messages, record.updated_at)
        state.messages.extend(parse_transcript(record.raw_transcript))
        state.is_active = record.status == "active"
        state.last_saved_at = record.updated_at
        state.total_appended = len(state.messages)

        self._conversations[user_id] = state
        self._loaded_users.add(user_id)

        if not state.is_active:
            state.cleanup_timer = self._schedule(
                self.grace_period_seconds, self._expire, user_id, state
            )
        elif self.strategy is PersistenceStrategy.IDLE_TIMEOUT and state.messages:
            self._arm_idle_timer(user_id, state)

        logger.info(
            f"Restored conversation {record.id} for user {user_id} "
            f"({len(state.messages)} messages)"
        )
        return state

    def has_loaded(self, user_id: str) -> bool:
        return user_id in self._loaded_users

    def mark_loaded(self, user_id: str) -> None:
        self._loaded_users.add(user_id)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    @staticmethod
    def _schedule(delay: float, callback, *args) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback, *args)

    def _expire(self, user_id: str, state: ConversationState) -> None:
        if self._conversations.get(user_id) is not state:
            return
        del self._conversations[user_id]
        self._loaded_users.discard(user_id)
        logger.info(f"Discarded ended conversation {state.conversation_id} for user {user_id}")

    def _arm_idle_timer(self, user_id: str, state: ConversationState) -> None:
        state.cancel_idle_timer()
        state.idle_timer = self._schedule(
            self.idle_timeout_seconds, self._on_idle_timeout, user_id, state
        )

    def _on_idle_timeout(self, user_id: str, state: ConversationState) -> None:
        state.idle_timer = None
        if self._conversations.get(user_id) is not state or not state.is_active:
            return
        if self._on_idle is None:
            logger.warning(f"Conversation for user {user_id} went idle with no idle handler registered")
            return

        logger.info(f"Conversation {state.conversation_id} idle for {self.idle_timeout_seconds}s")
        task = asyncio.get_running_loop().create_task(self._on_idle(user_id))
        self._idle_tasks.add(task)
        task.add_done_callback(self._reap_idle_task)

    def _reap_idle_task(self, task: asyncio.Task) -> None:
        self._idle_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Idle handler failed: {error}")
