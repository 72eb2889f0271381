"""
Thought Store Interface

The persistence façade the rest of the system talks to. Backends
implement it; callers never see driver errors, only StorageError.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from ..conversation import PersistedConversation
from ..models.conversation import ConversationStatus
from ..models.source import SourceType
from ..schemas.thought import (
    ThoughtCreate,
    ThoughtRecord,
    ThoughtSearchResult,
    HybridThoughtSearchResult,
    SourceCreate,
    SourceRecord,
)


class StorageError(Exception):
    """A persistence operation failed."""
    pass


class ThoughtStore(ABC):
    """Durable storage for thoughts, sources and conversation transcripts."""

    @abstractmethod
    async def persist_thought(self, data: ThoughtCreate) -> ThoughtRecord:
        """
        Insert a thought.

        If data.supersedes_id names an existing thought, that thought's
        superseded_by_id is pointed at the new one in the same write.
        """
        pass

    @abstractmethod
    async def persist_source(self, data: SourceCreate) -> SourceRecord:
        pass

    @abstractmethod
    async def link_thought_to_source(
        self,
        thought_id: str,
        source_id: str,
        quoted: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    async def get_thought(self, thought_id: str) -> Optional[ThoughtRecord]:
        pass

    @abstractmethod
    async def get_thought_sources(self, thought_id: str) -> List[SourceRecord]:
        pass

    @abstractmethod
    async def get_sources_by_user(
        self,
        user_id: str,
        source_type: Optional[SourceType] = None,
        limit: int = 10,
    ) -> List[SourceRecord]:
        """Most recently captured sources first."""
        pass

    @abstractmethod
    async def search_thoughts(
        self,
        embedding: List[float],
        threshold: float = 0.5,
        limit: int = 10,
        user_id: Optional[str] = None,
    ) -> List[ThoughtSearchResult]:
        """Thoughts with similarity >= threshold, most similar first."""
        pass

    @abstractmethod
    async def hybrid_search_thoughts(
        self,
        embedding: List[float],
        query_text: str,
        limit: int = 10,
        user_id: Optional[str] = None,
        tags: Optional[List[str]] = None,
        kind: Optional[str] = None,
    ) -> List[HybridThoughtSearchResult]:
        """Vector and text rankings fused, best first."""
        pass

    @abstractmethod
    async def get_active_conversation(self, user_id: str) -> Optional[PersistedConversation]:
        """The user's most recent conversation still marked active, if any."""
        pass

    @abstractmethod
    async def save_conversation(self, conversation_id: str, user_id: str, transcript: str) -> None:
        """Create or overwrite the persisted transcript for a conversation."""
        pass

    @abstractmethod
    async def update_conversation_status(
        self,
        conversation_id: str,
        status: ConversationStatus,
    ) -> None:
        """Set a persisted conversation's status; unknown ids are ignored."""
        pass
