"""
Conversation Schemas

Pydantic models for the conversation and search API.
"""
from typing import Optional, List, Union
from pydantic import BaseModel, Field

from .thought import ThoughtSearchResult, HybridThoughtSearchResult


class MessageRequest(BaseModel):
    """Inbound user text."""
    text: str = Field(..., min_length=1)

    model_config = {"extra": "forbid"}


class ReplyResponse(BaseModel):
    """Assistant reply to one user message."""
    reply: str
    conversation_id: Optional[str] = None
    message_count: int = 0


class StatusResponse(BaseModel):
    """Read-only snapshot of a user's conversation."""
    active: bool
    message_count: int
    conversation_id: Optional[str] = None


class NewConversationResponse(StatusResponse):
    """Whether messages are pending before starting over."""
    pending: bool


class ExtractionResponse(BaseModel):
    """Result of a successful extraction run."""
    conversation_id: Optional[str] = None
    thoughts_saved: int
    thought_ids: List[str] = []
    source_id: Optional[str] = None


class DiscardResponse(BaseModel):
    """Result of discarding a conversation without saving."""
    discarded_messages: int


class RememberRequest(BaseModel):
    """A quick note to capture as a single thought."""
    note: str = Field(..., min_length=1)

    model_config = {"extra": "forbid"}


class SearchRequest(BaseModel):
    """Semantic or hybrid thought search."""
    query: str = Field(..., min_length=1)
    hybrid: bool = False
    threshold: Optional[float] = Field(None, ge=0.0, le=1.0)
    limit: Optional[int] = Field(None, ge=1, le=100)
    tags: List[str] = []
    kind: Optional[str] = None

    model_config = {"extra": "forbid"}


class SearchResponse(BaseModel):
    """Ranked search results."""
    results: List[Union[HybridThoughtSearchResult, ThoughtSearchResult]]
    total: int
