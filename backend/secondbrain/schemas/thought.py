"""
Thought Schemas

Pydantic models for extracted thoughts, persistence inputs and
stored records. Nothing untyped crosses the extraction boundary:
the engine always hands out ExtractedThought instances.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from ..models.thought import ThoughtKind, ThoughtDomain, ThoughtStance, ThoughtPrivacy
from ..models.source import SourceType


class ExtractedThought(BaseModel):
    """A validated thought produced by the extraction engine."""
    kind: ThoughtKind
    domain: ThoughtDomain = ThoughtDomain.MIXED
    claim: str = Field(..., min_length=1)
    stance: ThoughtStance = ThoughtStance.BELIEVE
    confidence: float = Field(0.8, ge=0.0, le=1.0)
    context: Optional[str] = None
    evidence: List[str] = []
    examples: List[str] = []
    actionables: List[str] = []
    tags: List[str] = []


class ThoughtExtractionResult(BaseModel):
    """Thoughts extracted from one conversation."""
    thoughts: List[ExtractedThought]


class ThoughtCreate(ExtractedThought):
    """Input for persisting a thought."""
    user_id: str
    privacy: ThoughtPrivacy = ThoughtPrivacy.PRIVATE
    supersedes_id: Optional[str] = None
    related_ids: List[str] = []
    embedding: Optional[List[float]] = None


class ThoughtRecord(BaseModel):
    """A thought as stored."""
    id: str
    user_id: str
    kind: ThoughtKind
    domain: ThoughtDomain
    claim: str
    stance: ThoughtStance
    confidence: float
    privacy: ThoughtPrivacy
    context: Optional[str] = None
    evidence: List[str] = []
    examples: List[str] = []
    actionables: List[str] = []
    tags: List[str] = []
    related_ids: List[str] = []
    supersedes_id: Optional[str] = None
    superseded_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ThoughtSearchResult(ThoughtRecord):
    """A thought ranked by vector similarity."""
    similarity: float


class HybridThoughtSearchResult(ThoughtSearchResult):
    """A thought ranked by fused vector and text relevance."""
    text_rank: float
    hybrid_score: float


class SourceCreate(BaseModel):
    """Input for persisting a source document."""
    user_id: str
    type: SourceType
    raw: str
    title: Optional[str] = None
    summary: Optional[str] = None
    url: Optional[str] = None
    extra_data: Optional[dict] = None


class SourceRecord(BaseModel):
    """A source document as stored."""
    id: str
    user_id: str
    type: SourceType
    raw: str
    title: Optional[str] = None
    summary: Optional[str] = None
    url: Optional[str] = None
    extra_data: Optional[dict] = None
    captured_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
