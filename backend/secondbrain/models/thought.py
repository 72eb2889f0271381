"""
Thought Models

A thought is the atomic unit of captured knowledge: one standalone
claim with a kind, stance, confidence and tags, plus its embedding.
"""
from datetime import datetime
from sqlalchemy import (
    String, Text, Float, DateTime, JSON,
    ForeignKey, Enum as SQLEnum, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional, List
import enum
import uuid

from ..database import Base


class ThoughtKind(str, enum.Enum):
    """Closed taxonomy of thought kinds."""
    HEURISTIC = "heuristic"      # "When X, do Y"
    LESSON = "lesson"            # "I learned that..."
    DECISION = "decision"        # "I chose X because..."
    OBSERVATION = "observation"  # "I noticed..."
    PRINCIPLE = "principle"      # "Always/never do X"
    FACT = "fact"                # "X is true"
    PREFERENCE = "preference"    # "I prefer X"
    FEELING = "feeling"          # "I feel X when Y"
    GOAL = "goal"                # "I want to X"
    PREDICTION = "prediction"    # "I expect X will..."


# Kinds a quick note may be categorized as
NOTE_KINDS = (
    ThoughtKind.FACT,
    ThoughtKind.PREFERENCE,
    ThoughtKind.FEELING,
    ThoughtKind.GOAL,
    ThoughtKind.OBSERVATION,
)


class ThoughtDomain(str, enum.Enum):
    """Which part of life a thought belongs to."""
    PROFESSIONAL = "professional"
    PERSONAL = "personal"
    MIXED = "mixed"


class ThoughtStance(str, enum.Enum):
    """How strongly the user holds the claim."""
    BELIEVE = "believe"
    TENTATIVE = "tentative"
    QUESTION = "question"
    REJECTED = "rejected"


class ThoughtPrivacy(str, enum.Enum):
    """Privacy level for synthesis and sharing."""
    PRIVATE = "private"
    SENSITIVE = "sensitive"
    SHAREABLE = "shareable"


class Thought(Base):
    """
    A persisted thought.

    Created once by the extraction pipeline and never mutated afterwards,
    except for the superseded_by_id back-link written when a newer
    thought declares supersedes_id.
    """
    __tablename__ = "thoughts"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True
    )

    kind: Mapped[ThoughtKind] = mapped_column(
        SQLEnum(ThoughtKind),
        nullable=False,
        index=True
    )
    domain: Mapped[ThoughtDomain] = mapped_column(
        SQLEnum(ThoughtDomain),
        default=ThoughtDomain.MIXED,
        nullable=False
    )

    # The standalone statement
    claim: Mapped[str] = mapped_column(Text, nullable=False)

    stance: Mapped[ThoughtStance] = mapped_column(
        SQLEnum(ThoughtStance),
        default=ThoughtStance.BELIEVE,
        nullable=False
    )
    confidence: Mapped[float] = mapped_column(
        Float,
        default=0.8,
        nullable=False
    )  # 0.0 to 1.0
    privacy: Mapped[ThoughtPrivacy] = mapped_column(
        SQLEnum(ThoughtPrivacy),
        default=ThoughtPrivacy.PRIVATE,
        nullable=False
    )

    context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    evidence: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    examples: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    actionables: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    related_ids: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    # Supersession chain
    supersedes_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("thoughts.id", ondelete="SET NULL"),
        nullable=True
    )
    superseded_by_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("thoughts.id", ondelete="SET NULL"),
        nullable=True
    )

    # Embedding vector stored as JSON string (for SQLite)
    embedding_vector: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    source_links: Mapped[List["ThoughtSource"]] = relationship(
        "ThoughtSource",
        back_populates="thought",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_thought_user_kind", "user_id", "kind"),
    )

    def __repr__(self) -> str:
        return f"<Thought(id={self.id}, kind={self.kind})>"
