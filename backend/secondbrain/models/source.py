"""
Source Models

A source is the raw provenance document thoughts are derived from:
a conversation transcript, a quick note, an article.
Thoughts and sources are linked many-to-many, optionally with a quote.
"""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, JSON, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional, List
import enum
import uuid

from ..database import Base


class SourceType(str, enum.Enum):
    """Types of provenance documents."""
    CONVERSATION = "conversation"
    ARTICLE = "article"
    RESEARCH = "research"
    MANUAL = "manual"


class Source(Base):
    """
    Raw captured text that one or more thoughts reference.

    Immutable once written.
    """
    __tablename__ = "sources"

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

    type: Mapped[SourceType] = mapped_column(
        SQLEnum(SourceType),
        nullable=False
    )
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    raw: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    extra_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    captured_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False
    )
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

    thought_links: Mapped[List["ThoughtSource"]] = relationship(
        "ThoughtSource",
        back_populates="source",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_source_user_type", "user_id", "type"),
    )

    def __repr__(self) -> str:
        return f"<Source(id={self.id}, type={self.type})>"


class ThoughtSource(Base):
    """
    Links a thought to a source document.

    No uniqueness constraint: a retried extraction may link twice.
    """
    __tablename__ = "thought_sources"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    thought_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("thoughts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    source_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sources.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Excerpt of the source that supports the thought
    quoted: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False
    )

    thought: Mapped["Thought"] = relationship(
        "Thought",
        back_populates="source_links"
    )
    source: Mapped["Source"] = relationship(
        "Source",
        back_populates="thought_links"
    )

    def __repr__(self) -> str:
        return f"<ThoughtSource(thought={self.thought_id}, source={self.source_id})>"
