"""
Conversation Record Model

Durable copy of an in-progress conversation, so a restart can resume it.
The transcript uses the paragraph format "<role>: <content>" separated by
blank lines.
"""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column
import enum
import uuid

from ..database import Base


class ConversationStatus(str, enum.Enum):
    """Lifecycle of a persisted conversation."""
    ACTIVE = "active"
    EXTRACTED = "extracted"
    ARCHIVED = "archived"


class ConversationRecord(Base):
    """A persisted conversation transcript for one user."""
    __tablename__ = "conversations"

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

    raw_transcript: Mapped[str] = mapped_column(Text, default="", nullable=False)

    status: Mapped[ConversationStatus] = mapped_column(
        SQLEnum(ConversationStatus),
        default=ConversationStatus.ACTIVE,
        nullable=False,
        index=True
    )

    started_at: Mapped[datetime] = mapped_column(
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

    __table_args__ = (
        Index("idx_conversation_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<ConversationRecord(id={self.id}, status={self.status})>"
