# SecondBrain Models
from .thought import (
    Thought,
    ThoughtKind,
    ThoughtDomain,
    ThoughtStance,
    ThoughtPrivacy,
    NOTE_KINDS,
)
from .source import Source, SourceType, ThoughtSource
from .conversation import ConversationRecord, ConversationStatus

__all__ = [
    "Thought",
    "ThoughtKind",
    "ThoughtDomain",
    "ThoughtStance",
    "ThoughtPrivacy",
    "NOTE_KINDS",
    "Source",
    "SourceType",
    "ThoughtSource",
    "ConversationRecord",
    "ConversationStatus",
]
