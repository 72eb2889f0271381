# SecondBrain Schemas
from .thought import (
    ExtractedThought,
    ThoughtExtractionResult,
    ThoughtCreate,
    ThoughtRecord,
    ThoughtSearchResult,
    HybridThoughtSearchResult,
    SourceCreate,
    SourceRecord,
)

__all__ = [
    "ExtractedThought",
    "ThoughtExtractionResult",
    "ThoughtCreate",
    "ThoughtRecord",
    "ThoughtSearchResult",
    "HybridThoughtSearchResult",
    "SourceCreate",
    "SourceRecord",
]
