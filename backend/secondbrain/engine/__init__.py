# Engine Modules
from .errors import (
    UserInputError,
    NoActiveConversationError,
    ExtractionInProgressError,
    EmptyInputError,
    EmptyNoteError,
    InvalidFilterError,
)
from .embedding import EmbeddingClient, EmbeddingRetryError
from .extraction import (
    ExtractionEngine,
    ExtractionEngineError,
    ExtractionParseError,
    ExtractionValidationError,
)
from .responder import Responder, ReplyGenerationError
from .orchestrator import (
    ExtractionOrchestrator,
    ExtractionOutcome,
    ExtractionError,
    ExtractionStage,
)
from .assistant import CaptureAssistant

__all__ = [
    "UserInputError",
    "NoActiveConversationError",
    "ExtractionInProgressError",
    "EmptyInputError",
    "EmptyNoteError",
    "InvalidFilterError",
    "EmbeddingClient",
    "EmbeddingRetryError",
    "ExtractionEngine",
    "ExtractionEngineError",
    "ExtractionParseError",
    "ExtractionValidationError",
    "Responder",
    "ReplyGenerationError",
    "ExtractionOrchestrator",
    "ExtractionOutcome",
    "ExtractionError",
    "ExtractionStage",
    "CaptureAssistant",
]
