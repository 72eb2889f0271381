"""
API Dependencies

Access to the shared assistant and translation of core errors into
HTTP responses.
"""
import logging

from fastapi import HTTPException, Request

from ..engine import (
    CaptureAssistant,
    UserInputError,
    ExtractionError,
    ExtractionInProgressError,
    EmbeddingRetryError,
    ExtractionEngineError,
    ReplyGenerationError,
)
from ..llm import LLMError
from ..storage import StorageError

logger = logging.getLogger(__name__)


def get_assistant(request: Request) -> CaptureAssistant:
    """Dependency returning the assistant built at startup."""
    return request.app.state.assistant


def to_http_error(error: Exception) -> HTTPException:
    """Map a core error to an HTTPException."""
    if isinstance(error, ExtractionInProgressError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, UserInputError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, ExtractionError):
        return HTTPException(
            status_code=502,
            detail={
                "message": str(error),
                "stage": error.stage.value,
                "thoughts_saved": error.thoughts_saved,
                "partial": error.partial,
            },
        )
    if isinstance(error, (EmbeddingRetryError, ExtractionEngineError, ReplyGenerationError, LLMError)):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, StorageError):
        return HTTPException(status_code=503, detail=str(error))

    logger.exception(f"Unhandled error: {error}")
    return HTTPException(status_code=500, detail="Internal error")
