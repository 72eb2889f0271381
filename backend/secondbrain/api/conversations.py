"""
Conversations API

Endpoints a chat transport calls for each user: send a message, save
thoughts, check status, start over, discard and quick notes.
"""
from fastapi import APIRouter, Depends

from .deps import get_assistant, to_http_error
from ..engine import CaptureAssistant
from ..schemas.conversation import (
    MessageRequest,
    ReplyResponse,
    StatusResponse,
    NewConversationResponse,
    ExtractionResponse,
    DiscardResponse,
    RememberRequest,
)
from ..schemas.thought import ThoughtRecord

router = APIRouter(prefix="/users/{user_id}", tags=["conversations"])


@router.post("/messages", response_model=ReplyResponse)
async def send_message(
    user_id: str,
    request: MessageRequest,
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Send user text and get the assistant's reply."""
    try:
        reply = await assistant.handle_incoming_text(user_id, request.text)
    except Exception as e:
        raise to_http_error(e) from e

    status = assistant.status(user_id)
    return ReplyResponse(
        reply=reply,
        conversation_id=status.conversation_id,
        message_count=status.message_count,
    )


@router.post("/extract", response_model=ExtractionResponse)
async def extract_thoughts(
    user_id: str,
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Save the conversation as thoughts and end it."""
    try:
        outcome = await assistant.trigger_extraction(user_id)
    except Exception as e:
        raise to_http_error(e) from e

    return ExtractionResponse(
        conversation_id=outcome.conversation_id,
        thoughts_saved=outcome.thoughts_saved,
        thought_ids=outcome.thought_ids,
        source_id=outcome.source_id,
    )


@router.get("/status", response_model=StatusResponse)
async def get_status(
    user_id: str,
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Current conversation status."""
    status = assistant.status(user_id)
    return StatusResponse(
        active=status.active,
        message_count=status.message_count,
        conversation_id=status.conversation_id,
    )


@router.post("/new", response_model=NewConversationResponse)
async def new_conversation(
    user_id: str,
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Report pending messages before starting over; extract or discard them first."""
    try:
        pending = await assistant.pending_summary(user_id)
    except Exception as e:
        raise to_http_error(e) from e

    status = assistant.status(user_id)
    return NewConversationResponse(
        active=status.active,
        message_count=status.message_count,
        conversation_id=status.conversation_id,
        pending=pending > 0,
    )


@router.post("/clear", response_model=DiscardResponse)
async def discard_conversation(
    user_id: str,
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Discard the conversation without saving."""
    try:
        discarded = await assistant.discard(user_id)
    except Exception as e:
        raise to_http_error(e) from e
    return DiscardResponse(discarded_messages=discarded)


@router.post("/remember", response_model=ThoughtRecord, status_code=201)
async def remember_note(
    user_id: str,
    request: RememberRequest,
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Save a quick note as a single thought."""
    try:
        return await assistant.remember(user_id, request.note)
    except Exception as e:
        raise to_http_error(e) from e
