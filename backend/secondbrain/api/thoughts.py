"""
Thoughts API

Search and read back saved thoughts and their sources.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from .deps import get_assistant, to_http_error
from ..engine import CaptureAssistant
from ..models.source import SourceType
from ..schemas.conversation import SearchRequest, SearchResponse
from ..schemas.thought import ThoughtRecord, SourceRecord

router = APIRouter(tags=["thoughts"])


@router.post("/users/{user_id}/search", response_model=SearchResponse)
async def search_thoughts(
    user_id: str,
    request: SearchRequest,
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Semantic search, or hybrid search when requested or filtered."""
    try:
        results = await assistant.search(
            user_id,
            request.query,
            hybrid=request.hybrid,
            threshold=request.threshold,
            limit=request.limit,
            tags=request.tags,
            kind=request.kind,
        )
    except Exception as e:
        raise to_http_error(e) from e
    return SearchResponse(results=results, total=len(results))


@router.get("/users/{user_id}/sources", response_model=List[SourceRecord])
async def list_sources(
    user_id: str,
    source_type: Optional[SourceType] = Query(None, alias="type"),
    limit: int = Query(10, ge=1, le=100),
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Most recent sources for a user."""
    try:
        return await assistant.recent_sources(user_id, source_type, limit)
    except Exception as e:
        raise to_http_error(e) from e


@router.get("/thoughts/{thought_id}", response_model=ThoughtRecord)
async def get_thought(
    thought_id: str,
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Get a thought by ID."""
    try:
        thought = await assistant.get_thought(thought_id)
    except Exception as e:
        raise to_http_error(e) from e

    if not thought:
        raise HTTPException(status_code=404, detail="Thought not found")
    return thought


@router.get("/thoughts/{thought_id}/sources", response_model=List[SourceRecord])
async def get_thought_sources(
    thought_id: str,
    assistant: CaptureAssistant = Depends(get_assistant),
):
    """Sources a thought was captured from."""
    try:
        return await assistant.get_thought_sources(thought_id)
    except Exception as e:
        raise to_http_error(e) from e
