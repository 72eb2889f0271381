"""
SQLAlchemy Thought Store

ThoughtStore backed by the async SQLAlchemy session factory. Embeddings
are stored as JSON text and ranked in process with numpy, the same way
for SQLite and any other backend.
"""
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .base import ThoughtStore, StorageError
from .ranking import cosine_similarity, text_relevance, rrf_merge
from ..conversation import PersistedConversation
from ..models.conversation import ConversationRecord, ConversationStatus
from ..models.source import Source, SourceType, ThoughtSource
from ..models.thought import Thought, ThoughtKind
from ..schemas.thought import (
    ThoughtCreate,
    ThoughtRecord,
    ThoughtSearchResult,
    HybridThoughtSearchResult,
    SourceCreate,
    SourceRecord,
)
from ..tracer import trace_step, trace_result

logger = logging.getLogger(__name__)


def _load_embedding(thought: Thought) -> Optional[List[float]]:
    if not thought.embedding_vector:
        return None
    try:
        return json.loads(thought.embedding_vector)
    except json.JSONDecodeError:
        logger.warning(f"Thought {thought.id} has a corrupt embedding")
        return None


class SQLAlchemyThoughtStore(ThoughtStore):
    """
    Thought store over an async_sessionmaker.

    Every operation runs in its own session; writes commit before
    returning. Driver errors surface as StorageError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"{operation} failed: {e}")
                raise StorageError(f"{operation} failed: {e}") from e

    # ------------------------------------------------------------------
    # Thoughts and sources
    # ------------------------------------------------------------------

    async def persist_thought(self, data: ThoughtCreate) -> ThoughtRecord:
        async with self._session("persist_thought") as session:
            previous = None
            if data.supersedes_id:
                previous = await session.get(Thought, data.supersedes_id)
                if previous is None:
                    raise StorageError(f"Superseded thought {data.supersedes_id} not found")

            thought = Thought(
                user_id=data.user_id,
                kind=data.kind,
                domain=data.domain,
                claim=data.claim,
                stance=data.stance,
                confidence=data.confidence,
                privacy=data.privacy,
                context=data.context,
                evidence=list(data.evidence),
                examples=list(data.examples),
                actionables=list(data.actionables),
                tags=list(data.tags),
                related_ids=list(data.related_ids),
                supersedes_id=data.supersedes_id,
                embedding_vector=json.dumps(data.embedding) if data.embedding is not None else None,
            )
            session.add(thought)
            await session.flush()

            if previous is not None:
                if previous.superseded_by_id:
                    logger.info(
                        f"Thought {previous.id} was superseded by {previous.superseded_by_id}, "
                        f"now by {thought.id}"
                    )
                previous.superseded_by_id = thought.id

            await session.commit()
            trace_step("storage", f"Persisted thought {thought.id} ({thought.kind.value})")
            return ThoughtRecord.model_validate(thought)

    async def persist_source(self, data: SourceCreate) -> SourceRecord:
        async with self._session("persist_source") as session:
            source = Source(
                user_id=data.user_id,
                type=data.type,
                title=data.title,
                raw=data.raw,
                summary=data.summary,
                url=data.url,
                extra_data=data.extra_data,
            )
            session.add(source)
            await session.commit()
            trace_step("storage", f"Persisted source {source.id} ({source.type.value})")
            return SourceRecord.model_validate(source)

    async def link_thought_to_source(
        self,
        thought_id: str,
        source_id: str,
        quoted: Optional[str] = None,
    ) -> None:
        async with self._session("link_thought_to_source") as session:
            session.add(ThoughtSource(thought_id=thought_id, source_id=source_id, quoted=quoted))
            await session.commit()

    async def get_thought(self, thought_id: str) -> Optional[ThoughtRecord]:
        async with self._session("get_thought") as session:
            thought = await session.get(Thought, thought_id)
            return ThoughtRecord.model_validate(thought) if thought else None

    async def get_thought_sources(self, thought_id: str) -> List[SourceRecord]:
        async with self._session("get_thought_sources") as session:
            result = await session.execute(
                select(Source)
                .join(ThoughtSource, ThoughtSource.source_id == Source.id)
                .where(ThoughtSource.thought_id == thought_id)
                .distinct()
                .order_by(Source.captured_at.desc())
            )
            return [SourceRecord.model_validate(s) for s in result.scalars().all()]

    async def get_sources_by_user(
        self,
        user_id: str,
        source_type: Optional[SourceType] = None,
        limit: int = 10,
    ) -> List[SourceRecord]:
        async with self._session("get_sources_by_user") as session:
            query = select(Source).where(Source.user_id == user_id)
            if source_type is not None:
                query = query.where(Source.type == source_type)
            query = query.order_by(Source.captured_at.desc()).limit(limit)
            result = await session.execute(query)
            return [SourceRecord.model_validate(s) for s in result.scalars().all()]

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def _candidate_thoughts(
        self,
        session: AsyncSession,
        user_id: Optional[str],
        kind: Optional[str] = None,
    ) -> List[Thought]:
        query = select(Thought).where(Thought.superseded_by_id.is_(None))
        if user_id is not None:
            query = query.where(Thought.user_id == user_id)
        if kind is not None:
            query = query.where(Thought.kind == ThoughtKind(kind))
        result = await session.execute(query)
        return list(result.scalars().all())

    async def search_thoughts(
        self,
        embedding: List[float],
        threshold: float = 0.5,
        limit: int = 10,
        user_id: Optional[str] = None,
    ) -> List[ThoughtSearchResult]:
        async with self._session("search_thoughts") as session:
            candidates = await self._candidate_thoughts(session, user_id)

        scored = []
        for thought in candidates:
            similarity = cosine_similarity(embedding, _load_embedding(thought))
            if similarity >= threshold:
                scored.append((thought, similarity))
        scored.sort(key=lambda item: item[1], reverse=True)

        results = [
            ThoughtSearchResult(
                **ThoughtRecord.model_validate(thought).model_dump(),
                similarity=similarity,
            )
            for thought, similarity in scored[:limit]
        ]
        trace_result("storage", "search_thoughts", True, f"{len(results)} of {len(candidates)}")
        return results

    async def hybrid_search_thoughts(
        self,
        embedding: List[float],
        query_text: str,
        limit: int = 10,
        user_id: Optional[str] = None,
        tags: Optional[List[str]] = None,
        kind: Optional[str] = None,
    ) -> List[HybridThoughtSearchResult]:
        async with self._session("hybrid_search_thoughts") as session:
            candidates = await self._candidate_thoughts(session, user_id, kind)

        if tags:
            wanted = {tag.lower() for tag in tags}
            candidates = [t for t in candidates if wanted & {tag.lower() for tag in (t.tags or [])}]

        by_id = {t.id: t for t in candidates}
        similarity = {t.id: cosine_similarity(embedding, _load_embedding(t)) for t in candidates}
        text_rank = {
            t.id: text_relevance(query_text, [t.claim, t.context, " ".join(t.tags or [])])
            for t in candidates
        }

        vector_ranking = sorted(
            (tid for tid in by_id if similarity[tid] > 0),
            key=lambda tid: similarity[tid],
            reverse=True,
        )
        text_ranking = sorted(
            (tid for tid in by_id if text_rank[tid] > 0),
            key=lambda tid: text_rank[tid],
            reverse=True,
        )
        fused = rrf_merge([vector_ranking, text_ranking])
        ordered = sorted(fused, key=lambda tid: fused[tid], reverse=True)[:limit]

        return [
            HybridThoughtSearchResult(
                **ThoughtRecord.model_validate(by_id[tid]).model_dump(),
                similarity=similarity[tid],
                text_rank=text_rank[tid],
                hybrid_score=fused[tid],
            )
            for tid in ordered
        ]

    # ------------------------------------------------------------------
    # Conversation transcripts
    # ------------------------------------------------------------------

    async def get_active_conversation(self, user_id: str) -> Optional[PersistedConversation]:
        async with self._session("get_active_conversation") as session:
            result = await session.execute(
                select(ConversationRecord)
                .where(
                    ConversationRecord.user_id == user_id,
                    ConversationRecord.status == ConversationStatus.ACTIVE,
                )
                .order_by(ConversationRecord.updated_at.desc())
                .limit(1)
            )
            record = result.scalar_one_or_none()

        if record is None:
            return None
        return PersistedConversation(
            id=record.id,
            user_id=record.user_id,
            raw_transcript=record.raw_transcript,
            status=record.status.value,
            updated_at=record.updated_at,
        )

    async def save_conversation(self, conversation_id: str, user_id: str, transcript: str) -> None:
        async with self._session("save_conversation") as session:
            record = await session.get(ConversationRecord, conversation_id)
            if record is None:
                session.add(ConversationRecord(
                    id=conversation_id,
                    user_id=user_id,
                    raw_transcript=transcript,
                    status=ConversationStatus.ACTIVE,
                ))
            else:
                record.raw_transcript = transcript
                record.updated_at = datetime.utcnow()
            await session.commit()

    async def update_conversation_status(
        self,
        conversation_id: str,
        status: ConversationStatus,
    ) -> None:
        async with self._session("update_conversation_status") as session:
            record = await session.get(ConversationRecord, conversation_id)
            if record is None:
                logger.debug(f"No persisted conversation {conversation_id} to mark {status.value}")
                return
            record.status = status
            await session.commit()
