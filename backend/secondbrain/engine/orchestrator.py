"""
Extraction Orchestrator

Runs the save-thoughts pipeline for one user's conversation:

1. Extract thoughts from the transcript (LLM)
2. Embed each thought
3. Persist each thought
4. Persist the transcript as a conversation source
5. Link every thought to the source
6. Mark the persisted conversation extracted and end it

A failure at any stage aborts the run and reports the stage plus how many
thoughts were already saved. Saved thoughts are not rolled back.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Set

from .embedding import EmbeddingClient
from .errors import NoActiveConversationError, ExtractionInProgressError
from .extraction import ExtractionEngine
from ..conversation import ConversationStateStore, format_transcript
from ..models.conversation import ConversationStatus
from ..models.source import SourceType
from ..schemas.thought import ExtractedThought, ThoughtCreate, ThoughtRecord, SourceCreate
from ..storage import ThoughtStore
from ..tracer import trace_input, trace_stage, trace_result, trace_output

logger = logging.getLogger(__name__)


class ExtractionStage(str, enum.Enum):
    """Pipeline stage an extraction run was in."""
    EXTRACTING = "extracting"
    EMBEDDING = "embedding"
    PERSISTING = "persisting"
    LINKING = "linking"
    FINALIZING = "finalizing"


class ExtractionError(Exception):
    """An extraction run failed at a known stage."""

    def __init__(self, stage: ExtractionStage, thoughts_saved: int, cause: BaseException):
        self.stage = stage
        self.thoughts_saved = thoughts_saved
        self.cause = cause
        reason = str(cause) or type(cause).__name__
        if thoughts_saved:
            message = (
                f"Extraction partially succeeded, {thoughts_saved} thoughts saved "
                f"before {stage.value} failed: {reason}"
            )
        else:
            message = f"Extraction failed before saving any thought ({stage.value}): {reason}"
        super().__init__(message)

    @property
    def partial(self) -> bool:
        return self.thoughts_saved > 0


@dataclass
class ExtractionOutcome:
    """Result of a completed extraction run."""
    conversation_id: Optional[str]
    thoughts: List[ThoughtRecord] = field(default_factory=list)
    source_id: Optional[str] = None

    @property
    def thoughts_saved(self) -> int:
        return len(self.thoughts)

    @property
    def thought_ids(self) -> List[str]:
        return [t.id for t in self.thoughts]


def embedding_input(thought: ExtractedThought) -> str:
    """Text a thought is embedded from: claim, context and tags."""
    parts = [thought.claim, thought.context or "", " ".join(thought.tags)]
    return " ".join(part for part in parts if part)


class ExtractionOrchestrator:
    """
    Sequences extraction, embedding and persistence for a conversation.

    The conversation is snapshotted when the run starts; messages that
    arrive while it runs are not extracted and are carried into the
    user's next conversation.
    """

    def __init__(
        self,
        states: ConversationStateStore,
        extractor: ExtractionEngine,
        embedder: EmbeddingClient,
        store: ThoughtStore,
        mirror=None,
    ):
        self.states = states
        self.extractor = extractor
        self.embedder = embedder
        self.store = store
        self.mirror = mirror
        self._running: Set[str] = set()

    async def run(self, user_id: str) -> ExtractionOutcome:
        if user_id in self._running:
            raise ExtractionInProgressError("Extraction already in progress")
        self._running.add(user_id)
        try:
            return await self._run(user_id)
        finally:
            self._running.discard(user_id)

    async def _run(self, user_id: str) -> ExtractionOutcome:
        state = self.states.get(user_id)
        if state is None or not state.is_active or not state.messages:
            raise NoActiveConversationError("No active conversation to extract")

        conversation_id = state.conversation_id
        messages = list(state.messages)
        snapshot_total = state.total_appended
        trace_input("orchestrator", "messages", len(messages))

        stage = ExtractionStage.EXTRACTING
        saved: List[ThoughtRecord] = []
        try:
            trace_stage("orchestrator", stage.value)
            result = await self.extractor.extract_thoughts(messages)

            for extracted in result.thoughts:
                stage = ExtractionStage.EMBEDDING
                embedding = await self.embedder.embed(embedding_input(extracted))

                stage = ExtractionStage.PERSISTING
                thought = await self.store.persist_thought(ThoughtCreate(
                    **extracted.model_dump(),
                    user_id=user_id,
                    embedding=embedding,
                ))
                saved.append(thought)
            trace_stage("orchestrator", "thoughts saved", str(len(saved)))

            stage = ExtractionStage.PERSISTING
            source = await self.store.persist_source(SourceCreate(
                user_id=user_id,
                type=SourceType.CONVERSATION,
                title=f"Conversation {datetime.utcnow():%Y-%m-%d %H:%M}",
                raw=format_transcript(messages),
                extra_data={
                    "conversation_id": conversation_id,
                    "message_count": len(messages),
                },
            ))

            stage = ExtractionStage.LINKING
            trace_stage("orchestrator", stage.value)
            for thought in saved:
                await self.store.link_thought_to_source(thought.id, source.id)

            # The persisted record leaves "active" before the conversation ends
            stage = ExtractionStage.FINALIZING
            trace_stage("orchestrator", stage.value)
            await self.store.update_conversation_status(conversation_id, ConversationStatus.EXTRACTED)
        except Exception as e:
            logger.error(
                f"Extraction for user {user_id} failed at {stage.value} "
                f"after saving {len(saved)} thought(s): {e}"
            )
            trace_result("orchestrator", "run", False, stage.value)
            raise ExtractionError(stage, len(saved), e) from e

        self._finalize(user_id, conversation_id, snapshot_total)

        if self.mirror is not None:
            self.mirror.export_in_background(source, saved)

        outcome = ExtractionOutcome(conversation_id=conversation_id, thoughts=saved, source_id=source.id)
        trace_output("orchestrator", "thoughts_saved", outcome.thoughts_saved)
        logger.info(f"Extracted {outcome.thoughts_saved} thoughts from conversation {conversation_id}")
        return outcome

    def _finalize(self, user_id: str, conversation_id: str, snapshot_total: int) -> None:
        state = self.states.get(user_id)
        if state is None or state.conversation_id != conversation_id:
            logger.info(f"Conversation {conversation_id} was replaced during extraction")
            return

        late_count = min(state.total_appended - snapshot_total, len(state.messages))
        late = list(state.messages)[-late_count:] if late_count > 0 else []
        self.states.end(user_id)

        for message in late:
            self.states.add_message(user_id, message)
        if late:
            logger.info(f"Carried {len(late)} message(s) into a new conversation for user {user_id}")
