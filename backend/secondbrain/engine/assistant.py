"""
Capture Assistant

Transport-neutral entry point for a user's conversation: take inbound
text, keep the conversation going, and on request turn it into saved
thoughts. Also serves quick notes, discard and thought search.
"""
import logging
from typing import List, Optional, Union

from .embedding import EmbeddingClient
from .errors import (
    EmptyInputError,
    EmptyNoteError,
    ExtractionInProgressError,
    InvalidFilterError,
    NoActiveConversationError,
)
from .extraction import ExtractionEngine
from .orchestrator import ExtractionError, ExtractionOrchestrator, ExtractionOutcome, embedding_input
from .responder import Responder
from ..conversation import (
    ConversationStateStore,
    Message,
    PersistenceStrategy,
    Role,
    StatusSnapshot,
    format_transcript,
)
from ..llm import get_llm_provider, get_model_for_task, get_embedding_model
from ..models.conversation import ConversationStatus
from ..models.source import SourceType
from ..models.thought import ThoughtKind
from ..schemas.thought import (
    ThoughtCreate,
    ThoughtRecord,
    ThoughtSearchResult,
    HybridThoughtSearchResult,
    SourceCreate,
    SourceRecord,
)
from ..storage import ThoughtStore
from ..tracer import trace_input, trace_step, trace_output

logger = logging.getLogger(__name__)


class CaptureAssistant:
    """
    Conversation handling for every user.

    Usage:
        assistant = CaptureAssistant(states, responder, extractor, embedder, store)
        reply = await assistant.handle_incoming_text("user-1", "I learned ...")
        outcome = await assistant.trigger_extraction("user-1")
    """

    def __init__(
        self,
        states: ConversationStateStore,
        responder: Responder,
        extractor: ExtractionEngine,
        embedder: EmbeddingClient,
        store: ThoughtStore,
        mirror=None,
        search_threshold: float = 0.5,
        search_limit: int = 10,
    ):
        self.states = states
        self.responder = responder
        self.extractor = extractor
        self.embedder = embedder
        self.store = store
        self.mirror = mirror
        self.search_threshold = search_threshold
        self.search_limit = search_limit
        self.orchestrator = ExtractionOrchestrator(states, extractor, embedder, store, mirror)

        if states.strategy is PersistenceStrategy.IDLE_TIMEOUT:
            states.set_idle_handler(self._extract_idle)

    @classmethod
    def from_settings(cls, settings, store: ThoughtStore, mirror=None) -> "CaptureAssistant":
        """Wire the assistant to the configured LLM provider."""
        llm = get_llm_provider()
        return cls(
            states=ConversationStateStore.from_settings(settings),
            responder=Responder(llm, get_model_for_task("conversation_reply")),
            extractor=ExtractionEngine(
                llm,
                extraction_model=get_model_for_task("thought_extraction"),
                categorize_model=get_model_for_task("note_categorization"),
            ),
            embedder=EmbeddingClient.from_provider(
                llm,
                get_embedding_model(),
                max_attempts=settings.embedding_max_attempts,
                base_delay=settings.embedding_base_delay,
            ),
            store=store,
            mirror=mirror,
            search_threshold=settings.search_threshold,
            search_limit=settings.search_limit,
        )

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def handle_incoming_text(self, user_id: str, text: str) -> str:
        """
        Record the user's message, reply, and save the transcript if due.

        Raises:
            EmptyInputError: text is blank
            ReplyGenerationError: the model could not reply; the user's
                message stays in the conversation
        """
        if not text or not text.strip():
            raise EmptyInputError("Message text is empty")

        trace_input("assistant", "text", text)
        await self._ensure_loaded(user_id)

        self.states.add_message(user_id, Message(role=Role.USER, content=text))
        reply = await self.responder.generate_reply(self.states.get_messages(user_id))
        self.states.add_message(user_id, Message(role=Role.ASSISTANT, content=reply))

        await self._save_if_due(user_id)
        trace_output("assistant", "reply", reply)
        return reply

    async def trigger_extraction(self, user_id: str) -> ExtractionOutcome:
        """
        Turn the active conversation into saved thoughts and end it.

        Raises:
            NoActiveConversationError: nothing to extract
            ExtractionInProgressError: a run for this user is still going
            ExtractionError: the run failed; see .stage and .thoughts_saved
        """
        await self._ensure_loaded(user_id)
        return await self.orchestrator.run(user_id)

    def status(self, user_id: str) -> StatusSnapshot:
        return self.states.status(user_id)

    async def pending_summary(self, user_id: str) -> int:
        """Messages that would be lost by starting over. Never mutates."""
        await self._ensure_loaded(user_id)
        snapshot = self.states.status(user_id)
        return snapshot.message_count if snapshot.active else 0

    async def discard(self, user_id: str) -> int:
        """
        Drop the conversation without saving. Returns the discarded message count.

        The persisted record is archived first; if that fails the conversation
        is kept and the storage error propagates.
        """
        await self._ensure_loaded(user_id)
        state = self.states.get(user_id)
        if state is None or not state.messages:
            raise NoActiveConversationError("No conversation to discard")

        conversation_id = state.conversation_id
        discarded = len(state.messages)
        if self.states.strategy is not PersistenceStrategy.MEMORY_ONLY:
            await self.store.update_conversation_status(conversation_id, ConversationStatus.ARCHIVED)

        self.states.clear(user_id)
        # Keep the archived record from being restored on the next message
        self.states.mark_loaded(user_id)

        logger.info(f"Discarded {discarded} messages for user {user_id}")
        return discarded

    # ------------------------------------------------------------------
    # Quick notes and search
    # ------------------------------------------------------------------

    async def remember(self, user_id: str, note: str) -> ThoughtRecord:
        """Categorize a quick note and save it as one thought with a manual source."""
        if not note or not note.strip():
            raise EmptyNoteError("Note is empty")
        note = note.strip()

        extracted = await self.extractor.categorize(note)
        embedding = await self.embedder.embed(embedding_input(extracted))
        thought = await self.store.persist_thought(ThoughtCreate(
            **extracted.model_dump(),
            user_id=user_id,
            embedding=embedding,
        ))
        source = await self.store.persist_source(SourceCreate(
            user_id=user_id,
            type=SourceType.MANUAL,
            title="Quick note",
            raw=note,
        ))
        await self.store.link_thought_to_source(thought.id, source.id)

        if self.mirror is not None:
            self.mirror.export_in_background(source, [thought])

        trace_step("assistant", f"Remembered {thought.kind.value}: {thought.claim}")
        return thought

    async def search(
        self,
        user_id: str,
        query: str,
        hybrid: bool = False,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        tags: Optional[List[str]] = None,
        kind: Optional[str] = None,
    ) -> List[Union[ThoughtSearchResult, HybridThoughtSearchResult]]:
        """Search the user's thoughts by meaning, optionally fused with keywords."""
        if not query or not query.strip():
            raise EmptyInputError("Search query is empty")
        if kind is not None and kind not in {k.value for k in ThoughtKind}:
            raise InvalidFilterError(f"Unknown thought kind: {kind}")
        if tags or kind:
            hybrid = True

        embedding = await self.embedder.embed(query)
        limit = limit or self.search_limit

        if hybrid:
            return await self.store.hybrid_search_thoughts(
                embedding,
                query,
                limit=limit,
                user_id=user_id,
                tags=tags or None,
                kind=kind,
            )
        return await self.store.search_thoughts(
            embedding,
            threshold=self.search_threshold if threshold is None else threshold,
            limit=limit,
            user_id=user_id,
        )

    async def get_thought(self, thought_id: str) -> Optional[ThoughtRecord]:
        return await self.store.get_thought(thought_id)

    async def get_thought_sources(self, thought_id: str) -> List[SourceRecord]:
        return await self.store.get_thought_sources(thought_id)

    async def recent_sources(
        self,
        user_id: str,
        source_type: Optional[SourceType] = None,
        limit: int = 10,
    ) -> List[SourceRecord]:
        return await self.store.get_sources_by_user(user_id, source_type, limit)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _ensure_loaded(self, user_id: str) -> None:
        """Restore the user's persisted conversation once per process."""
        if self.states.has_loaded(user_id):
            return
        if self.states.strategy is PersistenceStrategy.MEMORY_ONLY:
            self.states.mark_loaded(user_id)
            return

        try:
            record = await self.store.get_active_conversation(user_id)
        except Exception as e:
            logger.error(f"Failed to load conversation for user {user_id}: {e}")
            record = None

        if record is not None and not self.states.is_active(user_id):
            self.states.load_from_record(user_id, record)
        else:
            self.states.mark_loaded(user_id)

    async def _save_if_due(self, user_id: str) -> None:
        if not self.states.should_persist(user_id):
            return

        conversation_id = self.states.get_conversation_id(user_id)
        transcript = format_transcript(self.states.get_messages(user_id))
        try:
            await self.store.save_conversation(conversation_id, user_id, transcript)
        except Exception as e:
            logger.error(f"Failed to save conversation {conversation_id}: {e}")
            return
        self.states.mark_persisted(user_id)
        trace_step("assistant", f"Saved conversation {conversation_id}")

    async def _extract_idle(self, user_id: str) -> None:
        if not self.states.is_active(user_id):
            return
        await self._save_if_due(user_id)
        try:
            outcome = await self.trigger_extraction(user_id)
            logger.info(f"Idle extraction saved {outcome.thoughts_saved} thoughts for user {user_id}")
        except (NoActiveConversationError, ExtractionInProgressError, ExtractionError) as e:
            logger.warning(f"Idle extraction for user {user_id} did not complete: {e}")
