"""Shared fixtures and fakes for the SecondBrain test suite."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timedelta
from typing import Any, List, Optional

import pytest

from secondbrain.conversation import ConversationStateStore, PersistedConversation
from secondbrain.database import build_engine, build_session_factory, init_db, close_db
from secondbrain.llm import LLMProvider
from secondbrain.models.conversation import ConversationStatus
from secondbrain.schemas.thought import (
    ThoughtCreate,
    ThoughtRecord,
    ThoughtSearchResult,
    HybridThoughtSearchResult,
    SourceCreate,
    SourceRecord,
)
from secondbrain.storage import SQLAlchemyThoughtStore, ThoughtStore


# ── Clock ──────────────────────────────────────────────────────────


class FakeClock:
    """Manually advanced clock for the state store."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# ── LLM ────────────────────────────────────────────────────────────


class FakeLLM(LLMProvider):
    """LLM provider returning canned responses in order."""

    def __init__(self, texts: Optional[List[str]] = None, replies: Optional[List[str]] = None):
        self.texts = list(texts or [])
        self.replies = list(replies or [])
        self.text_calls: List[dict] = []
        self.chat_calls: List[dict] = []

    async def generate_text(self, prompt, model, max_tokens=2048, temperature=0.7, system_prompt=None):
        self.text_calls.append({"prompt": prompt, "model": model, "system_prompt": system_prompt})
        return self.texts.pop(0)

    async def generate_chat(self, messages, model, max_tokens=1024, temperature=0.7, system_prompt=None):
        self.chat_calls.append({"messages": messages, "model": model})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def embed_text(self, texts, model):
        return [[1.0, 0.0, 0.0] for _ in texts]


def thought_payload(**overrides: Any) -> dict:
    data = {
        "kind": "lesson",
        "domain": "professional",
        "claim": "Retries without jitter synchronize clients into load spikes.",
        "stance": "believe",
        "confidence": 0.9,
        "tags": ["retries", "distributed_systems"],
    }
    data.update(overrides)
    return data


def extraction_json(*thoughts: dict) -> str:
    return json.dumps({"thoughts": list(thoughts)})


# ── Persistence ────────────────────────────────────────────────────


class FakeThoughtStore(ThoughtStore):
    """In-memory ThoughtStore that records the order of calls."""

    def __init__(self):
        self.calls: List[str] = []
        self.thoughts: dict[str, ThoughtRecord] = {}
        self.sources: dict[str, SourceRecord] = {}
        self.links: List[tuple] = []
        self.conversations: dict[str, PersistedConversation] = {}
        self.fail_persist_on_call: Optional[int] = None
        self._persist_calls = 0

    async def persist_thought(self, data: ThoughtCreate) -> ThoughtRecord:
        self.calls.append("persist_thought")
        self._persist_calls += 1
        if self.fail_persist_on_call == self._persist_calls:
            raise RuntimeError("database unavailable")
        now = datetime.utcnow()
        record = ThoughtRecord(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            **data.model_dump(exclude={"embedding"}),
        )
        self.thoughts[record.id] = record
        return record

    async def persist_source(self, data: SourceCreate) -> SourceRecord:
        self.calls.append("persist_source")
        now = datetime.utcnow()
        record = SourceRecord(
            id=str(uuid.uuid4()),
            captured_at=now,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self.sources[record.id] = record
        return record

    async def link_thought_to_source(self, thought_id, source_id, quoted=None):
        self.calls.append("link_thought_to_source")
        self.links.append((thought_id, source_id))

    async def get_thought(self, thought_id):
        return self.thoughts.get(thought_id)

    async def get_thought_sources(self, thought_id):
        return [self.sources[s] for t, s in self.links if t == thought_id]

    async def get_sources_by_user(self, user_id, source_type=None, limit=10):
        sources = [s for s in self.sources.values() if s.user_id == user_id]
        if source_type is not None:
            sources = [s for s in sources if s.type == source_type]
        return sources[:limit]

    async def search_thoughts(self, embedding, threshold=0.5, limit=10, user_id=None):
        return [
            ThoughtSearchResult(**t.model_dump(), similarity=0.9)
            for t in self.thoughts.values()
            if user_id is None or t.user_id == user_id
        ][:limit]

    async def hybrid_search_thoughts(self, embedding, query_text, limit=10, user_id=None, tags=None, kind=None):
        return [
            HybridThoughtSearchResult(**t.model_dump(), similarity=0.9, text_rank=0.5, hybrid_score=0.03)
            for t in self.thoughts.values()
            if (user_id is None or t.user_id == user_id) and (kind is None or t.kind.value == kind)
        ][:limit]

    async def get_active_conversation(self, user_id):
        for record in self.conversations.values():
            if record.user_id == user_id and record.status == ConversationStatus.ACTIVE.value:
                return record
        return None

    async def save_conversation(self, conversation_id, user_id, transcript):
        self.calls.append("save_conversation")
        self.conversations[conversation_id] = PersistedConversation(
            id=conversation_id,
            user_id=user_id,
            raw_transcript=transcript,
            status=ConversationStatus.ACTIVE.value,
            updated_at=datetime.utcnow(),
        )

    async def update_conversation_status(self, conversation_id, status):
        self.calls.append(f"update_conversation_status:{status.value}")
        record = self.conversations.get(conversation_id)
        if record is not None:
            record.status = status.value


# ── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def states(clock) -> ConversationStateStore:
    return ConversationStateStore(clock=clock)


@pytest.fixture
def fake_store() -> FakeThoughtStore:
    return FakeThoughtStore()


@pytest.fixture
async def sql_store(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'secondbrain-test.db'}")
    await init_db(engine)
    yield SQLAlchemyThoughtStore(build_session_factory(engine))
    await close_db(engine)
