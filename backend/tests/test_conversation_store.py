"""Tests for the per-user conversation state store."""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from secondbrain.conversation import (
    ConversationStateStore,
    Message,
    PersistedConversation,
    PersistenceStrategy,
    Role,
    format_transcript,
)


def _user(content: str) -> Message:
    return Message(role=Role.USER, content=content)


# ── Sliding window ────────────────────────────────────────────────


class TestSlidingWindow:
    def test_keeps_most_recent_messages_in_order(self, states):
        for i in range(1, 206):
            states.add_message("u1", _user(f"message {i}"))

        messages = states.get_messages("u1")
        assert len(messages) == 200
        assert messages[0].content == "message 6"
        assert messages[-1].content == "message 205"
        assert [m.content for m in messages] == [f"message {i}" for i in range(6, 206)]

    def test_no_trim_at_exact_capacity(self, clock):
        store = ConversationStateStore(max_messages=3, clock=clock)
        for i in range(3):
            store.add_message("u1", _user(str(i)))
        assert [m.content for m in store.get_messages("u1")] == ["0", "1", "2"]

    def test_conversation_id_survives_trim(self, clock):
        store = ConversationStateStore(max_messages=2, clock=clock)
        store.add_message("u1", _user("a"))
        conversation_id = store.get_conversation_id("u1")
        for content in "bcdef":
            store.add_message("u1", _user(content))
        assert store.get_conversation_id("u1") == conversation_id

    def test_rejects_empty_window(self):
        with pytest.raises(ValueError):
            ConversationStateStore(max_messages=0)


# ── Lifecycle ─────────────────────────────────────────────────────


class TestLifecycle:
    def test_get_or_create_is_stable_while_active(self, states):
        first = states.get_or_create("u1")
        assert states.get_or_create("u1") is first
        assert first.is_active

    def test_users_are_isolated(self, states):
        states.add_message("u1", _user("hello"))
        states.add_message("u2", _user("hi"))
        assert len(states.get_messages("u1")) == 1
        assert states.get_conversation_id("u1") != states.get_conversation_id("u2")

    def test_clear_removes_state_and_loaded_flag(self, states):
        states.add_message("u1", _user("hello"))
        states.mark_loaded("u1")
        states.clear("u1")
        assert states.get_messages("u1") == []
        assert states.get_conversation_id("u1") is None
        assert not states.has_loaded("u1")

    async def test_new_message_after_end_starts_fresh_conversation(self, states):
        states.add_message("u1", _user("old"))
        ended_id = states.get_conversation_id("u1")
        states.end("u1")

        states.add_message("u1", _user("new"))
        assert states.get_conversation_id("u1") != ended_id
        assert [m.content for m in states.get_messages("u1")] == ["new"]
        assert states.is_active("u1")

    def test_status_for_unknown_user(self, states):
        status = states.status("nobody")
        assert status.active is False
        assert status.message_count == 0
        assert status.conversation_id is None


# ── Unknown-user safety ───────────────────────────────────────────


class TestUnknownUser:
    def test_should_persist_is_false(self, states):
        assert states.should_persist("ghost") is False

    def test_mark_persisted_is_noop(self, states):
        states.mark_persisted("ghost")
        assert states.get("ghost") is None

    def test_end_returns_none(self, states):
        assert states.end("ghost") is None

    def test_reads_return_empty(self, states):
        assert states.get_messages("ghost") == []
        assert states.get_conversation_id("ghost") is None
        assert states.is_active("ghost") is False


# ── Save-worthiness ───────────────────────────────────────────────


class TestShouldPersist:
    def test_never_saved_is_save_worthy(self, states):
        states.add_message("u1", _user("first"))
        assert states.should_persist("u1") is True

    def test_below_thresholds_after_save(self, states, clock):
        states.add_message("u1", _user("first"))
        states.mark_persisted("u1")
        for i in range(9):
            states.add_message("u1", _user(str(i)))
        clock.advance(299)
        assert states.should_persist("u1") is False

    def test_message_threshold_crossed(self, states):
        states.add_message("u1", _user("first"))
        states.mark_persisted("u1")
        for i in range(10):
            states.add_message("u1", _user(str(i)))
        assert states.should_persist("u1") is True

    def test_time_threshold_crossed(self, states, clock):
        states.add_message("u1", _user("first"))
        states.mark_persisted("u1")
        states.add_message("u1", _user("second"))
        clock.advance(300)
        assert states.should_persist("u1") is True

    def test_mark_persisted_resets_counter(self, states):
        for i in range(12):
            states.add_message("u1", _user(str(i)))
        states.mark_persisted("u1")
        assert states.get("u1").messages_since_last_save == 0
        assert states.should_persist("u1") is False

    def test_memory_only_never_persists(self, clock):
        store = ConversationStateStore(strategy=PersistenceStrategy.MEMORY_ONLY, clock=clock)
        for i in range(50):
            store.add_message("u1", _user(str(i)))
        assert store.should_persist("u1") is False

    async def test_idle_strategy_persists_unsaved_messages(self, clock):
        store = ConversationStateStore(strategy=PersistenceStrategy.IDLE_TIMEOUT, clock=clock)
        store.add_message("u1", _user("hello"))
        assert store.should_persist("u1") is True
        store.mark_persisted("u1")
        assert store.should_persist("u1") is False
        store.shutdown()


# ── Grace period ──────────────────────────────────────────────────


class TestGracePeriod:
    async def test_messages_readable_right_after_end(self, states):
        states.add_message("u1", _user("remember this"))
        states.add_message("u1", Message(role=Role.ASSISTANT, content="noted"))

        states.end("u1")

        assert [m.content for m in states.get_messages("u1")] == ["remember this", "noted"]
        assert states.status("u1").active is False
        assert states.status("u1").message_count == 2
        states.shutdown()

    async def test_state_removed_after_grace_period(self, clock):
        store = ConversationStateStore(grace_period_seconds=0.01, clock=clock)
        store.add_message("u1", _user("hello"))
        store.mark_loaded("u1")

        store.end("u1")
        await asyncio.sleep(0.05)

        assert store.get("u1") is None
        assert not store.has_loaded("u1")

    async def test_clear_cancels_grace_removal(self, clock):
        store = ConversationStateStore(grace_period_seconds=0.01, clock=clock)
        store.add_message("u1", _user("hello"))
        ended = store.end("u1")
        store.clear("u1")
        assert ended.cleanup_timer is None

    async def test_grace_expiry_does_not_remove_newer_conversation(self, clock):
        store = ConversationStateStore(grace_period_seconds=0.01, clock=clock)
        store.add_message("u1", _user("old"))
        store.end("u1")
        store.add_message("u1", _user("new"))

        await asyncio.sleep(0.05)

        assert [m.content for m in store.get_messages("u1")] == ["new"]


# ── Idle timeout ──────────────────────────────────────────────────


class TestIdleTimeout:
    async def test_idle_handler_called_after_inactivity(self, clock):
        idle_users = []

        async def on_idle(user_id: str) -> None:
            idle_users.append(user_id)

        store = ConversationStateStore(
            strategy=PersistenceStrategy.IDLE_TIMEOUT,
            idle_timeout_seconds=0.01,
            clock=clock,
            on_idle=on_idle,
        )
        store.add_message("u1", _user("hello"))
        await asyncio.sleep(0.05)

        assert idle_users == ["u1"]

    async def test_new_message_rearms_idle_timer(self, clock):
        store = ConversationStateStore(
            strategy=PersistenceStrategy.IDLE_TIMEOUT,
            idle_timeout_seconds=60,
            clock=clock,
        )
        store.add_message("u1", _user("one"))
        first_timer = store.get("u1").idle_timer
        store.add_message("u1", _user("two"))

        assert first_timer.cancelled()
        assert store.get("u1").idle_timer is not first_timer
        store.shutdown()

    async def test_end_cancels_idle_timer(self, clock):
        store = ConversationStateStore(
            strategy=PersistenceStrategy.IDLE_TIMEOUT,
            idle_timeout_seconds=60,
            clock=clock,
        )
        store.add_message("u1", _user("one"))
        timer = store.get("u1").idle_timer
        store.end("u1")

        assert timer.cancelled()
        store.shutdown()

    async def test_failing_idle_handler_is_contained(self, clock):
        async def on_idle(user_id: str) -> None:
            raise RuntimeError("boom")

        store = ConversationStateStore(
            strategy=PersistenceStrategy.IDLE_TIMEOUT,
            idle_timeout_seconds=0.01,
            clock=clock,
            on_idle=on_idle,
        )
        store.add_message("u1", _user("hello"))
        await asyncio.sleep(0.05)

        assert store.is_active("u1")


# ── Loading persisted conversations ───────────────────────────────


class TestLoadFromRecord:
    def _record(self, transcript: str, status: str = "active") -> PersistedConversation:
        return PersistedConversation(
            id="conv-1",
            user_id="u1",
            raw_transcript=transcript,
            status=status,
            updated_at=datetime(2026, 1, 1, 11, 0, 0),
        )

    def test_restores_messages_and_bookkeeping(self, states):
        messages = [_user("I switched to uv"), Message(role=Role.ASSISTANT, content="Why?")]
        state = states.load_from_record("u1", self._record(format_transcript(messages)))

        assert state.conversation_id == "conv-1"
        assert [(m.role, m.content) for m in states.get_messages("u1")] == [
            (Role.USER, "I switched to uv"),
            (Role.ASSISTANT, "Why?"),
        ]
        assert state.is_active
        assert state.last_saved_at == datetime(2026, 1, 1, 11, 0, 0)
        assert state.messages_since_last_save == 0
        assert states.has_loaded("u1")

    def test_trims_to_window(self, clock):
        store = ConversationStateStore(max_messages=2, clock=clock)
        transcript = format_transcript([_user(str(i)) for i in range(5)])
        store.load_from_record("u1", self._record(transcript))
        assert [m.content for m in store.get_messages("u1")] == ["3", "4"]

    async def test_inactive_record_loads_inactive(self, states):
        state = states.load_from_record("u1", self._record("user: hi", status="extracted"))
        assert state.is_active is False
        states.shutdown()
