"""Tests for the HTTP surface and its error mapping."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from secondbrain.api.deps import to_http_error
from secondbrain.engine import (
    CaptureAssistant,
    EmbeddingClient,
    EmbeddingRetryError,
    ExtractionEngine,
    ExtractionInProgressError,
    Responder,
)
from secondbrain.main import create_app
from secondbrain.storage import StorageError

from conftest import FakeLLM, extraction_json, thought_payload


async def _no_sleep(seconds: float) -> None:
    return None


def _client(states, store, replies=None, texts=None) -> TestClient:
    llm = FakeLLM(texts=texts, replies=replies)
    assistant = CaptureAssistant(
        states=states,
        responder=Responder(llm, model="chat-model"),
        extractor=ExtractionEngine(llm, extraction_model="extract-model"),
        embedder=EmbeddingClient(AsyncMock(return_value=[[1.0, 0.0, 0.0]]), sleep=_no_sleep),
        store=store,
    )
    return TestClient(create_app(assistant=assistant))


# ── Messages ──────────────────────────────────────────────────────


class TestMessages:
    def test_reply(self, states, fake_store):
        with _client(states, fake_store, replies=["Why did that surprise you?"]) as client:
            response = client.post("/users/u1/messages", json={"text": "Postgres beat Mongo here"})

        assert response.status_code == 200
        body = response.json()
        assert body["reply"] == "Why did that surprise you?"
        assert body["message_count"] == 2
        assert body["conversation_id"]

    def test_blank_text_is_bad_request(self, states, fake_store):
        with _client(states, fake_store) as client:
            response = client.post("/users/u1/messages", json={"text": "   "})
        assert response.status_code == 400

    def test_missing_text_is_unprocessable(self, states, fake_store):
        with _client(states, fake_store) as client:
            response = client.post("/users/u1/messages", json={})
        assert response.status_code == 422

    def test_model_failure_is_bad_gateway(self, states, fake_store):
        with _client(states, fake_store, replies=[RuntimeError("upstream 500")]) as client:
            response = client.post("/users/u1/messages", json={"text": "hello"})
        assert response.status_code == 502
        assert "Failed to generate response" in response.json()["detail"]


# ── Lifecycle ─────────────────────────────────────────────────────


class TestLifecycle:
    def test_status_of_unknown_user(self, states, fake_store):
        with _client(states, fake_store) as client:
            response = client.get("/users/nobody/status")
        assert response.json() == {"active": False, "message_count": 0, "conversation_id": None}

    def test_new_reports_pending(self, states, fake_store):
        with _client(states, fake_store, replies=["ok"]) as client:
            client.post("/users/u1/messages", json={"text": "hello"})
            response = client.post("/users/u1/new")

        body = response.json()
        assert body["pending"] is True
        assert body["message_count"] == 2

    def test_extract(self, states, fake_store):
        texts = [extraction_json(thought_payload(), thought_payload(kind="decision", claim="Chose SQLite."))]
        with _client(states, fake_store, replies=["ok"], texts=texts) as client:
            client.post("/users/u1/messages", json={"text": "we chose sqlite"})
            response = client.post("/users/u1/extract")
            status = client.get("/users/u1/status").json()

        assert response.status_code == 200
        assert response.json()["thoughts_saved"] == 2
        assert len(response.json()["thought_ids"]) == 2
        assert status["active"] is False

    def test_extract_without_conversation(self, states, fake_store):
        with _client(states, fake_store) as client:
            response = client.post("/users/u1/extract")
        assert response.status_code == 400

    def test_failed_extraction_reports_stage(self, states, fake_store):
        with _client(states, fake_store, replies=["ok"], texts=["garbage", "garbage"]) as client:
            client.post("/users/u1/messages", json={"text": "hello"})
            response = client.post("/users/u1/extract")
            status = client.get("/users/u1/status").json()

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["stage"] == "extracting"
        assert detail["thoughts_saved"] == 0
        assert detail["partial"] is False
        assert status["active"] is True

    def test_clear(self, states, fake_store):
        with _client(states, fake_store, replies=["ok"]) as client:
            client.post("/users/u1/messages", json={"text": "hello"})
            first = client.post("/users/u1/clear")
            second = client.post("/users/u1/clear")

        assert first.json() == {"discarded_messages": 2}
        assert second.status_code == 400

    def test_clear_reports_archive_failure(self, states, fake_store):
        fake_store.update_conversation_status = AsyncMock(side_effect=StorageError("locked"))
        with _client(states, fake_store, replies=["ok"]) as client:
            client.post("/users/u1/messages", json={"text": "hello"})
            response = client.post("/users/u1/clear")
            status = client.get("/users/u1/status").json()

        assert response.status_code == 503
        assert status["active"] is True
        assert status["message_count"] == 2


# ── Notes and thoughts ────────────────────────────────────────────


class TestThoughts:
    def test_remember_then_read_back(self, states, fake_store):
        note = json.dumps({"kind": "fact", "claim": "Mom's birthday is March 15."})
        with _client(states, fake_store, texts=[note]) as client:
            created = client.post("/users/u1/remember", json={"note": "mom bday march 15"})
            thought_id = created.json()["id"]
            fetched = client.get(f"/thoughts/{thought_id}")
            sources = client.get(f"/thoughts/{thought_id}/sources")
            recent = client.get("/users/u1/sources", params={"type": "manual"})

        assert created.status_code == 201
        assert fetched.json()["claim"] == "Mom's birthday is March 15."
        assert [s["type"] for s in sources.json()] == ["manual"]
        assert len(recent.json()) == 1

    def test_missing_thought(self, states, fake_store):
        with _client(states, fake_store) as client:
            response = client.get("/thoughts/does-not-exist")
        assert response.status_code == 404

    def test_search(self, states, fake_store):
        note = json.dumps({"kind": "preference", "claim": "Prefers aisle seats."})
        with _client(states, fake_store, texts=[note]) as client:
            client.post("/users/u1/remember", json={"note": "aisle seats"})
            response = client.post("/users/u1/search", json={"query": "seating", "tags": ["travel"]})

        body = response.json()
        assert body["total"] == 1
        assert "hybrid_score" in body["results"][0]

    def test_search_unknown_kind(self, states, fake_store):
        with _client(states, fake_store) as client:
            response = client.post("/users/u1/search", json={"query": "x", "kind": "rumor"})
        assert response.status_code == 400


# ── Error mapping ─────────────────────────────────────────────────


class TestErrorMapping:
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (ExtractionInProgressError("busy"), 409),
            (EmbeddingRetryError(3, RuntimeError("down")), 502),
            (StorageError("locked"), 503),
            (RuntimeError("surprise"), 500),
        ],
    )
    def test_status_codes(self, error, status_code):
        assert to_http_error(error).status_code == status_code

    def test_internal_error_hides_message(self):
        assert to_http_error(RuntimeError("secret path")).detail == "Internal error"
