"""Tests for the paragraph transcript format."""

from __future__ import annotations

from secondbrain.conversation import Message, Role, format_transcript, parse_transcript


class TestTranscriptRoundTrip:
    def test_round_trip_preserves_roles_and_content(self):
        messages = [
            Message(role=Role.USER, content="I finally fixed the flaky test"),
            Message(role=Role.ASSISTANT, content="What was causing it?"),
            Message(role=Role.USER, content="Shared temp dir between workers.\nEach worker now gets its own."),
            Message(role=Role.ASSISTANT, content="Good: isolation beats retries."),
        ]

        parsed = parse_transcript(format_transcript(messages))

        assert [(m.role, m.content) for m in parsed] == [(m.role, m.content) for m in messages]

    def test_round_trip_keeps_multi_paragraph_replies(self):
        messages = [
            Message(role=Role.USER, content="I learned about jitter"),
            Message(role=Role.ASSISTANT, content="Great!\n\nWhat did you learn?\n\n\nTell me more."),
            Message(role=Role.USER, content="Spread retries out"),
        ]

        parsed = parse_transcript(format_transcript(messages))

        assert [(m.role, m.content) for m in parsed] == [(m.role, m.content) for m in messages]

    def test_format_uses_role_prefixes_and_blank_lines(self):
        text = format_transcript([
            Message(role=Role.USER, content="hi"),
            Message(role=Role.ASSISTANT, content="hello"),
        ])
        assert text == "user: hi\n\nassistant: hello"


class TestParseTranscript:
    def test_empty_text(self):
        assert parse_transcript("") == []

    def test_drops_paragraphs_before_first_message(self):
        text = "random noise\n\nsystem: not a role\n\nuser: keep me\n\nassistant: and me"
        parsed = parse_transcript(text)
        assert [m.content for m in parsed] == ["keep me", "and me"]

    def test_unprefixed_paragraph_continues_previous_message(self):
        parsed = parse_transcript("user: first\n\nstill first\n\nassistant: second")
        assert [(m.role, m.content) for m in parsed] == [
            (Role.USER, "first\n\nstill first"),
            (Role.ASSISTANT, "second"),
        ]

    def test_drops_paragraph_with_empty_content(self):
        assert parse_transcript("user: ") == []

    def test_content_may_contain_colons(self):
        parsed = parse_transcript("user: ratio: 3:1")
        assert parsed[0].content == "ratio: 3:1"
