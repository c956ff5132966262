"""Tests for AI reply parsing."""

import pytest

from create_pr.ai.parser import (
    DEFAULT_BODY,
    DEFAULT_TITLE,
    MAX_TITLE_LENGTH,
    ResponseParser,
)
from create_pr.models import GenerationResult, ProviderTag


class TestResponseParser:
    """Test that parsing always yields title, body and summary."""

    def setup_method(self):
        self.parser = ResponseParser()

    def test_json_reply(self):
        content = self.parser.parse('{"title": "T", "body": "B"}')

        assert content.title == "T"
        assert content.body == "B"
        assert content.summary

    def test_json_reply_with_summary(self):
        content = self.parser.parse(
            '{"title": "PROJ-1: Add login", "body": "## Changes\\nAdded login.", "summary": "Adds login."}'
        )

        assert content.title == "PROJ-1: Add login"
        assert content.body == "## Changes\nAdded login."
        assert content.summary == "Adds login."

    def test_description_key_accepted_as_body(self):
        content = self.parser.parse('{"title": "T", "description": "D"}')
        assert content.body == "D"

    def test_fenced_json(self):
        raw = '```json\n{"title": "Fenced", "body": "Body text."}\n```'

        content = self.parser.parse(raw)

        assert content.title == "Fenced"
        assert content.body == "Body text."

    def test_json_inside_prose(self):
        raw = 'Here is your description:\n{"title": "Embedded", "body": "Inner body."}\nThanks!'

        content = self.parser.parse(raw)

        assert content.title == "Embedded"
        assert content.body == "Inner body."

    def test_plain_text(self):
        content = self.parser.parse("Hello\nWorld")

        assert content.title == "Hello"
        assert content.body == "Hello\nWorld"
        assert content.summary

    def test_markdown_heading_title(self):
        content = self.parser.parse("# Add login flow\n\nThis adds a login page. It also adds tests.")

        assert content.title == "Add login flow"
        assert content.summary == "This adds a login page."

    def test_title_and_summary_lines(self):
        raw = "Title: Fix the cache\nSummary: Expired entries are now evicted.\n\nDetails follow."

        content = self.parser.parse(raw)

        assert content.title == "Fix the cache"
        assert content.summary == "Expired entries are now evicted."

    def test_summary_section(self):
        raw = "# Title here\n\n## Summary\nShort summary line.\n\n## Details\nMore."
        assert self.parser.parse(raw).summary == "Short summary line."

    def test_long_title_truncated(self):
        content = self.parser.parse("x" * 250)

        assert len(content.title) == MAX_TITLE_LENGTH
        assert content.title.endswith("...")

    @pytest.mark.parametrize("raw", ["", "   ", None, 42, {"unexpected": True}, []])
    def test_unusable_input_yields_defaults(self, raw):
        content = self.parser.parse(raw)

        assert content.title == DEFAULT_TITLE
        assert content.body == DEFAULT_BODY
        assert content.summary

    def test_json_without_title_or_body_treated_as_text(self):
        content = self.parser.parse('{"foo": "bar"}')

        assert content.body == '{"foo": "bar"}'
        assert content.title

    def test_generation_result(self):
        result = GenerationResult(content='{"title": "R", "body": "S"}', provider=ProviderTag.OPENAI)
        assert self.parser.parse(result, result.provider).title == "R"

    def test_content_envelope(self):
        assert self.parser.parse({"content": "Envelope title\nbody"}).title == "Envelope title"

    def test_vendor_envelopes(self):
        claude = {"content": [{"type": "text", "text": '{"title": "Claude", "body": "b"}'}]}
        openai = {"choices": [{"message": {"content": '{"title": "OpenAI", "body": "b"}'}}]}
        gemini = {"candidates": [{"content": {"parts": [{"text": "Gemini\nbody"}]}}]}

        assert self.parser.parse(claude, ProviderTag.CLAUDE).title == "Claude"
        assert self.parser.parse(openai).title == "OpenAI"
        assert self.parser.parse(gemini).title == "Gemini"

    def test_bytes(self):
        assert self.parser.parse(b"Bytes title\nbody").title == "Bytes title"

    def test_json_title_only(self):
        content = self.parser.parse('{"title": "T"}')

        assert content.title == "T"
        assert content.body == DEFAULT_BODY
        assert content.summary == "T"

    def test_json_with_empty_fields_yields_defaults(self):
        content = self.parser.parse('{"title": "", "body": ""}')

        assert content.title == DEFAULT_TITLE
        assert content.body == DEFAULT_BODY
        assert content.summary == DEFAULT_TITLE

    def test_lone_surrogate_is_replaced(self):
        content = self.parser.parse("Fix \ud83d emoji")

        assert content.title == "Fix ? emoji"
        assert content.body == "Fix ? emoji"
