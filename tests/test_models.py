"""Tests for data models."""

import json
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from udb.models.conversation import ChatMessage, ConversationHistory
from udb.models.events import (
    AssistantMessage,
    ContentBlockDelta,
    ContentBlockStart,
    SessionResult,
    ToolResultEvent,
    stream_event_adapter,
    text_delta,
    tool_use_start,
)
from udb.models.knowledge import SearchResult
from udb.models.llm import LLMMessage, LLMUsage, TextBlock, ToolResultBlock, ToolUseBlock
from udb.tools.kb_ingest import AddContentInput, IngestUrlInput
from udb.tools.kb_search import SearchInput


class TestConversationModels:
    """Tests for chat history models."""

    def test_chat_message_valid(self):
        """Test valid chat message."""
        message = ChatMessage(role="user", content="Hello")
        assert message.role == "user"
        assert message.content == "Hello"

    def test_chat_message_invalid_role(self):
        """Test chat message with invalid role."""
        with pytest.raises(ValidationError) as exc_info:
            ChatMessage(role="system", content="Hello")  # type: ignore
        assert "Input should be 'user' or 'assistant'" in str(exc_info.value)

    def test_history_records_turns_in_order(self):
        """Test that a turn appends the question then the answer."""
        history = ConversationHistory()
        history.record_turn("What is X?", "X is Y")
        history.record_turn("And Z?", "Z is W")

        assert [(m.role, m.content) for m in history] == [
            ("user", "What is X?"),
            ("assistant", "X is Y"),
            ("user", "And Z?"),
            ("assistant", "Z is W"),
        ]
        assert len(history) == 4

    def test_history_clear(self):
        """Test that clearing empties the history."""
        history = ConversationHistory()
        history.record_turn("q", "a")
        history.clear()
        assert len(history) == 0
        assert history.messages == []

    def test_history_messages_is_a_copy(self):
        """Test that callers cannot mutate history through the messages list."""
        history = ConversationHistory()
        history.record_turn("q", "a")
        history.messages.clear()
        assert len(history) == 2


class TestStreamEvents:
    """Tests for the stream event union."""

    def test_parse_content_block_start(self):
        """Test parsing a tool use block start from JSON."""
        data = json.loads('{"type": "content_block_start", "index": 1, "block_type": "tool_use", "tool_name": "Read"}')
        event = stream_event_adapter.validate_python(data)
        assert isinstance(event, ContentBlockStart)
        assert event.block_type == "tool_use"
        assert event.tool_name == "Read"

    def test_parse_each_variant(self):
        """Test that the discriminator selects the right class."""
        samples = {
            "content_block_delta": ContentBlockDelta,
            "tool_result": ToolResultEvent,
            "assistant": AssistantMessage,
            "result": SessionResult,
        }
        payloads = {
            "content_block_delta": {"text": "hi"},
            "tool_result": {"tool_use_id": "t1", "tool_name": "kb_list"},
            "assistant": {"text": "done"},
            "result": {"stop_reason": "end_turn", "turns": 2},
        }
        for type_name, cls in samples.items():
            event = stream_event_adapter.validate_python({"type": type_name, **payloads[type_name]})
            assert isinstance(event, cls)

    def test_session_result_carries_usage(self):
        """Test that the result event parses and exposes token usage."""
        event = stream_event_adapter.validate_python(
            {"type": "result", "stop_reason": "end_turn", "usage": {"input_tokens": 12, "output_tokens": 5}}
        )

        assert event.usage == LLMUsage(input_tokens=12, output_tokens=5)
        assert event.usage.total_tokens == 17
        assert SessionResult().usage == LLMUsage()

    def test_unknown_event_type_rejected(self):
        """Test that the union is closed."""
        with pytest.raises(ValidationError):
            stream_event_adapter.validate_python({"type": "message_start"})

    def test_helpers(self):
        """Test the event construction helpers."""
        assert text_delta("abc").text == "abc"
        assert text_delta("abc").delta_type == "text_delta"
        start = tool_use_start("kb_search", "toolu_1")
        assert start.block_type == "tool_use"
        assert start.tool_use_id == "toolu_1"


class TestLLMModels:
    """Tests for LLM-related models."""

    def test_llm_message_content_blocks(self):
        """Test LLM message with content blocks."""
        blocks = [TextBlock(text="Hello"), ToolUseBlock(id="t1", name="kb_list", input={})]
        message = LLMMessage(role="assistant", content=blocks)
        assert len(message.content) == 2
        assert message.model_dump()["content"][1] == {"type": "tool_use", "id": "t1", "name": "kb_list", "input": {}}

    def test_tool_result_block_dump(self):
        """Test that tool results serialize in Messages API shape."""
        block = ToolResultBlock(tool_use_id="t1", content="Error", is_error=True)
        assert block.model_dump() == {"type": "tool_result", "tool_use_id": "t1", "content": "Error", "is_error": True}

    def test_text_block_ignores_extra_fields(self):
        """Test that unknown fields from the API are dropped."""
        block = TextBlock.model_validate({"type": "text", "text": "hi", "citations": None})
        assert block.text == "hi"

    def test_usage_accumulates(self):
        """Test that usage objects are summed."""
        usage = LLMUsage()
        usage.add(SimpleNamespace(input_tokens=10, output_tokens=3, cache_read_input_tokens=None))
        usage.add(SimpleNamespace(input_tokens=5, output_tokens=2))
        usage.add(None)
        assert usage.input_tokens == 15
        assert usage.output_tokens == 5
        assert usage.total_tokens == 20


class TestKnowledgeModels:
    """Tests for knowledge base models and tool inputs."""

    def test_search_result_similarity_bounds(self):
        """Test that similarity must lie in [0, 1]."""
        with pytest.raises(ValidationError):
            SearchResult(source_id="s", source_type="text", similarity=1.5, content="x")

    def test_search_input_defaults(self):
        """Test search defaults."""
        params = SearchInput.model_validate({"query": "docker"})
        assert params.limit == 5
        assert params.min_similarity == 0.4

    def test_search_input_alias(self):
        """Test that the camelCase argument name is accepted."""
        params = SearchInput.model_validate({"query": "docker", "minSimilarity": 0.7})
        assert params.min_similarity == 0.7
        assert "minSimilarity" in SearchInput.model_json_schema()["properties"]

    @pytest.mark.parametrize("payload", [{"query": "q", "limit": -1}, {"query": "q", "minSimilarity": 2}, {}])
    def test_search_input_invalid(self, payload):
        """Test that out-of-range search arguments are rejected."""
        with pytest.raises(ValidationError):
            SearchInput.model_validate(payload)

    def test_add_input_requires_content_and_title(self):
        """Test that empty content or title is rejected."""
        with pytest.raises(ValidationError):
            AddContentInput(content="", title="t")
        with pytest.raises(ValidationError):
            AddContentInput(content="c", title="")

    def test_ingest_input_optional_fields(self):
        """Test ingest input with only a URL."""
        params = IngestUrlInput(url="https://example.com")
        assert params.title is None
        assert params.tags is None
