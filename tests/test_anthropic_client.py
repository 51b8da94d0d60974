"""Tests for the Anthropic client wrapper."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from udb.clients.anthropic import AnthropicClient, AnthropicConfig, AnthropicRateLimiter
from udb.models.llm import LLMMessage, TextBlock


class TestClientSetup:
    """Tests for credentials and configuration."""

    def test_missing_api_key(self):
        """Test that a missing key is rejected."""
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            AnthropicClient(env={})

    def test_key_from_environment_mapping(self):
        """Test that the key is read from the given environment."""
        client = AnthropicClient(env={"ANTHROPIC_API_KEY": "from-env"})
        assert client.api_key == "from-env"

    def test_explicit_key_wins(self):
        """Test that an explicit key takes precedence."""
        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": "env-key"}):
            client = AnthropicClient(api_key="explicit")
        assert client.api_key == "explicit"


class TestTokenEstimation:
    """Tests for token estimation used by rate limiting."""

    @pytest.fixture
    def anthropic_client(self):
        """Create AnthropicClient for testing."""
        client = AnthropicClient(env={"ANTHROPIC_API_KEY": "test-key"})
        # Mock tokenizer for consistent testing
        client.tokenizer = Mock()
        return client

    def test_estimate_with_tokenizer(self, anthropic_client):
        """Test estimation through the tokenizer."""
        anthropic_client.tokenizer.encode.return_value = ["token"] * 42
        assert anthropic_client.estimate_message_tokens("anything") == 42

    def test_estimate_fallback_without_tokenizer(self, anthropic_client):
        """Test the four-characters-per-token fallback."""
        anthropic_client.tokenizer = None
        assert anthropic_client.estimate_message_tokens("a" * 400) == 100

    def test_estimate_fallback_on_tokenizer_error(self, anthropic_client):
        """Test that tokenizer failures fall back to the character estimate."""
        anthropic_client.tokenizer.encode.side_effect = RuntimeError("bad encoding")
        assert anthropic_client.estimate_message_tokens("a" * 40) == 10

    def test_estimate_counts_blocks(self, anthropic_client):
        """Test that block content is included in the estimate."""
        anthropic_client.tokenizer = None
        messages = [
            LLMMessage(role="user", content="a" * 8),
            LLMMessage(role="assistant", content=[TextBlock(text="b" * 8)]),
        ]
        assert anthropic_client._estimate_tokens(messages, "c" * 8) == 6


class TestStreamMessage:
    """Tests for opening a streaming request."""

    @pytest.mark.asyncio
    async def test_stream_message_params(self):
        """Test the request parameters and rate limiting."""
        client = AnthropicClient(config=AnthropicConfig(model="claude-default"), env={"ANTHROPIC_API_KEY": "k"})
        client.rate_limiter = Mock(check_rate_limit=AsyncMock())
        client.client = Mock()
        client.client.messages.stream.return_value = "manager"

        manager = await client.stream_message(
            [LLMMessage(role="user", content="hi")],
            "system",
            [{"name": "Read", "description": "Read", "input_schema": {}}],
            model="claude-override",
        )

        assert manager == "manager"
        client.rate_limiter.check_rate_limit.assert_awaited_once()
        params = client.client.messages.stream.call_args.kwargs
        assert params["model"] == "claude-override"
        assert params["system"] == "system"
        assert params["messages"] == [{"role": "user", "content": "hi"}]
        assert params["tools"][0]["name"] == "Read"

    @pytest.mark.asyncio
    async def test_stream_message_without_tools(self):
        """Test that an empty tool list is not sent."""
        client = AnthropicClient(env={"ANTHROPIC_API_KEY": "k"})
        client.rate_limiter = Mock(check_rate_limit=AsyncMock())
        client.client = Mock()

        await client.stream_message([LLMMessage(role="user", content="hi")], "system", [])

        assert "tools" not in client.client.messages.stream.call_args.kwargs


class TestRateLimiter:
    """Tests for the client-side rate limiter."""

    @pytest.mark.asyncio
    async def test_within_limits_does_not_wait(self):
        """Test that requests under the limit pass straight through."""
        limiter = AnthropicRateLimiter(requests_per_minute=5, tokens_per_minute=1000)
        with patch("udb.clients.anthropic.asyncio.sleep", new=AsyncMock()) as sleep:
            await limiter.check_rate_limit(100, identifier="test-ok")
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_exceeding_request_limit_waits(self):
        """Test that an exhausted window sleeps until it resets."""
        limiter = AnthropicRateLimiter(requests_per_minute=1, tokens_per_minute=1000)
        with patch("udb.clients.anthropic.asyncio.sleep", new=AsyncMock()) as sleep:
            await limiter.check_rate_limit(1, identifier="test-busy")
            await limiter.check_rate_limit(1, identifier="test-busy")
        sleep.assert_awaited_once()
        assert sleep.await_args.args[0] > 0
