"""Model session: one bounded, streaming, tool-using exchange with Claude."""

import os
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from udb.clients.anthropic import AnthropicClient, AnthropicConfig
from udb.models.events import (
    AssistantMessage,
    ContentBlockDelta,
    ContentBlockStart,
    SessionResult,
    StreamEvent,
    ToolResultEvent,
)
from udb.models.llm import ContentBlock, LLMMessage, LLMUsage, TextBlock, ToolResultBlock, ToolUseBlock
from udb.tools.base import ToolInvocationResult, error_result
from udb.tools.registry import ToolsRegistry
from udb.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SessionOptions:
    """Everything needed to open a model session."""

    prompt: str
    model: str
    system_prompt: str
    tool_servers: dict[str, ToolsRegistry] = field(default_factory=dict)
    allowed_tools: list[str] = field(default_factory=list)
    max_turns: int = 10
    include_partial_messages: bool = True
    env: Mapping[str, str] | None = None
    max_tokens: int = 4096


class ModelSession:
    """Runs the agent loop for one prompt and yields its events in order.

    Each round streams one Messages API call. When Claude stops to use tools,
    the calls are dispatched to the owning tool server and their results fed
    back, up to ``max_turns`` rounds.
    """

    def __init__(self, options: SessionOptions, client: AnthropicClient | None = None):
        self.options = options
        self.client = client
        self._started = False

    def _get_client(self) -> AnthropicClient:
        if self.client is None:
            env = self.options.env if self.options.env is not None else os.environ
            self.client = AnthropicClient(
                config=AnthropicConfig(model=self.options.model, max_tokens=self.options.max_tokens),
                env=env,
            )
        return self.client

    def _allowed_tool_specs(self) -> list[dict[str, Any]]:
        allowed = set(self.options.allowed_tools)
        specs = []
        for server in self.options.tool_servers.values():
            specs.extend(spec for spec in server.get_tool_definitions() if spec["name"] in allowed)
        return specs

    async def _dispatch_tool(self, block: ToolUseBlock) -> ToolInvocationResult:
        if block.name not in self.options.allowed_tools:
            logger.warning(f"Model requested tool outside the allow-list: {block.name}")
            return error_result(f"Tool not allowed: {block.name}")

        for server in self.options.tool_servers.values():
            local_name = server.resolve(block.name)
            if local_name is not None:
                return await server.call_tool(local_name, block.input)

        return error_result(f"Unknown tool: {block.name}")

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield the session's events. A session can only be consumed once."""
        if self._started:
            raise RuntimeError("A model session can only be consumed once")
        self._started = True

        client = self._get_client()
        tools = self._allowed_tool_specs()
        messages = [LLMMessage(role="user", content=self.options.prompt)]
        usage = LLMUsage()
        logger.info(f"Starting session with {len(tools)} tools, max_turns: {self.options.max_turns}")

        for turn in range(1, self.options.max_turns + 1):
            logger.debug(f"Session round {turn}/{self.options.max_turns}")
            manager = await client.stream_message(
                messages,
                self.options.system_prompt,
                tools,
                model=self.options.model,
                max_tokens=self.options.max_tokens,
            )
            async with manager as stream:
                async for raw in stream:
                    if not self.options.include_partial_messages:
                        continue
                    event = convert_raw_event(raw)
                    if event is not None:
                        yield event
                final = await stream.get_final_message()

            usage.add(final.usage)
            content = convert_content_blocks(final.content)
            tool_uses = [block for block in content if isinstance(block, ToolUseBlock)]
            yield AssistantMessage(
                text="".join(block.text for block in content if isinstance(block, TextBlock)),
                tool_names=[block.name for block in tool_uses],
            )

            if final.stop_reason != "tool_use" or not tool_uses:
                logger.info(f"Session completed in {turn} rounds ({final.stop_reason})")
                yield SessionResult(stop_reason=final.stop_reason, turns=turn, usage=usage)
                return

            logger.info(f"Claude wants to use {len(tool_uses)} tools")
            # The API rejects empty text blocks on replay
            replay = [b for b in content if not (isinstance(b, TextBlock) and not b.text)]
            messages.append(LLMMessage(role="assistant", content=replay))

            results: list[ContentBlock] = []
            for block in tool_uses:
                result = await self._dispatch_tool(block)
                results.append(ToolResultBlock(tool_use_id=block.id, content=result.text, is_error=result.is_error))
                yield ToolResultEvent(
                    tool_use_id=block.id, tool_name=block.name, is_error=result.is_error, content=result.text
                )
            messages.append(LLMMessage(role="user", content=results))

        logger.warning(f"Session reached max turns ({self.options.max_turns})")
        yield SessionResult(stop_reason="max_turns", turns=self.options.max_turns, usage=usage)


def query(options: SessionOptions, client: AnthropicClient | None = None) -> AsyncIterator[StreamEvent]:
    """Open a model session and return its event stream."""
    return ModelSession(options, client).events()


def convert_raw_event(raw: Any) -> StreamEvent | None:
    """Map a raw Messages API stream event to a session event.

    Only block starts and deltas are surfaced; message-level bookkeeping and
    the SDK's convenience events are dropped.
    """
    if raw.type == "content_block_start":
        block = raw.content_block
        if block.type == "tool_use":
            return ContentBlockStart(index=raw.index, block_type="tool_use", tool_name=block.name, tool_use_id=block.id)
        if block.type == "text":
            return ContentBlockStart(index=raw.index, block_type="text")
        return None

    if raw.type == "content_block_delta":
        delta = raw.delta
        if delta.type == "text_delta":
            return ContentBlockDelta(index=raw.index, delta_type="text_delta", text=delta.text)
        if delta.type == "input_json_delta":
            return ContentBlockDelta(index=raw.index, delta_type="input_json_delta", partial_json=delta.partial_json)
        return None

    return None


def convert_content_blocks(blocks: list[Any]) -> list[ContentBlock]:
    """Convert Anthropic content blocks to our ContentBlock types."""
    converted: list[ContentBlock] = []
    for block in blocks:
        block_dict = block.model_dump() if hasattr(block, "model_dump") else dict(block)
        if block_dict.get("type") == "text":
            converted.append(TextBlock.model_validate(block_dict))
        elif block_dict.get("type") == "tool_use":
            converted.append(ToolUseBlock.model_validate(block_dict))
        else:
            logger.warning(f"Unknown content block type: {block_dict.get('type')}")
    return converted
