"""Stream events produced by a model session.

A session yields a finite sequence of these, one per incremental unit of
model output. The union is closed: consumers match on every variant.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter

from udb.models.llm import LLMUsage


class ContentBlockStart(BaseModel):
    """A new content block opened in the assistant's streamed message."""

    type: Literal["content_block_start"] = "content_block_start"
    index: int = 0
    block_type: Literal["text", "tool_use"]
    tool_name: str | None = None
    tool_use_id: str | None = None


class ContentBlockDelta(BaseModel):
    """An incremental fragment of the current content block."""

    type: Literal["content_block_delta"] = "content_block_delta"
    index: int = 0
    delta_type: Literal["text_delta", "input_json_delta"] = "text_delta"
    text: str = ""
    partial_json: str = ""


class ToolResultEvent(BaseModel):
    """A tool call was executed and its result sent back to the model."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    tool_name: str
    is_error: bool = False
    content: str = ""


class AssistantMessage(BaseModel):
    """The complete assistant message of one model round."""

    type: Literal["assistant"] = "assistant"
    text: str = ""
    tool_names: list[str] = Field(default_factory=list)


class SessionResult(BaseModel):
    """Final event of a session."""

    type: Literal["result"] = "result"
    stop_reason: str | None = None
    turns: int = 0
    usage: LLMUsage = Field(default_factory=LLMUsage)


StreamEvent = Annotated[
    ContentBlockStart | ContentBlockDelta | ToolResultEvent | AssistantMessage | SessionResult,
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def text_delta(text: str, index: int = 0) -> ContentBlockDelta:
    """Build a text fragment event."""
    return ContentBlockDelta(index=index, delta_type="text_delta", text=text)


def tool_use_start(tool_name: str, tool_use_id: str | None = None, index: int = 0) -> ContentBlockStart:
    """Build the start event of a tool invocation block."""
    return ContentBlockStart(index=index, block_type="tool_use", tool_name=tool_name, tool_use_id=tool_use_id)
