"""Classify a turn's stream into thoughts and the final answer, and render it."""

from collections.abc import AsyncIterable, Callable
from dataclasses import dataclass

from rich.console import Console
from rich.text import Text

from udb.models.events import (
    AssistantMessage,
    ContentBlockDelta,
    ContentBlockStart,
    SessionResult,
    StreamEvent,
    ToolResultEvent,
)
from udb.utils.logging import get_logger
from udb.utils.terminal import render_markdown

logger = get_logger(__name__)


@dataclass
class TurnState:
    """Scratch state of one turn.

    ``buffer`` holds text not yet known to be a thought or the answer,
    ``answer`` everything recorded so far in emission order.
    """

    buffer: str = ""
    has_output_text: bool = False
    answer: str = ""


class StreamRenderer:
    """Turns session events into terminal output and a recorded answer.

    Text is held back until the next event says what it was: a tool call
    following it makes it a thought (printed dim right away), the end of the
    stream makes it the final answer (rendered once as markdown).
    """

    def __init__(self, console: Console, render: Callable[[str], str] = render_markdown):
        self.console = console
        self.render = render

    def handle(self, event: StreamEvent, state: TurnState) -> None:
        match event:
            case ContentBlockStart(block_type="tool_use"):
                if state.buffer:
                    self._flush_thought(state)
            case ContentBlockStart(block_type="text"):
                pass
            case ContentBlockDelta(delta_type="text_delta"):
                state.buffer += event.text
                state.has_output_text = True
            case ContentBlockDelta(delta_type="input_json_delta"):
                pass
            case AssistantMessage():
                # Only used when the session produced no streaming text at all
                if not state.has_output_text and not state.buffer and not state.answer and event.text:
                    self.console.print(Text(event.text), end="")
                    state.answer = event.text
            case ToolResultEvent():
                if event.is_error:
                    logger.info(f"Tool {event.tool_name} returned an error: {event.content[:100]}")
            case SessionResult():
                if event.stop_reason == "max_turns":
                    logger.warning(f"Turn ended after {event.turns} rounds without a final answer")
            case _:
                raise TypeError(f"Unhandled stream event: {event!r}")

    def finish(self, state: TurnState) -> str:
        """Render whatever is buffered as the final answer and return the recorded answer."""
        if state.buffer:
            self.console.print(Text.from_ansi(self.render(state.buffer)), end="")
            state.answer += state.buffer
            state.buffer = ""
        return state.answer

    async def consume(self, events: AsyncIterable[StreamEvent], state: TurnState | None = None) -> str:
        """Process a whole event stream in arrival order."""
        state = state or TurnState()
        async for event in events:
            self.handle(event, state)
        return self.finish(state)

    def _flush_thought(self, state: TurnState) -> None:
        self.console.print(Text(state.buffer, style="dim"))
        state.answer += state.buffer + "\n"
        state.buffer = ""
