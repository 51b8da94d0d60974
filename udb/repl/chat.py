"""Interactive chat REPL with knowledge base tools."""

import asyncio
import threading
from typing import Protocol

from rich.console import Console
from rich.text import Text

from udb.models.conversation import ConversationHistory
from udb.services.conversation import ConversationDriver
from udb.utils.logging import get_logger

logger = get_logger(__name__)

CONTINUATION_MARKER = "\\"
EXIT_COMMANDS = ("exit", "quit")
CLEAR_COMMAND = "clear"


class LineSource(Protocol):
    """Interface for line-oriented user input."""

    async def read_line(self, prompt: Text) -> str | None:
        """Read one line without its newline, or None once input has ended."""
        ...


class ConsoleLineSource:
    """Reads lines from the terminal without blocking the event loop.

    Each read runs on a daemon thread so an abandoned read never keeps the
    process alive after the chat has closed.
    """

    def __init__(self, console: Console):
        self.console = console

    async def read_line(self, prompt: Text) -> str | None:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str | None] = loop.create_future()

        def deliver(line: str | None, error: BaseException | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(line)

        def worker() -> None:
            line, error = None, None
            try:
                line = self.console.input(prompt)
            except EOFError:
                line = None
            except Exception as e:
                error = e
            try:
                loop.call_soon_threadsafe(deliver, line, error)
            except RuntimeError:
                pass  # loop already closed

        threading.Thread(target=worker, name="udb-input", daemon=True).start()
        return await future


class ChatRepl:
    """Read questions, run one turn at a time, keep the conversation history.

    A turn runs as its own task. Closing the REPL, whether by command, end of
    input, :meth:`close` or cancellation, never abandons a turn in flight:
    :meth:`run` and :meth:`wait_closed` complete only after that turn has
    settled and been recorded in the history.
    """

    prompt = Text("You: ", style="green")
    continuation_prompt = Text("... ", style="bright_black")

    def __init__(
        self,
        driver: ConversationDriver,
        line_source: LineSource,
        console: Console,
        history: ConversationHistory | None = None,
    ):
        self.driver = driver
        self.line_source = line_source
        self.console = console
        self.history = history if history is not None else ConversationHistory()
        self._closed = False
        self._close_requested = asyncio.Event()
        self._finished = asyncio.Event()
        self._pending: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_turn(self) -> asyncio.Task[None] | None:
        """The turn currently in flight, if any."""
        return self._pending

    def close(self) -> None:
        """Stop reading input. A turn in flight still runs to completion."""
        self._closed = True
        self._close_requested.set()

    async def wait_closed(self) -> None:
        """Wait until input is closed and the last turn has settled."""
        await self._finished.wait()

    async def run(self) -> None:
        """Run the chat loop until exit, end of input or :meth:`close`."""
        self._print_banner()
        try:
            while not self._closed:
                raw = await self.collect_question()
                if raw is None:
                    break

                question = raw.strip()
                if not question:
                    continue

                command = question.lower()
                if command in EXIT_COMMANDS:
                    self.console.print(Text("\nGoodbye!", style="blue"))
                    break

                if command == CLEAR_COMMAND:
                    self.history.clear()
                    self.console.print(Text("Conversation history cleared.\n", style="yellow"))
                    continue

                self._pending = asyncio.ensure_future(self._run_turn(question))
                # Shielded: cancelling the loop must not cancel the turn
                await asyncio.shield(self._pending)
                self._pending = None
        finally:
            self.close()
            await self._settle()
            self._finished.set()

    async def collect_question(self) -> str | None:
        """Read one question, following ``\\`` line continuations.

        Returns:
            The joined lines, or None if input ended before a question started
        """
        line = await self._read_line(self.prompt)
        if line is None:
            return None

        lines: list[str] = []
        while line.endswith(CONTINUATION_MARKER):
            lines.append(line[: -len(CONTINUATION_MARKER)])
            next_line = await self._read_line(self.continuation_prompt)
            if next_line is None:
                break
            line = next_line
        else:
            lines.append(line)

        return "\n".join(lines)

    async def _read_line(self, prompt: Text) -> str | None:
        if self._closed:
            return None

        read = asyncio.ensure_future(self.line_source.read_line(prompt))
        closing = asyncio.ensure_future(self._close_requested.wait())
        try:
            done, _ = await asyncio.wait({read, closing}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (read, closing):
                if not task.done():
                    task.cancel()

        if read in done:
            return read.result()
        return None

    async def _run_turn(self, question: str) -> None:
        try:
            self.console.print(Text("UDB: ", style="cyan"), end="")
            answer = await self.driver.respond(question, self.history.messages)
            self.console.print("\n")
            self.history.record_turn(question, answer)
        except Exception as e:
            logger.error(f"Error processing question: {e}", exc_info=True)
            self.console.print(Text(f"\nError processing question: {e}", style="red"))

    async def _settle(self) -> None:
        pending = self._pending
        if pending is not None:
            await asyncio.shield(pending)
            self._pending = None

    def _print_banner(self) -> None:
        self.console.print(Text("UDB Chat - Your personal knowledge base assistant", style="blue"))
        self.console.print(Text('Commands: "exit" to quit, "clear" to reset history', style="bright_black"))
        self.console.print(Text("Multi-line: end line with \\ to continue", style="bright_black"))
        self.console.print(
            Text("I can search, add, ingest URLs, list, and delete from your KB.", style="bright_black")
        )
        self.console.print()
