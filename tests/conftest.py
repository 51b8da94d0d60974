"""Shared test fixtures."""

import asyncio
import io

import pytest
from rich.console import Console

from udb.services.knowledge import InMemoryKnowledgeStore


def make_console() -> Console:
    """Plain, wide console writing to memory."""
    return Console(file=io.StringIO(), width=200, color_system=None, force_terminal=False, highlight=False)


def console_output(console: Console) -> str:
    return console.file.getvalue()


class ScriptedLineSource:
    """Line source replaying fixed lines, then reporting end of input.

    With ``block_at_end`` it never returns after the last line, like a
    terminal waiting for the user.
    """

    def __init__(self, lines: list[str], block_at_end: bool = False):
        self.lines = list(lines)
        self.block_at_end = block_at_end
        self.prompts: list[str] = []

    async def read_line(self, prompt) -> str | None:
        self.prompts.append(str(prompt))
        await asyncio.sleep(0)
        if self.lines:
            return self.lines.pop(0)
        if self.block_at_end:
            await asyncio.Event().wait()
        return None


@pytest.fixture
def console() -> Console:
    return make_console()


@pytest.fixture
def store() -> InMemoryKnowledgeStore:
    async def no_extractor(url: str):
        return None

    return InMemoryKnowledgeStore(extractor=no_extractor)
