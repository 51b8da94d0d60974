"""Terminal formatting helpers."""

import io
import shutil

from rich.console import Console
from rich.markdown import Markdown


def terminal_width(default: int = 80) -> int:
    """Return the current terminal width in columns."""
    return shutil.get_terminal_size((default, 24)).columns


def render_markdown(text: str, width: int | None = None) -> str:
    """Render markdown text to a string of terminal escape sequences.

    Pure formatting: nothing is written to the real terminal. Trailing
    whitespace is stripped so the caller controls spacing after the answer.
    """
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=True, width=width or terminal_width())
    console.print(Markdown(text))
    return buffer.getvalue().rstrip()
