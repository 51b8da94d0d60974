"""Command-line entry point for UDB."""

import argparse
import asyncio
import os

from rich.console import Console
from rich.text import Text

from udb import __version__
from udb.config import Settings, load_settings
from udb.repl.chat import ChatRepl, ConsoleLineSource
from udb.services.conversation import ConversationDriver
from udb.services.knowledge import JsonKnowledgeStore, KnowledgeStore
from udb.tools.registry import create_file_server, create_kb_server
from udb.utils.logging import LogConfig, setup_logging

CHAT_HINTS = """In chat, you can:
  - Ask questions (searches KB automatically)
  - Add notes: "Save this: <content>"
  - Ingest URLs: "Add this article: <url>"
  - Ingest files: "Add ~/notes/setup.md to my KB"
  - List sources: "What's in my KB?"
  - Delete: "Delete source <id>"
  - Read files: "Read /path/to/file and add to KB"

Multi-line input: end line with \\ to continue"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="udb",
        description="Personal knowledge base with RAG-powered chat.",
        epilog=CHAT_HINTS,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--version", action="version", version=f"udb {__version__}")
    return parser


async def run_chat(settings: Settings, store: KnowledgeStore, console: Console) -> None:
    """Wire the tool servers, driver and REPL together and run the chat."""
    driver = ConversationDriver(
        kb_server=create_kb_server(store),
        file_server=create_file_server(),
        settings=settings,
        console=console,
    )
    repl = ChatRepl(driver, ConsoleLineSource(console), console)
    await repl.run()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the chat CLI."""
    build_parser().parse_args(argv)

    console = Console()
    try:
        settings = load_settings()
        setup_logging(LogConfig(level=settings.log_level))

        if not os.getenv("ANTHROPIC_API_KEY"):
            console.print(Text("Warning: ANTHROPIC_API_KEY is not set, chat requests will fail", style="yellow"))
            console.print(Text(f"  Add it to {settings.data_dir / '.env'}", style="dim"))

        store = JsonKnowledgeStore(settings.kb_path)
        asyncio.run(run_chat(settings, store, console))
    except KeyboardInterrupt:
        console.print(Text("\nGoodbye!", style="blue"))
    except Exception as e:
        console.print(Text(f"Error: {e}", style="red"))
        return 1
    return 0
