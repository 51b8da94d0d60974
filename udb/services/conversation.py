"""Conversation driver: runs one model turn per user question."""

import os
from collections.abc import AsyncIterator, Callable, Iterable

from rich.console import Console
from rich.text import Text

from udb.config import Settings
from udb.models.conversation import ChatMessage
from udb.models.events import StreamEvent
from udb.services.renderer import StreamRenderer, TurnState
from udb.services.session import SessionOptions, query
from udb.tools.registry import ToolsRegistry
from udb.utils.logging import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[SessionOptions], AsyncIterator[StreamEvent]]

SYSTEM_PROMPT = """You are UDB, a personal knowledge base assistant. Your job is to help users by answering questions based on their knowledge base.

You have access to these KB tools:
- kb_search: Search the knowledge base for relevant content
- kb_add: Add text content (notes, commands, snippets) to the KB
- kb_ingest: Ingest content from URLs or local files
- kb_list: List all sources in the KB
- kb_delete: Delete a source by ID
- kb_get_source_chunks: Get ALL chunks from a specific source by its ID

You can also read local files with Read and find them with Glob.

WORKFLOW FOR ANSWERING QUESTIONS:
1. First, use kb_search to find relevant content
2. If kb_search finds a relevant source BUT the specific answer is NOT in the returned chunks:
   - Note the source ID from the search results
   - IMMEDIATELY use kb_get_source_chunks with that source ID to read ALL chunks
   - The answer is likely in a chunk that wasn't returned by similarity search
3. Only after reading all relevant chunks, provide your answer

IMPORTANT RULES:
- Be CONCISE - give direct answers without excessive formatting, headers, or repetition
- Use the KB as your ONLY source of truth - NEVER make up information
- If you find a relevant source, ALWAYS use kb_get_source_chunks before saying "I couldn't find the specific information"
- Do NOT give up after kb_search alone - the information may be in other chunks of the same source
- Cite the source briefly when relevant

When the user wants to save information:
- Use kb_add for text or kb_ingest for URLs and files
- Confirm the action briefly

When the user asks to see raw KB content or list sources:
- Use kb_list to show sources
- You can show the raw search results if the user explicitly asks for them"""


def build_system_prompt() -> str:
    """System prompt for the UDB assistant."""
    return SYSTEM_PROMPT


def build_transcript(history: Iterable[ChatMessage], question: str) -> str:
    """Flatten the chat history and the new question into one prompt."""
    transcript = ""
    for message in history:
        speaker = "User" if message.role == "user" else "Assistant"
        transcript += f"{speaker}: {message.content}\n\n"
    return transcript + f"User: {question}"


class ConversationDriver:
    """Owns the lifecycle of one model session per question."""

    def __init__(
        self,
        kb_server: ToolsRegistry,
        file_server: ToolsRegistry,
        settings: Settings,
        console: Console,
        session_factory: SessionFactory = query,
        renderer: StreamRenderer | None = None,
    ):
        """Initialize the driver.

        Args:
            kb_server: Knowledge base tools
            file_server: Read-only file inspection tools
            settings: Model and turn limits
            console: Where the turn is rendered
            session_factory: Opens a model session (defaults to the Claude session)
            renderer: Stream classifier (defaults to one on ``console``)
        """
        self.kb_server = kb_server
        self.file_server = file_server
        self.settings = settings
        self.console = console
        self.session_factory = session_factory
        self.renderer = renderer or StreamRenderer(console)

    @property
    def allowed_tools(self) -> list[str]:
        """Every tool Claude may call: the KB tools plus Read and Glob."""
        return self.kb_server.get_qualified_names() + self.file_server.get_qualified_names()

    def build_options(self, question: str, history: Iterable[ChatMessage]) -> SessionOptions:
        return SessionOptions(
            prompt=build_transcript(history, question),
            model=self.settings.model,
            system_prompt=build_system_prompt(),
            tool_servers={self.kb_server.name: self.kb_server, self.file_server.name: self.file_server},
            allowed_tools=self.allowed_tools,
            max_turns=self.settings.max_turns,
            include_partial_messages=True,
            env=dict(os.environ),
            max_tokens=self.settings.max_tokens,
        )

    async def respond(self, question: str, history: Iterable[ChatMessage]) -> str:
        """Stream Claude's answer to a question and return the recorded answer.

        Session failures never propagate: they become the turn's answer.
        """
        state = TurnState()
        try:
            options = self.build_options(question, history)
            events = self.session_factory(options)
            return await self.renderer.consume(events, state)
        except Exception as e:
            logger.error(f"Model session failed: {e}", exc_info=True)
            self.console.print(Text(f"\nClaude error: {e}", style="red"))
            return f"I encountered an error: {e}"
