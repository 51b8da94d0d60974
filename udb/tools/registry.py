"""Tools registry exposing a fixed set of named tools to the model session."""

from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from udb.services.knowledge import KnowledgeStore
from udb.tools.base import ToolDefinition, ToolInvocationResult, error_result
from udb.tools.files import create_glob_tool, create_read_tool
from udb.tools.kb_ingest import create_add_tool, create_ingest_tool
from udb.tools.kb_search import create_search_tool
from udb.tools.kb_sources import create_delete_tool, create_list_tool, create_source_chunks_tool
from udb.utils.logging import get_logger

logger = get_logger(__name__)


class ToolsRegistry:
    """Registry mapping tool names to their schema and handler.

    A registry acts as a capability server: the model session calls tools
    through :meth:`call_tool`, which never raises. Validation failures, unknown
    names and handler exceptions all come back as ``is_error`` results.
    """

    def __init__(self, name: str, tools: Iterable[ToolDefinition] = (), qualify_names: bool = True):
        """Initialize the registry.

        Args:
            name: Server name, used to namespace tool names
            tools: Tools to register at startup
            qualify_names: Whether tools are exposed as ``mcp__<server>__<tool>``
        """
        self.name = name
        self.qualify_names = qualify_names
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a new tool in the registry."""
        if tool.name in self._tools:
            raise ValueError(f"Tool {tool.name!r} is already registered on server {self.name!r}")
        self._tools[tool.name] = tool

    def qualified_name(self, tool_name: str) -> str:
        """Name under which the model sees a tool of this server."""
        if not self.qualify_names:
            return tool_name
        return f"mcp__{self.name}__{tool_name}"

    def resolve(self, qualified_name: str) -> str | None:
        """Map a model-facing tool name back to a local tool name."""
        for name in self._tools:
            if self.qualified_name(name) == qualified_name:
                return name
        return None

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def get_qualified_names(self) -> list[str]:
        return [self.qualified_name(name) for name in self._tools]

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def get_tool_definitions(self) -> list[dict[str, Any]]:
        """Tool specs in the shape the Messages API expects."""
        return [
            {
                "name": self.qualified_name(tool.name),
                "description": tool.description,
                "input_schema": tool.get_json_schema(),
            }
            for tool in self._tools.values()
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> ToolInvocationResult:
        """Validate arguments and run a tool.

        Args:
            name: Local tool name
            arguments: Raw arguments produced by the model

        Returns:
            The tool's result, or an error result describing the failure
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.error(f"Unknown tool requested: {name}")
            return error_result(f"Unknown tool: {name}")

        try:
            params = tool.parse_input(arguments or {})
        except ValidationError as e:
            logger.warning(f"Invalid arguments for {name}: {e}")
            return error_result(f"Invalid arguments for {name}: {e}")

        logger.debug(f"Executing tool: {name} with input: {arguments}")
        try:
            result = await tool.handler(params)
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=True)
            return error_result(f"Tool {name} failed: {e}")

        logger.debug(f"Tool {name} finished (is_error={result.is_error}): {result.text[:100]}")
        return result


KB_SERVER_NAME = "udb-kb"
FILE_SERVER_NAME = "files"


def create_kb_server(store: KnowledgeStore) -> ToolsRegistry:
    """Registry with the knowledge base tools bound to a store."""
    return ToolsRegistry(
        KB_SERVER_NAME,
        [
            create_search_tool(store),
            create_add_tool(store),
            create_ingest_tool(store),
            create_list_tool(store),
            create_delete_tool(store),
            create_source_chunks_tool(store),
        ],
    )


def create_file_server() -> ToolsRegistry:
    """Registry with the read-only file tools, exposed without a namespace."""
    return ToolsRegistry(FILE_SERVER_NAME, [create_read_tool(), create_glob_tool()], qualify_names=False)
