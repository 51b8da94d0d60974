"""Tools exposed to the chat assistant."""

from udb.tools.base import ToolDefinition, ToolInvocationResult
from udb.tools.registry import ToolsRegistry, create_file_server, create_kb_server

__all__ = ["ToolDefinition", "ToolInvocationResult", "ToolsRegistry", "create_file_server", "create_kb_server"]
