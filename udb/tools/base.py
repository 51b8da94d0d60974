"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class ToolInvocationResult:
    """Result of a tool call as seen by the model.

    ``is_error`` tells the model the call failed; it may recover within the
    same turn (retry, use another tool, or explain).
    """

    content: list[str] = field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str:
        return "\n".join(self.content)


def text_result(text: str) -> ToolInvocationResult:
    """Successful single-text tool result."""
    return ToolInvocationResult(content=[text])


def error_result(text: str) -> ToolInvocationResult:
    """Failed single-text tool result."""
    return ToolInvocationResult(content=[text], is_error=True)


ToolHandler = Callable[[Any], Awaitable[ToolInvocationResult]]


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool available to the AI assistant."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema()

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)
