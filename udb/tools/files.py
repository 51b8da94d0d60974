"""Read-only file inspection tools."""

from pathlib import Path

from pydantic import BaseModel, Field

from udb.services.extractors import resolve_path
from udb.tools.base import ToolDefinition, ToolInvocationResult, error_result, text_result

MAX_READ_LINES = 2000
MAX_GLOB_MATCHES = 200


class ReadFileInput(BaseModel):
    """Input schema for reading a file."""

    file_path: str = Field(..., min_length=1, description="Path of the file to read")
    offset: int = Field(0, ge=0, description="Line number to start reading from (0-based)")
    limit: int = Field(MAX_READ_LINES, ge=1, le=MAX_READ_LINES, description="Maximum number of lines to read")


class GlobInput(BaseModel):
    """Input schema for matching file paths."""

    pattern: str = Field(..., min_length=1, description='Glob pattern, e.g. "**/*.md"')
    path: str | None = Field(None, description="Directory to search in (default: current directory)")


async def read_file_handler(params: ReadFileInput) -> ToolInvocationResult:
    path = Path(resolve_path(params.file_path))
    if not path.is_file():
        return error_result(f"File not found: {path}")

    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except UnicodeDecodeError:
        return error_result(f"Not a text file: {path}")

    selected = lines[params.offset : params.offset + params.limit]
    if not selected:
        return text_result(f"{path} has no lines past offset {params.offset}.")

    numbered = "\n".join(f"{params.offset + i:6d}\t{line}" for i, line in enumerate(selected, start=1))
    return text_result(numbered)


async def glob_handler(params: GlobInput) -> ToolInvocationResult:
    root = Path(resolve_path(params.path)) if params.path else Path.cwd()
    if not root.is_dir():
        return error_result(f"Directory not found: {root}")

    matches = sorted(str(p) for p in root.glob(params.pattern))
    if not matches:
        return text_result(f"No files match {params.pattern} in {root}")

    shown = matches[:MAX_GLOB_MATCHES]
    text = "\n".join(shown)
    if len(matches) > len(shown):
        text += f"\n... {len(matches) - len(shown)} more"
    return text_result(text)


def create_read_tool() -> ToolDefinition:
    return ToolDefinition(
        name="Read",
        description="Read a text file from the local filesystem. Returns numbered lines.",
        input_schema_class=ReadFileInput,
        handler=read_file_handler,
    )


def create_glob_tool() -> ToolDefinition:
    return ToolDefinition(
        name="Glob",
        description="Find files whose paths match a glob pattern.",
        input_schema_class=GlobInput,
        handler=glob_handler,
    )
