"""Tools that add content to the knowledge base."""

from pydantic import BaseModel, Field

from udb.services.knowledge import KnowledgeStore
from udb.tools.base import ToolDefinition, ToolInvocationResult, error_result, text_result


class AddContentInput(BaseModel):
    """Input schema for adding raw text."""

    content: str = Field(..., min_length=1, description="The text content to add")
    title: str = Field(..., min_length=1, description="A descriptive title for the content")
    tags: list[str] | None = Field(None, description="Optional tags for categorization")


class IngestUrlInput(BaseModel):
    """Input schema for ingesting a URL or local file path."""

    url: str = Field(..., min_length=1, description="The URL (or local file path) to ingest")
    title: str | None = Field(None, description="Optional custom title")
    tags: list[str] | None = Field(None, description="Optional tags for categorization")


def create_add_tool(store: KnowledgeStore) -> ToolDefinition:
    async def add_handler(params: AddContentInput) -> ToolInvocationResult:
        result = await store.ingest_content(params.content, title=params.title, tags=params.tags)
        if result.success:
            return text_result(
                f"Added successfully!\n  Source ID: {result.source_id}\n  Chunks: {result.chunks_count}"
            )
        return error_result(f"Failed to add: {result.error}")

    return ToolDefinition(
        name="kb_add",
        description=(
            "Add text content directly to the knowledge base. Use this for notes, commands, "
            "snippets, or any text the user wants to save."
        ),
        input_schema_class=AddContentInput,
        handler=add_handler,
    )


def create_ingest_tool(store: KnowledgeStore) -> ToolDefinition:
    async def ingest_handler(params: IngestUrlInput) -> ToolInvocationResult:
        result = await store.ingest_url(params.url, title=params.title, tags=params.tags)
        if result.success:
            return text_result(
                f"Ingested successfully!\n  Source ID: {result.source_id}\n  Chunks: {result.chunks_count}"
            )

        message = f"Failed to ingest: {result.error}"
        if result.existing_source_id:
            message += f"\n  Already exists: {result.existing_source_id}"
        return error_result(message)

    return ToolDefinition(
        name="kb_ingest",
        description=(
            "Ingest content from a URL into the knowledge base. Supports web articles "
            "and local files (absolute, relative or ~/ paths)."
        ),
        input_schema_class=IngestUrlInput,
        handler=ingest_handler,
    )
