"""Tools for browsing and removing knowledge base sources."""

from pydantic import BaseModel, Field

from udb.services.knowledge import KnowledgeStore
from udb.tools.base import ToolDefinition, ToolInvocationResult, error_result, text_result


class ListSourcesInput(BaseModel):
    """Input schema for listing sources."""

    limit: int = Field(20, ge=0, description="Maximum results (default: 20)")


class DeleteSourceInput(BaseModel):
    """Input schema for deleting a source."""

    id: str = Field(..., min_length=1, description="The source ID to delete")


class SourceChunksInput(BaseModel):
    """Input schema for reading every chunk of a source."""

    source_id: str = Field(
        ...,
        min_length=1,
        description="The source ID to get chunks from (use kb_list to find source IDs)",
    )


def create_list_tool(store: KnowledgeStore) -> ToolDefinition:
    async def list_handler(params: ListSourcesInput) -> ToolInvocationResult:
        sources = await store.list_sources(params.limit)
        if not sources:
            return text_result("Knowledge base is empty.")

        entries = []
        for s in sources:
            title = s.title or s.url or "Untitled"
            entry = f"• {s.id}\n  {title}\n  [{s.source_type}] {s.created_at.date().isoformat()}"
            if s.url:
                entry += f"\n  {s.url}"
            entries.append(entry)

        return text_result(f"Sources ({len(sources)}):\n\n" + "\n\n".join(entries))

    return ToolDefinition(
        name="kb_list",
        description="List all sources in the knowledge base, most recent first.",
        input_schema_class=ListSourcesInput,
        handler=list_handler,
    )


def create_delete_tool(store: KnowledgeStore) -> ToolDefinition:
    async def delete_handler(params: DeleteSourceInput) -> ToolInvocationResult:
        result = await store.delete_source(params.id)
        if result.success:
            return text_result(f"Deleted source: {params.id}")
        return error_result(f"Failed to delete: {result.error}")

    return ToolDefinition(
        name="kb_delete",
        description="Delete a source from the knowledge base by its ID.",
        input_schema_class=DeleteSourceInput,
        handler=delete_handler,
    )


def create_source_chunks_tool(store: KnowledgeStore) -> ToolDefinition:
    async def source_chunks_handler(params: SourceChunksInput) -> ToolInvocationResult:
        source = await store.get_source_by_id(params.source_id)
        if source is None:
            return error_result(f"Source not found: {params.source_id}")

        label = source.title or source.url or params.source_id
        chunks = await store.get_chunks_by_source_id(params.source_id)
        if not chunks:
            return text_result(f"No chunks found for source: {label}")

        formatted = "\n\n".join(
            f"--- Chunk {i}/{len(chunks)} ---\n{chunk.content}" for i, chunk in enumerate(chunks, start=1)
        )
        header = f"Source: {label}\nType: {source.source_type}\nTotal chunks: {len(chunks)}\n\n"
        return text_result(header + formatted)

    return ToolDefinition(
        name="kb_get_source_chunks",
        description=(
            "Get ALL chunks from a specific source by its ID. Use this when you need to read through "
            "all content from a particular source (e.g., to find specific details like links, dates, "
            "or names that similarity search might miss)."
        ),
        input_schema_class=SourceChunksInput,
        handler=source_chunks_handler,
    )
