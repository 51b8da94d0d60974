"""Knowledge base search tool."""

from pydantic import BaseModel, ConfigDict, Field

from udb.services.knowledge import KnowledgeStore
from udb.tools.base import ToolDefinition, ToolInvocationResult, text_result


class SearchInput(BaseModel):
    """Input schema for knowledge base search."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., description="The search query")
    limit: int = Field(5, ge=0, description="Maximum results (default: 5)")
    min_similarity: float = Field(
        0.4,
        alias="minSimilarity",
        ge=0.0,
        le=1.0,
        description="Minimum similarity threshold 0-1 (default: 0.4)",
    )


def create_search_tool(store: KnowledgeStore) -> ToolDefinition:
    async def search_handler(params: SearchInput) -> ToolInvocationResult:
        results = await store.search(params.query, limit=params.limit, min_similarity=params.min_similarity)
        if not results:
            return text_result("No results found.")

        entries = []
        for i, r in enumerate(results, start=1):
            source = r.source_title or r.source_url or "Unknown"
            entries.append(
                f"{i}. [{r.source_type}] {source} ({r.similarity * 100:.1f}%)\n"
                f"Source ID: {r.source_id}\n"
                f"{r.content}"
            )

        formatted = "\n\n---\n\n".join(entries)
        return text_result(f"Found {len(results)} result(s):\n\n{formatted}")

    return ToolDefinition(
        name="kb_search",
        description=(
            "Search the knowledge base for relevant content. "
            "Returns matching documents with similarity scores."
        ),
        input_schema_class=SearchInput,
        handler=search_handler,
    )
