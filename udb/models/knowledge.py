"""Knowledge base data models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

SourceType = Literal["text", "file", "web"]


class SearchResult(BaseModel):
    """A chunk matching a search query."""

    source_id: str
    source_type: str
    source_title: str | None = None
    source_url: str | None = None
    similarity: float = Field(ge=0.0, le=1.0)
    content: str


class IngestResult(BaseModel):
    """Outcome of adding content to the knowledge base."""

    success: bool
    source_id: str | None = None
    chunks_count: int | None = None
    error: str | None = None
    existing_source_id: str | None = None


class DeleteResult(BaseModel):
    """Outcome of deleting a source."""

    success: bool
    error: str | None = None


class SourceSummary(BaseModel):
    """Listing entry for a stored source."""

    id: str
    title: str | None = None
    url: str | None = None
    source_type: str
    created_at: datetime


class SourceInfo(BaseModel):
    """Metadata of a single source."""

    title: str | None = None
    url: str | None = None
    source_type: str


class Chunk(BaseModel):
    """A stored piece of a source's content."""

    content: str


class ExtractedContent(BaseModel):
    """Content pulled out of a file or web page, ready for ingestion."""

    title: str
    content: str
    url: str
    source_type: SourceType = "web"
