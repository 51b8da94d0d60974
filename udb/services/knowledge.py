"""Knowledge store interface and implementations."""

import math
import re
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from cuid2 import cuid_wrapper
from pydantic import BaseModel, Field, TypeAdapter

from udb.models.knowledge import (
    Chunk,
    DeleteResult,
    ExtractedContent,
    IngestResult,
    SearchResult,
    SourceInfo,
    SourceSummary,
)
from udb.services.extractors import extract, is_file_path, resolve_path
from udb.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

MAX_CHUNK_CHARS = 1000

Extractor = Callable[[str], Awaitable[ExtractedContent | None]]

_WORD = re.compile(r"\w+")


class KnowledgeStore(Protocol):
    """Interface for knowledge base storage."""

    async def search(self, query: str, limit: int = 5, min_similarity: float = 0.4) -> list[SearchResult]:
        """Find chunks similar to a query, best match first."""
        ...

    async def ingest_url(self, url: str, title: str | None = None, tags: list[str] | None = None) -> IngestResult:
        """Extract and store the content behind a URL or local file path."""
        ...

    async def ingest_content(self, content: str, title: str, tags: list[str] | None = None) -> IngestResult:
        """Store raw text as a new source."""
        ...

    async def list_sources(self, limit: int = 20) -> list[SourceSummary]:
        """List sources, most recent first."""
        ...

    async def delete_source(self, source_id: str) -> DeleteResult:
        """Remove a source and its chunks."""
        ...

    async def get_chunks_by_source_id(self, source_id: str) -> list[Chunk]:
        """All chunks of a source in document order."""
        ...

    async def get_source_by_id(self, source_id: str) -> SourceInfo | None:
        """Metadata of a source, or None if it does not exist."""
        ...


class StoredSource(BaseModel):
    """A source as held by the store."""

    id: str
    title: str | None = None
    url: str | None = None
    source_type: str
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    chunks: list[str] = Field(default_factory=list)


def chunk_text(text: str, max_chars: int = MAX_CHUNK_CHARS) -> list[str]:
    """Split text into chunks of whole paragraphs, at most ``max_chars`` each."""
    chunks: list[str] = []
    current = ""

    for paragraph in re.split(r"\n\s*\n", text.strip()):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        while len(paragraph) > max_chars:
            cut = paragraph.rfind(" ", 0, max_chars)
            if cut <= 0:
                cut = max_chars
            if current:
                chunks.append(current)
                current = ""
            chunks.append(paragraph[:cut].strip())
            paragraph = paragraph[cut:].strip()

        if current and len(current) + 2 + len(paragraph) > max_chars:
            chunks.append(current)
            current = paragraph
        else:
            current = f"{current}\n\n{paragraph}" if current else paragraph

    if current:
        chunks.append(current)
    return chunks


def _term_counts(text: str) -> Counter[str]:
    return Counter(word.lower() for word in _WORD.findall(text))


def cosine_similarity(a: Counter[str], b: Counter[str]) -> float:
    """Cosine similarity of two term-frequency vectors, in [0, 1]."""
    if not a or not b:
        return 0.0
    dot = sum(count * b[term] for term, count in a.items() if term in b)
    norm = math.sqrt(sum(c * c for c in a.values())) * math.sqrt(sum(c * c for c in b.values()))
    return min(1.0, dot / norm) if norm else 0.0


class InMemoryKnowledgeStore:
    """Knowledge store keeping every source in memory."""

    def __init__(self, extractor: Extractor | None = None):
        """Initialize the store.

        Args:
            extractor: Turns a URL or file path into content (defaults to file/web extraction)
        """
        self.sources: dict[str, StoredSource] = {}
        self.extractor = extractor or extract

    async def search(self, query: str, limit: int = 5, min_similarity: float = 0.4) -> list[SearchResult]:
        query_terms = _term_counts(query)
        results: list[SearchResult] = []

        for source in self.sources.values():
            for chunk in source.chunks:
                similarity = cosine_similarity(query_terms, _term_counts(chunk))
                if similarity >= min_similarity and similarity > 0:
                    results.append(
                        SearchResult(
                            source_id=source.id,
                            source_type=source.source_type,
                            source_title=source.title,
                            source_url=source.url,
                            similarity=similarity,
                            content=chunk,
                        )
                    )

        results.sort(key=lambda r: r.similarity, reverse=True)
        return results[:limit]

    async def ingest_url(self, url: str, title: str | None = None, tags: list[str] | None = None) -> IngestResult:
        location = resolve_path(url) if is_file_path(url) else url

        existing = self._find_by_url(location)
        if existing is not None:
            return IngestResult(success=False, error=f"Already ingested: {location}", existing_source_id=existing.id)

        extracted = await self.extractor(url)
        if extracted is None:
            return IngestResult(success=False, error=f"Could not extract content from {url}")

        existing = self._find_by_url(extracted.url)
        if existing is not None:
            return IngestResult(
                success=False, error=f"Already ingested: {extracted.url}", existing_source_id=existing.id
            )

        return self._add_source(
            content=extracted.content,
            title=title or extracted.title,
            url=extracted.url,
            source_type=extracted.source_type,
            tags=tags,
        )

    async def ingest_content(self, content: str, title: str, tags: list[str] | None = None) -> IngestResult:
        if not content.strip():
            return IngestResult(success=False, error="Content is empty")
        if not title.strip():
            return IngestResult(success=False, error="Title is required")
        return self._add_source(content=content, title=title.strip(), url=None, source_type="text", tags=tags)

    async def list_sources(self, limit: int = 20) -> list[SourceSummary]:
        # dicts keep insertion order, so reversing breaks created_at ties newest first
        ordered = sorted(reversed(list(self.sources.values())), key=lambda s: s.created_at, reverse=True)
        return [
            SourceSummary(id=s.id, title=s.title, url=s.url, source_type=s.source_type, created_at=s.created_at)
            for s in ordered[:limit]
        ]

    async def delete_source(self, source_id: str) -> DeleteResult:
        if source_id not in self.sources:
            return DeleteResult(success=False, error=f"Source not found: {source_id}")
        self._commit({k: v for k, v in self.sources.items() if k != source_id})
        return DeleteResult(success=True)

    async def get_chunks_by_source_id(self, source_id: str) -> list[Chunk]:
        source = self.sources.get(source_id)
        if source is None:
            return []
        return [Chunk(content=c) for c in source.chunks]

    async def get_source_by_id(self, source_id: str) -> SourceInfo | None:
        source = self.sources.get(source_id)
        if source is None:
            return None
        return SourceInfo(title=source.title, url=source.url, source_type=source.source_type)

    def _find_by_url(self, url: str) -> StoredSource | None:
        return next((s for s in self.sources.values() if s.url == url), None)

    def _add_source(
        self, content: str, title: str | None, url: str | None, source_type: str, tags: list[str] | None
    ) -> IngestResult:
        chunks = chunk_text(content)
        if not chunks:
            return IngestResult(success=False, error="No content to store")

        source = StoredSource(
            id=cuid(),
            title=title,
            url=url,
            source_type=source_type,
            tags=list(tags or []),
            created_at=datetime.now(UTC),
            chunks=chunks,
        )
        self._commit({**self.sources, source.id: source})
        logger.info(f"Stored source {source.id} ({source_type}) with {len(chunks)} chunks")
        return IngestResult(success=True, source_id=source.id, chunks_count=len(chunks))

    def _commit(self, sources: dict[str, StoredSource]) -> None:
        """Replace the stored sources with the result of a mutation."""
        self.sources = sources


_sources_adapter = TypeAdapter(list[StoredSource])


class JsonKnowledgeStore(InMemoryKnowledgeStore):
    """In-memory store that snapshots itself to a JSON file after each change."""

    def __init__(self, path: Path, extractor: Extractor | None = None):
        super().__init__(extractor)
        self.path = path
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        sources = _sources_adapter.validate_json(self.path.read_bytes())
        self.sources = {s.id: s for s in sources}
        logger.info(f"Loaded {len(self.sources)} sources from {self.path}")

    def _commit(self, sources: dict[str, StoredSource]) -> None:
        # Memory only changes once the snapshot is on disk
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_bytes(_sources_adapter.dump_json(list(sources.values()), indent=2))
        tmp_path.replace(self.path)
        self.sources = sources
