"""Content extraction for knowledge base ingestion."""

import os
import re
from pathlib import Path

import httpx
from bs4 import BeautifulSoup, Comment

from udb.models.knowledge import ExtractedContent
from udb.utils.logging import get_logger

logger = get_logger(__name__)

_WINDOWS_DRIVE = re.compile(r"^[a-zA-Z]:\\")
_MARKDOWN_TITLE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_DROPPED_TAGS = ["script", "style", "noscript", "svg", "nav", "header", "footer", "aside", "title"]


def is_file_path(value: str) -> bool:
    """Check if input looks like a local file path rather than a URL."""
    return value.startswith(("/", "~/", "./", "../")) or bool(_WINDOWS_DRIVE.match(value))


def resolve_path(file_path: str) -> str:
    """Resolve a path to an absolute one, expanding ``~``."""
    return str(Path(os.path.expanduser(file_path)).resolve())


def extract_file(file_path: str) -> ExtractedContent | None:
    """Extract content from a local file.

    Markdown files use their first ``#`` heading as the title, everything else
    the file name. Missing, unreadable or empty files yield None.
    """
    path = Path(resolve_path(file_path))
    if not path.is_file():
        logger.error(f"File not found: {path}")
        return None

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"File extraction failed for {path}: {e}")
        return None

    if not content.strip():
        logger.error(f"File is empty: {path}")
        return None

    title = path.name
    if path.suffix.lower() in (".md", ".markdown"):
        match = _MARKDOWN_TITLE.search(content)
        if match:
            title = match.group(1).strip()

    return ExtractedContent(title=title, content=content.strip(), url=str(path), source_type="file")


def _visible_text(soup: BeautifulSoup) -> str:
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    for tag in soup(_DROPPED_TAGS):
        tag.decompose()

    text = soup.get_text(separator="\n", strip=True)
    return "\n".join(line.strip() for line in text.split("\n") if line.strip())


def html_to_text(markup: str) -> str:
    """Convert an HTML document to readable plain text."""
    return _visible_text(BeautifulSoup(markup, "html.parser"))


async def extract_web(
    url: str, client: httpx.AsyncClient | None = None, timeout: float = 30.0
) -> ExtractedContent | None:
    """Fetch a web page and extract its title and text."""
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
    try:
        response = await http.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Fetching {url} failed: {e}")
        return None
    finally:
        if owns_client:
            await http.aclose()

    body = response.text
    if "html" not in response.headers.get("content-type", "text/html"):
        text = body.strip()
        title = url
    else:
        soup = BeautifulSoup(body, "html.parser")
        title = soup.title.get_text(strip=True) if soup.title else url
        text = _visible_text(soup)

    if not text:
        logger.error(f"No text content found at {url}")
        return None

    return ExtractedContent(title=title or url, content=text, url=url, source_type="web")


async def extract(source: str) -> ExtractedContent | None:
    """Dispatch to the file or web extractor depending on the input."""
    if is_file_path(source):
        return extract_file(source)
    return await extract_web(source)
