"""
Index Builder

Rebuilds the documentation search index from scratch:

1. Verify the engine is reachable, drop the old index, create a new one.
2. Convert every markdown/MDX file under the content root to a
   ``DocumentRecord`` and write it, one file at a time.
3. Optionally supplement with rendered blog/changelog pages.
4. Refresh the index so new documents become searchable.

A failing file is logged and skipped; it never aborts the run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from ..config import settings
from ..search.engine import SearchEngineClient
from .markdown import (
    extract_title,
    hierarchy_from_path,
    normalize_tags,
    render_text,
    section_from_path,
    split_front_matter,
    strip_mdx_statements,
    url_from_path,
)
from .models import INDEX_MAPPING, DocumentRecord
from .rendered import RenderedPageCrawler

logger = logging.getLogger("docsearch.indexer")

MARKDOWN_PATTERNS = ("*.md", "*.mdx")


def iter_markdown_files(content_root: Path) -> Iterator[Path]:
    """Yield markdown sources under ``content_root`` in a stable order."""
    found: List[Path] = []
    for pattern in MARKDOWN_PATTERNS:
        found.extend(p for p in content_root.rglob(pattern) if p.is_file())
    yield from sorted(set(found))


def build_record(file_path: Path, content_root: Path) -> DocumentRecord:
    """
    Convert one source file into a ``DocumentRecord``.

    Raises whatever reading or parsing raises; callers decide whether that is
    fatal.
    """
    raw = file_path.read_text(encoding="utf-8")
    front_matter, body = split_front_matter(raw)
    if file_path.suffix == ".mdx":
        body = strip_mdx_statements(body)

    text, headings = render_text(body)
    relative_path = file_path.relative_to(content_root).as_posix()

    title = front_matter.get("title") or extract_title(body) or file_path.stem
    modified = datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc)

    return DocumentRecord(
        title=str(title),
        content=text,
        headings=" ".join(headings),
        url=url_from_path(relative_path),
        path=relative_path,
        section=section_from_path(relative_path),
        tags=normalize_tags(front_matter.get("tags")),
        last_modified=modified,
        hierarchy=hierarchy_from_path(relative_path),
    )


class IndexBuilder:
    """
    Orchestrates one complete rebuild of the search index.
    """

    def __init__(
        self,
        client: Optional[SearchEngineClient] = None,
        content_root: Optional[Path] = None,
        crawler: Optional[RenderedPageCrawler] = None,
        include_rendered: bool = True,
    ) -> None:
        self.client = client or SearchEngineClient()
        self.content_root = Path(content_root or settings.docs_path)
        self.crawler = crawler
        self.include_rendered = include_rendered

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """
        Recreate an empty index.

        Raises
        ------
        SearchEngineUnavailableError
            If the engine cannot be reached.
        """
        await self.client.ping()
        logger.info("Connected to search engine at %s", self.client.base_url)

        if await self.client.delete_index():
            logger.info("Deleted existing index: %s", self.client.index_name)

        await self.client.create_index(INDEX_MAPPING)
        logger.info("Created index: %s", self.client.index_name)

    async def index_markdown_files(self) -> int:
        """Index every markdown source. Returns the number written."""
        if not self.content_root.is_dir():
            logger.warning("Content root %s does not exist", self.content_root)
            return 0

        logger.info("Indexing markdown files under %s", self.content_root)
        indexed = 0
        for file_path in iter_markdown_files(self.content_root):
            try:
                await self.index_markdown_file(file_path)
                indexed += 1
            except Exception:
                logger.exception("Error indexing %s", file_path)

        logger.info("Indexed %d markdown files", indexed)
        return indexed

    async def index_markdown_file(self, file_path: Path) -> DocumentRecord:
        record = build_record(file_path, self.content_root)
        await self.client.index_document(record.to_document())
        logger.debug("Indexed: %s -> %s", record.path, record.url)
        return record

    async def index_rendered_pages(self) -> int:
        crawler = self.crawler or RenderedPageCrawler(self.client)
        return await crawler.index_rendered_pages()

    async def finalize(self) -> int:
        """Refresh the index and return the engine's document count."""
        await self.client.refresh()
        total = await self.client.count()
        logger.info("Indexing complete, total documents: %d", total)
        return total

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(self) -> int:
        """
        Execute a full rebuild and return the number of documents written.
        """
        await self.init()
        count = await self.index_markdown_files()
        if self.include_rendered:
            count += await self.index_rendered_pages()
        await self.finalize()
        return count


async def build_index(
    content_root: Path,
    client: Optional[SearchEngineClient] = None,
    include_rendered: bool = True,
) -> int:
    """Rebuild the index from ``content_root``; returns documents indexed."""
    builder = IndexBuilder(
        client=client,
        content_root=content_root,
        include_rendered=include_rendered,
    )
    return await builder.run()
