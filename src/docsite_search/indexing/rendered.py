"""
Rendered-Page Supplement

Best-effort indexing of pages that only exist after the site is built (blog
posts, changelog entries). The sitemap of the live site is fetched, matching
URLs are loaded in a headless browser, and the visible text of the main
content region is indexed with the same record shape as markdown sources.

Every failure in this stage degrades to a logged warning. The markdown pass
never depends on it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from ..config import settings
from ..search.engine import SearchEngineClient
from .markdown import (
    HEADING_TAGS,
    hierarchy_from_url,
    normalize_whitespace,
    section_from_url,
)
from .models import DocumentRecord

logger = logging.getLogger("docsearch.rendered")

RENDERED_PATH_MARKERS = ("/blog/", "/changelog/")
CONTENT_SELECTOR = "article, main, .markdown"

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
]


def parse_sitemap(xml: str) -> List[str]:
    """Return every ``<url><loc>`` entry of a sitemap document."""
    soup = BeautifulSoup(xml, "html.parser")
    return [loc.get_text(strip=True) for loc in soup.select("url > loc")]


def select_rendered_urls(urls: List[str]) -> List[str]:
    return [u for u in urls if any(marker in u for marker in RENDERED_PATH_MARKERS)]


def extract_page_record(html: str, url: str, title: str = "") -> Optional[DocumentRecord]:
    """
    Build a record from rendered HTML, or ``None`` if the page has no main
    content region.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()

    region = soup.select_one(CONTENT_SELECTOR)
    if region is None:
        return None

    if not title and soup.title is not None:
        title = soup.title.get_text(strip=True)

    headings = [
        normalize_whitespace(h.get_text(" ")) for h in soup.find_all(HEADING_TAGS)
    ]
    url_path = urlparse(url).path or "/"

    return DocumentRecord(
        title=title or url_path,
        content=normalize_whitespace(region.get_text(" ")),
        headings=" ".join(h for h in headings if h),
        url=url_path,
        path=url_path,
        section=section_from_url(url_path),
        tags=[],
        last_modified=datetime.now(timezone.utc),
        hierarchy=hierarchy_from_url(url_path),
    )


class RenderedPageCrawler:
    """
    Loads blog/changelog pages listed in the site's sitemap and indexes them.
    """

    def __init__(
        self,
        client: SearchEngineClient,
        site_url: Optional[str] = None,
        navigation_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client = client
        self.site_url = (site_url or settings.site_base_url).rstrip("/")
        self.navigation_timeout = navigation_timeout or settings.render_timeout
        self._transport = transport

    async def fetch_sitemap_urls(self) -> List[str]:
        sitemap_url = f"{self.site_url}/sitemap.xml"
        async with httpx.AsyncClient(timeout=15, transport=self._transport) as http:
            resp = await http.get(sitemap_url)
        resp.raise_for_status()
        return parse_sitemap(resp.text)

    async def index_rendered_pages(self) -> int:
        """
        Index rendered pages. Returns the number of pages written, which is 0
        when this stage is unavailable.
        """
        logger.info("Indexing rendered pages from %s", self.site_url)

        try:
            urls = select_rendered_urls(await self.fetch_sitemap_urls())
        except httpx.HTTPError as exc:
            logger.warning("No sitemap available, skipping rendered pages: %s", exc)
            return 0

        if not urls:
            logger.info("Sitemap lists no blog or changelog pages")
            return 0

        try:
            from playwright.async_api import async_playwright
        except ImportError:
            logger.warning("Playwright is not installed, skipping rendered pages")
            return 0

        indexed = 0
        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.launch(headless=True, args=BROWSER_ARGS)
                try:
                    page = await browser.new_page()
                    page.set_default_navigation_timeout(self.navigation_timeout * 1000)
                    for url in urls:
                        if await self._index_page(page, url):
                            indexed += 1
                finally:
                    await browser.close()
        except Exception as exc:
            logger.warning(
                "Rendered page indexing stopped after %d pages, continuing: %s",
                indexed,
                exc,
            )
            return indexed

        logger.info("Indexed %d rendered pages", indexed)
        return indexed

    async def _index_page(self, page, url: str) -> bool:
        try:
            await page.goto(url, wait_until="networkidle")
            record = extract_page_record(await page.content(), url, await page.title())
            if record is None:
                logger.debug("No content region on %s", url)
                return False
            await self.client.index_document(record.to_document())
        except Exception:
            logger.exception("Error indexing rendered page %s", url)
            return False

        logger.debug("Indexed rendered page: %s", record.url)
        return True
