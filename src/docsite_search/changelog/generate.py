"""
Changelog Artifacts

Generates the two changelog files the documentation site consumes:

- a JavaScript data module (``export const changelogData = [...]``)
- an RSS 2.0 feed of the most recent releases

Output depends only on the changelog sources, so regenerating without source
changes produces identical files.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape

from ..config import settings
from .parser import Release, load_releases

logger = logging.getLogger("docsearch.changelog")

DATA_MODULE_HEADER = (
    "// Auto-generated file - do not edit manually\n"
    "// Run 'docsite-search changelog data' to regenerate\n"
)

_XML_ENTITIES = {"'": "&apos;", '"': "&quot;"}


class ChangelogSourceMissingError(FileNotFoundError):
    """Raised when the changelog source directory does not exist."""


def escape_xml(value: object) -> str:
    if not isinstance(value, str):
        return ""
    return escape(value, _XML_ENTITIES)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


# ---------------------------------------------------------------------
# Data module
# ---------------------------------------------------------------------

def render_data_module(releases: List[Release]) -> str:
    data = [release.model_dump() for release in releases]
    return (
        f"{DATA_MODULE_HEADER}\n"
        f"export const changelogData = {json.dumps(data, indent=2, ensure_ascii=False)};\n"
    )


def generate_changelog_data(
    changelogs_dir: Optional[Path] = None,
    output_path: Optional[Path] = None,
) -> int:
    """
    Write the changelog data module. Returns the number of releases written,
    or 0 (nothing written) when the source directory is missing.
    """
    changelogs_dir = Path(changelogs_dir or settings.changelogs_dir)
    output_path = Path(output_path or settings.changelog_data_path)

    if not changelogs_dir.is_dir():
        logger.warning("Changelogs directory %s not found", changelogs_dir)
        return 0

    releases = load_releases(changelogs_dir)
    _write(output_path, render_data_module(releases))
    logger.info("Generated changelog data for %d releases: %s", len(releases), output_path)
    return len(releases)


# ---------------------------------------------------------------------
# RSS feed
# ---------------------------------------------------------------------

def parse_release_date(value: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime (``2024-12-15``,
    ``2024-12-15T10:00:00Z``). Naive values are taken as UTC.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _pub_date(release: Release) -> str:
    published = parse_release_date(release.date)
    if published is None:
        published = datetime(1970, 1, 1, tzinfo=timezone.utc)
        logger.warning("Release %s has unparseable date %r", release.version, release.date)
    return format_datetime(published, usegmt=True)


def render_rss_description(release: Release, product: str) -> str:
    parts = [
        f"<![CDATA[<h2>{escape_xml(product)} {escape_xml(release.version)}"
        f" - {escape_xml(release.title)}</h2>"
    ]
    for section in release.sections:
        parts.append(f"<h3>{escape_xml(section.title)}</h3><ul>")
        parts.extend(f"<li>{escape_xml(item)}</li>" for item in section.items)
        parts.append("</ul>")
    parts.append("]]>")
    return "".join(parts)


def render_rss_item(release: Release, site_url: str, product: str) -> str:
    link = f"{site_url}/changelog#{release.anchor}"
    guid = f"{site_url}/changelog/{release.version}"
    return (
        "    <item>\n"
        f"      <title>{escape_xml(product)} {escape_xml(release.version)}"
        f" - {escape_xml(release.title)}</title>\n"
        f"      <link>{escape_xml(link)}</link>\n"
        f'      <guid isPermaLink="false">{escape_xml(guid)}</guid>\n'
        f"      <pubDate>{_pub_date(release)}</pubDate>\n"
        f"      <description>{render_rss_description(release, product)}</description>\n"
        f"      <category>{escape_xml(release.type)}</category>\n"
        "    </item>"
    )


def render_rss(
    releases: List[Release],
    site_url: Optional[str] = None,
    product: Optional[str] = None,
) -> str:
    site_url = (site_url or settings.feed_site_url).rstrip("/")
    product = product or settings.product_name

    last_build = (
        _pub_date(releases[0])
        if releases
        else format_datetime(datetime(1970, 1, 1, tzinfo=timezone.utc), usegmt=True)
    )
    items = "\n".join(render_rss_item(r, site_url, product) for r in releases)

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">\n'
        "  <channel>\n"
        f"    <title>{escape_xml(product)} Changelog</title>\n"
        f"    <link>{escape_xml(site_url)}/changelog</link>\n"
        f"    <description>Release notes and changelog for {escape_xml(product)}</description>\n"
        "    <language>en</language>\n"
        f"    <lastBuildDate>{last_build}</lastBuildDate>\n"
        f'    <atom:link href="{escape_xml(site_url)}/rss/changelog.xml" rel="self"'
        ' type="application/rss+xml"/>\n'
        f"{items}\n"
        "  </channel>\n"
        "</rss>\n"
    )


def generate_changelog_rss(
    changelogs_dir: Optional[Path] = None,
    output_path: Optional[Path] = None,
    limit: Optional[int] = None,
) -> int:
    """
    Write the RSS feed. Returns the number of releases in the feed.

    Raises
    ------
    ChangelogSourceMissingError
        If the changelog source directory does not exist.
    """
    changelogs_dir = Path(changelogs_dir or settings.changelogs_dir)
    output_path = Path(output_path or settings.changelog_rss_path)

    if not changelogs_dir.is_dir():
        raise ChangelogSourceMissingError(f"Changelogs directory {changelogs_dir} not found")

    releases = load_releases(changelogs_dir, limit=limit or settings.changelog_rss_limit)
    _write(output_path, render_rss(releases))
    logger.info("Generated RSS feed for %d releases: %s", len(releases), output_path)
    return len(releases)
