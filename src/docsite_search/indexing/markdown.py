"""
Markdown Normalisation

Pure helpers that turn a documentation source file into the pieces of a
``DocumentRecord``: front-matter, plain text, heading text, title, URL,
section label and breadcrumb hierarchy.

Nothing here touches the search engine or the filesystem beyond what callers
pass in, which keeps the derivation rules unit-testable.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Tuple

import yaml
from bs4 import BeautifulSoup
from markdown_it import MarkdownIt

from .models import HierarchyEntry

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_H1_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_MDX_STATEMENT_RE = re.compile(r"^(?:import|export)\s.*$", re.MULTILINE)
_MARKDOWN_SUFFIX_RE = re.compile(r"\.mdx?$")
_WHITESPACE_RE = re.compile(r"\s+")

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

_md = MarkdownIt("commonmark").enable("table")


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    Split a leading YAML front-matter block from the body.

    Returns ``({}, text)`` when there is no block. A block that does not hold
    a mapping is treated as empty. Malformed YAML raises ``yaml.YAMLError``.
    """
    match = _FRONT_MATTER_RE.match(text)
    if not match:
        return {}, text

    data = yaml.safe_load(match.group(1))
    if not isinstance(data, dict):
        data = {}
    return data, text[match.end():]


def strip_mdx_statements(text: str) -> str:
    """Drop top-level ``import``/``export`` lines found in MDX sources."""
    return _MDX_STATEMENT_RE.sub("", text)


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def render_text(markdown: str) -> Tuple[str, List[str]]:
    """
    Render markdown and return ``(plain_text, heading_texts)``.
    """
    soup = BeautifulSoup(_md.render(markdown), "html.parser")
    headings = [
        normalize_whitespace(tag.get_text())
        for tag in soup.find_all(HEADING_TAGS)
    ]
    text = normalize_whitespace(soup.get_text())
    return text, [h for h in headings if h]


def extract_title(markdown: str) -> Optional[str]:
    """Return the text of the first ``# `` heading, if any."""
    match = _H1_RE.search(markdown)
    return match.group(1).strip() if match else None


def normalize_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(t) for t in value if t is not None and str(t).strip()]
    return [str(value)]


# ---------------------------------------------------------------------
# Path-derived fields
# ---------------------------------------------------------------------

def url_from_path(relative_path: str) -> str:
    """
    Derive the site URL of a source file.

    ``guide/intro.md`` -> ``/guide/intro``; ``guide/index.mdx`` -> ``/guide``;
    ``index.md`` -> ``/``.
    """
    url_path = relative_path.replace("\\", "/")
    url_path = _MARKDOWN_SUFFIX_RE.sub("", url_path)
    if url_path.endswith("/index"):
        url_path = url_path[: -len("/index")]
    if url_path == "index":
        return "/"
    return f"/{url_path}"


def section_from_path(relative_path: str) -> str:
    parts = PurePosixPath(relative_path.replace("\\", "/")).parts
    return parts[0] if len(parts) > 1 else "root"


def hierarchy_from_path(relative_path: str) -> List[HierarchyEntry]:
    """Breadcrumbs for every directory segment above the file."""
    parts = PurePosixPath(relative_path.replace("\\", "/")).parts
    return _hierarchy(parts[:-1])


def section_from_url(url_path: str) -> str:
    parts = [p for p in url_path.split("/") if p]
    return parts[0] if parts else "root"


def hierarchy_from_url(url_path: str) -> List[HierarchyEntry]:
    """Breadcrumbs for every segment of a rendered page's URL path."""
    return _hierarchy([p for p in url_path.split("/") if p])


def _hierarchy(parts) -> List[HierarchyEntry]:
    return [
        HierarchyEntry(
            level=i,
            title=part,
            url="/" + "/".join(parts[: i + 1]),
        )
        for i, part in enumerate(parts)
    ]
