"""
Changelog Parsing

Each release lives in ``changelogs/<version>.md``:

    ---
    version: "3.11.1"
    date: "2024-12-15"
    title: "Feature Update with Bug Fixes"
    ---

    ## Added
    - GPT: Add ollama support

Front-matter here is flat ``key: value`` lines (quotes stripped), not full
YAML, so versions such as ``3.10`` stay strings.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger("docsearch.changelog")

_QUOTES_RE = re.compile(r"^[\"']|[\"']$")
_LEADING_INT_RE = re.compile(r"^\d+")


class ReleaseSection(BaseModel):
    title: str
    items: List[str] = Field(default_factory=list)


class Release(BaseModel):
    version: str
    date: str
    type: str = "patch"
    title: str
    sections: List[ReleaseSection] = Field(default_factory=list)

    @property
    def anchor(self) -> str:
        return "version-" + self.version.replace(".", "-")


def parse_front_matter(lines: List[str]) -> Tuple[Dict[str, str], int]:
    """
    Return ``(fields, index_of_closing_marker)``; the index is -1 when the
    file has no (closed) front-matter.
    """
    if not lines or lines[0].rstrip("\r") != "---":
        return {}, -1

    fields: Dict[str, str] = {}
    for i in range(1, len(lines)):
        raw = lines[i].rstrip("\r")
        if raw == "---":
            return fields, i
        line = raw.strip()
        if line and ":" in line:
            key, _, value = line.partition(":")
            fields[key.strip()] = _QUOTES_RE.sub("", value.strip())
    return fields, -1


def release_type_for(version: str) -> Optional[str]:
    parts = version.split(".")
    if len(parts) < 3:
        return None
    if parts[0] != "0" and parts[1] == "0" and parts[2] == "0":
        return "major"
    if parts[2] == "0":
        return "minor"
    return "patch"


def parse_changelog_file(
    content: str,
    filename: str,
    default_date: Optional[date] = None,
) -> Release:
    """
    Parse one changelog file into a ``Release``.

    ``default_date`` is used when the front-matter has no date; it defaults to
    today.
    """
    lines = content.split("\n")
    front, end = parse_front_matter(lines)

    sections: List[ReleaseSection] = []
    current: Optional[ReleaseSection] = None
    for line in lines[end + 1:]:
        stripped = line.strip()
        if stripped.startswith("## "):
            if current is not None:
                sections.append(current)
            current = ReleaseSection(title=stripped[3:].strip())
        elif stripped.startswith("- ") and current is not None:
            current.items.append(stripped[2:].strip())
    if current is not None:
        sections.append(current)

    version = front.get("version") or re.sub(r"\.md$", "", filename)
    fallback_date = default_date or datetime.now(timezone.utc).date()

    return Release(
        version=version,
        date=front.get("date") or fallback_date.isoformat(),
        type=front.get("type") or release_type_for(version) or "patch",
        title=front.get("title") or f"Version {version}",
        sections=sections,
    )


def version_key(filename: str) -> Tuple[int, int, int]:
    """Numeric sort key of the first three version parts of a file name."""
    parts = re.sub(r"\.md$", "", filename).split(".")
    key = []
    for part in (parts + ["0", "0", "0"])[:3]:
        match = _LEADING_INT_RE.match(part)
        key.append(int(match.group()) if match else -1)
    return key[0], key[1], key[2]


def list_changelog_files(changelogs_dir: Path) -> List[Path]:
    """Changelog sources, newest version first. README files are skipped."""
    files = [
        p
        for p in changelogs_dir.iterdir()
        if p.is_file() and p.suffix == ".md" and "readme" not in p.name.lower()
    ]
    return sorted(files, key=lambda p: version_key(p.name), reverse=True)


def load_releases(changelogs_dir: Path, limit: Optional[int] = None) -> List[Release]:
    releases = []
    for path in list_changelog_files(changelogs_dir)[:limit]:
        modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).date()
        releases.append(
            parse_changelog_file(
                path.read_text(encoding="utf-8"),
                path.name,
                default_date=modified,
            )
        )
    logger.debug("Loaded %d releases from %s", len(releases), changelogs_dir)
    return releases
