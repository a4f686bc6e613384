"""
Index Data Models

This module defines the canonical record written to the search index and the
fixed index mapping it is stored under.

Each ``DocumentRecord`` corresponds to ONE documentation page: either a
markdown source file or a rendered blog/changelog page.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HierarchyEntry(BaseModel):
    """One breadcrumb step leading to a document."""

    level: int = Field(..., ge=0)
    title: str
    url: str

    model_config = ConfigDict(extra="forbid", frozen=True)


class DocumentRecord(BaseModel):
    """
    A single searchable document.

    Field names follow the index mapping (``lastModified`` is camel-cased on
    the wire because the site's search UI reads it that way).
    """

    title: str = Field(..., description="Display title of the page.")
    content: str = Field(default="", description="Plain body text.")
    headings: str = Field(default="", description="All heading text, space joined.")
    url: str = Field(..., description="Site-relative canonical URL.")
    path: str = Field(..., description="Source path relative to the content root.")
    section: str = Field(default="root", description="Top-level section label.")
    tags: List[str] = Field(default_factory=list)
    last_modified: datetime = Field(..., alias="lastModified")
    hierarchy: List[HierarchyEntry] = Field(default_factory=list)

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the JSON body sent to the engine."""
        return self.model_dump(mode="json", by_alias=True)


EXCERPT_LENGTH = 200


def excerpt(content: str, max_length: int = EXCERPT_LENGTH) -> str:
    """Shorten ``content`` to at most ``max_length`` characters on a word boundary."""
    if len(content) <= max_length:
        return content
    cut = content[:max_length]
    last_space = cut.rfind(" ")
    return (cut[:last_space] if last_space > 0 else cut) + "..."


class SearchResult(BaseModel):
    """
    Client-facing view of one sanitized search hit. ``content`` is a short
    excerpt of the body.
    """

    id: str
    title: str = ""
    content: str = ""
    url: str = ""
    section: Optional[str] = None
    hierarchy: List[HierarchyEntry] = Field(default_factory=list)
    score: Optional[float] = None
    highlights: Dict[str, List[str]] = Field(default_factory=dict)

    @classmethod
    def from_hit(cls, hit: Dict[str, Any]) -> "SearchResult":
        source = hit.get("_source") or {}
        return cls(
            id=hit.get("_id", ""),
            title=source.get("title", ""),
            content=excerpt(source.get("content") or ""),
            url=source.get("url", ""),
            section=source.get("section"),
            hierarchy=source.get("hierarchy") or [],
            score=hit.get("_score"),
            highlights=hit.get("highlight") or {},
        )


# ---------------------------------------------------------------------
# Index definition
# ---------------------------------------------------------------------

INDEX_MAPPING: Dict[str, Any] = {
    "mappings": {
        "properties": {
            "title": {"type": "text", "analyzer": "standard"},
            "content": {"type": "text", "analyzer": "standard"},
            "headings": {"type": "text", "analyzer": "standard"},
            "url": {"type": "keyword"},
            "path": {"type": "keyword"},
            "section": {"type": "keyword"},
            "tags": {"type": "keyword"},
            "lastModified": {"type": "date"},
            "hierarchy": {
                "type": "object",
                "properties": {
                    "level": {"type": "integer"},
                    "title": {"type": "text"},
                    "url": {"type": "keyword"},
                },
            },
        }
    },
    "settings": {
        "analysis": {
            "analyzer": {
                "content_analyzer": {
                    "tokenizer": "standard",
                    "filter": ["lowercase", "stop", "stemmer"],
                }
            }
        }
    },
}


def build_site_query(text: str, size: int = 20) -> Dict[str, Any]:
    """
    Build the query body the site's search box sends through the gateway.
    """
    return {
        "query": {
            "bool": {
                "should": [
                    {
                        "multi_match": {
                            "query": text,
                            "fields": ["title^3", "headings^2", "content"],
                            "type": "best_fields",
                            "fuzziness": "AUTO",
                        }
                    },
                    {"wildcard": {"title": {"value": f"*{text}*", "boost": 2}}},
                ]
            }
        },
        "highlight": {
            "fields": {
                "title": {},
                "content": {"fragment_size": 150, "number_of_fragments": 3},
                "headings": {},
            }
        },
        "size": size,
        "_source": ["title", "content", "url", "section", "hierarchy"],
    }
