"""
API Models for the Search Gateway

This module defines the Pydantic models used to validate public search
requests and to shape gateway responses.

Design Goals
------------
- Strict top-level query shape (unknown fields rejected)
- Bounded paging (size 1-50, from 0-1000)
- Free-form inner clauses, so the site can tune relevance without a gateway
  release, while the denylist guards what those clauses may contain
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------
# Search Request
# ---------------------------------------------------------------------

class BoolClause(BaseModel):
    """
    ``query.bool``: at most ten ``should`` sub-clauses, each an object.
    """
    should: Optional[List[Dict[str, Any]]] = Field(default=None, max_length=10)

    model_config = ConfigDict(extra="allow")


class QueryClause(BaseModel):
    """
    ``query``: an optional ``bool`` clause plus any other query keys.
    """
    bool_: Optional[BoolClause] = Field(default=None, alias="bool")

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class SearchQuery(BaseModel):
    """
    Public search request body.
    """
    query: Optional[QueryClause] = None
    highlight: Optional[Dict[str, Any]] = None
    size: int = Field(default=20, ge=1, le=50)
    from_: int = Field(default=0, ge=0, le=1000, alias="from")
    source: Optional[List[str]] = Field(default=None, max_length=20, alias="_source")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def to_engine_body(self) -> Dict[str, Any]:
        """Serialize with wire names, omitting unset optional sections."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------
# Search Response
# ---------------------------------------------------------------------

class SanitizedHit(BaseModel):
    """
    A hit reduced to the fields clients may see.
    """
    id: str = Field(..., alias="_id")
    source: Dict[str, Any] = Field(default_factory=dict, alias="_source")
    score: Optional[float] = Field(default=None, alias="_score")
    highlight: Optional[Dict[str, List[str]]] = None

    model_config = ConfigDict(populate_by_name=True)


class SanitizedHits(BaseModel):
    total: Any = None
    hits: List[SanitizedHit] = Field(default_factory=list)


class SearchResponse(BaseModel):
    hits: SanitizedHits
    took: Optional[int] = None

    @classmethod
    def from_engine(cls, raw: Dict[str, Any]) -> "SearchResponse":
        """
        Keep only id/source/score/highlight of each hit plus the total and
        timing; every other engine field is dropped.
        """
        raw_hits = raw.get("hits") or {}
        return cls(
            hits=SanitizedHits(
                total=raw_hits.get("total"),
                hits=[
                    SanitizedHit(
                        _id=hit.get("_id", ""),
                        _source=hit.get("_source") or {},
                        _score=hit.get("_score"),
                        highlight=hit.get("highlight"),
                    )
                    for hit in raw_hits.get("hits") or []
                ],
            ),
            took=raw.get("took"),
        )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------
# Status / Health
# ---------------------------------------------------------------------

class IndexStatus(BaseModel):
    index: str
    document_count: int = Field(..., ge=0, alias="documentCount")
    index_size: int = Field(..., ge=0, alias="indexSize")
    status: str = "available"

    model_config = ConfigDict(populate_by_name=True)


class HealthStatus(BaseModel):
    status: str = "ok"
    timestamp: str
    service: str
