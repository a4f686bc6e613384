"""
Query validation for the public search endpoint.

Two gates run before anything reaches the engine: the strict schema in
``SearchQuery`` and a keyword denylist applied to the serialized query.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from pydantic import ValidationError

from ..core.errors import ForbiddenQueryError, InvalidQueryError
from .models import SearchQuery

BLOCKED_TERMS = (
    "delete",
    "update",
    "create",
    "index",
    "_delete_by_query",
    "_update_by_query",
    "script",
    "eval",
    "function_score",
)


def _format_errors(exc: ValidationError) -> List[str]:
    details = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        details.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return details


def validate_query(payload: Any) -> SearchQuery:
    """
    Validate a decoded request body against the allowed query shape.

    Raises
    ------
    InvalidQueryError
        If the body is not an object or violates the schema.
    """
    if not isinstance(payload, dict):
        raise InvalidQueryError(["body: must be a JSON object"])
    try:
        return SearchQuery.model_validate(payload)
    except ValidationError as exc:
        raise InvalidQueryError(_format_errors(exc)) from exc


def find_blocked_term(body: Dict[str, Any]) -> str | None:
    """Return the first denylisted term found anywhere in ``body``."""
    serialized = json.dumps(body).lower()
    for term in BLOCKED_TERMS:
        if term in serialized:
            return term
    return None


def ensure_allowed(body: Dict[str, Any]) -> None:
    """
    Raises
    ------
    ForbiddenQueryError
        If the serialized body contains a denylisted term.
    """
    if find_blocked_term(body) is not None:
        raise ForbiddenQueryError()
