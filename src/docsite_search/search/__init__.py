"""
Search Engine Package

HTTP client and error types for the Elasticsearch backend.
"""

from .engine import (
    SearchEngineClient,
    SearchEngineError,
    SearchEngineTimeoutError,
    SearchEngineUnavailableError,
)

__all__ = [
    "SearchEngineClient",
    "SearchEngineError",
    "SearchEngineTimeoutError",
    "SearchEngineUnavailableError",
]
