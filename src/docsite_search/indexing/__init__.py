"""
Indexing Package

Builds and refreshes the documentation search index.
"""

from .builder import IndexBuilder, build_index, build_record
from .models import INDEX_MAPPING, DocumentRecord, HierarchyEntry, SearchResult
from .rendered import RenderedPageCrawler
from .scheduler import AutoIndexer

__all__ = [
    "IndexBuilder",
    "build_index",
    "build_record",
    "INDEX_MAPPING",
    "DocumentRecord",
    "HierarchyEntry",
    "SearchResult",
    "RenderedPageCrawler",
    "AutoIndexer",
]
