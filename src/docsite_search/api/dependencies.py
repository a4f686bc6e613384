from functools import lru_cache

from ..search.engine import SearchEngineClient


@lru_cache
def get_search_client() -> SearchEngineClient:
    return SearchEngineClient()
