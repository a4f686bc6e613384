import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from docsite_search.api import rate_limit
from docsite_search.api.dependencies import get_search_client
from docsite_search.main import app
from docsite_search.search.engine import SearchEngineClient

ENGINE_URL = "http://engine.test:9200"
INDEX = "test-docs"


class FakeEngine:
    """
    In-memory stand-in for the Elasticsearch REST API.

    Records every request; individual routes can be overridden with
    ``on(method, path, handler)``.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.documents: List[Dict[str, Any]] = []
        self.index_exists = True
        self._overrides: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._overrides[(method, path)] = handler

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self._overrides:
            return self._overrides[key](request)

        if key == ("GET", "/"):
            return httpx.Response(200, json={"tagline": "You Know, for Search"})
        if key == ("DELETE", f"/{INDEX}"):
            if not self.index_exists:
                return httpx.Response(404, json={"error": "index_not_found_exception"})
            self.documents.clear()
            return httpx.Response(200, json={"acknowledged": True})
        if key == ("PUT", f"/{INDEX}"):
            self.index_exists = True
            return httpx.Response(200, json={"acknowledged": True})
        if key == ("POST", f"/{INDEX}/_doc"):
            self.documents.append(json.loads(request.content))
            return httpx.Response(201, json={"_id": f"doc-{len(self.documents)}", "result": "created"})
        if key == ("POST", f"/{INDEX}/_refresh"):
            return httpx.Response(200, json={"_shards": {"total": 1}})
        if key == ("GET", f"/{INDEX}/_count"):
            return httpx.Response(200, json={"count": len(self.documents)})
        return httpx.Response(404, json={"error": "no handler"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> SearchEngineClient:
        return SearchEngineClient(base_url=ENGINE_URL, index_name=INDEX, transport=self.transport())


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def engine_client(engine: FakeEngine) -> SearchEngineClient:
    return engine.client()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limit.reset_all()
    yield
    rate_limit.reset_all()


@pytest.fixture
def api_client(engine_client: SearchEngineClient):
    app.dependency_overrides[get_search_client] = lambda: engine_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides = {}


def search_hits(hits: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "took": 3,
        "timed_out": False,
        "_shards": {"total": 1, "successful": 1, "skipped": 0, "failed": 0},
        "hits": {
            "total": {"value": len(hits or []), "relation": "eq"},
            "max_score": 1.0,
            "hits": hits or [],
        },
    }
