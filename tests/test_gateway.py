"""
Search Gateway Tests

HTTP-level tests of the public surface with the engine replaced by the
in-memory fake from conftest.
"""

import json
from unittest.mock import patch

import httpx
import pytest

from docsite_search.api.rate_limit import RequestLimiter
from docsite_search.api.search_routes import _read_json_body
from docsite_search.core.errors import PayloadTooLargeError
from docsite_search.indexing.models import build_site_query

from conftest import INDEX, search_hits

SEARCH_PATH = f"/{INDEX}/_search"

HIT = {
    "_index": INDEX,
    "_id": "abc",
    "_score": 2.5,
    "_ignored": ["content.keyword"],
    "_source": {"title": "DKIM signing", "url": "/modules/dkim_signing", "section": "modules"},
    "highlight": {"title": ["<em>DKIM</em> signing"]},
}


def respond(payload, status=200):
    return lambda request: httpx.Response(status, json=payload)


# ---------------------------------------------------------------------
# Health / catch-all
# ---------------------------------------------------------------------

def test_health(api_client):
    resp = api_client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["service"]
    assert data["timestamp"]


@pytest.mark.parametrize(
    "method, path",
    [("GET", "/search"), ("DELETE", "/search"), ("GET", "/docs"), ("POST", "/_bulk"), ("PUT", "/")],
)
def test_unknown_endpoints_are_404(api_client, method, path):
    resp = api_client.request(method, path)
    assert resp.status_code == 404
    assert resp.json() == {
        "error": "Endpoint not found",
        "supportedEndpoints": ["GET /health", "GET /status", "POST /search"],
    }


def test_security_headers(api_client):
    resp = api_client.get("/health")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------

class TestValidation:
    def test_site_query_is_accepted(self, api_client, engine):
        engine.on("POST", SEARCH_PATH, respond(search_hits([HIT])))

        resp = api_client.post("/search", json=build_site_query("dkim"))

        assert resp.status_code == 200
        forwarded = json.loads(engine.calls("POST", SEARCH_PATH)[0].content)
        assert forwarded["size"] == 20
        assert forwarded["from"] == 0
        assert forwarded["query"]["bool"]["should"][0]["multi_match"]["query"] == "dkim"
        assert forwarded["_source"] == ["title", "content", "url", "section", "hierarchy"]

    @pytest.mark.parametrize(
        "body",
        [
            {"size": 51},
            {"size": 0},
            {"from": 1001},
            {"from": -1},
            {"unexpected": True},
            {"_source": ["f"] * 21},
            {"query": {"bool": {"should": [{"match": {"title": "x"}}] * 11}}},
            {"query": {"bool": {"should": ["not-an-object"]}}},
            {"highlight": "not-an-object"},
        ],
    )
    def test_schema_violations_are_400(self, api_client, engine, body):
        resp = api_client.post("/search", json=body)

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid search query"
        assert resp.json()["details"]
        assert engine.calls("POST", SEARCH_PATH) == []

    def test_non_object_body_is_400(self, api_client):
        resp = api_client.post("/search", json=[1, 2, 3])
        assert resp.status_code == 400

    def test_malformed_json_is_400(self, api_client):
        resp = api_client.post(
            "/search", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400

    def test_oversized_body_is_413(self, api_client):
        with patch("docsite_search.api.search_routes.settings.max_body_bytes", 32):
            resp = api_client.post("/search", json={"highlight": {"x" * 64: {}}})
        assert resp.status_code == 413

    def test_defaults_applied(self, api_client, engine):
        engine.on("POST", SEARCH_PATH, respond(search_hits()))

        api_client.post("/search", json={"query": {"match_all": {}}})

        forwarded = json.loads(engine.calls("POST", SEARCH_PATH)[0].content)
        assert forwarded == {"query": {"match_all": {}}, "size": 20, "from": 0}


# ---------------------------------------------------------------------
# Denylist
# ---------------------------------------------------------------------

class TestDenylist:
    @pytest.mark.parametrize(
        "body",
        [
            {"query": {"script": {"source": "1"}}},
            {"query": {"bool": {"should": [{"function_score": {}}]}}},
            {"query": {"bool": {"must": [{"nested": {"query": {"term": {"x": "_delete_by_query"}}}}]}}},
            {"highlight": {"fields": {"title": {"pre_tags": ["EVAL"]}}}},
            {"_source": ["update"]},
            {"query": {"match": {"title": "create index"}}},
        ],
    )
    def test_blocked_terms_anywhere_are_403(self, api_client, engine, body):
        resp = api_client.post("/search", json=body)

        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden query operation detected"}
        assert engine.calls("POST", SEARCH_PATH) == []

    def test_schema_is_checked_before_denylist(self, api_client):
        resp = api_client.post("/search", json={"script": "x"})
        assert resp.status_code == 400


# ---------------------------------------------------------------------
# Forwarding and error mapping
# ---------------------------------------------------------------------

class TestForwarding:
    def test_response_is_sanitized(self, api_client, engine):
        engine.on("POST", SEARCH_PATH, respond(search_hits([HIT])))

        resp = api_client.post("/search", json={"query": {"match": {"title": "dkim"}}})

        assert resp.status_code == 200
        data = resp.json()
        assert set(data) == {"hits", "took"}
        assert data["took"] == 3
        assert data["hits"]["total"] == {"value": 1, "relation": "eq"}
        assert data["hits"]["hits"] == [
            {
                "_id": "abc",
                "_source": HIT["_source"],
                "_score": 2.5,
                "highlight": HIT["highlight"],
            }
        ]

    def test_connection_refused_is_503(self, api_client, engine):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        engine.on("POST", SEARCH_PATH, refuse)

        resp = api_client.post("/search", json={"size": 5})

        assert resp.status_code == 503
        assert resp.json() == {"error": "Search service temporarily unavailable"}

    def test_engine_400_is_invalid_query(self, api_client, engine):
        engine.on("POST", SEARCH_PATH, respond({"error": {"type": "parsing_exception"}}, 400))

        resp = api_client.post("/search", json={"size": 5})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid search query"}

    def test_engine_404_is_index_not_found(self, api_client, engine):
        engine.on("POST", SEARCH_PATH, respond({"error": {"type": "index_not_found_exception"}}, 404))

        resp = api_client.post("/search", json={"size": 5})

        assert resp.status_code == 404
        assert resp.json() == {"error": "Search index not found"}

    @pytest.mark.parametrize("status", [500, 502, 429])
    def test_other_engine_errors_are_500(self, api_client, engine, status):
        engine.on("POST", SEARCH_PATH, respond({"error": "internal details"}, status))

        resp = api_client.post("/search", json={"size": 5})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal search error"}

    def test_timeout_is_500(self, api_client, engine):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        engine.on("POST", SEARCH_PATH, slow)

        resp = api_client.post("/search", json={"size": 5})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal search error"}


# ---------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------

class TestStatus:
    def test_status_reports_index_stats(self, api_client, engine):
        stats = {
            "indices": {
                INDEX: {"total": {"docs": {"count": 42}, "store": {"size_in_bytes": 1024}}}
            }
        }
        engine.on("GET", f"/{INDEX}/_stats", respond(stats))

        resp = api_client.get("/status")

        assert resp.status_code == 200
        assert resp.json() == {
            "index": INDEX,
            "documentCount": 42,
            "indexSize": 1024,
            "status": "available",
        }

    def test_status_when_engine_down(self, api_client, engine):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        engine.on("GET", f"/{INDEX}/_stats", refuse)

        resp = api_client.get("/status")

        assert resp.status_code == 503
        assert resp.json() == {
            "error": "Search service status unavailable",
            "index": INDEX,
            "status": "unavailable",
        }


# ---------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------

class TestRateLimiting:
    def test_search_budget_exhaustion_is_429(self, api_client, engine):
        engine.on("POST", SEARCH_PATH, respond(search_hits()))
        limiter = RequestLimiter("search-test", "2/minute")

        with patch("docsite_search.api.search_routes.search_limiter", limiter), patch(
            "docsite_search.api.search_routes.search_slowdown.register", return_value=0.0
        ):
            codes = [api_client.post("/search", json={"size": 1}).status_code for _ in range(3)]
            blocked = api_client.post("/search", json={"size": 1})

        assert codes == [200, 200, 429]
        assert blocked.status_code == 429
        assert int(blocked.headers["Retry-After"]) >= 1
        assert "retryAfter" in blocked.json()
        assert len(engine.calls("POST", SEARCH_PATH)) == 2

    def test_invalid_queries_do_not_consume_budget(self, api_client, engine):
        engine.on("POST", SEARCH_PATH, respond(search_hits()))
        limiter = RequestLimiter("search-test", "1/minute")

        with patch("docsite_search.api.search_routes.search_limiter", limiter):
            assert api_client.post("/search", json={"size": 999}).status_code == 400
            assert api_client.post("/search", json={"size": 1}).status_code == 200

    def test_status_has_its_own_budget(self, api_client, engine):
        engine.on("GET", f"/{INDEX}/_stats", respond({"indices": {}}))
        limiter = RequestLimiter("status-test", "1/minute")

        with patch("docsite_search.api.status_routes.status_limiter", limiter):
            assert api_client.get("/status").status_code == 200
            assert api_client.get("/status").status_code == 429
            assert api_client.get("/health").status_code == 200


# ---------------------------------------------------------------------
# Malformed engine answers
# ---------------------------------------------------------------------

class TestMalformedEngineResponses:
    def test_non_json_search_answer_is_500(self, api_client, engine):
        engine.on("POST", SEARCH_PATH, lambda request: httpx.Response(200, text="<html>proxy</html>"))

        resp = api_client.post("/search", json={"size": 5})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal search error"}

    @pytest.mark.parametrize(
        "payload",
        [[1, 2, 3], {"hits": {"hits": ["not-a-hit"]}}, {"hits": "nope"}],
    )
    def test_unexpected_search_shape_is_500(self, api_client, engine, payload):
        engine.on("POST", SEARCH_PATH, respond(payload))

        resp = api_client.post("/search", json={"size": 5})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal search error"}

    @pytest.mark.parametrize(
        "answer",
        [
            httpx.Response(200, text="<html>proxy</html>"),
            httpx.Response(200, json=["unexpected"]),
            httpx.Response(200, json={"indices": {INDEX: {"total": {"docs": "many"}}}}),
            httpx.Response(200, json={"indices": {INDEX: {"total": {"docs": {"count": -1}}}}}),
        ],
    )
    def test_unexpected_status_answer_is_503(self, api_client, engine, answer):
        engine.on("GET", f"/{INDEX}/_stats", lambda request: answer)

        resp = api_client.get("/status")

        assert resp.status_code == 503
        assert resp.json() == {
            "error": "Search service status unavailable",
            "index": INDEX,
            "status": "unavailable",
        }


# ---------------------------------------------------------------------
# Request body limit
# ---------------------------------------------------------------------

class _StreamedRequest:
    """Minimal request exposing ``headers`` and ``stream()``."""

    def __init__(self, chunks, headers=None):
        self.headers = headers or {}
        self.consumed = 0
        self._chunks = chunks

    async def stream(self):
        for chunk in self._chunks:
            self.consumed += len(chunk)
            yield chunk


class TestBodyLimit:
    def test_declared_length_over_limit_is_413(self, api_client, engine):
        with patch("docsite_search.api.search_routes.settings.max_body_bytes", 32):
            resp = api_client.post(
                "/search",
                content=b"{}",
                headers={"Content-Type": "application/json", "Content-Length": "4096"},
            )

        assert resp.status_code == 413
        assert engine.calls("POST", SEARCH_PATH) == []

    @pytest.mark.asyncio
    async def test_streamed_body_stops_at_limit(self):
        request = _StreamedRequest([b"x" * 1024] * 200)

        with patch("docsite_search.api.search_routes.settings.max_body_bytes", 4096):
            with pytest.raises(PayloadTooLargeError):
                await _read_json_body(request)

        assert request.consumed <= 4096 + 1024

    @pytest.mark.asyncio
    async def test_streamed_body_within_limit_is_decoded(self):
        request = _StreamedRequest([b'{"size"', b": 3}"])

        assert await _read_json_body(request) == {"size": 3}
