"""
Search Engine Client

Thin asynchronous client for the subset of the Elasticsearch REST API used by
the index builder and the query gateway:

- Cluster reachability check
- Index lifecycle (delete, create, refresh)
- Document writes
- Search, count and index statistics

Transport failures are translated into a small exception hierarchy so callers
can distinguish "engine unreachable" from "engine rejected the request"
without depending on httpx directly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings

logger = logging.getLogger("docsearch.engine")


class SearchEngineError(RuntimeError):
    """Raised when the search engine answers with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SearchEngineUnavailableError(SearchEngineError):
    """Raised when the search engine cannot be reached at all."""


class SearchEngineTimeoutError(SearchEngineError):
    """Raised when the search engine does not answer within the timeout."""


class SearchEngineClient:
    """
    Asynchronous client bound to a single engine endpoint and index.

    A fresh ``httpx.AsyncClient`` is opened per call; the object itself holds
    no connections and is safe to share.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        index_name: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        base_url : Optional[str]
            Engine endpoint. Defaults to ``settings.elasticsearch_url``.

        index_name : Optional[str]
            Target index. Defaults to ``settings.index_name``.

        timeout : float
            Default HTTP timeout for calls that do not pass their own.

        transport : Optional[httpx.AsyncBaseTransport]
            Optional transport override (used by tests).
        """
        self.base_url = (base_url or settings.engine_url).rstrip("/")
        self.index_name = index_name or settings.index_name
        self.timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        allow_status: tuple = (),
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=timeout or self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, url, json=json)
        except httpx.ConnectError as exc:
            raise SearchEngineUnavailableError(
                f"Search engine unreachable at {self.base_url}: {exc}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise SearchEngineTimeoutError(
                f"Search engine timed out on {method} {path}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SearchEngineError(f"Search engine transport error: {exc}") from exc

        if resp.status_code >= 400 and resp.status_code not in allow_status:
            raise SearchEngineError(
                f"{method} {path} failed with status {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp

    # ------------------------------------------------------------------
    # Cluster
    # ------------------------------------------------------------------

    async def ping(self) -> None:
        """Raise ``SearchEngineUnavailableError`` unless the engine answers."""
        try:
            await self._request("GET", "/")
        except SearchEngineUnavailableError:
            raise
        except SearchEngineError as exc:
            raise SearchEngineUnavailableError(str(exc), exc.status_code) from exc

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    async def delete_index(self) -> bool:
        """Delete the index. Returns False if it did not exist."""
        resp = await self._request(
            "DELETE", f"/{self.index_name}", allow_status=(404,)
        )
        return resp.status_code != 404

    async def create_index(self, body: Dict[str, Any]) -> None:
        await self._request("PUT", f"/{self.index_name}", json=body)

    async def refresh(self) -> None:
        await self._request("POST", f"/{self.index_name}/_refresh")

    async def index_document(self, document: Dict[str, Any]) -> str:
        """Write one document and return the engine-assigned id."""
        resp = await self._request("POST", f"/{self.index_name}/_doc", json=document)
        return str(_json_object(resp).get("_id", ""))

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def count(self) -> int:
        resp = await self._request("GET", f"/{self.index_name}/_count")
        try:
            return int(_json_object(resp).get("count", 0))
        except (TypeError, ValueError) as exc:
            raise SearchEngineError(f"Unexpected count response: {exc}") from exc

    async def search(
        self,
        body: Dict[str, Any],
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        resp = await self._request(
            "POST", f"/{self.index_name}/_search", json=body, timeout=timeout
        )
        return _json_object(resp)

    async def stats(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Return ``{"documentCount": int, "indexSize": int}`` for the index.

        Raises ``SearchEngineError`` when the answer is not the expected
        ``_stats`` shape.
        """
        resp = await self._request(
            "GET", f"/{self.index_name}/_stats", timeout=timeout
        )
        try:
            total = (
                _json_object(resp)
                .get("indices", {})
                .get(self.index_name, {})
                .get("total", {})
            )
            return {
                "documentCount": int(total.get("docs", {}).get("count", 0)),
                "indexSize": int(total.get("store", {}).get("size_in_bytes", 0)),
            }
        except (AttributeError, TypeError, ValueError) as exc:
            raise SearchEngineError(f"Unexpected stats response: {exc}") from exc


def _json_object(resp: httpx.Response) -> Dict[str, Any]:
    """Decode a response body that must be a JSON object."""
    try:
        data = resp.json()
    except ValueError as exc:
        raise SearchEngineError(
            f"Search engine returned a non-JSON body (status {resp.status_code})"
        ) from exc
    if not isinstance(data, dict):
        raise SearchEngineError(
            f"Search engine returned {type(data).__name__}, expected an object"
        )
    return data
