"""Search backend that queries a QuickFind (or compatible) HTTP API."""

from __future__ import annotations

import logging
from typing import Iterator

import httpx

from quickfind.core.cancellation import ProgressToken
from quickfind.core.errors import BackendError, SearchInterrupted
from quickfind.core.models import DEFAULT_PAGE_SIZE, ScopeOptions, SearchContext, SearchHit

logger = logging.getLogger(__name__)

SEARCH_ENDPOINT = "/api/search"


def search_params(query: str, scope_options: ScopeOptions, limit: int) -> dict:
    """Build the query-string parameters understood by ``GET /api/search``."""
    params: dict = {"q": query, "limit": limit}
    if scope_options.directory:
        params["subtree"] = scope_options.directory
    if scope_options.case_sensitive:
        params["case"] = 1
    if scope_options.whole_words:
        params["word"] = 1
    if scope_options.regex:
        params["regex"] = 1
    if scope_options.multiline:
        params["multiline"] = 1
    if scope_options.file_mask:
        params["mask"] = scope_options.file_mask
    if scope_options.search_context is not SearchContext.ANY:
        params["context"] = scope_options.search_context.value
    return params


def _status_error_message(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    if detail:
        return str(detail)
    return f"search request failed with HTTP {response.status_code}"


class HttpSearchBackend:
    """Fetch one page of results per query with an ``httpx.Client``.

    A 503 response means the server is rebuilding its index; it is reported
    as an interruption so the scheduler retries the query.
    """

    def __init__(self, client: httpx.Client, page_size: int = DEFAULT_PAGE_SIZE, endpoint: str = SEARCH_ENDPOINT) -> None:
        self.client = client
        self.page_size = page_size
        self.endpoint = endpoint

    def find_matches(self, query: str, scope_options: ScopeOptions, token: ProgressToken) -> Iterator[SearchHit]:
        if token.cancelled:
            return
        params = search_params(query, scope_options, self.page_size)
        try:
            response = self.client.get(self.endpoint, params=params)
            if response.status_code == 503:
                raise SearchInterrupted("search index is being rebuilt")
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise BackendError(_status_error_message(exc.response)) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"search request failed: {exc}") from exc
        except ValueError as exc:
            raise BackendError("search response was not valid JSON") from exc

        if isinstance(payload, dict) and payload.get("error"):
            raise BackendError(str(payload["error"]))
        results = payload.get("results", []) if isinstance(payload, dict) else []
        logger.debug("HTTP search %r returned %d result(s)", query, len(results))
        for item in results:
            if token.cancelled:
                return
            if not isinstance(item, dict) or not item.get("path"):
                continue
            try:
                line = int(item.get("line") or 0)
            except (TypeError, ValueError):
                line = 0
            yield SearchHit(path=str(item["path"]), line=line, text=str(item.get("snippet") or ""))
