from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from quickfind.core.cancellation import ProgressToken
from quickfind.core.errors import BackendError
from quickfind.core.models import DEFAULT_PAGE_SIZE, ScopeOptions, parse_search_context
from .adapters.files import FileAccessError, LocalFileBackend
from .state import served_root

logger = logging.getLogger(__name__)

MAX_LIMIT = 1000

app = FastAPI(title="QuickFind Search API", version="0.1.0")


class RootSelectPayload(BaseModel):
    path: str


@app.get("/api/health")
def health() -> dict:
    return {"ok": True}


@app.post("/api/root/select")
def select_root(payload: RootSelectPayload) -> dict:
    try:
        root = served_root.select(payload.path)
    except FileAccessError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info("Serving searches from %s", root)
    return {"root": str(root)}


@app.get("/api/search")
def api_search(
    q: Optional[str] = None,
    subtree: Optional[str] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    case: bool = False,
    word: bool = False,
    regex: bool = False,
    multiline: bool = False,
    mask: Optional[str] = None,
    context: Optional[str] = None,
) -> dict:
    """Text search across the selected project root."""
    if not q or not q.strip():
        return {"results": []}
    try:
        root = served_root.require()
    except BackendError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    limit = max(1, min(MAX_LIMIT, limit))
    options = ScopeOptions(
        case_sensitive=case,
        whole_words=word,
        regex=regex,
        multiline=multiline or "\n" in q,
        file_mask=mask,
        directory=subtree,
        search_context=parse_search_context(context),
    )
    backend = LocalFileBackend(root, page_size=limit)
    token = ProgressToken(0)
    results: list[dict] = []
    try:
        for hit in backend.find_matches(q, options, token):
            rel = "/" + Path(hit.path).relative_to(root).as_posix()
            results.append({"path": rel, "line": hit.line, "snippet": hit.text})
            if len(results) >= limit:
                break
    except BackendError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.debug("GET /api/search q=%r subtree=%s -> %d result(s)", q, subtree, len(results))
    return {"results": results}


def get_app() -> FastAPI:
    return app
