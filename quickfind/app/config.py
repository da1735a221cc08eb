from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from quickfind.core.models import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_QUIET_WINDOW_MS,
    ScopeOptions,
    SearchConfig,
    parse_search_context,
)

GLOBAL_CONFIG = Path(os.getenv("QUICKFIND_CONFIG", str(Path.home() / ".quickfind_config.json")))

MAX_QUIET_WINDOW_MS = 5000
MAX_PAGE_SIZE = 10000


def init_settings() -> None:
    GLOBAL_CONFIG.parent.mkdir(parents=True, exist_ok=True)


def _read_global_config() -> dict:
    """Return the parsed global config, or an empty dict on error/missing."""
    if not GLOBAL_CONFIG.exists():
        return {}
    try:
        payload = json.loads(GLOBAL_CONFIG.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _update_global_config(updates: dict) -> None:
    """Merge updates into global config file."""
    existing = _read_global_config()
    existing.update(updates)
    GLOBAL_CONFIG.parent.mkdir(parents=True, exist_ok=True)
    GLOBAL_CONFIG.write_text(json.dumps(existing, indent=2), encoding="utf-8")


def load_quiet_window_ms() -> int:
    """Load the search debounce delay in milliseconds (default: 100)."""
    payload = _read_global_config()
    try:
        ms = int(payload.get("quiet_window_ms", DEFAULT_QUIET_WINDOW_MS))
    except (TypeError, ValueError):
        return DEFAULT_QUIET_WINDOW_MS
    return max(0, min(MAX_QUIET_WINDOW_MS, ms))


def save_quiet_window_ms(ms: int) -> None:
    try:
        val = max(0, min(MAX_QUIET_WINDOW_MS, int(ms)))
    except (TypeError, ValueError):
        val = DEFAULT_QUIET_WINDOW_MS
    _update_global_config({"quiet_window_ms": val})


def load_page_size_cap(default: int = DEFAULT_PAGE_SIZE) -> int:
    """Load the per-search result cap; falls back to the backend's page size."""
    payload = _read_global_config()
    raw = payload.get("page_size_cap")
    if raw is None:
        return default
    try:
        return max(1, min(MAX_PAGE_SIZE, int(raw)))
    except (TypeError, ValueError):
        return default


def save_page_size_cap(cap: Optional[int]) -> None:
    """Save the result cap; None removes it so the backend default applies."""
    if cap is None:
        _update_global_config({"page_size_cap": None})
        return
    _update_global_config({"page_size_cap": max(1, min(MAX_PAGE_SIZE, int(cap)))})


def load_search_config(default_page_size: int = DEFAULT_PAGE_SIZE) -> SearchConfig:
    return SearchConfig(
        quiet_window_ms=load_quiet_window_ms(),
        page_size_cap=load_page_size_cap(default_page_size),
    )


def load_last_query() -> str:
    payload = _read_global_config()
    last = payload.get("last_query")
    return last if isinstance(last, str) else ""


def save_last_query(query: str) -> None:
    _update_global_config({"last_query": query})


def load_scope_options() -> ScopeOptions:
    """Load the scope flags used the last time the popup was open."""
    payload = _read_global_config()
    scope = payload.get("scope")
    if not isinstance(scope, dict):
        return ScopeOptions()
    mask = scope.get("file_mask")
    return ScopeOptions(
        case_sensitive=bool(scope.get("case_sensitive", False)),
        whole_words=bool(scope.get("whole_words", False)),
        regex=bool(scope.get("regex", False)),
        file_mask=mask if isinstance(mask, str) and mask.strip() else None,
        search_context=parse_search_context(scope.get("search_context")),
    )


def save_scope_options(options: ScopeOptions) -> None:
    _update_global_config(
        {
            "scope": {
                "case_sensitive": options.case_sensitive,
                "whole_words": options.whole_words,
                "regex": options.regex,
                "file_mask": options.file_mask or "",
                "search_context": options.search_context.value,
            }
        }
    )
