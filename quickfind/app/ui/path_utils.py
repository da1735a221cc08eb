"""Utilities for showing file paths in result rows."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

ELLIPSIS = "…"


def trim_middle(text: str, max_chars: int) -> str:
    """Shorten ``text`` to ``max_chars`` by replacing its middle with an ellipsis.

    A negative ``max_chars`` means no limit.
    """
    if max_chars < 0 or len(text) <= max_chars:
        return text
    if max_chars <= len(ELLIPSIS):
        return text[:max_chars]
    keep = max_chars - len(ELLIPSIS)
    head = (keep + 1) // 2
    tail = keep - head
    return text[:head] + ELLIPSIS + (text[-tail:] if tail else "")


def presentable_path(path: str, project_root: Optional[str | Path] = None, max_chars: int = -1) -> str:
    """Format a result path for display.

    Paths inside the project root are shown relative to it, paths under the
    home directory as ``~/...``, anything else as-is. Separators are always
    forward slashes.

    Args:
        path: Absolute path (or server-side path) of the matching file
        project_root: Root the search ran against, if known
        max_chars: Trim the result in the middle beyond this length (-1 = no limit)
    """
    if not path:
        return ""
    candidate = Path(path)
    display = candidate.as_posix()
    if candidate.is_absolute():
        home = Path.home()
        if project_root is not None and _is_relative_to(candidate, Path(project_root)):
            display = candidate.relative_to(Path(project_root)).as_posix()
        elif _is_relative_to(candidate, home):
            display = "~/" + candidate.relative_to(home).as_posix()
    display = display.replace("\\", "/")
    return trim_middle(display, max_chars)


def _is_relative_to(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return path != root
