"""Local filesystem search backend: a line-oriented grep over a project root."""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from pathlib import Path
from typing import Iterator, Optional

from quickfind.core.cancellation import ProgressToken
from quickfind.core.errors import BackendError
from quickfind.core.models import DEFAULT_PAGE_SIZE, ScopeOptions, SearchContext, SearchHit

logger = logging.getLogger(__name__)

SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".venv",
    "venv",
    "__pycache__",
    "node_modules",
    "build",
    "dist",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
}
MAX_FILE_BYTES = 2 * 1024 * 1024
BINARY_SNIFF_BYTES = 8192
LINE_COMMENT_MARKERS = ("#", "//")
MAX_HIT_TEXT = 400


class FileAccessError(BackendError):
    pass


def compile_query(query: str, options: ScopeOptions) -> re.Pattern:
    """Turn the user's query and scope flags into a compiled pattern."""
    pattern = query if options.regex else re.escape(query)
    if options.whole_words:
        pattern = rf"\b(?:{pattern})\b"
    flags = re.MULTILINE
    if not options.case_sensitive:
        flags |= re.IGNORECASE
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise BackendError(f"invalid regular expression: {exc}") from exc


def comment_start(line: str) -> int:
    """Index where a line comment starts, or -1 when the line has none."""
    positions = [line.find(marker) for marker in LINE_COMMENT_MARKERS]
    positions = [pos for pos in positions if pos >= 0]
    return min(positions) if positions else -1


def searchable_segment(line: str, context: SearchContext) -> Optional[str]:
    """The part of ``line`` a search context looks at (None = skip the line).

    Only line comments are recognised; string-literal contexts behave like ANY.
    """
    if context is SearchContext.IN_COMMENTS:
        start = comment_start(line)
        return line[start:] if start >= 0 else None
    if context in (SearchContext.EXCEPT_COMMENTS, SearchContext.EXCEPT_COMMENTS_AND_STRING_LITERALS):
        start = comment_start(line)
        return line[:start] if start >= 0 else line
    return line


def matches_mask(name: str, patterns: list[str]) -> bool:
    if not patterns:
        return True
    return any(fnmatch.fnmatch(name, pattern) for pattern in patterns)


def _clip(text: str) -> str:
    text = text.rstrip("\r\n")
    if len(text) > MAX_HIT_TEXT:
        return text[:MAX_HIT_TEXT] + "…"
    return text


class LocalFileBackend:
    """Search the text files under ``root``.

    Files are visited in sorted order so results are stable between runs.
    The token is checked before every file, which is the batch boundary.
    """

    def __init__(self, root: str | Path, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.root = Path(root).expanduser().resolve()
        self.page_size = page_size
        if not self.root.is_dir():
            raise FileAccessError(f"Search root is not a directory: {self.root}")

    def find_matches(self, query: str, scope_options: ScopeOptions, token: ProgressToken) -> Iterator[SearchHit]:
        pattern = compile_query(query, scope_options)
        for path in self.iter_files(scope_options):
            if token.cancelled:
                return
            text = self._read_text(path)
            if text is None:
                continue
            if scope_options.multiline:
                yield from self._scan_whole(path, text, pattern)
            else:
                yield from self._scan_lines(path, text, pattern, scope_options.search_context)

    def iter_files(self, scope_options: ScopeOptions) -> Iterator[Path]:
        start = self._start_directory(scope_options.directory)
        patterns = scope_options.file_patterns()
        for dirpath, dirnames, filenames in os.walk(start):
            dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS and not d.startswith("."))
            for name in sorted(filenames):
                if name.startswith(".") or not matches_mask(name, patterns):
                    continue
                yield Path(dirpath) / name

    def _start_directory(self, directory: Optional[str]) -> Path:
        if not directory:
            return self.root
        candidate = (self.root / directory.strip("/")).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError:
            raise FileAccessError(f"Directory {directory!r} is outside the search root") from None
        if not candidate.is_dir():
            raise FileAccessError(f"Directory {directory!r} does not exist")
        return candidate

    def _read_text(self, path: Path) -> Optional[str]:
        try:
            if path.stat().st_size > MAX_FILE_BYTES:
                logger.debug("Skipping large file %s", path)
                return None
            data = path.read_bytes()
        except OSError as exc:
            logger.debug("Skipping unreadable file %s: %s", path, exc)
            return None
        if b"\0" in data[:BINARY_SNIFF_BYTES]:
            return None
        return data.decode("utf-8", errors="replace")

    def _scan_lines(self, path: Path, text: str, pattern: re.Pattern, context: SearchContext) -> Iterator[SearchHit]:
        for number, line in enumerate(text.splitlines(), start=1):
            segment = searchable_segment(line, context)
            if segment is not None and pattern.search(segment):
                yield SearchHit(path=str(path), line=number, text=_clip(line))

    def _scan_whole(self, path: Path, text: str, pattern: re.Pattern) -> Iterator[SearchHit]:
        for match in pattern.finditer(text):
            if match.start() == match.end():
                continue
            number = text.count("\n", 0, match.start()) + 1
            line_start = text.rfind("\n", 0, match.start()) + 1
            line_end = text.find("\n", match.start())
            line = text[line_start:] if line_end < 0 else text[line_start:line_end]
            yield SearchHit(path=str(path), line=number, text=_clip(line))
