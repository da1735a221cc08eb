"""Value types passed between the scheduler, the backends and the UI shell."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

DEFAULT_QUIET_WINDOW_MS = 100
DEFAULT_PAGE_SIZE = 100

NOTHING_FOUND_MESSAGE = "nothing found"


class SearchContext(Enum):
    ANY = "Anywhere"
    IN_STRING_LITERALS = "In String Literals"
    IN_COMMENTS = "In Comments"
    EXCEPT_COMMENTS = "Except Comments"
    EXCEPT_STRING_LITERALS = "Except String Literals"
    EXCEPT_COMMENTS_AND_STRING_LITERALS = "Except Comments and String Literals"


def parse_search_context(label: Optional[str]) -> SearchContext:
    """Map a presentable context label to a SearchContext (unknown labels -> ANY)."""
    if not label:
        return SearchContext.ANY
    wanted = label.strip().lower()
    for context in SearchContext:
        if context.value.lower() == wanted:
            return context
    return SearchContext.ANY


@dataclass(frozen=True)
class ScopeOptions:
    case_sensitive: bool = False
    whole_words: bool = False
    regex: bool = False
    multiline: bool = False
    file_mask: Optional[str] = None  # comma separated globs, e.g. "*.py,*.md"
    directory: Optional[str] = None  # root-relative sub-path filter
    search_context: SearchContext = SearchContext.ANY

    def file_patterns(self) -> list[str]:
        if not self.file_mask:
            return []
        return [part.strip() for part in self.file_mask.split(",") if part.strip()]


@dataclass(frozen=True)
class SearchRequest:
    query_text: str
    scope_options: ScopeOptions
    generation_id: int

    @classmethod
    def build(cls, query_text: str, scope_options: Optional[ScopeOptions], generation_id: int) -> "SearchRequest":
        """Create a request, forcing multiline mode for queries spanning lines."""
        options = scope_options or ScopeOptions()
        if "\n" in query_text and not options.multiline:
            options = replace(options, multiline=True)
        return cls(query_text=query_text, scope_options=options, generation_id=generation_id)


@dataclass(frozen=True)
class SearchHit:
    """One raw match as produced by a backend."""
    path: str
    line: int = 0
    text: str = ""


@dataclass(frozen=True)
class MatchEvent:
    file_identifier: str
    is_new_file_in_this_generation: bool
    line: int = 0
    text: str = ""


class SearchOutcome(Enum):
    COMPLETED = "completed"
    CAPPED = "capped"
    CANCELLED = "cancelled"
    FAULTED = "faulted"


@dataclass
class GenerationCounters:
    total_matches: int = 0
    distinct_files: int = 0


@dataclass
class ViewState:
    has_visible_results: bool = False
    empty_message: Optional[str] = None


@dataclass(frozen=True)
class SearchConfig:
    quiet_window_ms: int = DEFAULT_QUIET_WINDOW_MS
    page_size_cap: int = DEFAULT_PAGE_SIZE


@dataclass
class FinishReport:
    """Outcome of one generation as handed from the worker to the GUI thread."""
    outcome: SearchOutcome
    delivered: int = 0
    message: Optional[str] = None
