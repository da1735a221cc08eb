"""Exception types shared by the search scheduler and its backends."""

from __future__ import annotations


class QuickFindError(RuntimeError):
    pass


class ExhaustedError(QuickFindError):
    """Raised when the generation counter cannot hand out another id."""


class SearchInterrupted(QuickFindError):
    """Raised by a backend that gave up mid-search and wants to be rerun.

    Typical cause is an index rebuild. The scheduler restarts the same query
    if the interrupted generation is still the current one.
    """


class BackendError(QuickFindError):
    """Raised by backends to report a failed query (transport or parse errors)."""
