# leadcomps/domain/errors.py
from __future__ import annotations


class ComparablesError(Exception):
    """Base class for errors surfaced by the comparables core."""


class InvalidInput(ComparablesError):
    """Rejected before any external call or mutation."""


class NotFound(ComparablesError):
    pass


class SourceUnavailable(ComparablesError):
    """
    The comparable source could not be reached (timeout, transport error,
    non-success status). Recoverable: the stored snapshot is never touched.
    """

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source
