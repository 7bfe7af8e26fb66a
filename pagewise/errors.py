"""Error taxonomy for the decode pipeline and its model collaborators."""

from __future__ import annotations


class PagewiseError(RuntimeError):
    pass


class DecodeError(PagewiseError):
    """Model output could not be turned into a payload."""


class MalformedResponse(DecodeError):
    """No syntactically valid object was recoverable from model output."""

    def __init__(self, message: str, *, tiers: list[str] | None = None) -> None:
        super().__init__(message)
        self.tiers = list(tiers or [])


class ValidationError(DecodeError):
    """A well-formed object violated its intent's field contract."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class SessionError(PagewiseError):
    """The model collaborator failed (unavailable, destroyed, transport error)."""


class CancellationError(PagewiseError):
    """The caller aborted the request."""
