"""Error taxonomy shared by the router, storage and HTTP layers."""

from __future__ import annotations


class NewsRadarError(Exception):
    """Base class for errors surfaced to callers of the service."""


class MissingParameter(NewsRadarError, ValueError):
    """A routing parameter is absent or has the wrong type."""

    def __init__(self, name: str, expected: str) -> None:
        self.name = name
        self.expected = expected
        super().__init__(f"Parameter '{name}' is required and must be {expected}.")


class UnknownIntent(NewsRadarError, ValueError):
    """The intent kind has no retrieval strategy."""

    def __init__(self, kind: object) -> None:
        self.kind = kind
        super().__init__(f"unknown intent: {kind}")


class StorageFailure(NewsRadarError, RuntimeError):
    """Raised when the storage backend fails; always surfaced as a server error."""
