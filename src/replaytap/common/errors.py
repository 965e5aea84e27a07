"""
ReplayTap Errors

Error kinds raised by the playback engine. None of them are retried or
converted into default responses by the library.
"""

from typing import Any, Optional


class ReplayError(Exception):
    """Base class for all ReplayTap errors."""


class ArchiveFormatError(ReplayError, ValueError):
    """Raised when a persisted archive does not parse into the entry schema."""

    def __init__(self, message: str, index: Optional[int] = None):
        if index is not None:
            message = f"entry {index}: {message}"
        super().__init__(message)
        self.index = index


class NoMatchFound(ReplayError, LookupError):
    """
    Raised when no archived entry matches a request in playback mode.

    The unmatched request is kept on the exception for diagnostics.
    """

    def __init__(self, request: Any, message: Optional[str] = None):
        self.request = request
        if message is None:
            method = getattr(request, 'method', '?')
            url = getattr(request, 'url', '?')
            message = f"No recorded entry matches {method} {url}"
        super().__init__(message)


class InvalidRecordingMode(ReplayError, ValueError):
    """Raised for an unrecognized explicit recording mode value."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"Invalid recording mode {value!r}; expected one of: playback, record, live"
        )


class UnscopedRequestError(ReplayError):
    """Raised when a request carries no scope key and the policy forbids that."""


class UnknownScopeError(UnscopedRequestError, LookupError):
    """
    Raised when a request names a scope key that is not registered.

    Keys are registered when their scope begins, so this usually means a
    session outlived the test scope it was configured for.
    """

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Scope {key!r} is not registered")
