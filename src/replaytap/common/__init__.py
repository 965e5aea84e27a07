"""
ReplayTap Common Utilities

Shared errors and helpers used across ReplayTap modules.
"""

from .errors import (
    ReplayError,
    ArchiveFormatError,
    NoMatchFound,
    InvalidRecordingMode,
    UnscopedRequestError,
    UnknownScopeError,
)
from .url_utils import URLComponents

__all__ = [
    'ReplayError',
    'ArchiveFormatError',
    'NoMatchFound',
    'InvalidRecordingMode',
    'UnscopedRequestError',
    'UnknownScopeError',
    'URLComponents',
]
