"""
ReplayTap Archive Module

Recorded interaction logs and their HAR interchange format.

This module provides:
- Entry, request and response models
- HAR 1.2 (de)serialization and archive files
- In-memory stubs
"""

from .har import (
    Archive,
    ArchiveFile,
    Entry,
    RecordedRequest,
    RecordedResponse,
    REDACTED_VALUE,
    body_headers,
    load_archive,
    save_archive,
)
from .stub import Stub

__all__ = [
    'Archive',
    'ArchiveFile',
    'Entry',
    'RecordedRequest',
    'RecordedResponse',
    'REDACTED_VALUE',
    'body_headers',
    'load_archive',
    'save_archive',
    'Stub',
]
