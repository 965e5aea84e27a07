"""
ReplayTap Playback Module

Scoped playback stores, the registry that isolates them, and the
``requests`` transport adapter that routes every request through them.
"""

from .store import PlaybackStore, Resolution, ResolveAction
from .registry import StoreRegistry, ReplayScope
from .transport import ReplayAdapter, configure_session

__all__ = [
    'PlaybackStore',
    'Resolution',
    'ResolveAction',
    'StoreRegistry',
    'ReplayScope',
    'ReplayAdapter',
    'configure_session',
]
