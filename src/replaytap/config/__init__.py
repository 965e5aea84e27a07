"""
ReplayTap Configuration Module

Recording mode resolution and the configuration value threaded through
the registry and the transport.
"""

from .mode import RecordingMode, resolve_recording_mode, is_truthy
from .replay_config import ReplayConfig, UnscopedPolicy

__all__ = [
    'RecordingMode',
    'resolve_recording_mode',
    'is_truthy',
    'ReplayConfig',
    'UnscopedPolicy',
]
