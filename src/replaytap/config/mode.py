"""
ReplayTap Recording Mode

Determines whether requests are played back from archives, recorded, or
sent straight to the network.

The mode is resolved once from environment variables and process
arguments, in this order:

1. ``REPLAY_MODE`` (``playback|replay``, ``record|recording``,
   ``live|passthrough``; case-insensitive, trimmed)
2. ``REPLAY_LIVE`` truthy -> live
3. ``REPLAY_RECORDING`` truthy -> record
4. ``--enable-replay-live`` / ``--enable-replay-recording`` switches
5. playback
"""

import os
import sys
from enum import Enum
from typing import Mapping, Optional, Sequence

from ..common.errors import InvalidRecordingMode

MODE_ENV_VAR = "REPLAY_MODE"
LIVE_ENV_VAR = "REPLAY_LIVE"
RECORD_ENV_VAR = "REPLAY_RECORDING"
LIVE_SWITCH = "--enable-replay-live"
RECORD_SWITCH = "--enable-replay-recording"

TRUTHY_VALUES = {'1', 'true', 'yes', 'y', 'on'}


class RecordingMode(str, Enum):
    """How requests are handled."""

    PLAYBACK = "playback"  # Only replay from archives
    RECORD = "record"      # Replay what exists, capture what is missing
    LIVE = "live"          # Ignore archives and never record

    @classmethod
    def parse(cls, value: str) -> 'RecordingMode':
        """
        Parse an explicit mode name.

        Raises:
            InvalidRecordingMode: If the name is not recognized
        """
        mode = _MODE_ALIASES.get(str(value).strip().lower())
        if mode is None:
            raise InvalidRecordingMode(value)
        return mode


_MODE_ALIASES = {
    'playback': RecordingMode.PLAYBACK,
    'replay': RecordingMode.PLAYBACK,
    'record': RecordingMode.RECORD,
    'recording': RecordingMode.RECORD,
    'live': RecordingMode.LIVE,
    'passthrough': RecordingMode.LIVE,
}


def is_truthy(value: Optional[str]) -> bool:
    """Interpret a boolean-style environment value."""
    if value is None:
        return False
    return value.strip().lower() in TRUTHY_VALUES


def resolve_recording_mode(
    environ: Optional[Mapping[str, str]] = None,
    argv: Optional[Sequence[str]] = None
) -> RecordingMode:
    """
    Resolve the recording mode from the environment and process arguments.

    Args:
        environ: Environment mapping (defaults to os.environ)
        argv: Process arguments (defaults to sys.argv)

    Returns:
        The resolved RecordingMode

    Raises:
        InvalidRecordingMode: If REPLAY_MODE holds an unrecognized value
    """
    environ = os.environ if environ is None else environ
    argv = sys.argv if argv is None else argv

    explicit = environ.get(MODE_ENV_VAR)
    if explicit is not None and explicit.strip():
        return RecordingMode.parse(explicit)

    if is_truthy(environ.get(LIVE_ENV_VAR)):
        return RecordingMode.LIVE
    if is_truthy(environ.get(RECORD_ENV_VAR)):
        return RecordingMode.RECORD

    if LIVE_SWITCH in argv:
        return RecordingMode.LIVE
    if RECORD_SWITCH in argv:
        return RecordingMode.RECORD

    return RecordingMode.PLAYBACK
