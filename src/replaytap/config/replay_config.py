"""
ReplayTap Configuration

Configuration value built once at setup time and handed to the store
registry and the interception transport. It can come from the process
environment or from a YAML file:

    mode: record
    matchers:
      - method
      - path
      - headers: [Accept]
    scope_header: X-Replay-Scope
    unscoped_policy: default
    reuse_entries: true
    redact_headers: [Authorization, Cookie]
    archive_dir: tests/__replays__
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional, Sequence, Union

import yaml

from ..matching.matcher import MatcherSet
from .mode import RecordingMode, resolve_recording_mode

DEFAULT_SCOPE_HEADER = "X-Replay-Scope"
DEFAULT_ARCHIVE_DIR = "__replays__"
ARCHIVE_DIR_ENV_VAR = "REPLAY_ARCHIVE_DIR"


class UnscopedPolicy(str, Enum):
    """What to do with a request that carries no scope key."""

    DEFAULT = "default"  # Use the registry's ambient default store
    BYPASS = "bypass"    # Forward to the network untouched
    ERROR = "error"      # Raise UnscopedRequestError


@dataclass
class ReplayConfig:
    """Settings shared by the store registry and the interception transport."""

    default_mode: RecordingMode = RecordingMode.PLAYBACK
    matchers: MatcherSet = field(default_factory=MatcherSet.default)
    scope_header: str = DEFAULT_SCOPE_HEADER
    unscoped_policy: UnscopedPolicy = UnscopedPolicy.DEFAULT
    reuse_entries: bool = True  # False: each entry answers one request only
    redact_headers: List[str] = field(default_factory=list)
    archive_dir: Path = field(default_factory=lambda: Path(DEFAULT_ARCHIVE_DIR))
    capture_filter: Optional[MatcherSet] = None  # Record only requests passing this

    def __post_init__(self):
        if not isinstance(self.default_mode, RecordingMode):
            self.default_mode = RecordingMode.parse(self.default_mode)
        self.unscoped_policy = UnscopedPolicy(self.unscoped_policy)
        self.archive_dir = Path(self.archive_dir)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        argv: Optional[Sequence[str]] = None,
        **overrides: Any
    ) -> 'ReplayConfig':
        """
        Resolve configuration from the process environment.

        This is the one place the environment is read; the resulting value
        does not change when the environment does.

        Raises:
            InvalidRecordingMode: If REPLAY_MODE holds an unrecognized value
        """
        environ = os.environ if environ is None else environ
        settings: Dict[str, Any] = {
            'default_mode': resolve_recording_mode(environ, argv),
        }
        if environ.get(ARCHIVE_DIR_ENV_VAR):
            settings['archive_dir'] = Path(environ[ARCHIVE_DIR_ENV_VAR])
        settings.update(overrides)
        return cls(**settings)

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        environ: Optional[Mapping[str, str]] = None,
        argv: Optional[Sequence[str]] = None
    ) -> 'ReplayConfig':
        """
        Create configuration from a dictionary.

        An explicit ``mode`` key wins over the environment; without it the
        mode is resolved from the environment.

        Raises:
            InvalidRecordingMode: If ``mode`` is not recognized
            ValueError: For unknown matcher names or policies
        """
        data = data or {}

        if data.get('mode') is not None:
            mode = RecordingMode.parse(data['mode'])
        else:
            mode = resolve_recording_mode(environ, argv)

        config = cls(default_mode=mode)

        if 'matchers' in data:
            config.matchers = MatcherSet.from_names(data['matchers'] or [])
        if 'scope_header' in data:
            config.scope_header = str(data['scope_header'])
        if 'unscoped_policy' in data:
            config.unscoped_policy = UnscopedPolicy(str(data['unscoped_policy']).strip().lower())
        if 'reuse_entries' in data:
            config.reuse_entries = bool(data['reuse_entries'])
        if 'redact_headers' in data:
            config.redact_headers = [str(name) for name in data['redact_headers'] or []]
        if 'archive_dir' in data:
            config.archive_dir = Path(data['archive_dir'])

        return config

    @classmethod
    def from_yaml(
        cls,
        yaml_path: Union[str, Path],
        environ: Optional[Mapping[str, str]] = None,
        argv: Optional[Sequence[str]] = None
    ) -> 'ReplayConfig':
        """Load configuration from a YAML file."""
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f)

        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {yaml_path}, got {type(data).__name__}")

        return cls.from_dict(data or {}, environ=environ, argv=argv)
