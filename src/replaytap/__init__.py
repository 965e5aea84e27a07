"""
ReplayTap

Record and replay HTTP interactions for tests.

Requests made through a ``requests`` session with ReplayTap installed are
answered from a recorded HAR archive (playback), answered from the archive
or captured from the network when missing (record), or sent straight to
the network (live). Each test scope gets its own isolated store.

Example:
    from replaytap import ReplayConfig, StoreRegistry, configure_session

    registry = StoreRegistry(ReplayConfig.from_env())
    with registry.scope(archive='test_users.har') as scope:
        session = requests.Session()
        configure_session(session, registry, scope_key=scope.key)
        response = session.get('https://api.example.com/users')
"""

from .common import (
    ReplayError,
    ArchiveFormatError,
    NoMatchFound,
    InvalidRecordingMode,
    UnscopedRequestError,
    UnknownScopeError,
)
from .archive import (
    Archive,
    ArchiveFile,
    Entry,
    RecordedRequest,
    RecordedResponse,
    Stub,
    load_archive,
    save_archive,
)
from .matching import (
    Matcher,
    MethodMatcher,
    URLMatcher,
    HostMatcher,
    PathMatcher,
    QueryMatcher,
    HeadersMatcher,
    BodyMatcher,
    CustomMatcher,
    MatcherSet,
)
from .config import RecordingMode, resolve_recording_mode, ReplayConfig, UnscopedPolicy
from .playback import (
    PlaybackStore,
    Resolution,
    ResolveAction,
    StoreRegistry,
    ReplayScope,
    ReplayAdapter,
    configure_session,
)

__all__ = [
    # Errors
    'ReplayError',
    'ArchiveFormatError',
    'NoMatchFound',
    'InvalidRecordingMode',
    'UnscopedRequestError',
    'UnknownScopeError',

    # Archive
    'Archive',
    'ArchiveFile',
    'Entry',
    'RecordedRequest',
    'RecordedResponse',
    'Stub',
    'load_archive',
    'save_archive',

    # Matching
    'Matcher',
    'MethodMatcher',
    'URLMatcher',
    'HostMatcher',
    'PathMatcher',
    'QueryMatcher',
    'HeadersMatcher',
    'BodyMatcher',
    'CustomMatcher',
    'MatcherSet',

    # Configuration
    'RecordingMode',
    'resolve_recording_mode',
    'ReplayConfig',
    'UnscopedPolicy',

    # Playback
    'PlaybackStore',
    'Resolution',
    'ResolveAction',
    'StoreRegistry',
    'ReplayScope',
    'ReplayAdapter',
    'configure_session',
]

__version__ = '1.0.0'
