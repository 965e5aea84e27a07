"""
ReplayTap Playback Store

Owns one archive's entries for the lifetime of one test scope and decides,
per request, whether to serve a recorded response or forward to the network.

Loaded (baseline) entries and entries recorded during the scope are kept
apart, so exporting always yields the loaded entries first, in their
original order, followed by new ones in the order they were recorded.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import List, Dict, Any, Iterable, Optional, Set, Union

from ..archive.har import Archive, Entry, RecordedRequest, RecordedResponse
from ..archive.stub import Stub
from ..common.errors import ArchiveFormatError, NoMatchFound
from ..config.mode import RecordingMode
from ..matching.matcher import MatcherSet

logger = logging.getLogger("replaytap.store")


class ResolveAction(str, Enum):
    SERVE = "serve"      # Answer with the matched entry's response
    FORWARD = "forward"  # Send the request to the real network


@dataclass
class Resolution:
    """Outcome of resolving one request against a store."""

    action: ResolveAction
    entry: Optional[Entry] = None
    record: bool = False  # Hand the forwarded exchange back to the store
    reason: str = ""

    @property
    def response(self) -> Optional[RecordedResponse]:
        return self.entry.response if self.entry else None


class PlaybackStore:
    """
    Per-scope archive owner with match/record logic.

    ``lock`` serializes resolution and appends. Callers that forward a
    request and then record the result hold it across both steps so that
    "first match" and "append" stay atomic for concurrent requests in one
    scope.

    Example:
        store = PlaybackStore(load_archive('users.har'))
        resolution = store.resolve(request, MatcherSet.default(), RecordingMode.PLAYBACK)
        print(resolution.response.status)
    """

    def __init__(
        self,
        archive: Optional[Union[Archive, Dict[str, Any], str, bytes]] = None,
        reuse_entries: bool = True,
        redact_headers: Iterable[str] = (),
        capture_filter: Optional[MatcherSet] = None
    ):
        """
        Initialize playback store.

        Args:
            archive: Initial baseline entries (Archive, HAR dict or HAR JSON text)
            reuse_entries: If False, each entry answers at most one request
            redact_headers: Header names scrubbed from newly recorded entries
            capture_filter: In record mode, only requests passing it are recorded
        """
        self.lock = threading.RLock()
        self.reuse_entries = reuse_entries
        self.redact_headers = list(redact_headers)
        self.capture_filter = capture_filter

        self._baseline: List[Entry] = []
        self._recorded: List[Entry] = []
        self._consumed: Set[int] = set()

        if archive is not None:
            self.load(archive)

    @classmethod
    def from_stubs(cls, stubs: Iterable[Stub], **kwargs: Any) -> 'PlaybackStore':
        """Create a store whose baseline entries come from stubs."""
        store = cls(**kwargs)
        store.add_stubs(stubs)
        return store

    def __repr__(self) -> str:
        return f"PlaybackStore(baseline={len(self._baseline)}, recorded={len(self._recorded)})"

    def __len__(self) -> int:
        return len(self._baseline) + len(self._recorded)

    @property
    def entries(self) -> List[Entry]:
        """Baseline entries followed by recorded ones."""
        with self.lock:
            return self._baseline + self._recorded

    @property
    def recorded_entries(self) -> List[Entry]:
        with self.lock:
            return list(self._recorded)

    @property
    def has_new_entries(self) -> bool:
        return bool(self._recorded)

    def load(self, archive: Union[Archive, Dict[str, Any], str, bytes]) -> None:
        """
        Replace the baseline entries.

        Args:
            archive: Archive, parsed HAR document, or HAR JSON text

        Raises:
            ArchiveFormatError: If the data does not parse into entries
        """
        if isinstance(archive, Archive):
            parsed = archive
        elif isinstance(archive, dict):
            parsed = Archive.from_har(archive)
        elif isinstance(archive, (str, bytes)):
            parsed = Archive.loads(archive)
        else:
            raise ArchiveFormatError(f"Cannot load archive from {type(archive).__name__}")

        with self.lock:
            self._baseline = list(parsed.entries)
            self._consumed.clear()

        logger.debug(f"Store loaded {len(parsed)} baseline entries")

    def add_stubs(self, stubs: Iterable[Stub]) -> None:
        """Append stubs to the baseline entries."""
        entries = [stub.to_entry() for stub in stubs]
        with self.lock:
            self._baseline.extend(entries)

    def _find(self, request: RecordedRequest, matchers: MatcherSet) -> Optional[Entry]:
        entries = self._baseline + self._recorded
        skip = () if self.reuse_entries else self._consumed
        index = matchers.first_match_index(request, entries, skip=skip)
        if index is None:
            return None
        if not self.reuse_entries:
            self._consumed.add(index)
        return entries[index]

    def resolve(
        self,
        request: RecordedRequest,
        matchers: Optional[MatcherSet] = None,
        mode: RecordingMode = RecordingMode.PLAYBACK
    ) -> Resolution:
        """
        Decide how to answer a request.

        - playback: serve the first matching entry, or raise NoMatchFound
        - record: serve the first matching entry, else forward and record
        - live: forward without looking at or changing entries

        Args:
            request: Incoming request
            matchers: Matcher set (defaults to method + url)
            mode: Effective recording mode for this request

        Returns:
            Resolution telling the caller what to do

        Raises:
            NoMatchFound: In playback mode when nothing matches
        """
        mode = RecordingMode(mode)

        if mode is RecordingMode.LIVE:
            return Resolution(ResolveAction.FORWARD, reason="live mode")

        if matchers is None:
            matchers = MatcherSet.default()

        with self.lock:
            entry = self._find(request, matchers)

        if entry is not None:
            logger.debug(f"Matched {request.method} {request.url}")
            return Resolution(ResolveAction.SERVE, entry=entry, reason="matched recorded entry")

        if mode is RecordingMode.PLAYBACK:
            logger.warning(f"No match found for {request.method} {request.url}")
            raise NoMatchFound(request)

        if self.capture_filter is not None and not self.capture_filter.matches(request):
            logger.debug(f"Forwarding without recording {request.method} {request.url}")
            return Resolution(ResolveAction.FORWARD, reason="excluded by capture filter")

        logger.debug(f"Recording {request.method} {request.url}")
        return Resolution(ResolveAction.FORWARD, record=True, reason="no recorded entry")

    def append(self, entry: Entry) -> Entry:
        """
        Append a newly recorded entry.

        Configured headers are redacted first. Returns the stored entry.
        """
        entry = entry.redacted(self.redact_headers)
        with self.lock:
            self._recorded.append(entry)
            if not self.reuse_entries:
                # The forwarded request already used it
                self._consumed.add(len(self._baseline) + len(self._recorded) - 1)
        return entry

    def record(
        self,
        request: RecordedRequest,
        response: RecordedResponse,
        time_ms: float = 0.0
    ) -> Entry:
        """Build an entry from a forwarded exchange and append it."""
        return self.append(Entry(request=request, response=response, time_ms=time_ms))

    def to_archive(self) -> Archive:
        """All entries, loaded first, as an Archive."""
        return Archive(self.entries)

    def export(self) -> Dict[str, Any]:
        """
        Produce the HAR document of all entries.

        Waits for any in-flight resolution holding the store lock.
        """
        with self.lock:
            return self.to_archive().to_har()
