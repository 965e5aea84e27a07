"""
ReplayTap Store Registry

Maps scope keys to playback stores so that tests running in parallel each
get their own view of an archive while sharing one transport.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from ..archive.har import ArchiveFile
from ..config.mode import RecordingMode
from ..config.replay_config import ReplayConfig
from .store import PlaybackStore

logger = logging.getLogger("replaytap.registry")


@dataclass
class ReplayScope:
    """A registered scope as handed out by ``StoreRegistry.scope``."""

    key: str
    store: PlaybackStore
    mode: RecordingMode
    archive_path: Optional[Path] = None


class StoreRegistry:
    """
    Concurrency-safe mapping from scope key to PlaybackStore.

    One lock covers the key-to-store mapping and the per-scope mode
    overrides. Stores themselves are never shared between keys.

    Example:
        registry = StoreRegistry(ReplayConfig.from_env())
        store = registry.register('test_users[1]')
        ...
        registry.unregister('test_users[1]')
    """

    def __init__(self, config: Optional[ReplayConfig] = None):
        self.config = config or ReplayConfig()
        self._lock = threading.Lock()
        self._stores: Dict[str, PlaybackStore] = {}
        self._modes: Dict[str, RecordingMode] = {}

        # Serves requests without a scope key under UnscopedPolicy.DEFAULT
        self.default_store = self.new_store()

    def new_store(self) -> PlaybackStore:
        """Create an empty store configured from the registry's config."""
        return PlaybackStore(
            reuse_entries=self.config.reuse_entries,
            redact_headers=self.config.redact_headers,
            capture_filter=self.config.capture_filter,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._stores)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._stores

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._stores)

    def register(self, key: str, mode: Optional[RecordingMode] = None) -> PlaybackStore:
        """
        Get the store for a scope, creating an empty one on first reference.

        Args:
            key: Scope key, unique per concurrently running test
            mode: Optional recording mode override for this scope

        Returns:
            The scope's PlaybackStore
        """
        if not key:
            raise ValueError("Scope key must be a non-empty string")

        with self._lock:
            store = self._stores.get(key)
            if store is None:
                store = self.new_store()
                self._stores[key] = store
                logger.debug(f"Registered scope {key!r}")
            if mode is not None:
                self._modes[key] = RecordingMode(mode)
        return store

    def create(self, key: str, mode: Optional[RecordingMode] = None) -> PlaybackStore:
        """
        Register a new scope, refusing keys that are already registered.

        Raises:
            ValueError: If ``key`` is empty or already registered
        """
        if not key:
            raise ValueError("Scope key must be a non-empty string")

        with self._lock:
            if key in self._stores:
                raise ValueError(f"Scope {key!r} is already registered")
            store = self.new_store()
            self._stores[key] = store
            if mode is not None:
                self._modes[key] = RecordingMode(mode)
        logger.debug(f"Created scope {key!r}")
        return store

    def lookup(self, key: str) -> Optional[PlaybackStore]:
        with self._lock:
            return self._stores.get(key)

    def unregister(self, key: str) -> Optional[PlaybackStore]:
        """
        Drop a scope and its mode override.

        Export the store first if its entries should be kept.

        Returns:
            The removed store, or None if the key was not registered
        """
        with self._lock:
            store = self._stores.pop(key, None)
            self._modes.pop(key, None)
        if store is not None:
            logger.debug(f"Unregistered scope {key!r}")
        return store

    def set_mode(self, key: str, mode: Optional[RecordingMode]) -> None:
        """Override the recording mode for one scope; None clears the override."""
        with self._lock:
            if mode is None:
                self._modes.pop(key, None)
            else:
                self._modes[key] = RecordingMode(mode)

    def mode_for(self, key: Optional[str] = None) -> RecordingMode:
        """Effective mode: the scope override if set, else the configured default."""
        if key is not None:
            with self._lock:
                override = self._modes.get(key)
            if override is not None:
                return override
        return self.config.default_mode

    def archive_path(self, archive: Union[str, Path]) -> Path:
        """Resolve an archive name against the configured archive directory."""
        path = Path(archive)
        if not path.is_absolute():
            path = self.config.archive_dir / path
        return path

    @contextmanager
    def scope(
        self,
        key: Optional[str] = None,
        archive: Optional[Union[str, Path]] = None,
        mode: Optional[RecordingMode] = None
    ) -> Iterator[ReplayScope]:
        """
        Register a scope for the duration of a ``with`` block.

        Loads ``archive`` when the file exists. On exit, a record-mode scope
        with new entries writes the merged archive back; the scope is then
        unregistered.

        Example:
            with registry.scope(archive='test_users.har') as scope:
                session.headers[config.scope_header] = scope.key
                session.get('https://api.example.com/users')

        Raises:
            ValueError: If ``key`` is already registered
            ArchiveFormatError: If the archive file is malformed
        """
        key = key or uuid.uuid4().hex
        store = self.create(key, mode)
        effective_mode = self.mode_for(key)
        archive_file = ArchiveFile(self.archive_path(archive)) if archive is not None else None

        try:
            if archive_file is not None:
                if archive_file.exists():
                    store.load(archive_file.load())
                elif effective_mode is RecordingMode.PLAYBACK:
                    logger.warning(f"Archive {archive_file.file_path} not found; playback scope starts empty")

            yield ReplayScope(
                key=key,
                store=store,
                mode=effective_mode,
                archive_path=archive_file.file_path if archive_file else None,
            )

            if archive_file is not None and effective_mode is RecordingMode.RECORD:
                with store.lock:
                    if store.has_new_entries:
                        archive_file.save(store.to_archive())
        finally:
            self.unregister(key)
