"""
Tests for ReplayTap Store Registry

Tests scope isolation including:
- Idempotent register, lookup and unregister
- Per-scope mode overrides
- Concurrent scopes never sharing entries
- The scope context manager and archive persistence
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from replaytap.archive import Archive, RecordedRequest, RecordedResponse, Stub, load_archive, save_archive
from replaytap.common import ArchiveFormatError, NoMatchFound
from replaytap.config import RecordingMode, ReplayConfig
from replaytap.playback import PlaybackStore, StoreRegistry, ResolveAction


@pytest.fixture
def registry(tmp_path):
    """Registry writing archives under a temporary directory."""
    return StoreRegistry(ReplayConfig(archive_dir=tmp_path))


class TestRegistration:
    """Test register/lookup/unregister."""

    def test_register_creates_empty_store(self, registry):
        """Test first reference creates an empty store."""
        store = registry.register('scope-a')

        assert isinstance(store, PlaybackStore)
        assert len(store) == 0
        assert 'scope-a' in registry

    def test_register_idempotent(self, registry):
        """Test registering again returns the same store."""
        assert registry.register('scope-a') is registry.register('scope-a')
        assert len(registry) == 1

    def test_distinct_scopes_distinct_stores(self, registry):
        """Test each key gets its own store."""
        assert registry.register('scope-a') is not registry.register('scope-b')

    def test_lookup(self, registry):
        """Test lookup of known and unknown keys."""
        store = registry.register('scope-a')

        assert registry.lookup('scope-a') is store
        assert registry.lookup('scope-b') is None

    def test_unregister(self, registry):
        """Test unregister drops the store and returns it."""
        store = registry.register('scope-a')

        assert registry.unregister('scope-a') is store
        assert registry.lookup('scope-a') is None
        assert registry.unregister('scope-a') is None

    def test_empty_key_rejected(self, registry):
        """Test keys must be non-empty."""
        with pytest.raises(ValueError):
            registry.register('')

    def test_store_uses_config(self, tmp_path):
        """Test new stores follow the registry configuration."""
        registry = StoreRegistry(ReplayConfig(reuse_entries=False, redact_headers=['Cookie']))

        store = registry.register('scope-a')

        assert store.reuse_entries is False
        assert store.redact_headers == ['Cookie']

    def test_default_store_separate(self, registry):
        """Test the ambient default store is not a registered scope."""
        assert registry.default_store is not registry.register('scope-a')
        assert registry.keys() == ['scope-a']


class TestModes:
    """Test per-scope mode overrides."""

    def test_default_mode(self, registry):
        """Test scopes without override use the configured default."""
        registry.register('scope-a')

        assert registry.mode_for('scope-a') is RecordingMode.PLAYBACK
        assert registry.mode_for(None) is RecordingMode.PLAYBACK

    def test_override_on_register(self, registry):
        """Test a mode given at registration overrides the default."""
        registry.register('scope-a', mode=RecordingMode.RECORD)

        assert registry.mode_for('scope-a') is RecordingMode.RECORD
        assert registry.mode_for('scope-b') is RecordingMode.PLAYBACK

    def test_set_and_clear_override(self, registry):
        """Test overriding and clearing a scope mode."""
        registry.register('scope-a')
        registry.set_mode('scope-a', 'live')

        assert registry.mode_for('scope-a') is RecordingMode.LIVE

        registry.set_mode('scope-a', None)

        assert registry.mode_for('scope-a') is RecordingMode.PLAYBACK

    def test_unregister_clears_override(self, registry):
        """Test overrides do not outlive the scope."""
        registry.register('scope-a', mode=RecordingMode.LIVE)
        registry.unregister('scope-a')

        assert registry.mode_for('scope-a') is RecordingMode.PLAYBACK


class TestIsolation:
    """Test concurrent scopes stay isolated."""

    def test_record_in_one_scope_invisible_in_other(self, registry):
        """Test scope A's recording never answers scope B's playback."""
        request = RecordedRequest('GET', 'https://api.example.com/shared')
        store_a = registry.register('scope-a', mode=RecordingMode.RECORD)
        store_b = registry.register('scope-b', mode=RecordingMode.PLAYBACK)

        store_a.record(request, RecordedResponse(status=200, body=b'from a'))

        assert store_a.resolve(request, mode=RecordingMode.RECORD).action is ResolveAction.SERVE
        with pytest.raises(NoMatchFound):
            store_b.resolve(request, mode=RecordingMode.PLAYBACK)

    def test_parallel_scopes(self, registry):
        """Test many scopes registering, recording and unregistering in parallel."""
        def run_scope(index):
            key = f'scope-{index}'
            store = registry.register(key, mode=RecordingMode.RECORD)
            request = RecordedRequest('GET', f'https://api.example.com/items/{index}')
            store.record(request, RecordedResponse(status=200, body=str(index).encode()))
            urls = [entry.request.url for entry in registry.lookup(key).entries]
            registry.unregister(key)
            return index, urls

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(run_scope, range(50)))

        for index, urls in results:
            assert urls == [f'https://api.example.com/items/{index}']
        assert len(registry) == 0

    def test_parallel_register_same_key(self, registry):
        """Test concurrent registration of one key yields one store."""
        with ThreadPoolExecutor(max_workers=8) as executor:
            stores = list(executor.map(lambda _: registry.register('shared'), range(32)))

        assert all(store is stores[0] for store in stores)

    def test_parallel_create_same_key(self, registry):
        """Test only one of several concurrent creators of a key succeeds."""
        def try_create(_):
            try:
                return registry.create('shared')
            except ValueError:
                return None

        with ThreadPoolExecutor(max_workers=8) as executor:
            stores = list(executor.map(try_create, range(32)))

        created = [store for store in stores if store is not None]
        assert len(created) == 1
        assert registry.lookup('shared') is created[0]


class TestScope:
    """Test the scope context manager."""

    def test_generated_key_and_cleanup(self, registry):
        """Test a key is generated and the scope removed on exit."""
        with registry.scope() as scope:
            assert scope.key in registry
            assert registry.lookup(scope.key) is scope.store

        assert scope.key not in registry

    def test_duplicate_key_rejected(self, registry):
        """Test an active key cannot be reused."""
        registry.register('busy')

        with pytest.raises(ValueError, match="already registered"):
            with registry.scope('busy'):
                pass

    def test_loads_archive(self, registry, tmp_path, sample_har):
        """Test the archive file is loaded into the store."""
        save_archive(Archive.from_har(sample_har), tmp_path / 'users.har')

        with registry.scope(archive='users.har') as scope:
            assert len(scope.store) == 3
            assert scope.archive_path == tmp_path / 'users.har'
            assert scope.mode is RecordingMode.PLAYBACK

    def test_missing_archive_playback_empty(self, registry):
        """Test a missing archive in playback starts empty."""
        with registry.scope(archive='missing.har') as scope:
            assert len(scope.store) == 0

    def test_malformed_archive(self, registry, tmp_path):
        """Test a malformed archive fails the scope and still unregisters."""
        (tmp_path / 'bad.har').write_text('{"log": []}')

        with pytest.raises(ArchiveFormatError):
            with registry.scope('bad-scope', archive='bad.har'):
                pass

        assert 'bad-scope' not in registry

    def test_record_scope_saves_merged_archive(self, registry, tmp_path, sample_har):
        """Test new entries are appended after loaded ones on disk."""
        path = tmp_path / 'users.har'
        save_archive(Archive.from_har(sample_har), path)

        with registry.scope(archive=path, mode=RecordingMode.RECORD) as scope:
            scope.store.record(RecordedRequest('DELETE', 'https://api.example.com/users/123'),
                               RecordedResponse(status=204))

        saved = load_archive(path)
        assert len(saved) == 4
        assert saved.entries[0].request.url == 'https://api.example.com/users/123'
        assert saved.entries[3].request.method == 'DELETE'

    def test_record_scope_without_changes_not_written(self, registry, tmp_path):
        """Test nothing is written when no entries were recorded."""
        with registry.scope(archive='untouched.har', mode=RecordingMode.RECORD):
            pass

        assert not (tmp_path / 'untouched.har').exists()

    def test_playback_scope_never_writes(self, registry, tmp_path):
        """Test playback scopes leave archives alone."""
        with registry.scope(archive='stubbed.har') as scope:
            scope.store.add_stubs([Stub('https://api.example.com/a')])
            scope.store.record(RecordedRequest('GET', 'https://api.example.com/b'),
                               RecordedResponse(status=200))

        assert not (tmp_path / 'stubbed.har').exists()

    def test_failed_block_not_written(self, registry, tmp_path):
        """Test an exception in the block skips saving and unregisters."""
        with pytest.raises(RuntimeError):
            with registry.scope('failing', archive='failing.har', mode=RecordingMode.RECORD) as scope:
                scope.store.record(RecordedRequest('GET', 'https://api.example.com/a'),
                                   RecordedResponse(status=200))
                raise RuntimeError("test failed")

        assert not (tmp_path / 'failing.har').exists()
        assert 'failing' not in registry
