"""
ReplayTap Interception Transport

A ``requests`` transport adapter that every outgoing request passes
through. Per request it:

1. reads the scope key from the reserved scope header (and strips it),
2. picks the scope's store and effective recording mode,
3. asks the store how to answer,
4. returns a synthetic response, or forwards to the real network and,
   in record mode, hands the captured exchange back to the store.

A playback miss is raised as NoMatchFound and never falls through to
the network.
"""

import io
import logging
import time
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.response import HTTPResponse

from ..archive.har import RecordedRequest, RecordedResponse, body_headers
from ..common.errors import UnknownScopeError, UnscopedRequestError
from ..config.mode import RecordingMode
from ..config.replay_config import ReplayConfig, UnscopedPolicy
from .registry import StoreRegistry
from .store import PlaybackStore, ResolveAction

logger = logging.getLogger("replaytap.transport")


class ReplayAdapter(HTTPAdapter):
    """
    Transport adapter serving requests from playback stores.

    Example:
        registry = StoreRegistry(ReplayConfig.from_env())
        registry.register('test_users')
        session = requests.Session()
        configure_session(session, registry, scope_key='test_users')
        session.get('https://api.example.com/users')
    """

    def __init__(
        self,
        registry: StoreRegistry,
        config: Optional[ReplayConfig] = None,
        real_adapter: Optional[HTTPAdapter] = None,
        **kwargs
    ):
        """
        Initialize replay adapter.

        Args:
            registry: Registry resolving scope keys to stores
            config: Configuration (defaults to the registry's)
            real_adapter: Adapter used for network pass-through
            **kwargs: Passed to HTTPAdapter
        """
        super().__init__(**kwargs)
        self.registry = registry
        self.config = config or registry.config
        self.real_adapter = real_adapter or HTTPAdapter()

    def _strip_scope(self, request: requests.PreparedRequest):
        """Return the scope key and a copy of the request without the scope header."""
        if self.config.scope_header not in request.headers:
            return None, request

        request = request.copy()
        key = request.headers.pop(self.config.scope_header)
        # An empty header value counts as no scope key
        return key or None, request

    def _store_for(self, key: Optional[str]) -> Optional[PlaybackStore]:
        if key is not None:
            store = self.registry.lookup(key)
            if store is None:
                raise UnknownScopeError(key)
            return store

        policy = self.config.unscoped_policy
        if policy is UnscopedPolicy.DEFAULT:
            return self.registry.default_store
        if policy is UnscopedPolicy.BYPASS:
            return None
        raise UnscopedRequestError(
            f"Request carries no {self.config.scope_header} header and unscoped requests are not allowed"
        )

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        key, request = self._strip_scope(request)
        send_kwargs = dict(stream=stream, timeout=timeout, verify=verify, cert=cert, proxies=proxies)

        store = self._store_for(key)
        if store is None:
            logger.debug(f"Bypassing unscoped {request.method} {request.url}")
            return self.real_adapter.send(request, **send_kwargs)

        mode = self.registry.mode_for(key)
        recorded_request = RecordedRequest.from_prepared(request)

        if mode is RecordingMode.RECORD:
            # Keep the match, the network call and the append atomic per store
            with store.lock:
                return self._handle(store, request, recorded_request, mode, send_kwargs)
        return self._handle(store, request, recorded_request, mode, send_kwargs)

    def _handle(self, store, request, recorded_request, mode, send_kwargs):
        resolution = store.resolve(recorded_request, self.config.matchers, mode)

        if resolution.action is ResolveAction.SERVE:
            return self.build_synthetic_response(request, resolution.response)

        start_time = time.time()
        response = self.real_adapter.send(request, **send_kwargs)

        if resolution.record:
            duration_ms = (time.time() - start_time) * 1000
            store.record(recorded_request, RecordedResponse.from_response(response), time_ms=duration_ms)

        return response

    def build_synthetic_response(
        self,
        request: requests.PreparedRequest,
        recorded: RecordedResponse
    ) -> requests.Response:
        """Turn a recorded response into a ``requests`` response for ``request``."""
        body = recorded.body or b""
        raw = HTTPResponse(
            body=io.BytesIO(body),
            headers=list(body_headers(recorded.headers, body)),
            status=recorded.status,
            reason=recorded.status_text or None,
            preload_content=False,
            decode_content=False,
            request_method=request.method,
        )
        return self.build_response(request, raw)

    def close(self):
        self.real_adapter.close()
        super().close()


def configure_session(
    session: requests.Session,
    registry: StoreRegistry,
    config: Optional[ReplayConfig] = None,
    scope_key: Optional[str] = None,
    real_adapter: Optional[HTTPAdapter] = None
) -> ReplayAdapter:
    """
    Install interception on a session.

    Mounts a ReplayAdapter for http:// and https:// and, when a scope key is
    given, sends it on every request through the scope header.

    Returns:
        The mounted adapter
    """
    adapter = ReplayAdapter(registry, config=config, real_adapter=real_adapter)
    session.mount('http://', adapter)
    session.mount('https://', adapter)

    if scope_key is not None:
        session.headers[adapter.config.scope_header] = scope_key

    return adapter
