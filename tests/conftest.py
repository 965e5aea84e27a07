"""
Shared fixtures for ReplayTap tests.

Nothing here touches the network: pass-through traffic goes to a fake
adapter that returns canned responses and remembers what it was sent.
"""

import threading

import pytest
import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict


class FakeNetworkAdapter(HTTPAdapter):
    """Stands in for the real network adapter."""

    def __init__(self, status=200, body=b'{"live": true}', headers=None, reason='OK'):
        super().__init__()
        self.status = status
        self.body = body
        self.headers = headers if headers is not None else {'Content-Type': 'application/json'}
        self.reason = reason
        self.calls = []
        self._lock = threading.Lock()

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        with self._lock:
            self.calls.append(request)

        response = requests.Response()
        response.status_code = self.status
        response.headers = CaseInsensitiveDict(self.headers)
        response._content = self.body
        response.reason = self.reason
        response.url = request.url
        response.request = request
        response.encoding = 'utf-8'
        return response


@pytest.fixture
def fake_network():
    """Fake pass-through adapter."""
    return FakeNetworkAdapter()


@pytest.fixture
def sample_har():
    """Small HAR document with three entries."""
    return {
        'log': {
            'version': '1.2',
            'creator': {'name': 'test', 'version': '0'},
            'entries': [
                {
                    'startedDateTime': '2024-01-01T00:00:00+00:00',
                    'time': 12.5,
                    'request': {
                        'method': 'GET',
                        'url': 'https://api.example.com/users/123',
                        'headers': [
                            {'name': 'Accept', 'value': 'application/json'},
                            {'name': 'Authorization', 'value': 'Bearer token123'},
                        ],
                    },
                    'response': {
                        'status': 200,
                        'statusText': 'OK',
                        'headers': [{'name': 'Content-Type', 'value': 'application/json'}],
                        'content': {'mimeType': 'application/json', 'text': '{"id": 123}'},
                    },
                },
                {
                    'startedDateTime': '2024-01-01T00:00:01+00:00',
                    'time': 20,
                    'request': {
                        'method': 'POST',
                        'url': 'https://api.example.com/users',
                        'headers': [{'name': 'Content-Type', 'value': 'application/json'}],
                        'postData': {'mimeType': 'application/json', 'text': '{"name": "Jane"}'},
                    },
                    'response': {
                        'status': 201,
                        'statusText': 'Created',
                        'headers': [{'name': 'Content-Type', 'value': 'application/json'}],
                        'content': {'mimeType': 'application/json', 'text': '{"id": 456}'},
                    },
                },
                {
                    'startedDateTime': '2024-01-01T00:00:02+00:00',
                    'time': 8,
                    'request': {
                        'method': 'GET',
                        'url': 'https://api.example.com/products?category=books&limit=10',
                        'headers': [],
                    },
                    'response': {
                        'status': 200,
                        'statusText': 'OK',
                        'headers': [],
                        'content': {'mimeType': 'text/plain', 'text': 'books'},
                    },
                },
            ],
        }
    }
