"""
ReplayTap Stubs

Lightweight response stubs for in-memory playback without an archive file.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from ..common.url_utils import URLComponents
from .har import Entry, RecordedRequest, RecordedResponse


@dataclass
class Stub:
    """
    A canned response for one method and URL.

    Example:
        stub = Stub('https://api.example.com/users/1', body='{"id": 1}',
                    headers={'Content-Type': 'application/json'})
        store = PlaybackStore.from_stubs([stub])
    """

    url: str
    method: str = "GET"
    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Union[bytes, str]] = None
    encoding: str = "utf-8"  # Used when body is given as text

    def body_bytes(self) -> Optional[bytes]:
        if isinstance(self.body, str):
            return self.body.encode(self.encoding)
        return self.body

    def to_entry(self) -> Entry:
        """
        Convert to an archive Entry.

        Raises:
            ValueError: If the stub URL is not absolute
        """
        URLComponents.split(self.url)
        return Entry(
            request=RecordedRequest(method=self.method.upper(), url=self.url),
            response=RecordedResponse(
                status=self.status,
                headers=tuple(self.headers.items()),
                body=self.body_bytes(),
            ),
        )
