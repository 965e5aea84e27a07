"""
ReplayTap HAR Archive

In-memory model of a recorded interaction log and its HAR 1.2 (JSON)
interchange format.

An Archive is an ordered list of Entries. Each Entry pairs a recorded
request with its response. Order matters: matching is "first match wins"
and replay must be deterministic, so entries are only ever appended.
"""

import base64
import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from http import HTTPStatus
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple, Iterable, Iterator, Union

import requests

from ..common.errors import ArchiveFormatError
from ..common.url_utils import URLComponents

logger = logging.getLogger("replaytap.archive")

HAR_VERSION = "1.2"
HAR_CREATOR = {"name": "replaytap", "version": "1.0.0"}

REDACTED_VALUE = "[FILTERED]"

# Stored bodies are already decoded, so these no longer describe them
_STALE_BODY_HEADERS = {'content-encoding', 'transfer-encoding'}

Headers = Tuple[Tuple[str, str], ...]


def _freeze_headers(headers: Optional[Iterable]) -> Headers:
    """Normalize a header mapping or pair list into an immutable tuple of pairs."""
    if not headers:
        return ()
    if isinstance(headers, dict):
        headers = headers.items()
    elif hasattr(headers, 'items') and not isinstance(headers, (list, tuple)):
        headers = headers.items()
    return tuple((str(name), str(value)) for name, value in headers)


def _header_value(headers: Headers, name: str) -> Optional[str]:
    """
    Case-insensitive header lookup.

    Repeated headers are combined with ", " as HTTP allows.
    """
    wanted = name.lower()
    values = [value for key, value in headers if key.lower() == wanted]
    if not values:
        return None
    return ", ".join(values)


def body_headers(headers: Iterable[Tuple[str, str]], body: Optional[bytes]) -> Headers:
    """
    Drop headers that describe a transfer encoding of the body and make
    Content-Length agree with the stored bytes.
    """
    length = len(body) if body else 0
    result = []
    for name, value in headers:
        lowered = name.lower()
        if lowered in _STALE_BODY_HEADERS:
            continue
        if lowered == 'content-length':
            value = str(length)
        result.append((name, value))
    return tuple(result)


def _encode_body(body: bytes) -> Tuple[str, Optional[str]]:
    """Encode body bytes as HAR text plus an optional encoding marker."""
    try:
        return body.decode('utf-8'), None
    except UnicodeDecodeError:
        return base64.b64encode(body).decode('ascii'), 'base64'


def _decode_body(text: Any, encoding: Optional[str], index: Optional[int]) -> bytes:
    """Decode HAR body text honouring the encoding marker."""
    if not isinstance(text, str):
        raise ArchiveFormatError(f"body text must be a string, got {type(text).__name__}", index)
    if encoding in (None, ''):
        return text.encode('utf-8')
    if encoding == 'base64':
        try:
            return base64.b64decode(text, validate=True)
        except ValueError as e:
            raise ArchiveFormatError(f"invalid base64 body: {e}", index) from e
    raise ArchiveFormatError(f"unsupported body encoding {encoding!r}", index)


def _headers_to_har(headers: Headers) -> List[Dict[str, str]]:
    return [{'name': name, 'value': value} for name, value in headers]


def _headers_from_har(data: Any, where: str, index: Optional[int]) -> Headers:
    if data is None:
        return ()
    if not isinstance(data, list):
        raise ArchiveFormatError(f"{where}.headers must be a list", index)

    headers = []
    for header in data:
        if not isinstance(header, dict) or not isinstance(header.get('name'), str) or 'value' not in header:
            raise ArchiveFormatError(f"{where}.headers items need 'name' and 'value'", index)
        headers.append((header['name'], str(header['value'])))
    return tuple(headers)


@dataclass(frozen=True)
class RecordedRequest:
    """
    One HTTP request, either incoming or reconstructed from an archive entry.

    Instances are immutable; the URL decomposition used for partial matching
    is computed on access and raises ValueError for unparsable URLs.
    """

    method: str
    url: str
    headers: Headers = ()
    body: Optional[bytes] = None

    def __post_init__(self):
        object.__setattr__(self, 'headers', _freeze_headers(self.headers))
        if isinstance(self.body, str):
            object.__setattr__(self, 'body', self.body.encode('utf-8'))
        elif isinstance(self.body, bytearray):
            object.__setattr__(self, 'body', bytes(self.body))

    def header(self, name: str) -> Optional[str]:
        """Look up a header value by case-insensitive name."""
        return _header_value(self.headers, name)

    @property
    def host(self) -> Optional[str]:
        return URLComponents.host(self.url)

    @property
    def path(self) -> str:
        return URLComponents.path(self.url)

    @property
    def query_items(self) -> List[Tuple[str, str]]:
        return URLComponents.query_items(self.url)

    @classmethod
    def from_prepared(cls, prepared: requests.PreparedRequest) -> 'RecordedRequest':
        """
        Build from a prepared ``requests`` request.

        Streamed bodies (generators, open files) cannot be captured without
        consuming them, so they are recorded as absent.
        """
        body = prepared.body
        if isinstance(body, str):
            body = body.encode('utf-8')
        elif body is not None and not isinstance(body, (bytes, bytearray)):
            logger.debug(f"Streamed request body not captured for {prepared.method} {prepared.url}")
            body = None

        return cls(
            method=prepared.method or 'GET',
            url=prepared.url,
            headers=tuple(prepared.headers.items()),
            body=body,
        )

    def to_har(self) -> Dict[str, Any]:
        """Convert to a HAR request object."""
        try:
            query = URLComponents.query_items(self.url)
        except ValueError:
            query = []

        data = {
            'method': self.method,
            'url': self.url,
            'httpVersion': 'HTTP/1.1',
            'cookies': [],
            'headers': _headers_to_har(self.headers),
            'queryString': [{'name': name, 'value': value} for name, value in query],
            'headersSize': -1,
            'bodySize': len(self.body) if self.body is not None else 0,
        }

        if self.body is not None:
            text, encoding = _encode_body(self.body)
            post_data = {
                'mimeType': self.header('Content-Type') or '',
                'text': text,
            }
            if encoding:
                post_data['_encoding'] = encoding
            data['postData'] = post_data

        return data

    @classmethod
    def from_har(cls, data: Any, index: Optional[int] = None) -> 'RecordedRequest':
        """
        Create from a HAR request object.

        Raises:
            ArchiveFormatError: If required fields are missing or the URL is malformed
        """
        if not isinstance(data, dict):
            raise ArchiveFormatError("request must be an object", index)

        method = data.get('method')
        if not isinstance(method, str) or not method:
            raise ArchiveFormatError("request.method is required", index)

        url = data.get('url')
        if not isinstance(url, str):
            raise ArchiveFormatError("request.url is required", index)
        try:
            URLComponents.split(url)
        except ValueError as e:
            raise ArchiveFormatError(f"malformed request.url: {e}", index) from e

        body = None
        post_data = data.get('postData')
        if post_data is not None:
            if not isinstance(post_data, dict):
                raise ArchiveFormatError("request.postData must be an object", index)
            if 'text' in post_data:
                encoding = post_data.get('_encoding', post_data.get('encoding'))
                body = _decode_body(post_data['text'], encoding, index)

        return cls(
            method=method,
            url=url,
            headers=_headers_from_har(data.get('headers'), 'request', index),
            body=body,
        )


@dataclass(frozen=True)
class RecordedResponse:
    """Status, headers and body of a recorded HTTP response."""

    status: int
    headers: Headers = ()
    body: Optional[bytes] = None
    reason: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'headers', _freeze_headers(self.headers))
        if isinstance(self.body, str):
            object.__setattr__(self, 'body', self.body.encode('utf-8'))

    def header(self, name: str) -> Optional[str]:
        """Look up a header value by case-insensitive name."""
        return _header_value(self.headers, name)

    @property
    def status_text(self) -> str:
        if self.reason:
            return self.reason
        try:
            return HTTPStatus(self.status).phrase
        except ValueError:
            return ""

    @classmethod
    def from_response(cls, response: requests.Response) -> 'RecordedResponse':
        """
        Capture a live ``requests`` response.

        Reads the full body. ``requests`` has already removed any transfer
        compression, so the stored headers are adjusted to describe the
        decoded bytes.
        """
        body = response.content
        return cls(
            status=response.status_code,
            headers=body_headers(response.headers.items(), body),
            body=body,
            reason=response.reason or "",
        )

    def to_har(self) -> Dict[str, Any]:
        """Convert to a HAR response object."""
        content = {
            'size': len(self.body) if self.body is not None else 0,
            'mimeType': self.header('Content-Type') or '',
        }
        if self.body is not None:
            text, encoding = _encode_body(self.body)
            content['text'] = text
            if encoding:
                content['encoding'] = encoding

        return {
            'status': self.status,
            'statusText': self.status_text,
            'httpVersion': 'HTTP/1.1',
            'cookies': [],
            'headers': _headers_to_har(self.headers),
            'content': content,
            'redirectURL': self.header('Location') or '',
            'headersSize': -1,
            'bodySize': content['size'],
        }

    @classmethod
    def from_har(cls, data: Any, index: Optional[int] = None) -> 'RecordedResponse':
        """
        Create from a HAR response object.

        Raises:
            ArchiveFormatError: If the status is missing or not an integer
        """
        if not isinstance(data, dict):
            raise ArchiveFormatError("response must be an object", index)

        status = data.get('status')
        if not isinstance(status, int) or isinstance(status, bool):
            raise ArchiveFormatError("response.status must be an integer", index)

        body = None
        content = data.get('content')
        if content is not None:
            if not isinstance(content, dict):
                raise ArchiveFormatError("response.content must be an object", index)
            if 'text' in content:
                body = _decode_body(content['text'], content.get('encoding'), index)

        return cls(
            status=status,
            headers=_headers_from_har(data.get('headers'), 'response', index),
            body=body,
            reason=data.get('statusText') or "",
        )


@dataclass(frozen=True)
class Entry:
    """One recorded request/response pair."""

    request: RecordedRequest
    response: RecordedResponse
    started: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    time_ms: float = 0.0

    def redacted(self, header_names: Iterable[str]) -> 'Entry':
        """Return a copy with the values of the named headers replaced."""
        names = {name.lower() for name in header_names}
        if not names:
            return self

        def scrub(headers: Headers) -> Headers:
            return tuple(
                (key, REDACTED_VALUE if key.lower() in names else value)
                for key, value in headers
            )

        return replace(
            self,
            request=replace(self.request, headers=scrub(self.request.headers)),
            response=replace(self.response, headers=scrub(self.response.headers)),
        )

    def to_har(self) -> Dict[str, Any]:
        return {
            'startedDateTime': self.started,
            'time': self.time_ms,
            'request': self.request.to_har(),
            'response': self.response.to_har(),
            'cache': {},
            'timings': {'send': 0, 'wait': self.time_ms, 'receive': 0},
        }

    @classmethod
    def from_har(cls, data: Any, index: Optional[int] = None) -> 'Entry':
        if not isinstance(data, dict):
            raise ArchiveFormatError("entry must be an object", index)
        if 'request' not in data:
            raise ArchiveFormatError("entry.request is required", index)
        if 'response' not in data:
            raise ArchiveFormatError("entry.response is required", index)

        time_ms = data.get('time', 0.0)
        if not isinstance(time_ms, (int, float)) or isinstance(time_ms, bool):
            time_ms = 0.0

        return cls(
            request=RecordedRequest.from_har(data['request'], index),
            response=RecordedResponse.from_har(data['response'], index),
            started=str(data.get('startedDateTime', '')),
            time_ms=float(time_ms),
        )


class Archive:
    """
    Ordered collection of Entries with HAR (de)serialization.

    Example:
        archive = Archive.loads(Path('users.har').read_text())
        for entry in archive:
            print(entry.request.method, entry.request.url)
    """

    def __init__(self, entries: Optional[Iterable[Entry]] = None, creator: Optional[Dict[str, str]] = None):
        self.entries: List[Entry] = list(entries or [])
        self.creator = dict(creator or HAR_CREATOR)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __repr__(self) -> str:
        return f"Archive(entries={len(self.entries)})"

    def append(self, entry: Entry) -> None:
        self.entries.append(entry)

    def to_har(self) -> Dict[str, Any]:
        """Convert to a HAR document."""
        return {
            'log': {
                'version': HAR_VERSION,
                'creator': self.creator,
                'entries': [entry.to_har() for entry in self.entries],
            }
        }

    @classmethod
    def from_har(cls, data: Any) -> 'Archive':
        """
        Create from a parsed HAR document.

        Raises:
            ArchiveFormatError: If the document does not follow the entry schema
        """
        if not isinstance(data, dict) or not isinstance(data.get('log'), dict):
            raise ArchiveFormatError("HAR document must contain a 'log' object")

        log = data['log']
        entries = log.get('entries')
        if not isinstance(entries, list):
            raise ArchiveFormatError("log.entries must be a list")

        creator = log.get('creator') if isinstance(log.get('creator'), dict) else None
        return cls(
            entries=[Entry.from_har(entry, index) for index, entry in enumerate(entries)],
            creator=creator,
        )

    def dumps(self) -> str:
        return json.dumps(self.to_har(), indent=2, ensure_ascii=False)

    @classmethod
    def loads(cls, text: Union[str, bytes]) -> 'Archive':
        """
        Parse HAR JSON text.

        Raises:
            ArchiveFormatError: If the text is not JSON or not a valid archive
        """
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ArchiveFormatError(f"archive is not valid JSON: {e}") from e
        return cls.from_har(data)


class ArchiveFile:
    """
    Reads and writes HAR archives on disk.

    Example:
        archive_file = ArchiveFile("__replays__/test_users.har")
        if archive_file.exists():
            archive = archive_file.load()
    """

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path)

    def exists(self) -> bool:
        return self.file_path.is_file()

    def load(self) -> Archive:
        """
        Load the archive.

        Raises:
            FileNotFoundError: If the archive file doesn't exist
            ArchiveFormatError: If the file is not a valid HAR archive
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"Archive file not found: {self.file_path}")

        try:
            archive = Archive.loads(self.file_path.read_bytes())
        except ArchiveFormatError as e:
            raise ArchiveFormatError(f"{self.file_path}: {e}") from e

        logger.info(f"Loaded {len(archive)} entries from {self.file_path}")
        return archive

    def save(self, archive: Archive) -> None:
        """Write the archive, creating parent directories as needed."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.file_path, 'w', encoding='utf-8') as f:
            f.write(archive.dumps())
            f.write('\n')

        logger.info(f"Saved {len(archive)} entries to {self.file_path}")


def load_archive(file_path: Union[str, Path]) -> Archive:
    """Load a HAR archive from disk."""
    return ArchiveFile(file_path).load()


def save_archive(archive: Archive, file_path: Union[str, Path]) -> None:
    """Write a HAR archive to disk."""
    ArchiveFile(file_path).save(archive)
