"""
ReplayTap Request Matchers

Composable predicates deciding whether an incoming request is "the same"
as a recorded one, and the engine that picks the first recorded entry
satisfying all of them.

Matchers:
- method: HTTP method
- url: full absolute URL (scheme, host, path and query)
- host: URL host
- path: URL path
- query: ordered query items (order and repeats are significant)
- headers: values of a fixed list of header names
- body: raw body bytes
- custom: any callable over (request, candidate)
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Callable, Iterable, Iterator, Sequence, Container, Union

from ..archive.har import Entry, RecordedRequest
from ..common.url_utils import URLComponents

logger = logging.getLogger("replaytap.matching")

Predicate = Callable[[RecordedRequest, RecordedRequest], bool]


class Matcher(ABC):
    """
    A named predicate comparing an incoming request against a candidate.

    Subclasses implement ``matches``; it must not raise for any pair of
    requests.
    """

    name: str = ""

    @abstractmethod
    def matches(self, request: RecordedRequest, candidate: RecordedRequest) -> bool:
        """Return True if ``candidate`` counts as the same request."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MethodMatcher(Matcher):
    name = "method"

    def matches(self, request, candidate):
        return request.method == candidate.method


class URLMatcher(Matcher):
    name = "url"

    def matches(self, request, candidate):
        return request.url == candidate.url


class _URLPartMatcher(Matcher):
    """Compares one decomposed part of both URLs; unparsable URLs never match."""

    def part(self, request: RecordedRequest) -> Any:
        raise NotImplementedError

    def matches(self, request, candidate):
        try:
            return self.part(request) == self.part(candidate)
        except ValueError:
            return False


class HostMatcher(_URLPartMatcher):
    name = "host"

    def part(self, request):
        return request.host


class PathMatcher(_URLPartMatcher):
    name = "path"

    def part(self, request):
        return request.path


class QueryMatcher(_URLPartMatcher):
    name = "query"

    def part(self, request):
        return request.query_items


class HeadersMatcher(Matcher):
    """
    Compares the values of the given headers only.

    Names are looked up case-insensitively. A header missing on either
    side is a mismatch.
    """

    name = "headers"

    def __init__(self, names: Iterable[str]):
        self.names = list(names)

    def matches(self, request, candidate):
        for name in self.names:
            value = request.header(name)
            other = candidate.header(name)
            if value is None or other is None or value != other:
                return False
        return True

    def __repr__(self) -> str:
        return f"HeadersMatcher({self.names!r})"


class BodyMatcher(Matcher):
    """Compares raw body bytes. An absent body equals an empty one."""

    name = "body"

    def matches(self, request, candidate):
        return (request.body or b"") == (candidate.body or b"")


class CustomMatcher(Matcher):
    """
    Wraps an arbitrary predicate, e.g. a JSON-aware body comparison.

    Example:
        def same_json(request, candidate):
            return json.loads(request.body) == json.loads(candidate.body)

        matchers = MatcherSet([MethodMatcher(), PathMatcher(), CustomMatcher(same_json)])
    """

    name = "custom"

    def __init__(self, predicate: Predicate, name: Optional[str] = None):
        self.predicate = predicate
        if name:
            self.name = name

    def matches(self, request, candidate):
        return bool(self.predicate(request, candidate))

    def __repr__(self) -> str:
        return f"CustomMatcher({self.name!r})"


MATCHERS_BY_NAME = {
    'method': MethodMatcher,
    'url': URLMatcher,
    'host': HostMatcher,
    'path': PathMatcher,
    'query': QueryMatcher,
    'body': BodyMatcher,
}


class MatcherSet:
    """
    Ordered list of matchers combined with logical AND.

    An empty set matches every request.

    Example:
        matchers = MatcherSet.default()  # method + url
        entry = matchers.first_match(request, archive.entries)
    """

    def __init__(self, matchers: Iterable[Union[Matcher, Predicate]] = ()):
        self.matchers: List[Matcher] = [
            m if isinstance(m, Matcher) else CustomMatcher(m)
            for m in matchers
        ]

    @classmethod
    def default(cls) -> 'MatcherSet':
        """Method plus full URL, the strictest set; query changes are mismatches."""
        return cls([MethodMatcher(), URLMatcher()])

    @classmethod
    def from_names(cls, names: Iterable[Union[str, Dict[str, Any]]]) -> 'MatcherSet':
        """
        Build a set from configuration names.

        Args:
            names: Items like ``"method"`` or ``{"headers": ["Accept"]}``

        Raises:
            ValueError: For an unknown matcher name
        """
        matchers = []
        for item in names:
            if isinstance(item, dict):
                if set(item) != {'headers'}:
                    raise ValueError(f"Unknown matcher: {item!r}")
                header_names = item['headers']
                if isinstance(header_names, str):
                    header_names = [header_names]
                matchers.append(HeadersMatcher(header_names))
                continue

            key = str(item).strip().lower()
            if key not in MATCHERS_BY_NAME:
                raise ValueError(
                    f"Unknown matcher: {item!r}. "
                    f"Expected one of {sorted(MATCHERS_BY_NAME)} or {{'headers': [...]}}"
                )
            matchers.append(MATCHERS_BY_NAME[key]())

        return cls(matchers)

    def __iter__(self) -> Iterator[Matcher]:
        return iter(self.matchers)

    def __len__(self) -> int:
        return len(self.matchers)

    def __repr__(self) -> str:
        return f"MatcherSet({self.matchers!r})"

    @property
    def names(self) -> List[str]:
        return [m.name for m in self.matchers]

    def match(self, request: RecordedRequest, candidate: RecordedRequest) -> bool:
        """Check whether every matcher accepts the pair."""
        return all(m.matches(request, candidate) for m in self.matchers)

    def matches(self, request: RecordedRequest) -> bool:
        """
        Check every matcher against the request itself.

        Only meaningful for custom matchers; used as an opt-in filter to
        decide which requests get recorded.
        """
        return self.match(request, request)

    def first_match_index(
        self,
        request: RecordedRequest,
        entries: Sequence[Entry],
        skip: Container[int] = ()
    ) -> Optional[int]:
        """
        Find the index of the first entry whose request matches.

        Entries with an unparsable stored URL are skipped.

        Args:
            request: Incoming request
            entries: Candidate entries in archive order
            skip: Indices to ignore (consumed entries)

        Returns:
            Index into ``entries`` or None
        """
        for index, entry in enumerate(entries):
            if index in skip:
                continue
            if not URLComponents.is_absolute(entry.request.url):
                logger.warning(f"Skipping entry {index} with unparsable URL {entry.request.url!r}")
                continue
            if self.match(request, entry.request):
                return index
        return None

    def first_match(self, request: RecordedRequest, entries: Sequence[Entry]) -> Optional[Entry]:
        """Find the first entry whose request matches according to all matchers."""
        index = self.first_match_index(request, entries)
        return entries[index] if index is not None else None
