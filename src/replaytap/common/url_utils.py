"""
ReplayTap URL Utilities

Shared URL parsing and decomposition used by the archive codec and matchers.
"""

from urllib.parse import urlsplit, parse_qsl, SplitResult
from typing import List, Optional, Tuple


class URLComponents:
    """Decomposes an absolute URL into the parts matchers compare."""

    @staticmethod
    def split(url: str) -> SplitResult:
        """
        Split an absolute URL.

        Args:
            url: URL to split

        Returns:
            SplitResult of the URL

        Raises:
            ValueError: If the URL cannot be parsed or is not absolute
        """
        if not isinstance(url, str):
            raise ValueError(f"URL must be a string, got {type(url).__name__}")

        parsed = urlsplit(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Not an absolute URL: {url!r}")

        # Raises ValueError for an out-of-range or non-numeric port
        parsed.port
        return parsed

    @staticmethod
    def is_absolute(url: str) -> bool:
        """Check whether a URL parses as an absolute URL."""
        try:
            URLComponents.split(url)
        except ValueError:
            return False
        return True

    @staticmethod
    def host(url: str) -> Optional[str]:
        """Lower-cased host name of the URL."""
        return URLComponents.split(url).hostname

    @staticmethod
    def path(url: str) -> str:
        """Path of the URL (empty string when absent)."""
        return URLComponents.split(url).path

    @staticmethod
    def query_items(url: str) -> List[Tuple[str, str]]:
        """
        Decompose the query string into ordered name/value pairs.

        Order and multiplicity are preserved, so ``a=1&a=2`` and
        ``a=2&a=1`` produce different lists. A literal ``+`` stays a plus
        sign rather than being read as a space.
        """
        query = URLComponents.split(url).query.replace("+", "%2B")
        return parse_qsl(query, keep_blank_values=True)

