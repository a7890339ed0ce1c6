"""URL and request-shape checks applied before any network call.

This is a host deny-list, not an allow-list. IPv6 loopback/link-local
addresses and DNS names that resolve to private ranges are not caught.
"""

from typing import Optional
from urllib.parse import urlparse

from .errors import NoDocuments, TooManyDocuments

ALLOWED_SCHEMES = ("http", "https")
BLOCKED_HOSTS = ("localhost", "127.0.0.1", "0.0.0.0")
BLOCKED_PREFIXES = ("192.168.", "10.", "172.16.", "169.254.")
BLOCKED_SUBSTRINGS = ("internal", "local")

MAX_DOCUMENTS = 500
MAX_FILE_SIZE = 100 * 1024 * 1024


def check_url(url: str) -> Optional[str]:
    """Return the reason *url* is not admissible, or None if it may be fetched."""
    try:
        parsed = urlparse(url or "")
        hostname = (parsed.hostname or "").lower()
    except ValueError:
        return "Invalid or blocked URL: unparseable"

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return f"Invalid or blocked URL: scheme '{parsed.scheme}' not allowed"
    if not hostname:
        return "Invalid or blocked URL: missing host"
    if hostname in BLOCKED_HOSTS or hostname.startswith(BLOCKED_PREFIXES):
        return f"Invalid or blocked URL: private host '{hostname}'"
    if any(s in hostname for s in BLOCKED_SUBSTRINGS):
        return f"Invalid or blocked URL: internal host '{hostname}'"
    return None


def is_allowed_url(url: str) -> bool:
    return check_url(url) is None


def check_document_count(count: int, limit: int = MAX_DOCUMENTS):
    if count == 0:
        raise NoDocuments("No documents to download")
    if count > limit:
        raise TooManyDocuments(f"Too many documents (max {limit})", detail=f"received {count}")


def exceeds_size(size: int, limit: int = MAX_FILE_SIZE) -> bool:
    return size > limit
