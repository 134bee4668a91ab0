"""Validation and title helpers for Wikipedia article references."""

from typing import Iterable, Optional
from urllib.parse import unquote, urlsplit

DEFAULT_ALLOWED_HOSTS = ("en.wikipedia.org", "wikipedia.org")
ARTICLE_PATH_PREFIX = "/wiki/"
FALLBACK_TITLE = "Wikipedia Article"


def is_valid_wikipedia_url(
    reference: Optional[str], allowed_hosts: Iterable[str] = DEFAULT_ALLOWED_HOSTS
) -> bool:
    """Return True when ``reference`` points at an article on an allowed host.

    Hosts are compared exactly against the allow-list, so look-alike domains
    such as ``wikipedia.org.example.com`` are rejected. Malformed input never
    raises.
    """
    if not reference or not reference.strip():
        return False

    try:
        parts = urlsplit(reference.strip())
        hostname = parts.hostname
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return False

    if parts.scheme not in ("http", "https"):
        return False
    if not hostname or parts.username is not None or parts.password is not None:
        return False

    allowed = {host.lower() for host in allowed_hosts}
    if hostname.lower() not in allowed:
        return False

    return article_slug(parts.path) is not None


def article_slug(path: str) -> Optional[str]:
    """Return the raw article segment of a ``/wiki/<title>`` path, if any."""
    if not path.startswith(ARTICLE_PATH_PREFIX):
        return None
    slug = path[len(ARTICLE_PATH_PREFIX):]
    if not slug or slug.startswith("/") or slug.endswith("/"):
        return None
    return slug


def extract_title_from_url(reference: str) -> str:
    """Derive a display title from the last path segment of ``reference``."""
    try:
        parts = urlsplit(reference.strip())
    except (AttributeError, ValueError):
        return FALLBACK_TITLE

    if not parts.scheme or not parts.netloc:
        return FALLBACK_TITLE

    segment = parts.path.split("/")[-1]
    title = unquote(segment).replace("_", " ").strip()
    return title or FALLBACK_TITLE
