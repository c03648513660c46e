"""URL manipulation utilities."""

import posixpath
import re
from urllib.parse import urldefrag, urljoin, urlparse

from downmark.exceptions import InvalidUrl

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")

# Last path segments ending in one of these are files, not directories
FILE_EXTENSIONS = frozenset({
    "htm", "html", "xhtml", "shtml", "php", "asp", "aspx", "jsp", "cgi",
    "pdf", "txt", "md", "xml", "json",
    "png", "jpg", "jpeg", "gif", "svg", "webp", "avif", "ico",
})


def validate_url(url: str) -> str:
    """Return the URL stripped of whitespace, or raise InvalidUrl."""
    if not url or not url.strip():
        raise InvalidUrl(url or "", "URL is empty")
    url = url.strip()
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidUrl(url, str(e)) from e
    if parsed.scheme not in ("http", "https"):
        raise InvalidUrl(url, "scheme must be http or https")
    if not parsed.hostname:
        raise InvalidUrl(url, "missing hostname")
    return url


def ensure_scheme(url: str) -> str:
    """Prefix bare hostnames typed on the command line with https://."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        return f"https://{url}"
    return url


def get_hostname(url: str) -> str | None:
    """Lower-cased hostname, or None if the URL does not parse."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    return hostname.lower() if hostname else None


def is_absolute(url: str) -> bool:
    """True for scheme-qualified and protocol-relative URLs."""
    return url.startswith("//") or bool(_SCHEME_RE.match(url))


def normalize_base_url(url: str) -> str:
    """Treat extension-less final path segments as directories.

    ``https://site.org/docs/guide`` resolves ``img.png`` to
    ``/docs/guide/img.png``; ``https://site.org/docs/page.html`` keeps the
    usual sibling resolution.
    """
    parsed = urlparse(url)
    path = parsed.path
    if not path or path.endswith("/"):
        return parsed._replace(path=path or "/", fragment="").geturl()
    last_segment = posixpath.basename(path)
    _, ext = posixpath.splitext(last_segment)
    if ext and ext[1:].lower() in FILE_EXTENSIONS:
        return parsed._replace(fragment="").geturl()
    return parsed._replace(path=path + "/", fragment="").geturl()


def make_absolute(base_url: str, href: str) -> str:
    """Convert a potentially relative URL to absolute."""
    return urljoin(base_url, href)


def strip_fragment(url: str) -> str:
    """Drop the #fragment from a URL."""
    return urldefrag(url).url


def same_document(url1: str, url2: str) -> bool:
    """Check whether two URLs point at the same document, ignoring fragments."""
    a = urlparse(strip_fragment(url1))
    b = urlparse(strip_fragment(url2))
    return (
        a.scheme.lower() == b.scheme.lower()
        and a.netloc.lower() == b.netloc.lower()
        and (a.path or "/") == (b.path or "/")
        and a.query == b.query
    )
