"""URL pattern matching for renderer dispatch."""

from urllib.parse import urlparse


def matches_pattern(url: str, pattern: str) -> bool:
    """Check whether a URL matches a renderer pattern.

    Pattern forms:
        ``*``                  any parseable URL
        ``host/path``          exact host+path, case-insensitive
        ``host/path/*``        host+path prefix
        ``host``               exact hostname
        ``*.example.org``      any hostname ending in ``.example.org``
        ``example.*``          any hostname whose first label is ``example``

    Unparseable URLs and URLs without a hostname match nothing.
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        return False
    if not hostname:
        return False

    hostname = hostname.lower()
    full_path = f"{hostname}{parsed.path.lower()}"
    pattern = pattern.lower()

    if pattern == "*":
        return True

    if "/" in pattern:
        if full_path == pattern:
            return True
        if pattern.endswith("/*"):
            return full_path.startswith(pattern[:-2])
        return False

    if hostname == pattern:
        return True
    if pattern.startswith("*."):
        return hostname.endswith(pattern[1:])
    if pattern.endswith(".*"):
        return hostname.split(".")[0] == pattern[:-2]
    return False
