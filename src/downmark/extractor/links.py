"""Link and image URL rewriting, and link inventory."""

from urllib.parse import quote, urldefrag, urlparse

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel

from downmark.utils.url_utils import is_absolute, make_absolute, normalize_base_url, same_document

SKIPPED_LINK_SCHEMES = ("mailto:", "tel:", "javascript:")

# Attributes attached to in-app navigation links
HTMX_TARGET = "#content"
HTMX_INDICATOR = "#loading"


class LinkInfo(BaseModel):
    """One outgoing link found on a page."""

    url: str
    text: str
    title: str | None = None


def _attr(el: Tag, name: str) -> str:
    value = el.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def _body_markup(soup: BeautifulSoup, original: str) -> str:
    """Serialize back in the shape the input came in: a document or a fragment."""
    lowered = original.lstrip()[:200].lower()
    if lowered.startswith("<!doctype") or lowered.startswith("<html"):
        return str(soup)
    body = soup.body
    if body is None:
        return str(soup)
    return body.decode_contents()


def _resolve(base: str, value: str) -> str:
    value = value.strip()
    if not value or value.startswith("data:") or is_absolute(value):
        return value
    try:
        return make_absolute(base, value)
    except ValueError:
        return value


def _absolute_http(url: str, href: str) -> str | None:
    """Resolve an anchor href, or None when it is not a usable http(s) URL."""
    try:
        absolute = make_absolute(url, href)
        scheme = urlparse(absolute).scheme
    except ValueError:
        return None
    return absolute if scheme in ("http", "https") else None


def split_srcset(srcset: str) -> list[tuple[str, str]]:
    """Split a srcset into ``(url, descriptor)`` candidates.

    A candidate URL runs up to the next whitespace, so commas inside it
    (``data:`` payloads) do not split. Trailing commas end the URL with no
    descriptor; otherwise the descriptor runs to the next comma outside
    parentheses.
    """
    candidates = []
    pos, length = 0, len(srcset)
    while pos < length:
        while pos < length and (srcset[pos].isspace() or srcset[pos] == ","):
            pos += 1
        if pos >= length:
            break

        start = pos
        while pos < length and not srcset[pos].isspace():
            pos += 1
        url = srcset[start:pos]

        descriptor = ""
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            start, depth = pos, 0
            while pos < length:
                ch = srcset[pos]
                if ch == "(":
                    depth += 1
                elif ch == ")" and depth:
                    depth -= 1
                elif ch == "," and not depth:
                    break
                pos += 1
            descriptor = " ".join(srcset[start:pos].split())

        if url:
            candidates.append((url, descriptor))
    return candidates


def _resolve_srcset(base: str, srcset: str) -> str:
    resolved = []
    for url, descriptor in split_srcset(srcset):
        url = _resolve(base, url)
        resolved.append(f"{url} {descriptor}" if descriptor else url)
    return ", ".join(resolved)


def transform_images_to_absolute(html: str, url: str) -> str:
    """Resolve relative image, picture source and SVG references.

    The page URL is normalized first so that an extension-less last path
    segment counts as a directory. ``data:`` and already-absolute values
    are left untouched, which makes the transform idempotent.
    """
    if not html:
        return html
    base = normalize_base_url(url)
    soup = BeautifulSoup(html, "lxml")

    for el in soup.find_all(["img", "source"]):
        if el.has_attr("src"):
            el["src"] = _resolve(base, _attr(el, "src"))
        if el.has_attr("srcset"):
            el["srcset"] = _resolve_srcset(base, _attr(el, "srcset"))

    # lxml's HTML parser keeps namespaced attribute names verbatim
    for el in soup.find_all(["image", "use"]):
        for name in ("href", "xlink:href"):
            if el.has_attr(name):
                el[name] = _resolve(base, _attr(el, name))

    return _body_markup(soup, html)


def transform_links_to_htmx(html: str, url: str) -> str:
    """Point every http(s) anchor back through the renderer.

    Same-document links that carry a fragment become bare ``#fragment``
    jumps. Everything else keeps an absolute ``href`` and gains ``hx-*``
    attributes that load the target into the content container.
    """
    if not html:
        return html
    soup = BeautifulSoup(html, "lxml")

    for a in soup.find_all("a", href=True):
        href = _attr(a, "href").strip()
        if not href or href.startswith("#"):
            continue
        absolute = _absolute_http(url, href)
        if absolute is None:
            continue

        target, fragment = urldefrag(absolute)
        if fragment and same_document(target, url):
            a["href"] = f"#{fragment}"
            continue

        a["href"] = absolute
        a["hx-get"] = f"/render?q={quote(absolute, safe='')}"
        a["hx-target"] = HTMX_TARGET
        a["hx-indicator"] = HTMX_INDICATOR
        a["hx-push-url"] = "false"

    return _body_markup(soup, html)


def extract_all_links(html: str, url: str) -> list[LinkInfo]:
    """List unique outgoing http(s) links in document order."""
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    seen: set[str] = set()
    links: list[LinkInfo] = []

    for a in soup.find_all("a", href=True):
        href = _attr(a, "href").strip()
        if not href or href.startswith("#") or href.lower().startswith(SKIPPED_LINK_SCHEMES):
            continue
        absolute = _absolute_http(url, href)
        if absolute is None:
            continue
        if absolute in seen:
            continue
        seen.add(absolute)

        title = _attr(a, "title").strip() or None
        links.append(
            LinkInfo(url=absolute, text=a.get_text(" ", strip=True), title=title)
        )

    return links
