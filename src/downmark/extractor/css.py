"""Stylesheet assembly, consolidation and scoping."""

import re
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from downmark.models import CssInfo

CONSOLIDATED_SOURCE = "consolidated-css"

# url(...) references that are neither data URIs nor already absolute
_RELATIVE_URL_RE = re.compile(
    r"""url\(\s*(['"]?)(?!data:|[a-zA-Z][a-zA-Z0-9+.-]*:|//|#)([^'")]+)\1\s*\)"""
)
_GLOBAL_SELECTOR_RE = re.compile(r"^(html|body|:root)(\s|$|,)")


def _absolutize_urls(css_text: str, base: str) -> str:
    return _RELATIVE_URL_RE.sub(
        lambda m: f"url({m.group(1)}{urljoin(base, m.group(2).strip())}{m.group(1)})",
        css_text,
    )


def assemble_css(
    sheets: list[dict[str, Any]],
    inline_styles: list[dict[str, str]],
    page_url: str,
    total_inline_styles: int | None = None,
) -> CssInfo:
    """Join stylesheet rules and inline styles into one CSS document.

    Args:
        sheets: One entry per stylesheet: ``{"href", "cssText", "blocked"}``.
            Blocked (cross-origin) sheets become a comment naming the href.
        inline_styles: ``{"selector", "style"}`` pairs taken from ``style``
            attributes; identical declarations per selector are kept once.
        page_url: Relative ``url(...)`` references resolve against this
            page's directory.
        total_inline_styles: Element count to report; defaults to the
            number of inline entries.
    """
    parts: list[str] = []
    blocked = 0

    for sheet in sheets:
        if sheet.get("blocked"):
            blocked += 1
            parts.append(f"/* External stylesheet blocked by CORS: {sheet.get('href') or ''} */")
            continue
        css_text = sheet.get("cssText") or ""
        if css_text:
            parts.append(_absolutize_urls(css_text, page_url))

    grouped: dict[str, list[str]] = {}
    for entry in inline_styles:
        selector = entry.get("selector", "").strip()
        style = entry.get("style", "").strip()
        if not selector or not style:
            continue
        styles = grouped.setdefault(selector, [])
        if style not in styles:
            styles.append(style)

    extracted = "\n\n".join(parts)
    if grouped:
        rules = [
            f"{selector} {{ {_absolutize_urls(style, page_url)} }}"
            for selector, styles in grouped.items()
            for style in styles
        ]
        extracted += "\n\n/* Inline Styles */\n" + "\n".join(rules)

    return CssInfo(
        total_stylesheets=len(sheets),
        total_inline_styles=(
            total_inline_styles if total_inline_styles is not None else len(inline_styles)
        ),
        blocked_stylesheets=blocked,
        extracted_css=extracted,
    )


def consolidate_styles(html: str, css: str) -> str:
    """Replace the document's own <style> tags with one consolidated tag."""
    soup = BeautifulSoup(html, "lxml")

    for style in soup.find_all("style"):
        if not style.has_attr("data-source") or style["data-source"] == CONSOLIDATED_SOURCE:
            style.decompose()

    if soup.html is None:
        return html
    head = soup.head
    if head is None:
        head = soup.new_tag("head")
        soup.html.insert(0, head)

    tag = soup.new_tag("style", attrs={"data-source": CONSOLIDATED_SOURCE})
    tag.string = css
    head.append(tag)
    return str(soup)


def split_selectors(selector_text: str) -> list[str]:
    """Split a selector list on top-level commas only.

    Commas inside ``()`` or ``[]`` (``:is(a, b)``, ``[data-x="a,b"]``)
    belong to one selector.
    """
    selectors: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []

    for char in selector_text:
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth = max(depth - 1, 0)
        elif char == "," and depth == 0:
            selectors.append("".join(current))
            current = []
            continue
        current.append(char)

    selectors.append("".join(current))
    return selectors


def scope_selector(selector: str, container: str = "#content") -> str:
    """Confine one selector to the container element."""
    trimmed = selector.strip()
    if container in trimmed:
        return trimmed
    if _GLOBAL_SELECTOR_RE.match(trimmed):
        return _GLOBAL_SELECTOR_RE.sub(lambda m: container + m.group(2), trimmed, count=1)
    return f"{container} {trimmed}"


def scope_css(css: str, container: str = "#content") -> str:
    """Prefix every rule's selectors so they only apply inside ``container``.

    Works line by line: a rule is recognized by an opening brace on a line
    that does not start an at-rule. Comments, blank lines and
    ``@media``/``@supports`` headers pass through unchanged.
    """
    lines = []
    for line in css.split("\n"):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("/*"):
            lines.append(line)
            continue
        if trimmed.startswith("@media") or trimmed.startswith("@supports"):
            lines.append(line)
            continue
        if "{" in line and not trimmed.startswith("@"):
            selector_text, rest = line.split("{", 1)
            scoped = ", ".join(
                scope_selector(s, container)
                for s in split_selectors(selector_text)
                if s.strip()
            )
            if scoped:
                lines.append(f"{scoped} {{ {rest.lstrip()}")
                continue
        lines.append(line)
    return "\n".join(lines)
