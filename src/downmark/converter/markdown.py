"""Built-in HTML to Markdown conversion."""

import re

from bs4 import BeautifulSoup, Tag
from markdownify import ATX
from markdownify import MarkdownConverter as BaseMarkdownConverter

CODE_LANGUAGES = frozenset({
    "python", "py", "javascript", "js", "typescript", "ts", "ruby", "go",
    "rust", "java", "cpp", "c", "bash", "shell", "json", "yaml", "xml",
    "html", "css", "sql", "latex", "tex",
})


def _classes(el: Tag) -> list[str]:
    raw: str | list[str] = el.get("class") or []
    return raw.split() if isinstance(raw, str) else list(raw)


def _attr_text(el: Tag, name: str) -> str:
    value = el.get(name) or ""
    return " ".join(value) if isinstance(value, list) else value.strip()


class MarkdownConverter(BaseMarkdownConverter):
    """GitHub-flavored output for rendered article fragments."""

    def __init__(self, **kwargs):
        super().__init__(
            heading_style=ATX,
            bullets="-",
            strong_em_symbol="*",
            **kwargs,
        )

    def convert_pre(self, el: Tag, text: str, parent_tags=None, **kwargs) -> str:
        """Fenced code blocks with the language taken from class names."""
        code = el.find("code")
        source = code if code is not None else el
        lang = self._extract_language(source) or self._extract_language(el)
        code_text = source.get_text()
        if not code_text.startswith("\n"):
            code_text = "\n" + code_text
        if not code_text.endswith("\n"):
            code_text = code_text + "\n"
        return f"\n```{lang}{code_text}```\n\n"

    def convert_code(self, el: Tag, text: str, parent_tags=None, **kwargs) -> str:
        if el.parent and el.parent.name == "pre":
            return text
        code_text = el.get_text()
        if "`" in code_text:
            return f"`` {code_text} ``"
        return f"`{code_text}`"

    def convert_a(self, el: Tag, text: str, parent_tags=None, **kwargs) -> str:
        """Footnote and in-page marker links keep only their text."""
        if "footnote-link" in _classes(el):
            return f"[^{text.strip()}]" if text.strip() else ""
        return super().convert_a(el, text, parent_tags=parent_tags, **kwargs)  # type: ignore[misc,no-any-return]

    def _extract_language(self, el: Tag) -> str:
        for cls in _classes(el):
            for prefix in ("language-", "lang-", "highlight-"):
                if cls.startswith(prefix):
                    return cls[len(prefix):]
            if cls in CODE_LANGUAGES:
                return cls
        return ""

    def convert_table(self, el: Tag, text: str, parent_tags=None, **kwargs) -> str:
        """Pipe tables; the first row becomes the header when it has <th> cells."""
        header_row = None
        thead = el.find("thead")
        if thead:
            header_row = thead.find("tr")
        else:
            first_row = el.find("tr")
            if first_row and first_row.find("th"):
                header_row = first_row

        rows = []
        width = 0
        if header_row:
            headers = [self._cell_text(cell) for cell in header_row.find_all(["th", "td"])]
            width = len(headers)
            rows.append("| " + " | ".join(headers) + " |")
            rows.append("| " + " | ".join(["---"] * width) + " |")

        for tr in el.find_all("tr"):
            if tr is header_row or tr.find_parent("table") is not el:
                continue
            cells = [self._cell_text(cell) for cell in tr.find_all(["th", "td"], recursive=False)]
            if not cells:
                continue
            if not rows:
                width = len(cells)
                rows.append("| " + " | ".join([""] * width) + " |")
                rows.append("| " + " | ".join(["---"] * width) + " |")
            rows.append("| " + " | ".join(cells) + " |")

        if rows:
            return "\n\n" + "\n".join(rows) + "\n\n"
        return ""

    def _cell_text(self, cell: Tag) -> str:
        text = cell.get_text(separator=" ", strip=True)
        return text.replace("\n", " ").replace("|", "\\|")

    def convert_img(self, el: Tag, text: str, parent_tags=None, **kwargs) -> str:
        """Images keep alt text and title; dimension attributes are dropped."""
        src = _attr_text(el, "src")
        if not src:
            return ""
        alt = _attr_text(el, "alt").replace("]", "\\]")
        title = _attr_text(el, "title").replace('"', '\\"')
        return f'![{alt}]({src} "{title}")' if title else f"![{alt}]({src})"

    def convert_svg(self, el: Tag, text: str, parent_tags=None, **kwargs) -> str:
        return ""


def html_to_markdown(html: str) -> str:
    """Convert an HTML fragment or document to Markdown."""
    if not html:
        return ""

    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all(["script", "style", "noscript"]):
        tag.decompose()
    for panel in soup.select("#metadata-panel"):
        panel.decompose()

    markdown = MarkdownConverter().convert_soup(soup)
    markdown = re.sub(r"[\u200B\u200C\u200D\uFEFF]", "", markdown)
    markdown = re.sub(r"\n{3,}", "\n\n", markdown)
    return markdown.strip()
