"""Page metadata extraction without a browser."""

from bs4 import BeautifulSoup


def extract_metadata(html: str) -> dict[str, str]:
    """Collect title, named/property meta tags, canonical link and language.

    Keys keep document order; later meta tags with the same name win.
    """
    metadata: dict[str, str] = {}
    if not html:
        return metadata

    soup = BeautifulSoup(html, "lxml")

    title_tag = soup.find("title")
    if title_tag:
        metadata["title"] = title_tag.get_text(strip=True)

    for meta in soup.find_all("meta"):
        name = meta.get("name") or meta.get("property")
        content = meta.get("content")
        if name and content:
            metadata[str(name)] = str(content)

    canonical = soup.find("link", rel="canonical")
    if canonical and canonical.get("href"):
        metadata["canonical"] = str(canonical["href"])

    html_tag = soup.find("html")
    if html_tag and html_tag.get("lang"):
        metadata["lang"] = str(html_tag["lang"])

    return metadata


def collect_css_classes(html: str) -> frozenset[str]:
    """Every class name used anywhere in the document."""
    if not html:
        return frozenset()
    soup = BeautifulSoup(html, "lxml")
    classes: set[str] = set()
    for el in soup.find_all(class_=True):
        value = el.get("class")
        classes.update(value.split() if isinstance(value, str) else value)
    return frozenset(classes)
