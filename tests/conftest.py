"""Pytest configuration and shared fixtures for downmark tests."""

from collections.abc import Callable

import httpx
import pytest

from downmark.config import AppConfig
from downmark.models import FetchMethod, PageData


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Pure logic tests with no I/O, network, or browser")
    config.addinivalue_line(
        "markers",
        "e2e: End-to-end tests with live network, Playwright, or external services",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Default unmarked tests to unit."""
    for item in items:
        marker_names = [m.name for m in item.iter_markers()]
        if any(m in marker_names for m in ("unit", "e2e")):
            continue
        item.add_marker(pytest.mark.unit)


ARTICLE_TEXT = (
    "Rivers carve valleys over millions of years, moving sediment from mountains "
    "to the sea. The process is slow but relentless, and the shapes it leaves "
    "behind tell geologists how the landscape evolved across many ice ages."
)


@pytest.fixture
def app_config() -> AppConfig:
    """Default configuration with the browser challenge wait disabled."""
    config = AppConfig()
    config.browser.challenge_timeout_ms = 0
    return config


@pytest.fixture
def article_html() -> str:
    """A small page with chrome around a real article."""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <title>Rivers and Valleys</title>
  <meta name="description" content="How rivers shape land">
  <meta property="og:site_name" content="Geo Notes">
  <link rel="canonical" href="https://example.com/geo/rivers">
</head>
<body>
  <nav><a href="/">Home</a></nav>
  <header>Site header</header>
  <article>
    <h2>Erosion</h2>
    <p class="lead intro">{ARTICLE_TEXT}</p>
    <p><a href="/geo/lakes">Lakes</a> and <a href="https://other.org/x">elsewhere</a>.</p>
    <img src="img/valley.png" alt="Valley">
  </article>
  <aside class="sidebar">Related stuff</aside>
  <footer>Footer text</footer>
  <script>console.log("x")</script>
</body>
</html>"""


@pytest.fixture
def page_data_factory() -> Callable[..., PageData]:
    """Build PageData the way a lightweight fetch would."""

    def factory(html: str, **kwargs) -> PageData:
        kwargs.setdefault("method", FetchMethod.LIGHTWEIGHT)
        return PageData(html=html, **kwargs)

    return factory


@pytest.fixture
def html_transport() -> Callable[..., httpx.MockTransport]:
    """MockTransport answering every request with the given body."""

    def factory(
        body: str,
        status_code: int = 200,
        content_type: str = "text/html; charset=utf-8",
        calls: list[httpx.Request] | None = None,
    ) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            if calls is not None:
                calls.append(request)
            return httpx.Response(
                status_code, text=body, headers={"content-type": content_type}
            )

        return httpx.MockTransport(handler)

    return factory


@pytest.fixture
def article_text() -> str:
    return ARTICLE_TEXT


WIKI_PAGE = """<html><head><title>River - Wikipedia</title></head><body>
<h1 id="firstHeading">River</h1>
<div id="mw-content-text"><div class="mw-parser-output">
  <div class="hatnote">For other uses, see River (disambiguation).</div>
  <p>Short.</p>
  <p>A river is a natural flowing watercourse, usually freshwater, flowing towards an ocean, sea, lake or another river.<sup class="reference" id="cite_ref-1"><a href="#cite_note-1">[1]</a></sup></p>
  <h2>Topography<span class="mw-editsection">[edit]</span></h2>
  <p>Rivers <span class="citation-needed">[citation needed]</span> flow downhill.<sup id="cite_ref-FOOTNOTESmith_2-0">[2]</sup></p>
  <p><a href="/wiki/Lake">Lake</a> and <a href="#Topography">jump</a></p>
  <img src="//upload.wikimedia.org/river.jpg">
  <div class="navbox">Navigation box</div>
  <div id="toc">Contents</div>
</div></div>
</body></html>"""


@pytest.fixture
def wiki_page() -> str:
    """A Wikipedia article with the usual clutter."""
    return WIKI_PAGE
