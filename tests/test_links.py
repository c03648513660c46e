"""Tests for link and image URL transforms."""

from urllib.parse import quote

import pytest
from bs4 import BeautifulSoup

from downmark.extractor import extract_all_links, transform_images_to_absolute, transform_links_to_htmx
from downmark.extractor.links import split_srcset
from downmark.utils import normalize_base_url


class TestNormalizeBaseUrl:
    """Tests for normalize_base_url."""

    def test_extensionless_segment_is_a_directory(self) -> None:
        assert normalize_base_url("https://site.org/docs/guide") == "https://site.org/docs/guide/"

    def test_file_segment_kept(self) -> None:
        assert normalize_base_url("https://site.org/docs/page.html") == "https://site.org/docs/page.html"

    def test_trailing_slash_kept(self) -> None:
        assert normalize_base_url("https://site.org/docs/") == "https://site.org/docs/"


class TestTransformImages:
    """Tests for transform_images_to_absolute."""

    def test_relative_src_resolves_against_directory(self) -> None:
        html = transform_images_to_absolute('<img src="a.png">', "https://site.org/docs/guide")

        assert 'src="https://site.org/docs/guide/a.png"' in html

    def test_data_and_absolute_untouched(self) -> None:
        html = (
            '<img src="data:image/png;base64,AAAA">'
            '<img src="//cdn.example.com/x.png">'
            '<img src="https://cdn.example.com/y.png">'
        )
        out = transform_images_to_absolute(html, "https://site.org/page.html")

        assert "data:image/png;base64,AAAA" in out
        assert 'src="//cdn.example.com/x.png"' in out
        assert 'src="https://cdn.example.com/y.png"' in out

    def test_srcset_keeps_descriptors(self) -> None:
        html = '<picture><source srcset="s.webp 1x, l.webp 2x"><img src="s.png"></picture>'
        out = transform_images_to_absolute(html, "https://site.org/a/")

        assert "https://site.org/a/s.webp 1x, https://site.org/a/l.webp 2x" in out

    def test_srcset_keeps_data_uri_candidates_whole(self) -> None:
        html = '<img srcset="data:image/png;base64,iVBORw0KGgo= 1x, big.png 2x">'
        out = transform_images_to_absolute(html, "https://site.org/docs/guide")
        img = BeautifulSoup(out, "lxml").find("img")

        assert img["srcset"] == (
            "data:image/png;base64,iVBORw0KGgo= 1x, https://site.org/docs/guide/big.png 2x"
        )

    def test_svg_references(self) -> None:
        html = '<svg><use href="icons.svg#x"></use><image xlink:href="pic.png"></image></svg>'
        out = transform_images_to_absolute(html, "https://site.org/a/")
        soup = BeautifulSoup(out, "lxml")

        assert soup.find("use")["href"] == "https://site.org/a/icons.svg#x"
        assert soup.find("image")["xlink:href"] == "https://site.org/a/pic.png"

    def test_idempotent(self) -> None:
        url = "https://site.org/docs/guide"
        once = transform_images_to_absolute('<img src="a.png" srcset="b.png 2x">', url)

        assert transform_images_to_absolute(once, url) == once

    def test_full_document_stays_a_document(self, article_html: str) -> None:
        out = transform_images_to_absolute(article_html, "https://example.com/geo/rivers")

        assert out.lstrip().lower().startswith("<!doctype html>")
        assert "https://example.com/geo/rivers/img/valley.png" in out


class TestTransformLinks:
    """Tests for transform_links_to_htmx."""

    def test_external_link_gets_htmx_attributes(self) -> None:
        out = transform_links_to_htmx('<a href="/next">Next</a>', "https://site.org/page")
        a = BeautifulSoup(out, "lxml").find("a")

        assert a["href"] == "https://site.org/next"
        assert a["hx-get"] == f"/render?q={quote('https://site.org/next', safe='')}"
        assert a["hx-target"] == "#content"
        assert a["hx-indicator"] == "#loading"
        assert a["hx-push-url"] == "false"

    def test_same_page_fragment_becomes_local_jump(self) -> None:
        url = "https://site.org/page"
        out = transform_links_to_htmx(f'<a href="{url}#intro">Intro</a>', url)
        a = BeautifulSoup(out, "lxml").find("a")

        assert a["href"] == "#intro"
        assert not a.has_attr("hx-get")

    def test_non_http_and_pure_fragments_untouched(self) -> None:
        html = '<a href="mailto:a@b.c">Mail</a><a href="#top">Top</a>'
        out = transform_links_to_htmx(html, "https://site.org/page")
        anchors = BeautifulSoup(out, "lxml").find_all("a")

        assert anchors[0]["href"] == "mailto:a@b.c"
        assert anchors[1]["href"] == "#top"
        assert not any(a.has_attr("hx-get") for a in anchors)

    def test_malformed_href_left_alone(self) -> None:
        html = '<a href="http://[broken/x">bad</a><a href="/next">Next</a>'
        out = transform_links_to_htmx(html, "https://site.org/page")
        anchors = BeautifulSoup(out, "lxml").find_all("a")

        assert anchors[0]["href"] == "http://[broken/x"
        assert not anchors[0].has_attr("hx-get")
        assert anchors[1]["href"] == "https://site.org/next"

    def test_idempotent(self) -> None:
        url = "https://site.org/page"
        once = transform_links_to_htmx('<a href="/x">X</a><a href="/page#s">S</a>', url)

        assert transform_links_to_htmx(once, url) == once


class TestExtractAllLinks:
    """Tests for extract_all_links."""

    def test_deduplicates_and_filters(self) -> None:
        html = """
        <a href="/a" title="First A">A</a>
        <a href="https://site.org/a">A again</a>
        <a href="mailto:x@y.z">mail</a>
        <a href="tel:123">tel</a>
        <a href="javascript:void(0)">js</a>
        <a href="#frag">frag</a>
        <a href="ftp://files.site.org/f">ftp</a>
        <a href="b">B</a>
        """
        links = extract_all_links(html, "https://site.org/dir/")

        assert [link.url for link in links] == ["https://site.org/a", "https://site.org/dir/b"]
        assert links[0].text == "A"
        assert links[0].title == "First A"
        assert links[1].title is None

    def test_empty_html(self) -> None:
        assert extract_all_links("", "https://site.org/") == []

    def test_malformed_href_skipped(self) -> None:
        html = '<a href="http://[broken/x">bad</a><a href="/ok">ok</a>'

        links = extract_all_links(html, "https://site.org/")

        assert [link.url for link in links] == ["https://site.org/ok"]


class TestSplitSrcset:
    """Tests for split_srcset."""

    @pytest.mark.parametrize(
        "srcset, expected",
        [
            ("a.png 1x, b.png 2x", [("a.png", "1x"), ("b.png", "2x")]),
            ("a.png,b.png 2x", [("a.png,b.png", "2x")]),
            ("a.png, b.png", [("a.png", ""), ("b.png", "")]),
            ("a.png,  , b.png 480w", [("a.png", ""), ("b.png", "480w")]),
            ("data:image/gif;base64,R0lG 1x", [("data:image/gif;base64,R0lG", "1x")]),
            ("  ", []),
        ],
    )
    def test_candidates(self, srcset: str, expected: list[tuple[str, str]]) -> None:
        assert split_srcset(srcset) == expected
