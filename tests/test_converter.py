"""Tests for the built-in converter, frontmatter and the conversion service client."""

import json
from datetime import datetime, timezone

import httpx
import pytest
import yaml

from downmark.config import ConversionConfig
from downmark.converter import (
    ConversionClient,
    ConversionRequest,
    generate_frontmatter,
    html_to_markdown,
)
from downmark.converter.frontmatter import with_frontmatter
from downmark.exceptions import ConversionFailed, ConversionServiceUnavailable


class TestHtmlToMarkdown:
    """Tests for html_to_markdown."""

    def test_headings_and_links(self) -> None:
        md = html_to_markdown('<h2>Section</h2><p>See <a href="https://example.com">here</a>.</p>')

        assert "## Section" in md
        assert "[here](https://example.com)" in md

    def test_code_block_language(self) -> None:
        md = html_to_markdown('<pre><code class="language-python">print("hi")</code></pre>')

        assert '```python\nprint("hi")\n```' in md

    def test_table_with_header(self) -> None:
        html = (
            "<table><thead><tr><th>Name</th><th>Flow</th></tr></thead>"
            "<tbody><tr><td>Nile</td><td>2830</td></tr></tbody></table>"
        )
        md = html_to_markdown(html)

        assert "| Name | Flow |\n| --- | --- |\n| Nile | 2830 |" in md

    def test_footnote_links(self) -> None:
        md = html_to_markdown('<p>Claim<a class="footnote-link" href="#footnote-f1">2</a></p>')

        assert "Claim[^2]" in md

    def test_strips_scripts_panel_and_zero_width(self) -> None:
        html = (
            '<div id="metadata-panel"><span>Renderer: default</span></div>'
            "<script>alert(1)</script><p>Zero\u200bwidth</p>"
        )
        md = html_to_markdown(html)

        assert md == "Zerowidth"

    def test_images_and_svg(self) -> None:
        md = html_to_markdown('<img src="https://e.com/a.png" alt="A" title="T"><svg><path d="M0"/></svg>')

        assert md == '![A](https://e.com/a.png "T")'

    def test_empty(self) -> None:
        assert html_to_markdown("") == ""


class TestFrontmatter:
    """Tests for generate_frontmatter."""

    FETCHED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def load(self, fm: str) -> dict:
        lines = fm.split("\n")
        assert lines[0] == "---"
        assert lines[-1] == "---"
        return yaml.safe_load("\n".join(lines[1:-1]))

    def test_priority_keys_first_and_safe_keys(self) -> None:
        metadata = {
            "viewport": "width=device-width",
            "og:title": 'The "Best" Page',
            "title": "Best Page",
            "twitter card": "summary",
        }

        fm = generate_frontmatter(metadata, [], "https://example.com/", self.FETCHED_AT)
        data = self.load(fm)

        assert list(data) == ["source", "fetched_at", "title", "og_title", "viewport", "twitter_card"]
        assert data["source"] == "https://example.com/"
        assert data["fetched_at"] == "2024-05-01T12:00:00Z"
        assert data["og_title"] == 'The "Best" Page'

    @pytest.mark.parametrize(
        "title",
        [
            "Paths like C:\\Users\\docs",
            "Line one\nline two",
            "key: value # not a comment",
            "- looks like a list",
            "Ünïcödé ✓",
        ],
    )
    def test_values_round_trip(self, title: str) -> None:
        fm = generate_frontmatter({"title": title}, [], "https://example.com/", self.FETCHED_AT)

        assert self.load(fm)["title"] == title

    def test_css_classes_capped(self) -> None:
        classes = {f"c{i:03d}" for i in range(60)}

        fm = generate_frontmatter({}, classes, "https://example.com/", self.FETCHED_AT)
        data = self.load(fm)

        assert data["css_classes"][0] == "c000"
        assert len(data["css_classes"]) == 50
        assert "# ... and 10 more" in fm.split("\n")

    def test_with_frontmatter(self) -> None:
        assert with_frontmatter("# Body", "---\n---") == "---\n---\n\n# Body"


class TestConversionClient:
    """Tests for ConversionClient."""

    def make_client(self, handler) -> ConversionClient:
        return ConversionClient(
            ConversionConfig(service_url="http://convert.local/"),
            transport=httpx.MockTransport(handler),
        )

    def test_request_payload_uses_service_names(self) -> None:
        payload = ConversionRequest(html="<p>x</p>", extra_args=["--wrap=none"]).payload()

        assert payload == {"html": "<p>x</p>", "from": "html", "to": "markdown", "extraArgs": ["--wrap=none"]}

    @pytest.mark.asyncio
    async def test_health_check_caches_result(self) -> None:
        client = self.make_client(lambda request: httpx.Response(200, json={"status": "healthy"}))

        assert client.available is None
        assert await client.health_check() is True
        assert client.available is True
        await client.close()

    @pytest.mark.asyncio
    async def test_unreachable_service_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = self.make_client(handler)

        assert await client.health_check() is False
        assert client.available is False
        await client.close()

    @pytest.mark.asyncio
    async def test_convert(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/convert"
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "markdown": "# Hi", "length": 4})

        async with self.make_client(handler) as client:
            markdown = await client.convert("<h1>Hi</h1>")

        assert markdown == "# Hi"
        assert seen[0]["from"] == "html"
        assert seen[0]["to"] == "markdown"

    @pytest.mark.asyncio
    async def test_convert_fails_fast_when_unavailable(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"success": True, "markdown": "x"})

        client = self.make_client(handler)
        client.available = False

        with pytest.raises(ConversionServiceUnavailable):
            await client.convert("<p>x</p>")
        assert calls == []
        await client.close()

    @pytest.mark.asyncio
    async def test_error_payload_raises(self) -> None:
        client = self.make_client(
            lambda request: httpx.Response(500, json={"success": False, "error": "pandoc crashed"})
        )

        with pytest.raises(ConversionFailed, match="pandoc crashed"):
            await client.convert("<p>x</p>")
        await client.close()

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self) -> None:
        client = self.make_client(lambda request: httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(ConversionFailed):
            await client.convert("<p>x</p>")
        await client.close()

    @pytest.mark.asyncio
    async def test_convert_batch(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/convert/batch"
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"success": True, "markdown": f"doc {i}"}
                        for i, _ in enumerate(body["conversions"])
                    ]
                },
            )

        async with self.make_client(handler) as client:
            results = await client.convert_batch(
                [ConversionRequest(html="<p>a</p>"), ConversionRequest(html="<p>b</p>")]
            )

        assert [r.markdown for r in results] == ["doc 0", "doc 1"]

    @pytest.mark.asyncio
    async def test_empty_markdown_is_a_result(self) -> None:
        client = self.make_client(
            lambda request: httpx.Response(200, json={"success": True, "markdown": "", "length": 0})
        )

        assert await client.convert("<p></p>") == ""
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [{"markdown": "x"}, {"success": "maybe"}, ["not", "an", "object"]],
    )
    async def test_malformed_payload_raises_conversion_failed(self, payload) -> None:
        client = self.make_client(lambda request: httpx.Response(200, json=payload))

        with pytest.raises(ConversionFailed, match="malformed"):
            await client.convert("<p>x</p>")
        await client.close()

    @pytest.mark.asyncio
    async def test_malformed_batch_raises_conversion_failed(self) -> None:
        client = self.make_client(lambda request: httpx.Response(200, json={"results": "nope"}))

        with pytest.raises(ConversionFailed, match="malformed"):
            await client.convert_batch([ConversionRequest(html="<p>a</p>")])
        await client.close()
