"""HTTP surface: HTML fragments for an htmx front end, plus JSON views."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import quote, urlparse

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response

from downmark import __version__
from downmark.config import AppConfig, ConverterKind
from downmark.exceptions import (
    ConversionServiceUnavailable,
    DownmarkError,
    InvalidUrl,
    RendererNotFound,
)
from downmark.fetcher.browser import BrowserSession
from downmark.models import CssInfo, FetchOptions, ImageInfo, VisibilityInfo
from downmark.orchestrator import Pipeline
from downmark.renderers.base import escape

logger = logging.getLogger(__name__)

CSS_PREVIEW_LIMIT = 5000


def target_url(q: str | None = None) -> str:
    """Query parameter carrying the page to work on."""
    if not q or not q.strip():
        raise InvalidUrl("", "Missing 'q' parameter with URL")
    return q.strip()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def css_stats_fragment(url: str, css_info: CssInfo) -> str:
    css = css_info.extracted_css
    preview = css
    if len(css) > CSS_PREVIEW_LIMIT:
        preview = css[:CSS_PREVIEW_LIMIT] + "\n\n/* ... CSS truncated for preview ... */"
    blocked_note = ""
    if css_info.blocked_stylesheets > 0:
        blocked_note = (
            '<p class="css-note"><strong>Note:</strong> Some stylesheets are blocked by '
            "CORS and could not be extracted. The original &lt;link&gt; tags are "
            "preserved in the HTML.</p>"
        )
    return (
        '<div class="css-stats">'
        "<h3>CSS Information</h3>"
        f"<p><strong>Stylesheets:</strong> {css_info.total_stylesheets}</p>"
        f"<p><strong>Inline Styles:</strong> {css_info.total_inline_styles}</p>"
        f"<p><strong>Blocked by CORS:</strong> {css_info.blocked_stylesheets}</p>"
        f"<p><strong>Total Size:</strong> {len(css) / 1024:.2f} KB</p>"
        f"{blocked_note}"
        f'<a href="/css?q={quote(url, safe="")}" download class="download-css-btn">'
        "Download CSS File</a>"
        "</div>"
        f'<pre class="css-preview">{escape(preview)}</pre>'
    )


def _stat(label: str, value: object, extra_class: str = "") -> str:
    css_class = f"stat-item {extra_class}".strip()
    return (
        f'<div class="{css_class}"><span class="stat-label">{label}:</span>'
        f'<span class="stat-value">{value}</span></div>'
    )


def image_stats_fragment(info: ImageInfo) -> str:
    stats = "".join([
        _stat("Total Images", info.total_images),
        _stat("Images with Dimensions", f"{info.images_with_dimensions} / {info.total_images}"),
        _stat("Dimensions Added", info.images_added),
        _stat("Total SVGs", info.total_svgs),
        _stat("SVGs with Dimensions", f"{info.svgs_with_dimensions} / {info.total_svgs}"),
        _stat("SVG Dimensions Added", info.svgs_added),
    ])
    return (
        '<div class="image-stats"><h3>Image Information</h3>'
        f'<div class="stat-grid">{stats}</div></div>'
    )


def visibility_stats_fragment(info: VisibilityInfo) -> str:
    not_visible = info.hidden_elements + info.invisible_elements + info.zero_opacity_elements
    share = (not_visible / info.total_elements * 100) if info.total_elements else 0.0
    stats = "".join([
        _stat("Total Elements", info.total_elements),
        _stat("Visible", info.total_elements - not_visible, "stat-success"),
        _stat("display:none", info.hidden_elements, "stat-warning"),
        _stat("visibility:hidden", info.invisible_elements, "stat-warning"),
        _stat("opacity:0", info.zero_opacity_elements, "stat-warning"),
        _stat("Off-screen/Collapsed", info.offscreen_elements, "stat-info"),
    ])
    return (
        '<div class="visibility-stats"><h3>Element Visibility Analysis</h3>'
        f'<p class="visible-percentage">{info.visible_percentage}% visible</p>'
        f'<div class="stat-grid">{stats}</div>'
        '<div class="info-note"><p>Hidden elements are marked with '
        "<code>data-display-none</code>, <code>data-visibility-hidden</code>, or "
        "<code>data-opacity-zero</code> attributes</p>"
        f"<p>{not_visible} elements ({share:.1f}%) are not visible but still in the HTML</p>"
        "</div></div>"
    )


def create_app(config: AppConfig | None = None, pipeline: Pipeline | None = None) -> FastAPI:
    """Build the FastAPI app.

    The pipeline is created in the lifespan unless one is passed in; the
    shared browser session is closed exactly once on shutdown.
    """
    config = config or AppConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = pipeline or Pipeline(config)
        app.state.pipeline = active
        await active.conversion.health_check()
        logger.info("Server ready on %s:%d", config.server.host, config.server.port)
        try:
            yield
        finally:
            logger.info("Shutting down, closing browser")
            await active.close()
            await BrowserSession.shutdown_shared()

    app = FastAPI(title="downmark", version=__version__, lifespan=lifespan)

    def get_pipeline(request: Request) -> Pipeline:
        return request.app.state.pipeline

    @app.exception_handler(InvalidUrl)
    async def invalid_url_handler(request: Request, exc: InvalidUrl) -> JSONResponse:
        return _error(exc.message, 400)

    @app.exception_handler(RendererNotFound)
    async def renderer_not_found_handler(request: Request, exc: RendererNotFound) -> JSONResponse:
        return _error(exc.message, 400)

    @app.exception_handler(ConversionServiceUnavailable)
    async def conversion_unavailable_handler(
        request: Request, exc: ConversionServiceUnavailable
    ) -> JSONResponse:
        return _error(
            "Conversion service is not available. Check PANDOC_SERVICE_URL.", 503
        )

    @app.exception_handler(DownmarkError)
    async def downmark_error_handler(request: Request, exc: DownmarkError) -> JSONResponse:
        logger.warning("Request %s failed: %s", request.url.path, exc.message)
        return _error(exc.message, 500)

    @app.get("/health")
    async def health(pipeline: Pipeline = Depends(get_pipeline)):
        return {
            "status": "healthy",
            "version": __version__,
            "conversion_service": bool(pipeline.conversion.available),
        }

    @app.get("/render", response_class=HTMLResponse)
    async def render(
        url: str = Depends(target_url),
        renderer: str | None = None,
        css: bool = False,
        pipeline: Pipeline = Depends(get_pipeline),
    ):
        # Unknown renderer names are rejected before any fetch
        pipeline.resolve_renderer(url, renderer)
        fragment = await pipeline.render_fragment(
            url, renderer, FetchOptions(extract_css=css)
        )
        return HTMLResponse(fragment)

    @app.get("/original", response_class=HTMLResponse)
    async def original(
        url: str = Depends(target_url), pipeline: Pipeline = Depends(get_pipeline)
    ):
        return HTMLResponse(await pipeline.original_fragment(url))

    @app.get("/links")
    async def links(
        url: str = Depends(target_url),
        format: str = "json",
        pipeline: Pipeline = Depends(get_pipeline),
    ):
        found = await pipeline.links(url)
        if format == "text":
            return PlainTextResponse("\n".join(link.url for link in found))
        if format == "queryparams":
            return PlainTextResponse(
                "&".join(f"url={quote(link.url, safe='')}" for link in found)
            )
        return {
            "url": url,
            "totalLinks": len(found),
            "links": [link.model_dump(exclude_none=True) for link in found],
        }

    @app.get("/css")
    async def css(
        url: str = Depends(target_url),
        format: str = "css",
        pipeline: Pipeline = Depends(get_pipeline),
    ):
        css_info = await pipeline.css(url)
        if format == "json":
            return HTMLResponse(css_stats_fragment(url, css_info))
        hostname = urlparse(url).hostname or "page"
        return Response(
            css_info.extracted_css,
            media_type="text/css",
            headers={"Content-Disposition": f'attachment; filename="styles-{hostname}.css"'},
        )

    @app.get("/images", response_class=HTMLResponse)
    async def images(url: str = Depends(target_url), pipeline: Pipeline = Depends(get_pipeline)):
        return HTMLResponse(image_stats_fragment(await pipeline.images(url)))

    @app.get("/visibility", response_class=HTMLResponse)
    async def visibility(
        url: str = Depends(target_url), pipeline: Pipeline = Depends(get_pipeline)
    ):
        return HTMLResponse(visibility_stats_fragment(await pipeline.visibility(url)))

    @app.get("/renderers")
    async def renderers(pipeline: Pipeline = Depends(get_pipeline)):
        return {
            "renderers": [
                {
                    "name": r.name,
                    "description": r.description,
                    "patterns": r.patterns,
                    "priority": r.priority,
                }
                for r in pipeline.registry.all_renderers()
            ]
        }

    @app.get("/markdown")
    async def markdown(
        request: Request,
        url: str = Depends(target_url),
        pandoc: bool = True,
        readability: bool = False,
        pipeline: Pipeline = Depends(get_pipeline),
    ):
        converter = ConverterKind.SERVICE if pandoc else ConverterKind.BUILTIN
        document = await pipeline.to_markdown(url, converter=converter, readability=readability)
        if "application/json" in request.headers.get("accept", ""):
            return {
                "url": document.url,
                "markdown": document.markdown,
                "metadata": document.metadata,
                "rendererUsed": document.renderer_used,
                "converterUsed": "pandoc" if converter == ConverterKind.SERVICE else "built-in",
            }
        return Response(document.markdown, media_type="text/markdown; charset=utf-8")

    return app


def serve(config: AppConfig) -> None:
    """Run the server until interrupted."""
    import uvicorn

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        timeout_graceful_shutdown=config.server.graceful_timeout_seconds,
        log_config=None,
    )
