"""Command-line interface for downmark."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional, TypeVar
from urllib.parse import quote

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from downmark import __version__
from downmark.config import AppConfig, ConverterKind
from downmark.exceptions import ConfigError, DownmarkError
from downmark.extractor.css import scope_css
from downmark.fetcher.browser import BrowserSession
from downmark.models import FetchOptions
from downmark.orchestrator import Pipeline
from downmark.output import write_document
from downmark.renderers.registry import build_registry
from downmark.utils.url_utils import ensure_scheme

T = TypeVar("T")

app = typer.Typer(
    name="downmark",
    help="Fetch web pages and render them as clean HTML fragments or Markdown.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool = False) -> None:
    """Route log records through Rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )
    for name in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)


def version_callback(value: bool):
    if value:
        console.print(f"downmark version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file; environment variables override it.",
        exists=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Adaptive page retrieval with per-site rendering."""
    try:
        base = AppConfig.from_toml(config_file) if config_file else None
        config = AppConfig.from_env(base)
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(1) from e
    config.verbose = verbose or config.verbose
    configure_logging(config.verbose)
    ctx.obj = config


def _run(config: AppConfig, job: Callable[[Pipeline], Awaitable[T]]) -> T:
    """Run one pipeline job, always shutting the browser down afterwards."""

    async def runner() -> T:
        try:
            async with Pipeline(config) as pipeline:
                return await job(pipeline)
        finally:
            await BrowserSession.shutdown_shared()

    try:
        return asyncio.run(runner())
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)
    except DownmarkError as e:
        err_console.print(f"[red]Error: {e.message}[/red]")
        if config.verbose:
            err_console.print_exception()
        raise typer.Exit(1)


def _emit(content: str, output: Path | None, suffix: str) -> None:
    if output is None:
        console.print(content, markup=False, highlight=False, soft_wrap=True)
        return
    path = asyncio.run(write_document(output, content, suffix))
    err_console.print(f"[green]Wrote {path}[/green]")


@app.command()
def render(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Page to render"),
    renderer: Optional[str] = typer.Option(
        None, "--renderer", "-r", help="Use this renderer instead of URL dispatch"
    ),
    browser: bool = typer.Option(False, "--browser", "-b", help="Always fetch with the browser"),
    css: bool = typer.Option(False, "--css", help="Include the page's scoped stylesheets"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file"),
):
    """Render a page to an HTML fragment."""
    config: AppConfig = ctx.obj
    options = FetchOptions(force_browser=browser, extract_css=css)
    fragment = _run(
        config,
        lambda p: p.render_fragment(ensure_scheme(url), renderer, options),
    )
    _emit(fragment, output, ".html")


@app.command()
def markdown(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Page to convert"),
    converter: ConverterKind = typer.Option(
        ConverterKind.SERVICE,
        "--converter",
        help="'service' uses the conversion service, 'builtin' converts locally",
    ),
    readability: bool = typer.Option(
        False, "--readability", help="Extract the article generically instead of per-site"
    ),
    frontmatter: bool = typer.Option(
        True, "--frontmatter/--no-frontmatter", help="Prepend page metadata as frontmatter"
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file"),
):
    """Convert a page to Markdown.

    Examples:

        downmark markdown https://en.wikipedia.org/wiki/Python_(programming_language)

        downmark markdown example.com --converter builtin --readability -o page.md
    """
    config: AppConfig = ctx.obj
    document = _run(
        config,
        lambda p: p.to_markdown(
            ensure_scheme(url),
            converter=converter,
            readability=readability,
            frontmatter=frontmatter,
        ),
    )
    _emit(document.markdown, output, ".md")


@app.command()
def links(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Page to scan"),
    format: str = typer.Option("json", "--format", "-f", help="json, text or queryparams"),
):
    """List the unique outgoing links of a page."""
    config: AppConfig = ctx.obj
    if format not in ("json", "text", "queryparams"):
        err_console.print(f"[red]Invalid format: {format}. Use 'json', 'text' or 'queryparams'.[/red]")
        raise typer.Exit(1)

    target = ensure_scheme(url)
    found = _run(config, lambda p: p.links(target))
    if format == "text":
        content = "\n".join(link.url for link in found)
    elif format == "queryparams":
        content = "&".join(f"url={quote(link.url, safe='')}" for link in found)
    else:
        content = json.dumps(
            {
                "url": target,
                "totalLinks": len(found),
                "links": [link.model_dump(exclude_none=True) for link in found],
            },
            indent=2,
        )
    console.print(content, markup=False, highlight=False, soft_wrap=True)


@app.command()
def css(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Page to extract styles from"),
    scoped: bool = typer.Option(False, "--scoped", help="Scope every rule to the content container"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file"),
):
    """Extract a page's stylesheets as one CSS document."""
    config: AppConfig = ctx.obj
    css_info = _run(config, lambda p: p.css(ensure_scheme(url)))
    err_console.print(
        f"[cyan]{css_info.total_stylesheets}[/cyan] stylesheets, "
        f"[cyan]{css_info.total_inline_styles}[/cyan] inline styles, "
        f"[yellow]{css_info.blocked_stylesheets}[/yellow] blocked"
    )
    content = css_info.extracted_css
    if scoped:
        content = scope_css(content, config.server.container_selector)
    _emit(content, output, ".css")


@app.command()
def images(ctx: typer.Context, url: str = typer.Argument(..., help="Page to inspect")):
    """Report image and SVG dimension statistics."""
    config: AppConfig = ctx.obj
    info = _run(config, lambda p: p.images(ensure_scheme(url)))

    table = Table(title="Image Information")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Total images", str(info.total_images))
    table.add_row("Images with dimensions", f"{info.images_with_dimensions} / {info.total_images}")
    table.add_row("Dimensions added", str(info.images_added))
    table.add_row("Total SVGs", str(info.total_svgs))
    table.add_row("SVGs with dimensions", f"{info.svgs_with_dimensions} / {info.total_svgs}")
    table.add_row("SVG dimensions added", str(info.svgs_added))
    console.print(table)


@app.command()
def visibility(ctx: typer.Context, url: str = typer.Argument(..., help="Page to inspect")):
    """Report how many elements are hidden from view."""
    config: AppConfig = ctx.obj
    info = _run(config, lambda p: p.visibility(ensure_scheme(url)))

    table = Table(title=f"Element Visibility ({info.visible_percentage}% visible)")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Total elements", str(info.total_elements))
    table.add_row("display:none", str(info.hidden_elements))
    table.add_row("visibility:hidden", str(info.invisible_elements))
    table.add_row("opacity:0", str(info.zero_opacity_elements))
    table.add_row("Off-screen/collapsed", str(info.offscreen_elements))
    console.print(table)


@app.command("renderers")
def list_renderers(ctx: typer.Context):
    """List registered renderers in dispatch order."""
    config: AppConfig = ctx.obj
    registry = build_registry(config)

    table = Table(title="Renderers")
    table.add_column("Name", style="cyan")
    table.add_column("Priority", justify="right")
    table.add_column("Patterns")
    table.add_column("Description")

    for renderer in registry.all_renderers():
        table.add_row(
            renderer.name,
            str(renderer.priority),
            ", ".join(renderer.patterns) or "[dim](explicit only)[/dim]",
            renderer.description,
        )

    console.print(table)


@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on"),
):
    """Run the HTTP server."""
    from downmark.server import serve as run_server

    config: AppConfig = ctx.obj
    if host:
        config.server.host = host
    if port:
        config.server.port = port
    run_server(config)


if __name__ == "__main__":
    app()
