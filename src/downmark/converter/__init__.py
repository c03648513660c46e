"""HTML to Markdown conversion."""

from downmark.converter.frontmatter import generate_frontmatter
from downmark.converter.markdown import MarkdownConverter, html_to_markdown
from downmark.converter.service import ConversionClient, ConversionRequest, ConversionResult

__all__ = [
    "ConversionClient",
    "ConversionRequest",
    "ConversionResult",
    "MarkdownConverter",
    "generate_frontmatter",
    "html_to_markdown",
]
