"""Data passed between the fetch, transform and render stages."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FetchMethod(str, Enum):
    """How a page was retrieved."""

    LIGHTWEIGHT = "lightweight"
    BROWSER = "browser"


class FetchOptions(BaseModel):
    """Per-request fetch switches; each extraction flag forces the browser."""

    force_browser: bool = False
    extract_visibility: bool = False
    extract_images: bool = False
    extract_css: bool = False
    collect_css_classes: bool = False

    @property
    def needs_browser(self) -> bool:
        return (
            self.force_browser
            or self.extract_visibility
            or self.extract_images
            or self.extract_css
        )


class CssInfo(BaseModel):
    """Stylesheet statistics and the consolidated CSS text."""

    model_config = ConfigDict(frozen=True)

    total_stylesheets: int = 0
    total_inline_styles: int = 0
    blocked_stylesheets: int = 0
    extracted_css: str = ""


class ImageInfo(BaseModel):
    """Image and SVG dimension statistics."""

    model_config = ConfigDict(frozen=True)

    total_images: int = 0
    total_svgs: int = 0
    images_with_dimensions: int = 0
    images_added: int = 0
    svgs_with_dimensions: int = 0
    svgs_added: int = 0


class VisibilityInfo(BaseModel):
    """Element visibility statistics."""

    model_config = ConfigDict(frozen=True)

    total_elements: int = 0
    hidden_elements: int = 0
    invisible_elements: int = 0
    zero_opacity_elements: int = 0
    offscreen_elements: int = 0
    visible_percentage: float = 0.0

    @classmethod
    def from_counts(
        cls,
        total_elements: int,
        hidden_elements: int,
        invisible_elements: int,
        zero_opacity_elements: int,
        offscreen_elements: int,
    ) -> "VisibilityInfo":
        """Build the record, deriving the visible percentage from the counts."""
        visible = total_elements - hidden_elements - invisible_elements - zero_opacity_elements
        percentage = (visible / total_elements) * 100 if total_elements > 0 else 0.0
        return cls(
            total_elements=total_elements,
            hidden_elements=hidden_elements,
            invisible_elements=invisible_elements,
            zero_opacity_elements=zero_opacity_elements,
            offscreen_elements=offscreen_elements,
            visible_percentage=round(percentage, 1),
        )


class FetchResult(BaseModel):
    """Result of fetching a page with one strategy."""

    html: str
    method: FetchMethod
    source_url: str
    metadata: dict[str, str] = Field(default_factory=dict)


class PageData(BaseModel):
    """Everything one fetch produced; handed to exactly one renderer."""

    model_config = ConfigDict(frozen=True)

    html: str
    metadata: dict[str, str] = Field(default_factory=dict)
    css_classes: frozenset[str] = frozenset()
    css_info: CssInfo | None = None
    image_info: ImageInfo | None = None
    visibility_info: VisibilityInfo | None = None
    method: FetchMethod = FetchMethod.LIGHTWEIGHT

    @classmethod
    def from_fetch_result(cls, result: FetchResult) -> "PageData":
        return cls(html=result.html, metadata=result.metadata, method=result.method)

