"""YAML frontmatter for exported Markdown."""

import re
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

import yaml

PRIORITY_KEYS = [
    "title",
    "description",
    "author",
    "og:title",
    "og:description",
    "og:image",
    "canonical",
    "lang",
]

MAX_CSS_CLASSES = 50


def _safe_key(key: str) -> str:
    return re.sub(r"\s+", "_", key.replace(":", "_"))


def generate_frontmatter(
    metadata: dict[str, str],
    css_classes: Iterable[str],
    source_url: str,
    fetched_at: datetime | None = None,
) -> str:
    """Render page metadata as a frontmatter block.

    Well-known keys come first in a fixed order, then every other key in
    document order. Keys are made YAML-safe (``og:title`` -> ``og_title``).
    Only the first 50 CSS classes are listed; the rest are counted in a
    trailing comment.
    """
    fetched_at = fetched_at or datetime.now(timezone.utc)
    data: dict[str, Any] = {
        "source": source_url,
        "fetched_at": fetched_at.isoformat().replace("+00:00", "Z"),
    }

    for key in PRIORITY_KEYS:
        if metadata.get(key):
            data[_safe_key(key)] = metadata[key]

    for key, value in metadata.items():
        if key in PRIORITY_KEYS:
            continue
        data.setdefault(_safe_key(key), value)

    classes = sorted(css_classes)
    if classes:
        data["css_classes"] = classes[:MAX_CSS_CLASSES]

    body = yaml.safe_dump(
        data,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        width=float("inf"),
    )
    if len(classes) > MAX_CSS_CLASSES:
        body += f"# ... and {len(classes) - MAX_CSS_CLASSES} more\n"
    return f"---\n{body}---"


def with_frontmatter(markdown: str, frontmatter: str) -> str:
    """Prefix a document with its frontmatter block."""
    return f"{frontmatter}\n\n{markdown}"
