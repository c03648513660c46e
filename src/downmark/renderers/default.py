"""Fallback renderer for any URL."""

from downmark.renderers.base import BaseRenderer


class DefaultRenderer(BaseRenderer):
    """Boilerplate removal plus the standard URL transforms."""

    name = "default"
    description = "Default renderer using boilerplate removal and standard transformations"
    patterns = ["*"]
    priority = -1
