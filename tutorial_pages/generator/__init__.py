"""Utilities for rendering tutorials and assembling the static site."""

from .code_blocks import CodeRendererRegistry, DiagramCodeRenderer, PygmentsCodeRenderer
from .link_rewriter import DocumentLinkExtension, DocumentLinkResolver
from .renderer import HtmlContentRenderer, RenderedBody
from .site_builder import SiteBuilder

__all__ = [
    "CodeRendererRegistry",
    "DiagramCodeRenderer",
    "DocumentLinkExtension",
    "DocumentLinkResolver",
    "HtmlContentRenderer",
    "PygmentsCodeRenderer",
    "RenderedBody",
    "SiteBuilder",
]
