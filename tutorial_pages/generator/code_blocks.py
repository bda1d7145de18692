"""Pluggable renderers for fenced code blocks, keyed by language tag.

Renderers satisfy the :class:`CodeBlockRenderer` protocol; they do not need
to inherit from anything. :class:`CodeRendererRegistry` maps language tags to
renderers and falls back to a default (Pygments highlighting) for any tag it
does not know. Code is never executed or validated.

Examples
--------
>>> registry = CodeRendererRegistry.with_defaults("monokai")
>>> block = registry.render("mermaid", "graph TD; A-->B")
>>> block.html.startswith('<pre class="mermaid"')
True
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ
from html import escape

from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')


@dc.dataclass(frozen=True, slots=True)
class RenderedBlock:
    """HTML produced for one fenced code block."""

    html: str


class CodeBlockRenderer(typ.Protocol):
    """Capability interface for rendering a fenced code block."""

    def render(self, language: str, source: str) -> RenderedBlock:
        """Return HTML for ``source`` tagged with ``language``."""
        ...


class PygmentsCodeRenderer:
    """Highlight code with Pygments, keeping the verbatim tag as metadata."""

    def __init__(self, pygments_style: str = "monokai") -> None:
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(
            style=pygments_style, cssclass="codehilite", wrapcode=True
        )

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def render(self, language: str, source: str) -> RenderedBlock:
        """Render ``source`` into highlighted HTML.

        Parameters
        ----------
        language : str
            Verbatim language tag from the fence. Suffixes after a comma
            (``rust,no_run``) are ignored for lexer lookup; unknown or empty
            tags fall back to plain text.
        source : str
            Code to highlight.

        Returns
        -------
        RenderedBlock
            HTML containing the highlighted block with ``data-language``
            metadata applied.
        """
        lexer_name = language.split(",", 1)[0].strip() or "text"
        try:
            lexer = get_lexer_by_name(lexer_name)
        except ClassNotFound:
            lexer = get_lexer_by_name("text")
        html = highlight(source, lexer, self._formatter)
        return RenderedBlock(html=self._attach_language_attribute(html, language or "text"))

    @staticmethod
    def _attach_language_attribute(html: str, language: str) -> str:
        """Add a single language attribute to an already highlighted block."""
        safe_lang = escape(language, quote=True)

        def _repl(match: re.Match[str]) -> str:
            return f'<div class="codehilite" data-language="{safe_lang}">'

        return CODEHILITE_OPEN_TAG.sub(_repl, html, 1)


class DiagramCodeRenderer:
    """Emit diagram sources untouched for a client-side diagram script."""

    def __init__(self, css_class: str = "mermaid") -> None:
        self.css_class = css_class

    def render(self, language: str, source: str) -> RenderedBlock:
        safe_lang = escape(language, quote=True)
        html = (
            f'<pre class="{escape(self.css_class, quote=True)}" '
            f'data-language="{safe_lang}">{escape(source)}</pre>'
        )
        return RenderedBlock(html=html)


class CodeRendererRegistry:
    """Map language tags to :class:`CodeBlockRenderer` implementations."""

    def __init__(self, default: CodeBlockRenderer) -> None:
        self.default = default
        self._renderers: dict[str, CodeBlockRenderer] = {}

    @classmethod
    def with_defaults(cls, pygments_style: str = "monokai") -> CodeRendererRegistry:
        """Return a registry with Pygments highlighting and mermaid diagrams."""
        registry = cls(PygmentsCodeRenderer(pygments_style))
        registry.register("mermaid", DiagramCodeRenderer())
        return registry

    def register(self, language: str, renderer: CodeBlockRenderer) -> None:
        """Use ``renderer`` for blocks tagged ``language`` (case-insensitive)."""
        self._renderers[self._key(language)] = renderer

    def resolve(self, language: str) -> CodeBlockRenderer:
        return self._renderers.get(self._key(language), self.default)

    def render(self, language: str, source: str) -> RenderedBlock:
        return self.resolve(language).render(language, source)

    @property
    def stylesheet(self) -> str:
        """Return CSS contributed by the default renderer, if any."""
        return getattr(self.default, "stylesheet", "")

    @staticmethod
    def _key(language: str) -> str:
        return language.split(",", 1)[0].strip().lower()


__all__ = [
    "CodeBlockRenderer",
    "CodeRendererRegistry",
    "DiagramCodeRenderer",
    "PygmentsCodeRenderer",
    "RenderedBlock",
]
