"""Utilities for rendering Markdown bodies and their fenced code blocks."""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ
from html import unescape

from markdown import Markdown
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor
from markdown.treeprocessors import Treeprocessor
from markdown.util import ETX, HTML_PLACEHOLDER_RE, STX

from ..markdown_parser import nest_headings, plain_text, scan_fences, slugify, unique_slug
from ..models import HeadingNode, RenderedDocument
from .code_blocks import CodeRendererRegistry
from .link_rewriter import DocumentLinkExtension

if typ.TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from ..models import Document
    from .link_rewriter import DocumentLinkResolver

HEADING_TAGS = {f"h{level}": level for level in range(1, 7)}
STASHED_CHAR_PATTERN = re.compile(rf"{STX}(\d+){ETX}")


@dc.dataclass(slots=True)
class RenderedBody:
    """HTML for a Markdown body plus what the renderer noticed on the way."""

    html: str
    headings: list[HeadingNode] = dc.field(default_factory=list)
    warnings: list[str] = dc.field(default_factory=list)
    broken_links: list[str] = dc.field(default_factory=list)


class CodeFenceExtension(Extension):
    """Replace fenced code blocks with HTML from a renderer registry.

    Unlike the stock ``fenced_code`` extension, an opening fence without a
    closing delimiter still renders: the rest of the document becomes the
    block's content and a warning is recorded.
    """

    def __init__(self, registry: CodeRendererRegistry, line_offset: int = 0) -> None:
        super().__init__()
        self.registry = registry
        self.line_offset = line_offset
        self.warnings: list[str] = []

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        md.preprocessors.register(CodeFencePreprocessor(md, self), "tutorial_code_fences", 28)


class CodeFencePreprocessor(Preprocessor):
    """Swap each fenced block for an HTML stash placeholder."""

    def __init__(self, md: Markdown, extension: CodeFenceExtension) -> None:
        super().__init__(md)
        self.extension = extension

    def run(self, lines: list[str]) -> list[str]:
        blocks = scan_fences("\n".join(lines))
        if not blocks:
            return lines
        output: list[str] = []
        cursor = 0
        for block in blocks:
            output.extend(lines[cursor : block.start_line])
            rendered = self.extension.registry.render(block.language, block.source)
            placeholder = self.md.htmlStash.store(rendered.html)
            output.extend(["", placeholder, ""])
            cursor = block.end_line
            if not block.terminated:
                line = block.start_line + 1 + self.extension.line_offset
                self.extension.warnings.append(
                    f"unterminated fenced code block opened at line {line}; "
                    "the rest of the document was rendered as code"
                )
        output.extend(lines[cursor:])
        return output


class HeadingAnchorExtension(Extension):
    """Give every heading a unique ``id`` and record the outline."""

    def __init__(self) -> None:
        super().__init__()
        self.entries: list[tuple[int, str, str]] = []

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        md.treeprocessors.register(
            HeadingAnchorTreeprocessor(md, self), "tutorial_heading_anchors", 12
        )

    @property
    def outline(self) -> list[HeadingNode]:
        return nest_headings(self.entries)


class HeadingAnchorTreeprocessor(Treeprocessor):
    """Assign anchors in document order, suffixing duplicates ``-2``, ``-3``."""

    def __init__(self, md: Markdown, extension: HeadingAnchorExtension) -> None:
        super().__init__(md)
        self.extension = extension

    def run(self, root: Element) -> Element:
        used: set[str] = set()
        for element in root.iter():
            level = HEADING_TAGS.get(element.tag)
            if level is None:
                continue
            text = self._text(element)
            anchor = unique_slug(slugify(text), used)
            element.set("id", anchor)
            self.extension.entries.append((level, text, anchor))
        return root

    def _text(self, element: Element) -> str:
        """Return the heading text with escapes and inline raw HTML resolved.

        Code span text is stored HTML-escaped, so entities are decoded before
        the stash placeholders are swapped for the text of what they hold.
        """
        text = STASHED_CHAR_PATTERN.sub(
            lambda match: chr(int(match.group(1))), unescape("".join(element.itertext()))
        )
        return HTML_PLACEHOLDER_RE.sub(self._stashed_text, text).strip()

    def _stashed_text(self, match: re.Match[str]) -> str:
        stashed = self.md.htmlStash.rawHtmlBlocks[int(match.group(1))]
        if isinstance(stashed, str):
            return plain_text(stashed)
        return "".join(stashed.itertext())


class HtmlContentRenderer:
    """Render Markdown and code snippets with consistent styling."""

    def __init__(
        self,
        pygments_style: str = "monokai",
        code_renderers: CodeRendererRegistry | None = None,
    ) -> None:
        """Initialize a renderer with a Pygments style and code renderers.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used by the default code renderer.
            Defaults to ``"monokai"``; ignored when ``code_renderers`` is given.
        code_renderers : CodeRendererRegistry, optional
            Registry used for fenced blocks; defaults to Pygments highlighting
            plus mermaid diagrams.
        """
        self.pygments_style = pygments_style
        self.code_renderers = code_renderers or CodeRendererRegistry.with_defaults(
            pygments_style
        )

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self.code_renderers.stylesheet

    def markdown(
        self,
        text: str,
        *,
        link_resolver: DocumentLinkResolver | None = None,
        line_offset: int = 0,
    ) -> RenderedBody:
        """Render Markdown into HTML using the configured extensions.

        Parameters
        ----------
        text : str
            Raw Markdown content to render. Empty or whitespace-only strings
            return an empty result.
        link_resolver : DocumentLinkResolver, optional
            Rewrites links to other documents; ``None`` leaves links alone.
        line_offset : int, optional
            Lines preceding ``text`` in its source file, used in warnings.

        Returns
        -------
        RenderedBody
            HTML with anchored headings and highlighted code, the heading
            outline, warnings, and any broken document links.
        """
        if not text.strip():
            return RenderedBody(html="")
        fences = CodeFenceExtension(self.code_renderers, line_offset)
        anchors = HeadingAnchorExtension()
        extensions: list[Extension | str] = ["tables", "sane_lists", fences, anchors]
        links = DocumentLinkExtension(link_resolver) if link_resolver else None
        if links:
            extensions.append(links)
        md = Markdown(extensions=extensions, output_format="html")
        html = md.convert(text)
        return RenderedBody(
            html=html,
            headings=anchors.outline,
            warnings=list(fences.warnings),
            broken_links=list(links.broken) if links else [],
        )

    def render_document(
        self, document: Document, link_resolver: DocumentLinkResolver | None = None
    ) -> RenderedDocument:
        """Render a document's body into a :class:`RenderedDocument`."""
        body = self.markdown(
            document.body,
            link_resolver=link_resolver,
            line_offset=document.body_line_offset,
        )
        return RenderedDocument(
            document=document,
            html=body.html,
            headings=body.headings,
            warnings=body.warnings,
            broken_links=body.broken_links,
        )


__all__ = [
    "CodeFenceExtension",
    "HeadingAnchorExtension",
    "HtmlContentRenderer",
    "RenderedBody",
]
