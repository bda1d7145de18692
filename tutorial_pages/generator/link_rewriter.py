"""Helpers for rewriting relative Markdown links to generated page URLs."""

from __future__ import annotations

import posixpath
import typing as typ
from urllib.parse import urlsplit

from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

from .._constants import MARKDOWN_SUFFIXES

if typ.TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from markdown import Markdown
else:  # pragma: no cover - type-checking fallback
    Markdown = typ.Any
    Element = typ.Any

EXTERNAL_PREFIXES = ("http://", "https://", "mailto:", "tel:", "data:", "javascript:")


class DocumentLinkResolver:
    """Resolve links written in one document against the whole document set.

    Parameters
    ----------
    source_path : str
        POSIX path of the document containing the links.
    output_path : str
        Output path of that document, used to build relative hrefs.
    targets : Mapping[str, str]
        Source path to output path for every document in the build.
    """

    def __init__(
        self, source_path: str, output_path: str, targets: typ.Mapping[str, str]
    ) -> None:
        self.base_dir = posixpath.dirname(source_path)
        self.output_dir = posixpath.dirname(output_path) or "."
        self.targets = targets

    def href_for_output(self, target_output: str) -> str:
        """Return the href from this document's page to ``target_output``."""
        return posixpath.relpath(target_output, start=self.output_dir)

    def resolve(self, target: str | None) -> tuple[str | None, bool]:
        """Return ``(rewritten_href, is_broken)`` for a link target.

        ``rewritten_href`` is ``None`` when the link should be left alone:
        external schemes, bare anchors, protocol-relative URLs, and links to
        anything other than a Markdown file. Markdown targets that do not map
        to a built document are reported as broken.
        """
        if not target:
            return None, False
        if target.lower().startswith(EXTERNAL_PREFIXES):
            return None, False
        if target.startswith(("#", "//")) or "://" in target:
            return None, False

        parsed = urlsplit(target)
        if parsed.scheme or parsed.netloc or not parsed.path:
            return None, False
        if posixpath.splitext(parsed.path)[1].lower() not in MARKDOWN_SUFFIXES:
            return None, False

        if parsed.path.startswith("/"):
            joined = posixpath.normpath(parsed.path.lstrip("/"))
        else:
            joined = posixpath.normpath(posixpath.join(self.base_dir, parsed.path))
        output = self.targets.get(joined)
        if joined.startswith("../") or output is None:
            return None, True

        url = self.href_for_output(output)
        if parsed.query:
            url = f"{url}?{parsed.query}"
        if parsed.fragment:
            url = f"{url}#{parsed.fragment}"
        return url, False


class DocumentLinkExtension(Extension):
    """Rewrite relative Markdown links to the pages generated for them.

    Insert this extension into a ``markdown.Markdown`` instance so that
    ``[Setup](../guides/setup.md#install)`` becomes a relative link to
    ``guides/setup.html#install``. Targets that do not resolve are collected
    in :attr:`broken` in document order.
    """

    def __init__(self, resolver: DocumentLinkResolver) -> None:
        super().__init__()
        self.resolver = resolver
        self.broken: list[str] = []

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the document-link treeprocessor on the Markdown instance."""
        processor = DocumentLinkTreeprocessor(md, self)
        md.treeprocessors.register(processor, "tutorial_document_links", 15)


class DocumentLinkTreeprocessor(Treeprocessor):
    """Rewrite ``<a href>`` targets using the owning extension's resolver."""

    def __init__(self, md: Markdown, extension: DocumentLinkExtension) -> None:
        super().__init__(md)
        self.extension = extension

    def run(self, root: Element) -> Element:
        for element in root.iter("a"):
            href = element.get("href")
            rewritten, broken = self.extension.resolver.resolve(href)
            if broken and href:
                self.extension.broken.append(href)
            elif rewritten:
                element.set("href", rewritten)
        return root


__all__ = [
    "DocumentLinkExtension",
    "DocumentLinkResolver",
    "DocumentLinkTreeprocessor",
]
