r"""Scan Markdown bodies for fenced code blocks and heading structure.

This module powers the loader and renderer by finding fenced code blocks
(including unterminated ones), listing headings that sit outside code, and
building the nested heading outline. The HTML renderer and the loader both
rely on :func:`scan_fences` so that a heading-like line inside a code sample
is never mistaken for a real heading.

Example
-------
>>> from tutorial_pages.markdown_parser import first_heading_title, scan_fences
>>> first_heading_title("# Intro\nBody text\n\n## Details\nMore")
'Intro'
>>> [block.language for block in scan_fences("```rust\nfn main() {}\n```\n")]
['rust']
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ
from html import unescape

from markdown import Markdown

from .models import CodeBlock, HeadingNode

FENCE_OPEN_PATTERN = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
ATX_HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
ATX_CLOSING_PATTERN = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
SETEXT_UNDERLINE_PATTERN = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
TAG_PATTERN = re.compile(r"<[^>]*>")
LEADING_NUMBER_PATTERN = re.compile(r"^\d+\.?\s*")


@dc.dataclass(frozen=True, slots=True)
class HeadingEntry:
    """Heading found in Markdown source outside code fences.

    Attributes
    ----------
    level : int
        Heading level from 1 to 6.
    title : str
        Heading text with escapes and closing hashes removed.
    line : int
        Zero-based line index of the heading text.
    """

    level: int
    title: str
    line: int


def _closing_fence_pattern(fence: str) -> re.Pattern[str]:
    char = re.escape(fence[0])
    return re.compile(rf"^ {{0,3}}{char}{{{len(fence)},}}[ \t]*$")


def _dedent(line: str, indent: int) -> str:
    """Strip up to ``indent`` leading spaces, mirroring the opening fence."""
    removable = len(line) - len(line.lstrip(" "))
    return line[min(indent, removable) :]


def scan_fences(markdown_text: str) -> list[CodeBlock]:
    """Return every fenced code block in ``markdown_text`` in document order.

    Parameters
    ----------
    markdown_text : str
        Markdown body with ``\n`` line endings.

    Returns
    -------
    list[CodeBlock]
        Blocks with their line span and verbatim language tag. A fence with
        no closing delimiter extends to the end of the text and is returned
        with ``terminated=False``.
    """
    lines = markdown_text.split("\n")
    blocks: list[CodeBlock] = []
    index = 0
    while index < len(lines):
        match = FENCE_OPEN_PATTERN.match(lines[index])
        if not match or (match.group("fence")[0] == "`" and "`" in match.group("info")):
            index += 1
            continue

        fence = match.group("fence")
        indent = len(match.group("indent"))
        info = match.group("info").strip()
        closing = _closing_fence_pattern(fence)
        end = index + 1
        while end < len(lines) and not closing.match(lines[end]):
            end += 1
        terminated = end < len(lines)
        content = [_dedent(line, indent) for line in lines[index + 1 : end]]
        if not terminated:
            while content and not content[-1].strip():
                content.pop()
        source = "\n".join(content)
        if content:
            source += "\n"
        blocks.append(
            CodeBlock(
                language=info.split()[0] if info else "",
                source=source,
                info=info,
                start_line=index,
                end_line=end + 1 if terminated else len(lines),
                terminated=terminated,
            )
        )
        index = end + 1
    return blocks


def _fenced_lines(blocks: typ.Iterable[CodeBlock]) -> set[int]:
    covered: set[int] = set()
    for block in blocks:
        covered.update(range(block.start_line, block.end_line))
    return covered


def plain_text(html: str) -> str:
    """Return the text content of an HTML fragment, entities decoded."""
    return unescape(TAG_PATTERN.sub("", html))


def clean_heading(text: str) -> str:
    """Return the text a heading renders to, without any inline markup.

    Closing hashes are dropped and the remaining inline Markdown (code spans,
    emphasis, links, escapes, raw HTML) is rendered and reduced to its text,
    so the result matches the text of the heading element in the page.

    Examples
    --------
    >>> clean_heading("Using `async` in **Rust** ##")
    'Using async in Rust'
    """
    without_closing = ATX_CLOSING_PATTERN.sub("", text).strip()
    if not without_closing:
        return ""
    html = Markdown(output_format="html").convert(f"# {without_closing}")
    return plain_text(html).strip()


def extract_headings(markdown_text: str) -> list[HeadingEntry]:
    """List ATX and setext headings that sit outside fenced code blocks."""
    lines = markdown_text.split("\n")
    fenced = _fenced_lines(scan_fences(markdown_text))
    headings: list[HeadingEntry] = []
    previous_is_text = False
    for index, line in enumerate(lines):
        if index in fenced:
            previous_is_text = False
            continue
        atx = ATX_HEADING_PATTERN.match(line)
        if atx:
            level = len(atx.group(1))
            headings.append(HeadingEntry(level, clean_heading(atx.group(2) or ""), index))
            previous_is_text = False
            continue
        setext = SETEXT_UNDERLINE_PATTERN.match(line)
        if setext and previous_is_text:
            level = 1 if setext.group(1).startswith("=") else 2
            headings.append(HeadingEntry(level, clean_heading(lines[index - 1]), index - 1))
            previous_is_text = False
            continue
        previous_is_text = bool(line.strip())
    return headings


def first_heading_title(markdown_text: str) -> str | None:
    """Return the first level-one heading, else the first heading of any level."""
    headings = [entry for entry in extract_headings(markdown_text) if entry.title]
    for entry in headings:
        if entry.level == 1:
            return entry.title
    if headings:
        return headings[0].title
    return None


def slugify(title: str) -> str:
    """Return a URL-safe anchor for ``title``; numbering prefixes are dropped.

    Examples
    --------
    >>> slugify("1. Getting Started")
    'getting-started'
    >>> slugify("???")
    'section'
    """
    no_number = LEADING_NUMBER_PATTERN.sub("", title.lower())
    slug = re.sub(r"[^a-z0-9]+", "-", no_number).strip("-")
    return slug or "section"


def unique_slug(base: str, used: set[str]) -> str:
    """Generate a unique slug, appending numeric suffixes when needed."""
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def nest_headings(entries: typ.Iterable[tuple[int, str, str]]) -> list[HeadingNode]:
    """Nest ``(level, title, anchor)`` entries by level without filling gaps.

    A heading becomes the child of the nearest preceding heading with a
    strictly lower level, so an ``h4`` directly after an ``h1`` nests under
    that ``h1`` and no ``h2``/``h3`` placeholders are synthesised.
    """
    roots: list[HeadingNode] = []
    stack: list[HeadingNode] = []
    for level, title, anchor in entries:
        node = HeadingNode(level=level, title=title, anchor=anchor)
        while stack and stack[-1].level >= level:
            stack.pop()
        if stack:
            stack[-1].children.append(node)
        else:
            roots.append(node)
        stack.append(node)
    return roots


__all__ = [
    "HeadingEntry",
    "clean_heading",
    "extract_headings",
    "first_heading_title",
    "nest_headings",
    "plain_text",
    "scan_fences",
    "slugify",
    "unique_slug",
]
