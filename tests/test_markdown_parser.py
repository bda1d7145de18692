"""Unit tests for fenced code and heading scanning.

These tests cover :mod:`tutorial_pages.markdown_parser`: fence detection
(including unterminated fences), heading extraction that ignores code, the
title rule, anchor slugs, and heading nesting without synthesised levels.

Usage
-----
Run ``pytest tests/test_markdown_parser.py -v``.
"""

from __future__ import annotations

import pytest

from tutorial_pages.markdown_parser import (
    clean_heading,
    extract_headings,
    first_heading_title,
    nest_headings,
    scan_fences,
    slugify,
    unique_slug,
)


def test_scan_fences_keeps_language_tag_verbatim() -> None:
    """The language is the first word of the info string, case preserved."""
    blocks = scan_fences("```Rust,no_run title=main\nfn main() {}\n```\n")
    assert len(blocks) == 1
    block = blocks[0]
    assert block.language == "Rust,no_run"
    assert block.info == "Rust,no_run title=main"
    assert block.source == "fn main() {}\n"
    assert block.terminated


def test_scan_fences_supports_tildes_and_longer_closers() -> None:
    text = "~~~~python\nprint('~~~')\n~~~\nstill code\n~~~~~\nafter\n"
    blocks = scan_fences(text)
    assert [block.source for block in blocks] == ["print('~~~')\n~~~\nstill code\n"]
    assert blocks[0].end_line == 5


def test_scan_fences_strips_opening_indent() -> None:
    """Content lines lose as much indentation as the opening fence had."""
    text = "- item\n\n  ```sh\n  echo hi\n    nested\n  ```\n"
    block = scan_fences(text)[0]
    assert block.source == "echo hi\n  nested\n"


def test_unterminated_fence_runs_to_end_of_document() -> None:
    text = "Intro\n\n```python\nprint(1)\n\n# Not a heading\n\n"
    block = scan_fences(text)[0]
    assert not block.terminated
    assert block.source == "print(1)\n\n# Not a heading\n"
    assert block.start_line == 2
    assert block.end_line == len(text.split("\n"))


def test_backtick_fence_with_backtick_in_info_is_not_a_fence() -> None:
    assert scan_fences("``` a`b\ncode\n```\n")[-1].start_line == 2


def test_extract_headings_ignores_fenced_lines() -> None:
    text = "# Title\n\n```md\n# Not real\n```\n\nSub\n---\n\n### Deep ###\n"
    headings = extract_headings(text)
    assert [(h.level, h.title) for h in headings] == [
        (1, "Title"),
        (2, "Sub"),
        (3, "Deep"),
    ]


def test_clean_heading_removes_escapes_and_closing_hashes() -> None:
    assert clean_heading(r"Using \*args ##") == "Using *args"
    assert clean_heading("C# basics") == "C# basics"


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("Using `async` in **Rust**", "Using async in Rust"),
        ("The _quick_ [guide](guide.md) #", "The quick guide"),
        ("Press <kbd>Ctrl</kbd>+C", "Press Ctrl+C"),
        ("Use `<div>` &amp; friends", "Use <div> & friends"),
    ],
    ids=["code-and-strong", "emphasis-and-link", "inline-html", "entities"],
)
def test_clean_heading_keeps_only_rendered_text(source: str, expected: str) -> None:
    assert clean_heading(source) == expected


def test_first_heading_title_prefers_level_one() -> None:
    assert first_heading_title("## Setup\n\n# Real Title\n") == "Real Title"
    assert first_heading_title("## Only Sub\n") == "Only Sub"
    assert first_heading_title("No headings here.\n") is None


def test_first_heading_title_skips_headings_in_code() -> None:
    assert first_heading_title("```\n# fake\n```\n\n# Intro  \n") == "Intro"


def test_slugify_and_unique_slug() -> None:
    """Duplicate anchors get ``-2``, ``-3`` in document order."""
    used: set[str] = set()
    anchors = [unique_slug(slugify(title), used) for title in ("Setup", "Setup", "Setup")]
    assert anchors == ["setup", "setup-2", "setup-3"]
    assert slugify("2. Install the CLI!") == "install-the-cli"
    assert slugify("!!!") == "section"


def test_nest_headings_does_not_synthesise_levels() -> None:
    """An ``h4`` after an ``h1`` nests directly; a later ``h2`` closes it."""
    roots = nest_headings(
        [(1, "Top", "top"), (4, "Deep", "deep"), (2, "Side", "side"), (2, "Next", "next")]
    )
    assert [node.title for node in roots] == ["Top"]
    top = roots[0]
    assert [(child.level, child.title) for child in top.children] == [
        (4, "Deep"),
        (2, "Side"),
        (2, "Next"),
    ]
    assert all(not child.children for child in top.children)
