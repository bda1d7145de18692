"""Unit tests for discovering and loading Markdown documents.

The loader turns files beneath a source directory into immutable
``Document`` records. These tests cover front-matter parsing, slug and title
derivation, per-file failures recorded as issues, drafts, and category
metadata.

Usage
-----
Run ``pytest tests/test_loader.py -v``. Every test builds its own tree under
pytest's ``tmp_path`` via the ``write_docs`` fixture.
"""

from __future__ import annotations

import typing as typ

import pytest

from tutorial_pages.loader import (
    derive_slug,
    discover_sources,
    load_document,
    load_documents,
    parse_front_matter,
    read_category,
    split_front_matter,
)
from tutorial_pages.models import UNSET, BuildInterrupted, FrontMatterError

if typ.TYPE_CHECKING:
    from pathlib import Path

    from conftest import WriteTree


def test_discover_sources_skips_partials_and_other_files(write_docs: WriteTree) -> None:
    root = write_docs(
        {
            "intro.md": "# Intro\n",
            "guides/setup.MDX": "# Setup\n",
            "guides/_partial.md": "snippet\n",
            "_drafts/old.md": "# Old\n",
            ".hidden/notes.md": "# Notes\n",
            "assets/logo.txt": "not markdown\n",
        }
    )
    assert discover_sources(root) == ["guides/setup.MDX", "intro.md"]


def test_split_front_matter_without_block_returns_text() -> None:
    mapping, body = split_front_matter("# Title\n---\nmore\n")
    assert mapping == {}
    assert body == "# Title\n---\nmore\n"


@pytest.mark.parametrize(
    "text",
    [
        "---\ntitle: Intro\n# never closed\n",
        "---\ntitle: [unclosed\n---\nbody\n",
        "---\n- a\n- b\n---\nbody\n",
    ],
    ids=["unclosed", "invalid-yaml", "not-a-mapping"],
)
def test_split_front_matter_rejects_malformed_blocks(text: str) -> None:
    with pytest.raises(FrontMatterError):
        split_front_matter(text)


def test_parse_front_matter_defaults_and_extras() -> None:
    front_matter = parse_front_matter({"title": 42, "tags": ["a"], "pagination_prev": None})
    assert front_matter.title == "42"
    assert front_matter.sidebar_position is None
    assert front_matter.pagination_next is UNSET
    assert front_matter.pagination_prev is None
    assert front_matter.draft is False
    assert front_matter.extra == {"tags": ["a"]}


@pytest.mark.parametrize(
    "mapping",
    [{"sidebar_position": "first"}, {"sidebar_position": True}, {"draft": "yes"}, {"title": {}}],
)
def test_parse_front_matter_rejects_wrong_types(mapping: dict[str, object]) -> None:
    with pytest.raises(FrontMatterError):
        parse_front_matter(mapping)


@pytest.mark.parametrize(
    ("doc_id", "override", "expected"),
    [
        ("intro", None, "/intro"),
        ("guides/setup", None, "/guides/setup"),
        ("guides/setup", "install", "/guides/install"),
        ("guides/setup", "/start/", "/start"),
        ("guides/setup", "../top", "/top"),
        ("index", "/", "/"),
    ],
)
def test_derive_slug(doc_id: str, override: str | None, expected: str) -> None:
    assert derive_slug(doc_id, override) == expected


def test_load_document_without_front_matter(write_docs: WriteTree) -> None:
    """Without front-matter the slug is ``/`` plus the path minus extension."""
    root = write_docs({"guides/first-steps.md": "Some text\n\n# First Steps #\n"})
    doc = load_document(root, "guides/first-steps.md")
    assert doc.doc_id == "guides/first-steps"
    assert doc.slug == "/guides/first-steps"
    assert doc.title == "First Steps"
    assert doc.output_path == "guides/first-steps.html"
    assert doc.body_line_offset == 0


def test_load_document_applies_front_matter(write_docs: WriteTree) -> None:
    root = write_docs(
        {
            "intro.md": (
                "---\n"
                "title: Welcome\n"
                "sidebar_position: 2\n"
                "sidebar_label: Start here\n"
                "description: First page\n"
                "---\n"
                "# Intro\n\n```rust\nfn main() {}\n```\n"
            )
        }
    )
    doc = load_document(root, "intro.md")
    assert doc.title == "Welcome"
    assert doc.sidebar_position == 2
    assert doc.nav_label == "Start here"
    assert doc.description == "First page"
    assert doc.body.startswith("# Intro")
    assert doc.body_line_offset == 6
    assert [block.language for block in doc.code_blocks] == ["rust"]


def test_load_document_title_drops_inline_markup(write_docs: WriteTree) -> None:
    root = write_docs({"async.md": "# Using `async` in **Rust**\n"})
    assert load_document(root, "async.md").title == "Using async in Rust"


def test_load_document_falls_back_to_file_stem(write_docs: WriteTree) -> None:
    root = write_docs({"notes.md": "plain text only\n"})
    assert load_document(root, "notes.md").title == "notes"


def test_load_document_tolerates_bom_and_crlf(tmp_path: Path) -> None:
    (tmp_path / "win.md").write_bytes(b"\xef\xbb\xbf---\r\ntitle: Win\r\n---\r\nBody\r\n")
    doc = load_document(tmp_path, "win.md")
    assert doc.title == "Win"
    assert doc.body == "Body\n"


def test_load_documents_records_issues_and_continues(write_docs: WriteTree) -> None:
    """Bad files are skipped with an error issue; the rest still load."""
    root = write_docs(
        {
            "good.md": "# Good\n",
            "broken.md": "---\ntitle: [oops\n---\n# Broken\n",
            "draft.md": "---\ndraft: true\n---\n# Draft\n",
        }
    )
    (root / "binary.md").write_bytes(b"\xff\xfe\x00bad")
    result = load_documents(root, workers=2)

    assert [doc.path for doc in result.documents] == ["good.md"]
    issues = {issue.path: issue for issue in result.issues}
    assert set(issues) == {"binary.md", "broken.md"}
    assert issues["broken.md"].message.startswith("malformed front-matter")
    assert issues["binary.md"].message.startswith("file is not valid UTF-8")
    assert all(issue.level == "error" for issue in result.issues)


def test_load_documents_missing_root(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_documents(tmp_path / "missing")


def test_load_documents_reads_category_metadata(write_docs: WriteTree) -> None:
    root = write_docs(
        {
            "getting-started/setup.md": "# Setup\n",
            "getting-started/_category_.yml": "label: Start Here\nposition: 1\ncollapsed: true\n",
            "advanced_topics/deep/dive.md": "# Dive\n",
        }
    )
    result = load_documents(root)
    assert result.categories["getting-started"].label == "Start Here"
    assert result.categories["getting-started"].position == 1
    assert result.categories["getting-started"].collapsed is True
    assert result.categories["advanced_topics"].label == "Advanced Topics"
    assert result.categories["advanced_topics/deep"].label == "Deep"


def test_malformed_category_metadata_falls_back(write_docs: WriteTree) -> None:
    root = write_docs(
        {
            "guides/setup.md": "# Setup\n",
            "guides/_category_.json": '{"position": "first"}',
        }
    )
    result = load_documents(root)
    assert result.categories["guides"].label == "Guides"
    assert result.categories["guides"].position is None
    assert [issue.path for issue in result.issues] == ["guides/"]


def test_read_category_without_file(tmp_path: Path) -> None:
    (tmp_path / "my_guides").mkdir()
    meta = read_category(tmp_path, "my_guides")
    assert (meta.label, meta.position, meta.collapsed) == ("My Guides", None, False)


def test_load_documents_interrupted(write_docs: WriteTree, mocker: typ.Any) -> None:
    """A keyboard interrupt surfaces as ``BuildInterrupted`` with the partial result."""
    root = write_docs({"a.md": "# A\n", "b.md": "# B\n"})
    mocker.patch("tutorial_pages.loader.load_document", side_effect=KeyboardInterrupt)
    with pytest.raises(BuildInterrupted) as excinfo:
        load_documents(root, workers=1)
    assert excinfo.value.result.documents == {}
