"""Tests for loading the site configuration YAML.

Usage
-----
Run ``pytest tests/test_config.py -v``. Each test writes a ``site.yaml`` into
pytest's ``tmp_path``.
"""

from __future__ import annotations

import typing as typ

import pytest

from tutorial_pages.config import (
    SidebarCategoryConfig,
    SidebarDocConfig,
    SiteConfig,
    SiteConfigError,
    load_site_config,
)
from tutorial_pages.models import NavigationCycleError

if typ.TYPE_CHECKING:
    from pathlib import Path


def _write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "site.yaml"
    path.write_text(text.strip() + "\n", encoding="utf-8")
    return path


def test_none_returns_defaults() -> None:
    config = load_site_config(None)
    assert config == SiteConfig()
    assert config.sidebar is None
    assert config.output.manifest == "sidebar.json"
    assert config.output.search_index == "search-index.json"


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_site_config(tmp_path / "absent.yaml")


def test_full_configuration(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path,
        """
site:
  title: Rust Tutorials
  tagline: Learn by doing
  url: https://tutorials.example.org/
  base_url: docs
  edit_url: https://github.com/example/tutorials/edit/main/docs/
  pygments_style: friendly
  on_broken_links: ERROR
  workers: 4
theme:
  site_name: Example
footer:
  copyright: Example contributors
  links:
    - title: Docs
      items:
        - label: Intro
          to: intro
        - label: GitHub
          href: https://github.com/example
sidebar:
  - intro
  - type: category
    label: Guides
    collapsed: true
    items:
      - id: /guides/setup/
        label: Setup
output:
  manifest: nav.json
""",
    )
    config = load_site_config(path)
    assert config.title == "Rust Tutorials"
    assert config.base_url == "/docs/"
    assert config.pygments_style == "friendly"
    assert config.on_broken_links == "error"
    assert config.workers == 4
    assert config.theme.site_name == "Example"
    assert config.theme.doc_label == "Tutorials"
    assert [item.to for item in config.footer.links[0].items] == ["/intro", None]
    assert config.sidebar == [
        SidebarDocConfig("intro"),
        SidebarCategoryConfig(
            label="Guides", items=[SidebarDocConfig("guides/setup", "Setup")], collapsed=True
        ),
    ]
    assert config.output.manifest == "nav.json"
    assert config.output.search_index == "search-index.json"
    assert config.canonical_url("/intro") == "https://tutorials.example.org/docs/intro"
    assert (
        config.edit_link("guides/setup.md")
        == "https://github.com/example/tutorials/edit/main/docs/guides/setup.md"
    )


@pytest.mark.parametrize(
    "text",
    [
        "site: [1, 2]",
        "site:\n  on_broken_links: sometimes",
        "site:\n  workers: 0",
        "unknown:\n  key: value",
        "footer:\n  links:\n    - title: Docs\n      items:\n        - label: Both\n          to: a\n          href: b",
        "sidebar:\n  - type: category\n    items: []",
        "sidebar:\n  - 3",
        "site: {title: [unclosed",
        "site:\n  pygments_style: no-such-style",
        "output:\n  manifest: intro.html",
        "output:\n  search_index: ../outside.json",
        "output:\n  manifest: /abs/nav.json",
        "output:\n  manifest: same.json\n  search_index: same.json",
        "output:\n  manifest: .tutorial-pages-build.json",
    ],
    ids=[
        "section-not-mapping",
        "bad-policy",
        "bad-workers",
        "unknown-section",
        "footer-to-and-href",
        "category-without-label",
        "sidebar-number",
        "invalid-yaml",
        "unknown-pygments-style",
        "manifest-is-a-page",
        "search-index-outside-output",
        "manifest-absolute",
        "artefacts-share-a-name",
        "manifest-is-build-metadata",
    ],
)
def test_invalid_configuration(tmp_path: Path, text: str) -> None:
    with pytest.raises(SiteConfigError):
        load_site_config(_write_config(tmp_path, text))


def test_sidebar_alias_loop_is_a_cycle(tmp_path: Path) -> None:
    """A YAML alias that makes a category include itself is reported."""
    path = _write_config(
        tmp_path,
        """
sidebar: &top
  - type: category
    label: Loop
    items: *top
""",
    )
    with pytest.raises(NavigationCycleError):
        load_site_config(path)
