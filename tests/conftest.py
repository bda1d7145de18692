"""Shared fixtures for tutorial_pages tests."""

from __future__ import annotations

import typing as typ

import pytest

if typ.TYPE_CHECKING:
    from pathlib import Path

WriteTree = typ.Callable[[dict[str, str]], "Path"]


@pytest.fixture
def write_docs(tmp_path: Path) -> WriteTree:
    """Return a helper that writes ``{relative_path: text}`` under ``docs/``."""
    root = tmp_path / "docs"

    def _write(files: dict[str, str]) -> Path:
        root.mkdir(exist_ok=True)
        for relative, text in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        return root

    return _write
