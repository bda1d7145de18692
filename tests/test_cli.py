"""Tests for the ``pages build`` command.

These tests invoke the Cyclopts command directly and check the printed report
and the exit codes for fatal build errors, configuration errors, and
interrupts.

Usage
-----
Run ``pytest tests/test_cli.py -v``.
"""

from __future__ import annotations

import typing as typ

import pytest

from tutorial_pages import cli
from tutorial_pages.models import BuildInterrupted, BuildIssue, BuildResult

if typ.TYPE_CHECKING:
    from pathlib import Path

    from conftest import WriteTree

EXAMPLE_TREE = {
    "intro.md": "---\nsidebar_position: 1\n---\n# Intro\n",
    "advanced.md": "# Advanced Topics\n",
}


def test_build_reports_written_files(
    write_docs: WriteTree, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    source = write_docs(EXAMPLE_TREE)
    output = tmp_path / "site"
    cli.build(source, output)

    captured = capsys.readouterr()
    assert f"wrote {output / 'intro.html'}" in captured.out
    assert "built 2 pages (0 errors, 0 warnings)" in captured.out
    assert captured.err == ""
    assert (output / "advanced.html").is_file()


def test_app_parses_positional_arguments(write_docs: WriteTree, tmp_path: Path) -> None:
    source = write_docs(EXAMPLE_TREE)
    output = tmp_path / "site"
    try:
        cli.app(["build", str(source), str(output), "--workers", "2"])
    except SystemExit as exc:
        assert exc.code in (None, 0), "a clean build must not exit with an error"
    assert (output / "intro.html").is_file()


def test_build_prints_issues_but_succeeds(
    write_docs: WriteTree, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    source = write_docs({**EXAMPLE_TREE, "bad.md": "---\ndraft: maybe\n---\n# Bad\n"})
    cli.build(source, tmp_path / "site")
    captured = capsys.readouterr()
    assert "error: bad.md: malformed front-matter" in captured.err
    assert "(1 errors, 0 warnings)" in captured.out


def test_slug_collision_exits_with_fatal_code(
    write_docs: WriteTree, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    source = write_docs({"a.md": "---\nslug: /x\n---\n", "b.md": "---\nslug: x\n---\n"})
    with pytest.raises(SystemExit) as excinfo:
        cli.build(source, tmp_path / "site")
    assert excinfo.value.code == cli.EXIT_FATAL
    err = capsys.readouterr().err
    assert "a.md" in err
    assert "b.md" in err


def test_missing_source_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.build(tmp_path / "missing", tmp_path / "site")
    assert excinfo.value.code == cli.EXIT_FATAL


def test_invalid_config_exits_with_config_code(write_docs: WriteTree, tmp_path: Path) -> None:
    source = write_docs(EXAMPLE_TREE)
    config = tmp_path / "site.yaml"
    config.write_text("site:\n  on_broken_links: loudly\n", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        cli.build(source, tmp_path / "site", config=config)
    assert excinfo.value.code == cli.EXIT_CONFIG
    assert not (tmp_path / "site").exists()


def test_default_config_is_picked_up(
    write_docs: WriteTree, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = write_docs(EXAMPLE_TREE)
    (tmp_path / "site.yaml").write_text("output:\n  manifest: nav.json\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    cli.build(source, tmp_path / "site")
    assert (tmp_path / "site" / "nav.json").is_file()


def test_interrupt_exits_with_130(
    write_docs: WriteTree,
    tmp_path: Path,
    mocker: typ.Any,
    capsys: pytest.CaptureFixture[str],
) -> None:
    source = write_docs(EXAMPLE_TREE)
    partial = BuildResult(errors=[BuildIssue("intro.md", "half done", "warning")])
    mocker.patch.object(cli.SiteBuilder, "run", side_effect=BuildInterrupted(partial))
    with pytest.raises(SystemExit) as excinfo:
        cli.build(source, tmp_path / "site")
    assert excinfo.value.code == cli.EXIT_INTERRUPTED
    assert "warning: intro.md: half done" in capsys.readouterr().err
