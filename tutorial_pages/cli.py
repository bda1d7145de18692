"""Cyclopts CLI entrypoint for building the tutorial documentation site.

The ``pages`` console script defined here turns a directory of Markdown
tutorials into a static HTML site. Typical usage involves running
``pages build`` locally or in CI; every parameter can also be supplied through
an ``INPUT_*`` environment variable so the command works unchanged inside a
GitHub Action.

Exit codes: ``0`` when the site was written (per-document problems are
printed but do not fail the build), ``1`` for a fatal build error, ``2`` for an
invalid configuration, and ``130`` when interrupted.

Examples
--------
Build ``docs/`` into ``build/`` with the default configuration:

>>> from tutorial_pages.cli import main
>>> main()  # doctest: +SKIP

Build into a custom directory with a site configuration:

>>> from tutorial_pages.cli import app
>>> app.run(["build", "tutorials", "dist", "--config", "site.yaml"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .config import SiteConfigError, load_site_config
from .generator import SiteBuilder
from .models import BuildError, BuildInterrupted

if typ.TYPE_CHECKING:
    from .models import BuildIssue, BuildResult

DEFAULT_SOURCE = Path("docs")
DEFAULT_OUTPUT = Path("build")
DEFAULT_CONFIG = Path("site.yaml")

EXIT_FATAL = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130

app = App(name="pages", config=cyclopts.config.Env("INPUT_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _format_issue(issue: BuildIssue) -> str:
    return f"{issue.level}: {issue.path}: {issue.message}"


def _report(result: BuildResult, output: Path) -> None:
    """Print written files, issues, and a one-line summary."""
    for relative in result.written:
        print(f"wrote {_format_path(output / relative)}")
    for relative in result.removed:
        print(f"removed {_format_path(output / relative)}")
    for issue in result.errors:
        print(_format_issue(issue), file=sys.stderr)
    errors = len(result.errors) - len(result.warnings)
    print(
        f"built {len(result.documents)} pages "
        f"({errors} errors, {len(result.warnings)} warnings)"
    )


@app.command(help="Build the static tutorial site from a directory of Markdown.")
def build(
    source: typ.Annotated[
        Path, Parameter(help="Directory of Markdown tutorials", env_var="INPUT_SOURCE")
    ] = DEFAULT_SOURCE,
    output: typ.Annotated[
        Path, Parameter(help="Directory for the generated site", env_var="INPUT_OUTPUT")
    ] = DEFAULT_OUTPUT,
    *,
    config: typ.Annotated[
        Path | None,
        Parameter(
            help="Path to site config (defaults to site.yaml when present)",
            env_var="INPUT_CONFIG",
        ),
    ] = None,
    workers: typ.Annotated[
        int | None,
        Parameter(help="Threads used to load and render", env_var="INPUT_WORKERS"),
    ] = None,
    verbose: typ.Annotated[
        bool, Parameter(help="Log progress at debug level", env_var="INPUT_VERBOSE")
    ] = False,
) -> None:
    """Build the tutorial site and report what was written.

    Parameters
    ----------
    source : Path, optional
        Directory containing ``.md``/``.mdx`` tutorials; defaults to ``docs``.
    output : Path, optional
        Directory that receives the site; defaults to ``build``.
    config : Path or None, optional
        Site configuration file. When ``None``, ``site.yaml`` in the working
        directory is used if it exists, otherwise built-in defaults apply.
    workers : int or None, optional
        Thread count for loading and rendering.
    verbose : bool, optional
        Enable debug logging.

    Raises
    ------
    SystemExit
        With ``1`` for fatal build errors, ``2`` for configuration errors, and
        ``130`` when interrupted.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if config is None and DEFAULT_CONFIG.is_file():
        config = DEFAULT_CONFIG

    try:
        site_config = load_site_config(config)
    except (FileNotFoundError, SiteConfigError, BuildError) as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        raise SystemExit(EXIT_CONFIG) from exc

    builder = SiteBuilder(site_config, source, output, workers=workers)
    try:
        result = builder.run()
    except BuildInterrupted as exc:
        print("interrupted; no further files were written", file=sys.stderr)
        for issue in exc.result.errors:
            print(_format_issue(issue), file=sys.stderr)
        raise SystemExit(EXIT_INTERRUPTED) from exc
    except SiteConfigError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        raise SystemExit(EXIT_CONFIG) from exc
    except (BuildError, FileNotFoundError) as exc:
        print(f"build failed: {exc}", file=sys.stderr)
        raise SystemExit(EXIT_FATAL) from exc

    _report(result, output)


def main() -> None:
    """Invoke the Cyclopts application that powers the `pages` console command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
