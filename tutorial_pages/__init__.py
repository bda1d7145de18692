"""Build a static documentation site from a tree of Markdown tutorials.

This package exposes the CLI entry points used by ``pages build`` to load
tutorials, resolve their navigation, and render them into HTML.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from tutorial_pages import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
