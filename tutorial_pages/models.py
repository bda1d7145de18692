"""Shared records passed between the build pipeline stages.

Every stage consumes the previous stage's output: the loader yields
:class:`Document` values, the renderer yields :class:`RenderedDocument`
values, the navigation resolver yields a :class:`Navigation`, and the site
builder aggregates everything into a :class:`BuildResult`. Documents are
frozen once loaded; the builder never mutates them.

Examples
--------
>>> doc = Document(
...     path="intro.md",
...     doc_id="intro",
...     title="Intro",
...     slug="/intro",
...     body="# Intro\\n",
... )
>>> doc.output_path
'intro.html'
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from ._constants import INDEX_FILENAME, OUTPUT_SUFFIX

IssueLevel = typ.Literal["error", "warning"]


class _Unset:
    """Sentinel type marking a front-matter key that was never written."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


class BuildError(RuntimeError):
    """Raised when the whole build must abort before writing output."""


class SlugCollisionError(BuildError):
    """Raised when two or more documents resolve to the same output slug."""

    def __init__(self, slug: str, paths: typ.Sequence[str]) -> None:
        self.slug = slug
        self.paths = tuple(paths)
        joined = ", ".join(self.paths)
        super().__init__(f"Slug '{slug}' is claimed by multiple documents: {joined}")


class NavigationCycleError(BuildError):
    """Raised when explicit navigation references loop back on themselves."""

    def __init__(self, message: str, paths: typ.Sequence[str]) -> None:
        self.paths = tuple(paths)
        super().__init__(message)


class BrokenLinkError(BuildError):
    """Raised when broken internal links are configured to fail the build."""

    def __init__(self, broken: typ.Sequence[BuildIssue]) -> None:
        self.broken = tuple(broken)
        lines = "; ".join(f"{issue.path}: {issue.message}" for issue in self.broken)
        super().__init__(f"Broken internal links: {lines}")


class BuildInterrupted(BuildError):
    """Raised when the build is interrupted; carries the partial result."""

    def __init__(self, result: BuildResult) -> None:
        self.result = result
        super().__init__("Build interrupted before completion.")


class FrontMatterError(ValueError):
    """Raised when a document's front-matter block cannot be parsed."""


@dc.dataclass(frozen=True, slots=True)
class CodeBlock:
    """Fenced code block extracted from a Markdown body.

    Attributes
    ----------
    language : str
        First word of the info string, verbatim; empty when untagged.
    source : str
        Code content with the opener's indentation removed.
    info : str
        Full info string following the opening fence.
    start_line : int
        Zero-based line index of the opening fence.
    end_line : int
        Zero-based index one past the closing fence (or the last line).
    terminated : bool
        ``False`` when no closing fence was found.
    """

    language: str
    source: str
    info: str = ""
    start_line: int = 0
    end_line: int = 0
    terminated: bool = True


@dc.dataclass(frozen=True, slots=True)
class FrontMatter:
    """Typed front-matter with explicit defaults for every recognised key."""

    title: str | None = None
    slug: str | None = None
    sidebar_position: int | None = None
    sidebar_label: str | None = None
    description: str | None = None
    pagination_next: str | None | _Unset = UNSET
    pagination_prev: str | None | _Unset = UNSET
    draft: bool = False
    extra: typ.Mapping[str, typ.Any] = dc.field(default_factory=dict)


@dc.dataclass(frozen=True, slots=True)
class Document:
    """A Markdown source file loaded for a single build."""

    path: str
    doc_id: str
    title: str
    slug: str
    body: str
    sidebar_position: int | None = None
    sidebar_label: str | None = None
    description: str | None = None
    code_blocks: tuple[CodeBlock, ...] = ()
    front_matter: FrontMatter = dc.field(default_factory=FrontMatter)
    body_line_offset: int = 0

    @property
    def output_path(self) -> str:
        """Return the POSIX output path mirroring the slug."""
        return slug_to_output_path(self.slug)

    @property
    def filename(self) -> str:
        """Return the source filename without its directory."""
        return self.path.rsplit("/", 1)[-1]

    @property
    def directory(self) -> str:
        """Return the source directory relative to the docs root."""
        return self.path.rsplit("/", 1)[0] if "/" in self.path else ""

    @property
    def nav_label(self) -> str:
        """Return the label shown in navigation."""
        return self.sidebar_label or self.title


@dc.dataclass(frozen=True, slots=True)
class CategoryMeta:
    """Metadata for a directory read from its ``_category_`` file."""

    label: str
    position: int | None = None
    collapsed: bool = False


@dc.dataclass(slots=True)
class HeadingNode:
    """Heading in the rendered document's outline."""

    level: int
    title: str
    anchor: str
    children: list[HeadingNode] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class RenderedDocument:
    """HTML body and outline produced for one document."""

    document: Document
    html: str
    headings: list[HeadingNode] = dc.field(default_factory=list)
    warnings: list[str] = dc.field(default_factory=list)
    broken_links: list[str] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class NavigationNode:
    """Node in the navigation tree; categories carry no document."""

    label: str
    document: Document | None = None
    children: list[NavigationNode] = dc.field(default_factory=list)
    collapsed: bool = False
    key: str = ""

    @property
    def is_category(self) -> bool:
        return self.document is None

    def iter_documents(self) -> typ.Iterator[Document]:
        """Yield documents in depth-first reading order."""
        if self.document is not None:
            yield self.document
        for child in self.children:
            yield from child.iter_documents()


@dc.dataclass(frozen=True, slots=True)
class PageLinks:
    """Previous and next neighbours of a document in reading order."""

    previous: Document | None = None
    next: Document | None = None


@dc.dataclass(slots=True)
class Navigation:
    """Resolved navigation tree with reading order and pagination."""

    root: NavigationNode
    order: list[Document]
    pagination: dict[str, PageLinks]


@dc.dataclass(frozen=True, slots=True)
class BuildIssue:
    """A recoverable, per-document problem recorded during a build."""

    path: str
    message: str
    level: IssueLevel = "error"


@dc.dataclass(slots=True)
class BuildResult:
    """Everything a build produced, including recoverable issues."""

    documents: dict[str, RenderedDocument] = dc.field(default_factory=dict)
    errors: list[BuildIssue] = dc.field(default_factory=list)
    navigation: Navigation | None = None
    written: list[str] = dc.field(default_factory=list)
    removed: list[str] = dc.field(default_factory=list)

    @property
    def warnings(self) -> list[BuildIssue]:
        return [issue for issue in self.errors if issue.level == "warning"]

    @property
    def ok(self) -> bool:
        """Return ``True`` when no document was skipped or replaced."""
        return all(issue.level != "error" for issue in self.errors)


def default_category_label(directory: str) -> str:
    """Return the label a directory gets without category metadata.

    Examples
    --------
    >>> default_category_label("guides/getting-started")
    'Getting Started'
    """
    name = directory.rsplit("/", 1)[-1]
    return name.replace("-", " ").replace("_", " ").title()


def slug_to_output_path(slug: str) -> str:
    """Map a normalised slug to its output file path.

    Examples
    --------
    >>> slug_to_output_path("/guides/setup")
    'guides/setup.html'
    >>> slug_to_output_path("/")
    'index.html'
    """
    trimmed = slug.strip("/")
    if not trimmed:
        return INDEX_FILENAME
    return f"{trimmed}{OUTPUT_SUFFIX}"


__all__ = [
    "UNSET",
    "BrokenLinkError",
    "BuildError",
    "BuildInterrupted",
    "BuildIssue",
    "BuildResult",
    "CategoryMeta",
    "CodeBlock",
    "Document",
    "FrontMatter",
    "FrontMatterError",
    "HeadingNode",
    "Navigation",
    "NavigationCycleError",
    "NavigationNode",
    "PageLinks",
    "RenderedDocument",
    "SlugCollisionError",
    "default_category_label",
    "slug_to_output_path",
]
