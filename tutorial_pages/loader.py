r"""Discover Markdown tutorials on disk and load them as documents.

The loader is the first build stage. It walks a source directory, reads every
``.md``/``.mdx`` file, splits the optional ``---`` front-matter block, and
returns immutable :class:`~tutorial_pages.models.Document` records. Problems
with individual files (unreadable bytes, malformed front-matter) are recorded
as issues and never stop the remaining files from loading.

Example
-------
>>> from tutorial_pages.loader import split_front_matter
>>> meta, body = split_front_matter("---\nsidebar_position: 1\n---\n# Intro\n")
>>> meta["sidebar_position"], body
(1, '# Intro\n')
"""

from __future__ import annotations

import dataclasses as dc
import logging
import posixpath
import typing as typ
from pathlib import Path, PurePosixPath

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ._constants import CATEGORY_FILENAMES, FRONT_MATTER_DELIMITER, MARKDOWN_SUFFIXES
from ._parallel import iter_in_threads
from .markdown_parser import first_heading_title, scan_fences
from .models import (
    UNSET,
    BuildInterrupted,
    BuildIssue,
    BuildResult,
    CategoryMeta,
    Document,
    FrontMatter,
    FrontMatterError,
    default_category_label,
)

logger = logging.getLogger(__name__)

RECOGNISED_KEYS = frozenset(
    {
        "title",
        "slug",
        "sidebar_position",
        "sidebar_label",
        "description",
        "pagination_next",
        "pagination_prev",
        "draft",
    }
)


class CategoryMetadataError(ValueError):
    """Raised when a ``_category_`` file cannot be parsed."""


@dc.dataclass(slots=True)
class LoadResult:
    """Documents, category metadata, and per-file issues from one load."""

    documents: list[Document] = dc.field(default_factory=list)
    issues: list[BuildIssue] = dc.field(default_factory=list)
    categories: dict[str, CategoryMeta] = dc.field(default_factory=dict)


def _safe_yaml() -> YAML:
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    return loader


def _is_skipped(parts: typ.Iterable[str]) -> bool:
    """Return ``True`` for hidden files and ``_``-prefixed partials."""
    return any(part.startswith((".", "_")) for part in parts)


def discover_sources(root: Path) -> list[str]:
    """Return sorted POSIX paths of Markdown files beneath ``root``."""
    found: list[str] = []
    for candidate in root.rglob("*"):
        relative = candidate.relative_to(root)
        if _is_skipped(relative.parts):
            continue
        if candidate.suffix.lower() not in MARKDOWN_SUFFIXES:
            continue
        if not candidate.is_file():
            continue
        found.append(relative.as_posix())
    return sorted(found)


def split_front_matter(text: str) -> tuple[dict[str, typ.Any], str]:
    """Split a leading ``---`` block from ``text``.

    Parameters
    ----------
    text : str
        Full document text with ``\n`` line endings.

    Returns
    -------
    tuple[dict[str, Any], str]
        The parsed key/value mapping (empty when there is no block) and the
        remaining Markdown body.

    Raises
    ------
    FrontMatterError
        If the block is never closed, is not valid YAML, or is not a mapping
        of keys to values.
    """
    lines = text.split("\n")
    if lines[0].rstrip() != FRONT_MATTER_DELIMITER:
        return {}, text
    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONT_MATTER_DELIMITER:
            block = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1 :])
            break
    else:
        msg = "front-matter opened with '---' is never closed"
        raise FrontMatterError(msg)

    try:
        loaded = _safe_yaml().load(block)
    except YAMLError as exc:
        msg = f"front-matter is not valid YAML: {exc}"
        raise FrontMatterError(msg) from exc
    if loaded is None:
        return {}, body
    if not isinstance(loaded, dict):
        msg = "front-matter must be a block of 'key: value' pairs"
        raise FrontMatterError(msg)
    return dict(loaded), body


def _string_field(mapping: typ.Mapping[str, typ.Any], key: str) -> str | None:
    value = mapping.get(key)
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        msg = f"'{key}' must be a plain value, got {type(value).__name__}"
        raise FrontMatterError(msg)
    text = str(value).strip()
    return text or None


def _pagination_field(mapping: typ.Mapping[str, typ.Any], key: str) -> typ.Any:
    """Return the referenced doc id, ``None`` when disabled, or ``UNSET``."""
    if key not in mapping:
        return UNSET
    value = _string_field(mapping, key)
    return value.strip("/") if value else None


def parse_front_matter(mapping: typ.Mapping[str, typ.Any]) -> FrontMatter:
    """Build a :class:`FrontMatter` from raw key/value pairs.

    Raises
    ------
    FrontMatterError
        If a recognised key holds a value of the wrong type, for example a
        non-integer ``sidebar_position``.
    """
    position = mapping.get("sidebar_position")
    if position is not None and (isinstance(position, bool) or not isinstance(position, int)):
        msg = f"'sidebar_position' must be an integer, got {position!r}"
        raise FrontMatterError(msg)
    draft = mapping.get("draft", False)
    if not isinstance(draft, bool):
        msg = f"'draft' must be true or false, got {draft!r}"
        raise FrontMatterError(msg)
    return FrontMatter(
        title=_string_field(mapping, "title"),
        slug=_string_field(mapping, "slug"),
        sidebar_position=position,
        sidebar_label=_string_field(mapping, "sidebar_label"),
        description=_string_field(mapping, "description"),
        pagination_next=_pagination_field(mapping, "pagination_next"),
        pagination_prev=_pagination_field(mapping, "pagination_prev"),
        draft=draft,
        extra={key: value for key, value in mapping.items() if key not in RECOGNISED_KEYS},
    )


def derive_slug(doc_id: str, override: str | None = None) -> str:
    """Return the normalised slug for a document.

    Without an override the slug is ``/`` followed by the document id (its
    relative path minus the extension). A relative override resolves against
    the document's directory; an absolute one is used as given.

    Examples
    --------
    >>> derive_slug("guides/setup")
    '/guides/setup'
    >>> derive_slug("guides/setup", "install")
    '/guides/install'
    >>> derive_slug("guides/setup", "/")
    '/'
    """
    if override is None:
        raw = f"/{doc_id}"
    elif override.startswith("/"):
        raw = override
    else:
        raw = posixpath.join("/", posixpath.dirname(doc_id), override)
    normalized = posixpath.normpath(raw).lstrip("/")
    return f"/{normalized}" if normalized not in ("", ".") else "/"


def derive_title(body: str, override: str | None, fallback: str) -> str:
    """Return the override, else the first heading, else ``fallback``."""
    if override:
        return override
    return first_heading_title(body) or fallback


def read_source(path: Path) -> str:
    """Read a UTF-8 source file, tolerating a BOM and normalising newlines."""
    text = path.read_bytes().decode("utf-8-sig")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def load_document(root: Path, relative_path: str) -> Document:
    """Load one Markdown file beneath ``root`` into a :class:`Document`.

    Raises
    ------
    OSError
        If the file cannot be read.
    UnicodeDecodeError
        If the file is not UTF-8 text.
    FrontMatterError
        If the front-matter block is malformed.
    """
    text = read_source(root / relative_path)
    mapping, body = split_front_matter(text)
    front_matter = parse_front_matter(mapping)
    pure = PurePosixPath(relative_path)
    doc_id = pure.with_suffix("").as_posix()
    return Document(
        path=relative_path,
        doc_id=doc_id,
        title=derive_title(body, front_matter.title, pure.stem),
        slug=derive_slug(doc_id, front_matter.slug),
        body=body,
        sidebar_position=front_matter.sidebar_position,
        sidebar_label=front_matter.sidebar_label,
        description=front_matter.description,
        code_blocks=tuple(scan_fences(body)),
        front_matter=front_matter,
        body_line_offset=text.count("\n") - body.count("\n"),
    )


def read_category(root: Path, directory: str) -> CategoryMeta:
    """Return metadata for ``directory``, reading its ``_category_`` file.

    Raises
    ------
    CategoryMetadataError
        If the metadata file exists but is malformed.
    """
    default = CategoryMeta(label=default_category_label(directory))
    for filename in CATEGORY_FILENAMES:
        candidate = root / directory / filename
        if not candidate.is_file():
            continue
        try:
            loaded = _safe_yaml().load(read_source(candidate))
        except (OSError, UnicodeDecodeError, YAMLError) as exc:
            msg = f"category metadata could not be read: {exc}"
            raise CategoryMetadataError(msg) from exc
        if loaded is None:
            return default
        if not isinstance(loaded, dict):
            msg = "category metadata must be a mapping"
            raise CategoryMetadataError(msg)
        position = loaded.get("position")
        if position is not None and (isinstance(position, bool) or not isinstance(position, int)):
            msg = f"'position' must be an integer, got {position!r}"
            raise CategoryMetadataError(msg)
        collapsed = loaded.get("collapsed", False)
        if not isinstance(collapsed, bool):
            msg = f"'collapsed' must be true or false, got {collapsed!r}"
            raise CategoryMetadataError(msg)
        label = loaded.get("label")
        return CategoryMeta(
            label=str(label).strip() if label else default.label,
            position=position,
            collapsed=collapsed,
        )
    return default


def _parent_directories(paths: typ.Iterable[str]) -> list[str]:
    directories: set[str] = set()
    for path in paths:
        parent = posixpath.dirname(path)
        while parent:
            directories.add(parent)
            parent = posixpath.dirname(parent)
    return sorted(directories)


def _load_one(root: Path, relative_path: str) -> Document | BuildIssue:
    try:
        return load_document(root, relative_path)
    except FrontMatterError as exc:
        return BuildIssue(relative_path, f"malformed front-matter: {exc}")
    except UnicodeDecodeError as exc:
        return BuildIssue(relative_path, f"file is not valid UTF-8: {exc.reason}")
    except OSError as exc:
        return BuildIssue(relative_path, f"could not read file: {exc.strerror or exc}")


def load_documents(root: Path, *, workers: int | None = None) -> LoadResult:
    """Load every Markdown document beneath ``root``.

    Parameters
    ----------
    root : Path
        Source directory holding the tutorials.
    workers : int, optional
        Maximum number of reader threads; ``None`` uses the executor default.

    Returns
    -------
    LoadResult
        Documents ordered by path, category metadata for every directory
        containing documents, and any per-file issues.

    Raises
    ------
    FileNotFoundError
        If ``root`` is not a directory.
    BuildInterrupted
        If interrupted; the attached result holds the documents loaded so far.
    """
    if not root.is_dir():
        msg = f"Source directory '{root}' not found."
        raise FileNotFoundError(msg)

    sources = discover_sources(root)
    logger.debug("Discovered %d Markdown files under %s", len(sources), root)
    result = LoadResult()
    try:
        for relative_path, loaded in zip(
            sources,
            iter_in_threads(lambda path: _load_one(root, path), sources, workers=workers),
            strict=False,
        ):
            if isinstance(loaded, BuildIssue):
                logger.warning("%s: %s", loaded.path, loaded.message)
                result.issues.append(loaded)
            elif loaded.front_matter.draft:
                logger.debug("Skipping draft %s", relative_path)
            else:
                result.documents.append(loaded)
    except KeyboardInterrupt as exc:
        raise BuildInterrupted(BuildResult(errors=list(result.issues))) from exc

    for directory in _parent_directories(doc.path for doc in result.documents):
        try:
            result.categories[directory] = read_category(root, directory)
        except CategoryMetadataError as exc:
            logger.warning("%s: %s", directory, exc)
            result.issues.append(BuildIssue(f"{directory}/", str(exc)))
            result.categories[directory] = CategoryMeta(
                label=default_category_label(directory)
            )
    return result


__all__ = [
    "CategoryMetadataError",
    "LoadResult",
    "derive_slug",
    "derive_title",
    "discover_sources",
    "load_document",
    "load_documents",
    "parse_front_matter",
    "read_category",
    "read_source",
    "split_front_matter",
]
