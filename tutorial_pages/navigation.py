"""Resolve loaded documents into one navigation tree and reading order.

Navigation is rebuilt from scratch on every build. The tree comes either from
the directory layout (documents and subdirectories ordered by position, then
name) or from an explicit sidebar in the site configuration. Reading order is
a depth-first walk of the tree; pagination links each document to its
neighbours and then applies ``pagination_next``/``pagination_prev`` overrides.

Examples
--------
>>> from tutorial_pages.models import Document
>>> docs = [
...     Document("advanced.md", "advanced", "Advanced", "/advanced", ""),
...     Document("intro.md", "intro", "Intro", "/intro", "", sidebar_position=1),
... ]
>>> navigation, issues = resolve_navigation(docs, {})
>>> [doc.slug for doc in navigation.order]
['/intro', '/advanced']
"""

from __future__ import annotations

import logging
import posixpath
import typing as typ
from pathlib import PurePosixPath

from .config.models import SidebarCategoryConfig, SidebarDocConfig, SiteConfigError
from .models import (
    UNSET,
    BuildIssue,
    CategoryMeta,
    Document,
    Navigation,
    NavigationCycleError,
    NavigationNode,
    PageLinks,
    SlugCollisionError,
    default_category_label,
)

if typ.TYPE_CHECKING:
    from .config.models import SidebarItemConfig

logger = logging.getLogger(__name__)

SortKey = tuple[bool, int, str, int]

DOC_KIND = 0
CATEGORY_KIND = 1


def check_unique_slugs(documents: typ.Iterable[Document]) -> None:
    """Fail when two documents would be written to the same output file.

    A page whose output file would have to double as a directory for another
    page (``/a`` writes ``a.html``, ``/a.html/b`` writes ``a.html/b.html``)
    is a collision too.

    Raises
    ------
    SlugCollisionError
        Naming the slug and every conflicting source path.
    """
    claims: dict[str, list[Document]] = {}
    for doc in documents:
        claims.setdefault(doc.output_path, []).append(doc)
    for output_path in sorted(claims):
        docs = claims[output_path]
        if len(docs) > 1:
            raise SlugCollisionError(docs[0].slug, sorted(doc.path for doc in docs))
    for output_path in sorted(claims):
        for parent in PurePosixPath(output_path).parents:
            owner = claims.get(parent.as_posix())
            if owner:
                paths = sorted([owner[0].path, claims[output_path][0].path])
                raise SlugCollisionError(owner[0].slug, paths)


def _sort_key(position: int | None, name: str, kind: int) -> SortKey:
    """Positioned items first (ascending), then the rest by name."""
    return (position is None, position if position is not None else 0, name, kind)


def build_navigation_tree(
    documents: typ.Iterable[Document],
    categories: typ.Mapping[str, CategoryMeta],
    site_title: str = "",
) -> NavigationNode:
    """Group documents by directory into an ordered tree.

    Parameters
    ----------
    documents : Iterable[Document]
        Documents to place; each appears exactly once in the result.
    categories : Mapping[str, CategoryMeta]
        Metadata keyed by directory path. Directories without an entry get a
        label derived from their name.
    site_title : str, optional
        Label for the root node.

    Returns
    -------
    NavigationNode
        The root; categories carry no document.
    """
    root = NavigationNode(label=site_title, key="")
    nodes: dict[str, NavigationNode] = {"": root}
    entries: dict[str, list[tuple[SortKey, NavigationNode]]] = {"": []}

    def category_node(directory: str) -> NavigationNode:
        existing = nodes.get(directory)
        if existing is not None:
            return existing
        parent = posixpath.dirname(directory)
        category_node(parent)
        meta = categories.get(directory) or CategoryMeta(
            label=default_category_label(directory)
        )
        node = NavigationNode(label=meta.label, collapsed=meta.collapsed, key=directory)
        nodes[directory] = node
        entries[directory] = []
        name = posixpath.basename(directory)
        entries[parent].append((_sort_key(meta.position, name, CATEGORY_KIND), node))
        return node

    for doc in sorted(documents, key=lambda item: item.path):
        category_node(doc.directory)
        node = NavigationNode(label=doc.nav_label, document=doc, key=doc.doc_id)
        key = _sort_key(doc.sidebar_position, doc.filename, DOC_KIND)
        entries[doc.directory].append((key, node))

    for directory, node in nodes.items():
        node.children = [child for _, child in sorted(entries[directory], key=_first)]
    return root


def _first(entry: tuple[SortKey, NavigationNode]) -> SortKey:
    return entry[0]


def build_explicit_tree(
    documents: typ.Iterable[Document],
    sidebar: typ.Sequence[SidebarItemConfig],
    site_title: str = "",
) -> tuple[NavigationNode, list[BuildIssue]]:
    """Build the tree from a configured sidebar.

    Unknown document ids are reported and skipped. Documents the sidebar
    never mentions are appended to the root, in directory order, so that
    every document stays reachable.

    Raises
    ------
    SiteConfigError
        If the sidebar lists the same document twice.
    NavigationCycleError
        If a category contains itself.
    """
    docs = sorted(documents, key=lambda item: item.path)
    by_id = {doc.doc_id: doc for doc in docs}
    listed: set[str] = set()
    issues: list[BuildIssue] = []
    active: list[int] = []

    def convert(items: typ.Sequence[SidebarItemConfig], trail: list[str]) -> list[NavigationNode]:
        converted: list[NavigationNode] = []
        for item in items:
            match item:
                case SidebarDocConfig():
                    doc = by_id.get(item.doc_id)
                    if doc is None:
                        issues.append(
                            BuildIssue(
                                f"sidebar:{item.doc_id}",
                                "sidebar references an unknown document id",
                                "warning",
                            )
                        )
                        continue
                    if doc.doc_id in listed:
                        msg = f"Document '{doc.path}' appears more than once in the sidebar."
                        raise SiteConfigError(msg)
                    listed.add(doc.doc_id)
                    converted.append(
                        NavigationNode(
                            label=item.label or doc.nav_label,
                            document=doc,
                            key=doc.doc_id,
                        )
                    )
                case SidebarCategoryConfig():
                    if id(item) in active:
                        names = [*trail, item.label]
                        chain = " > ".join(names)
                        msg = f"Sidebar category '{item.label}' contains itself: {chain}"
                        raise NavigationCycleError(msg, names)
                    active.append(id(item))
                    children = convert(item.items, [*trail, item.label])
                    active.pop()
                    converted.append(
                        NavigationNode(
                            label=item.label,
                            children=children,
                            collapsed=item.collapsed,
                            key=item.label,
                        )
                    )
        return converted

    root = NavigationNode(label=site_title, key="", children=convert(sidebar, []))
    unlisted = [doc for doc in docs if doc.doc_id not in listed]
    if unlisted:
        for doc in unlisted:
            issues.append(
                BuildIssue(
                    doc.path,
                    "document is not listed in the sidebar; appended at the end",
                    "warning",
                )
            )
        fallback = build_navigation_tree(unlisted, {}, site_title)
        root.children.extend(fallback.children)
    return root, issues


def _resolve_reference(
    doc: Document,
    key: str,
    default: Document | None,
    by_id: typ.Mapping[str, Document],
    issues: list[BuildIssue],
) -> Document | None:
    value = getattr(doc.front_matter, key)
    if value is UNSET:
        return default
    if value is None:
        return None
    target = by_id.get(value)
    if target is None:
        relative = posixpath.normpath(posixpath.join(doc.directory, value))
        target = by_id.get(relative)
    if target is None:
        issues.append(
            BuildIssue(doc.path, f"'{key}' references unknown document '{value}'", "warning")
        )
    return target


def _check_cycles(links: typ.Mapping[str, Document | None], direction: str) -> None:
    """Raise when following ``links`` from any document revisits one.

    ``links`` maps each document path to the document it points at.
    """
    done: set[str] = set()
    for start in links:
        if start in done:
            continue
        trail: list[str] = []
        positions: dict[str, int] = {}
        current: str | None = start
        while current is not None and current not in done:
            if current in positions:
                cycle = trail[positions[current] :]
                chain = " -> ".join([*cycle, current])
                msg = f"Pagination '{direction}' links form a cycle: {chain}"
                raise NavigationCycleError(msg, cycle)
            positions[current] = len(trail)
            trail.append(current)
            target = links.get(current)
            current = target.path if target is not None else None
        done.update(trail)


def resolve_pagination(
    order: typ.Sequence[Document],
) -> tuple[dict[str, PageLinks], list[BuildIssue]]:
    """Return previous/next links keyed by slug, plus override warnings.

    Raises
    ------
    NavigationCycleError
        If following ``next`` (or ``previous``) links ever revisits a
        document.
    """
    by_id = {doc.doc_id: doc for doc in order}
    issues: list[BuildIssue] = []
    next_links: dict[str, Document | None] = {}
    prev_links: dict[str, Document | None] = {}
    for index, doc in enumerate(order):
        default_next = order[index + 1] if index + 1 < len(order) else None
        default_prev = order[index - 1] if index > 0 else None
        next_links[doc.path] = _resolve_reference(
            doc, "pagination_next", default_next, by_id, issues
        )
        prev_links[doc.path] = _resolve_reference(
            doc, "pagination_prev", default_prev, by_id, issues
        )
    _check_cycles(next_links, "next")
    _check_cycles(prev_links, "previous")
    pagination = {
        doc.slug: PageLinks(previous=prev_links[doc.path], next=next_links[doc.path])
        for doc in order
    }
    return pagination, issues


def resolve_navigation(
    documents: typ.Sequence[Document],
    categories: typ.Mapping[str, CategoryMeta],
    sidebar: typ.Sequence[SidebarItemConfig] | None = None,
    site_title: str = "",
) -> tuple[Navigation, list[BuildIssue]]:
    """Validate slugs and build the navigation tree, order and pagination.

    Raises
    ------
    SlugCollisionError
        If two documents share an output path.
    NavigationCycleError
        If the sidebar or pagination overrides loop.
    SiteConfigError
        If the explicit sidebar lists a document twice.
    """
    check_unique_slugs(documents)
    issues: list[BuildIssue] = []
    if sidebar is None:
        root = build_navigation_tree(documents, categories, site_title)
    else:
        root, sidebar_issues = build_explicit_tree(documents, sidebar, site_title)
        issues.extend(sidebar_issues)
    order = list(root.iter_documents())
    pagination, pagination_issues = resolve_pagination(order)
    issues.extend(pagination_issues)
    for issue in issues:
        logger.warning("%s: %s", issue.path, issue.message)
    logger.debug("Resolved navigation for %d documents", len(order))
    return Navigation(root=root, order=order, pagination=pagination), issues


__all__ = [
    "build_explicit_tree",
    "build_navigation_tree",
    "check_unique_slugs",
    "resolve_navigation",
    "resolve_pagination",
]
