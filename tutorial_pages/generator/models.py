"""Serialisable records written next to the generated pages.

Every artefact is a :class:`msgspec.Struct`, so field order is fixed by the
class definition and JSON output is deterministic for identical input.
"""

from __future__ import annotations

import msgspec


class ManifestNode(msgspec.Struct):
    """One sidebar entry; categories have no ``href`` and may have children.

    Attributes
    ----------
    label : str
        Text shown in navigation.
    kind : str
        ``"doc"`` or ``"category"``.
    slug : str | None
        Document slug, ``None`` for categories.
    href : str | None
        Output path relative to the site root, ``None`` for categories.
    collapsed : bool
        Whether a category starts collapsed.
    children : list[ManifestNode]
        Nested entries in reading order.
    """

    label: str
    kind: str
    slug: str | None = None
    href: str | None = None
    collapsed: bool = False
    children: list[ManifestNode] = []


class SidebarManifest(msgspec.Struct):
    """Whole navigation tree plus the flat reading order."""

    title: str
    items: list[ManifestNode]
    order: list[str]


class SearchEntry(msgspec.Struct):
    """Text indexed for one page."""

    title: str
    slug: str
    href: str
    description: str
    headings: list[str]
    content: str


class SearchIndex(msgspec.Struct):
    entries: list[SearchEntry]


class BuildMetadata(msgspec.Struct):
    """Output files from one build keyed by relative path, with SHA-256 digests."""

    files: dict[str, str] = {}


__all__ = [
    "BuildMetadata",
    "ManifestNode",
    "SearchEntry",
    "SearchIndex",
    "SidebarManifest",
]
