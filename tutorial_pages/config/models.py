"""Typed dataclasses describing tutorial site configuration structures."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from .._constants import DEFAULT_MANIFEST_FILENAME, DEFAULT_SEARCH_INDEX_FILENAME

BrokenLinkPolicy = typ.Literal["warn", "error", "ignore"]
BROKEN_LINK_POLICIES: tuple[str, ...] = ("warn", "error", "ignore")


class SiteConfigError(ValueError):
    """Raised when the site configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class ThemeConfig:
    """Visual theming applied to generated documentation."""

    site_name: str = "Programming Tutorials"
    doc_label: str = "Tutorials"


@dc.dataclass(slots=True)
class FooterLinkConfig:
    """Footer hyperlink; ``to`` targets a document slug, ``href`` a URL."""

    label: str
    to: str | None = None
    href: str | None = None


@dc.dataclass(slots=True)
class FooterGroupConfig:
    """Titled column of footer links."""

    title: str
    items: list[FooterLinkConfig] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class FooterConfig:
    """Footer copy and link groups shared by every page."""

    copyright: str = ""
    links: list[FooterGroupConfig] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class SidebarDocConfig:
    """Explicit sidebar entry pointing at a document id."""

    doc_id: str
    label: str | None = None


@dc.dataclass(slots=True)
class SidebarCategoryConfig:
    """Explicit sidebar category grouping further entries."""

    label: str
    items: list[SidebarItemConfig] = dc.field(default_factory=list)
    collapsed: bool = False


SidebarItemConfig = SidebarDocConfig | SidebarCategoryConfig


@dc.dataclass(slots=True)
class OutputConfig:
    """Filenames for artefacts written at the output root."""

    manifest: str = DEFAULT_MANIFEST_FILENAME
    search_index: str = DEFAULT_SEARCH_INDEX_FILENAME


@dc.dataclass(slots=True)
class SiteConfig:
    """Fully resolved site configuration with defaults applied."""

    title: str = "Programming Tutorials"
    tagline: str = ""
    url: str | None = None
    base_url: str = "/"
    edit_url: str | None = None
    pygments_style: str = "monokai"
    on_broken_links: BrokenLinkPolicy = "warn"
    workers: int | None = None
    theme: ThemeConfig = dc.field(default_factory=ThemeConfig)
    footer: FooterConfig = dc.field(default_factory=FooterConfig)
    sidebar: list[SidebarItemConfig] | None = None
    output: OutputConfig = dc.field(default_factory=OutputConfig)

    def canonical_url(self, slug: str) -> str | None:
        """Return the absolute URL for ``slug`` when a site URL is configured."""
        if not self.url:
            return None
        base = self.base_url.rstrip("/")
        return f"{self.url.rstrip('/')}{base}{slug}"

    def edit_link(self, path: str) -> str | None:
        """Return the "edit this page" URL for a source path, if configured."""
        if not self.edit_url:
            return None
        return f"{self.edit_url.rstrip('/')}/{path.lstrip('/')}"


__all__ = [
    "BROKEN_LINK_POLICIES",
    "BrokenLinkPolicy",
    "FooterConfig",
    "FooterGroupConfig",
    "FooterLinkConfig",
    "OutputConfig",
    "SidebarCategoryConfig",
    "SidebarDocConfig",
    "SidebarItemConfig",
    "SiteConfig",
    "SiteConfigError",
    "ThemeConfig",
]
