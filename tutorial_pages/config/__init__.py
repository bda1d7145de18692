"""Load and validate site configuration YAML for tutorial site builds.

This subpackage parses the optional ``site.yaml`` file, applies defaults for
every omitted field, converts the explicit sidebar into typed entries, and
produces a :class:`SiteConfig` that the site builder consumes. The primary
entry point is :func:`load_site_config`.

Examples
--------
>>> from pathlib import Path
>>> from tutorial_pages.config import load_site_config
>>> site = load_site_config(Path("site.yaml"))  # doctest: +SKIP
>>> site.title  # doctest: +SKIP
'Programming Tutorials'
"""

from .loader import load_site_config
from .models import (
    FooterConfig,
    FooterGroupConfig,
    FooterLinkConfig,
    OutputConfig,
    SidebarCategoryConfig,
    SidebarDocConfig,
    SidebarItemConfig,
    SiteConfig,
    SiteConfigError,
    ThemeConfig,
)

__all__ = [
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
    "load_site_config",
]
