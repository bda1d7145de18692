"""Load site configuration YAML into typed dataclasses."""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .helpers import (
    _broken_link_policy,
    _build_footer_config,
    _build_output_config,
    _build_sidebar_items,
    _build_theme_config,
    _coerce_workers,
    _normalize_base_url,
    _optional_str,
    _pygments_style,
    _require_mapping,
)
from .models import SiteConfig, SiteConfigError

logger = logging.getLogger(__name__)


def load_site_config(path: Path | None) -> SiteConfig:
    """Load the YAML configuration describing the tutorial site.

    Parameters
    ----------
    path : Path or None
        Filesystem path to the YAML configuration file (for example,
        ``site.yaml``). ``None`` returns a configuration built entirely from
        defaults.

    Returns
    -------
    SiteConfig
        Parsed site configuration with site metadata, theme, footer, optional
        explicit sidebar, and output filenames.

    Raises
    ------
    FileNotFoundError
        If ``path`` is given but does not exist.
    SiteConfigError
        If the YAML cannot be parsed, the top-level structure is not a
        mapping, or a section holds invalid values.
    NavigationCycleError
        If the explicit sidebar contains a category that includes itself.

    Examples
    --------
    >>> from tutorial_pages.config import load_site_config
    >>> load_site_config(None).base_url
    '/'
    """
    if path is None:
        return SiteConfig()
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = loader.load(handle)
    except YAMLError as exc:
        msg = f"Configuration file '{path}' is not valid YAML: {exc}"
        raise SiteConfigError(msg) from exc
    raw = _require_mapping(loaded, str(path))
    _ensure_known_sections(raw)
    logger.debug("Loaded site configuration from %s", path)

    site = _require_mapping(raw.get("site"), "site")
    theme = _require_mapping(raw.get("theme"), "theme")
    footer = _require_mapping(raw.get("footer"), "footer")
    output = _require_mapping(raw.get("output"), "output")
    sidebar_raw = raw.get("sidebar")

    defaults = SiteConfig()
    return SiteConfig(
        title=_optional_str(site.get("title")) or defaults.title,
        tagline=_optional_str(site.get("tagline")) or defaults.tagline,
        url=_optional_str(site.get("url")),
        base_url=_normalize_base_url(site.get("base_url")),
        edit_url=_optional_str(site.get("edit_url")),
        pygments_style=_pygments_style(site.get("pygments_style"), defaults.pygments_style),
        on_broken_links=_broken_link_policy(site.get("on_broken_links")),
        workers=_coerce_workers(site.get("workers")),
        theme=_build_theme_config(theme),
        footer=_build_footer_config(footer),
        sidebar=(
            _build_sidebar_items(sidebar_raw, "sidebar")
            if sidebar_raw is not None
            else None
        ),
        output=_build_output_config(output),
    )


def _ensure_known_sections(raw: typ.Mapping[str, typ.Any]) -> None:
    unknown = sorted(set(raw) - {"site", "theme", "footer", "sidebar", "output"})
    if unknown:
        msg = f"Unknown configuration sections: {', '.join(unknown)}"
        raise SiteConfigError(msg)


__all__ = ["load_site_config"]
