"""Utility helpers shared by the tutorial site configuration loader."""

from __future__ import annotations

import typing as typ
from pathlib import PurePosixPath

from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .._constants import BUILD_META_FILENAME, OUTPUT_SUFFIX
from ..models import NavigationCycleError
from .models import (
    BROKEN_LINK_POLICIES,
    FooterConfig,
    FooterGroupConfig,
    FooterLinkConfig,
    OutputConfig,
    SidebarCategoryConfig,
    SidebarDocConfig,
    SidebarItemConfig,
    SiteConfigError,
    ThemeConfig,
)


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_mapping(value: object, where: str) -> typ.Mapping[str, typ.Any]:
    """Return ``value`` as a mapping, treating ``None`` as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        msg = f"'{where}' must be a mapping."
        raise SiteConfigError(msg)
    return value


def _coerce_bool(value: object, where: str) -> bool:
    if isinstance(value, bool):
        return value
    msg = f"'{where}' must be true or false, got {value!r}."
    raise SiteConfigError(msg)


def _coerce_workers(value: object) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        msg = f"'site.workers' must be a positive integer, got {value!r}."
        raise SiteConfigError(msg)
    return value


def _normalize_base_url(value: object | None) -> str:
    """Return ``value`` wrapped in slashes, defaulting to ``/``."""
    text = _optional_str(value) or "/"
    return "/" + text.strip("/") + "/" if text.strip("/") else "/"


def _pygments_style(value: object | None, default: str) -> str:
    """Return a Pygments style name, rejecting styles Pygments does not know."""
    style = _optional_str(value) or default
    try:
        get_style_by_name(style)
    except ClassNotFound as exc:
        msg = f"'site.pygments_style' names an unknown Pygments style: {style!r}."
        raise SiteConfigError(msg) from exc
    return style


def _broken_link_policy(value: object | None) -> str:
    policy = (_optional_str(value) or "warn").lower()
    if policy not in BROKEN_LINK_POLICIES:
        allowed = ", ".join(BROKEN_LINK_POLICIES)
        msg = f"'site.on_broken_links' must be one of {allowed}, got {value!r}."
        raise SiteConfigError(msg)
    return policy


def _build_theme_config(payload: typ.Mapping[str, typ.Any]) -> ThemeConfig:
    """Build a ThemeConfig instance from the provided mapping payload."""
    base = ThemeConfig()
    return ThemeConfig(
        site_name=_optional_str(payload.get("site_name")) or base.site_name,
        doc_label=_optional_str(payload.get("doc_label")) or base.doc_label,
    )


def _build_footer_link(payload: object, where: str) -> FooterLinkConfig:
    data = _require_mapping(payload, where)
    label = _optional_str(data.get("label"))
    if not label:
        msg = f"'{where}' is missing 'label'."
        raise SiteConfigError(msg)
    to = _optional_str(data.get("to"))
    href = _optional_str(data.get("href"))
    if bool(to) == bool(href):
        msg = f"'{where}' needs exactly one of 'to' or 'href'."
        raise SiteConfigError(msg)
    if to and not to.startswith("/"):
        to = f"/{to}"
    return FooterLinkConfig(label=label, to=to, href=href)


def _build_footer_config(payload: typ.Mapping[str, typ.Any]) -> FooterConfig:
    """Build the footer from ``copyright`` and grouped ``links``."""
    groups: list[FooterGroupConfig] = []
    for group_index, raw_group in enumerate(payload.get("links") or []):
        where = f"footer.links[{group_index}]"
        group = _require_mapping(raw_group, where)
        items = [
            _build_footer_link(item, f"{where}.items[{item_index}]")
            for item_index, item in enumerate(group.get("items") or [])
        ]
        groups.append(
            FooterGroupConfig(title=_optional_str(group.get("title")) or "", items=items)
        )
    return FooterConfig(
        copyright=_optional_str(payload.get("copyright")) or "", links=groups
    )


def _artefact_name(value: object | None, default: str, where: str) -> str:
    """Return an artefact filename that stays inside the output directory.

    Names are relative POSIX paths without ``..`` segments. They may not end
    in the page suffix or reuse the build metadata filename, so an artefact
    can never replace a page or the metadata file.
    """
    name = _optional_str(value) or default
    path = PurePosixPath(name)
    escapes = path.is_absolute() or ".." in path.parts
    if escapes or not path.name or "\\" in name or name.endswith("/"):
        msg = f"'{where}' must be a relative path inside the output directory: {name!r}."
        raise SiteConfigError(msg)
    if path.suffix.lower() == OUTPUT_SUFFIX or path.as_posix() == BUILD_META_FILENAME:
        msg = f"'{where}' may not name a page or the build metadata file: {name!r}."
        raise SiteConfigError(msg)
    return path.as_posix()


def _build_output_config(payload: typ.Mapping[str, typ.Any]) -> OutputConfig:
    base = OutputConfig()
    manifest = _artefact_name(payload.get("manifest"), base.manifest, "output.manifest")
    search_index = _artefact_name(
        payload.get("search_index"), base.search_index, "output.search_index"
    )
    if manifest == search_index:
        msg = f"'output.manifest' and 'output.search_index' are both {manifest!r}."
        raise SiteConfigError(msg)
    return OutputConfig(manifest=manifest, search_index=search_index)


def _build_sidebar_items(
    raw_items: object, where: str, active: list[int] | None = None
) -> list[SidebarItemConfig]:
    """Convert the raw ``sidebar`` list into typed items.

    YAML aliases can make a category list contain itself; ``active`` tracks
    the identities of the lists currently being converted so such a loop is
    reported instead of recursing forever.
    """
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        msg = f"'{where}' must be a list."
        raise SiteConfigError(msg)
    active = active if active is not None else []
    if id(raw_items) in active:
        msg = f"Sidebar category at '{where}' contains itself."
        raise NavigationCycleError(msg, [where])
    active.append(id(raw_items))
    items: list[SidebarItemConfig] = []
    for index, raw in enumerate(raw_items):
        item_where = f"{where}[{index}]"
        match raw:
            case str():
                items.append(SidebarDocConfig(doc_id=raw.strip().strip("/")))
            case dict() if raw.get("type", "doc") == "doc":
                doc_id = _optional_str(raw.get("id"))
                if not doc_id:
                    msg = f"'{item_where}' is missing 'id'."
                    raise SiteConfigError(msg)
                items.append(
                    SidebarDocConfig(
                        doc_id=doc_id.strip("/"), label=_optional_str(raw.get("label"))
                    )
                )
            case dict() if raw.get("type") == "category":
                label = _optional_str(raw.get("label"))
                if not label:
                    msg = f"'{item_where}' is missing 'label'."
                    raise SiteConfigError(msg)
                items.append(
                    SidebarCategoryConfig(
                        label=label,
                        items=_build_sidebar_items(
                            raw.get("items"), f"{item_where}.items", active
                        ),
                        collapsed=_coerce_bool(
                            raw.get("collapsed", False), f"{item_where}.collapsed"
                        ),
                    )
                )
            case _:
                msg = f"'{item_where}' must be a doc id or a doc/category mapping."
                raise SiteConfigError(msg)
    active.pop()
    return items


__all__ = [
    "_broken_link_policy",
    "_build_footer_config",
    "_build_output_config",
    "_build_sidebar_items",
    "_build_theme_config",
    "_coerce_bool",
    "_coerce_workers",
    "_normalize_base_url",
    "_optional_str",
    "_pygments_style",
    "_require_mapping",
]
