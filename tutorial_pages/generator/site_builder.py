"""High-level orchestration for building the tutorial site.

This module ties the pipeline together. :class:`SiteBuilder` loads every
document beneath a source directory, resolves navigation, renders Markdown
bodies in parallel, merges them into the shared Jinja templates, and writes
one HTML page per document along with the sidebar manifest, the search index
and a build metadata file.

Every fatal check (slug collisions, navigation cycles, broken links under the
``error`` policy) runs before the first byte is written, so a failed build
leaves the output directory untouched.

Example
-------
>>> from pathlib import Path
>>> from tutorial_pages.config import load_site_config
>>> from tutorial_pages.generator import SiteBuilder
>>> site = load_site_config(None)
>>> builder = SiteBuilder(site, Path("docs"), Path("build"))  # doctest: +SKIP
>>> builder.run().written  # doctest: +SKIP
['advanced.html', 'intro.html', 'search-index.json', 'sidebar.json']
"""

from __future__ import annotations

import hashlib
import logging
import posixpath
import re
import typing as typ
from html import unescape
from pathlib import Path, PurePosixPath

import msgspec
from jinja2 import (
    Environment,
    FileSystemLoader,
    Template,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)

from .._constants import BUILD_META_FILENAME, DOC_TEMPLATE, ERROR_TEMPLATE
from .._parallel import iter_in_threads
from ..loader import load_documents
from ..models import (
    BrokenLinkError,
    BuildError,
    BuildInterrupted,
    BuildIssue,
    BuildResult,
    Document,
    HeadingNode,
    Navigation,
    NavigationNode,
    PageLinks,
    RenderedDocument,
    slug_to_output_path,
)
from ..navigation import resolve_navigation
from .link_rewriter import DocumentLinkResolver
from .models import (
    BuildMetadata,
    ManifestNode,
    SearchEntry,
    SearchIndex,
    SidebarManifest,
)
from .renderer import HtmlContentRenderer

if typ.TYPE_CHECKING:
    from ..config import SiteConfig
    from .code_blocks import CodeRendererRegistry

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")


class SiteBuilder:
    """Build a static tutorial site from a directory of Markdown files."""

    def __init__(
        self,
        site_config: SiteConfig,
        source_dir: Path,
        output_dir: Path,
        *,
        templates_dir: Path | None = None,
        code_renderers: CodeRendererRegistry | None = None,
        workers: int | None = None,
    ) -> None:
        """Initialize the builder with configuration and template context.

        Parameters
        ----------
        site_config : SiteConfig
            Site metadata, theme, footer, sidebar and output filenames.
        source_dir : Path
            Directory holding the Markdown tutorials.
        output_dir : Path
            Directory that receives the generated site.
        templates_dir : Path, optional
            Directory containing Jinja templates; defaults to the package templates.
        code_renderers : CodeRendererRegistry, optional
            Renderers for fenced code blocks; defaults to Pygments plus mermaid.
        workers : int, optional
            Thread count for loading and rendering; falls back to
            ``site_config.workers`` and then to the executor default.
        """
        self.site = site_config
        self.source_dir = source_dir
        self.output_dir = output_dir
        default_templates = Path(__file__).resolve().parents[1] / "templates"
        self.templates_dir = templates_dir or default_templates
        self.workers = workers or site_config.workers
        self.renderer = HtmlContentRenderer(site_config.pygments_style, code_renderers)
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def run(self) -> BuildResult:
        """Build the whole site and return what was produced.

        Returns
        -------
        BuildResult
            Rendered documents keyed by slug, per-document issues, the
            resolved navigation, and the files written or removed.

        Raises
        ------
        FileNotFoundError
            If the source directory does not exist.
        SlugCollisionError
            If two documents resolve to the same output file.
        NavigationCycleError
            If the sidebar or pagination overrides form a loop.
        BrokenLinkError
            If internal links are broken and ``on_broken_links`` is ``error``.
        BuildError
            If an artefact name leaves the output directory or clashes with a
            page, or a template is missing.
        BuildInterrupted
            If the build is interrupted; nothing is written past that point.
        """
        result = BuildResult()
        try:
            self._run(result)
        except KeyboardInterrupt as exc:
            raise BuildInterrupted(result) from exc
        return result

    def _run(self, result: BuildResult) -> None:
        loaded = load_documents(self.source_dir, workers=self.workers)
        result.errors.extend(loaded.issues)
        documents = loaded.documents

        navigation, nav_issues = resolve_navigation(
            documents, loaded.categories, self.site.sidebar, self.site.title
        )
        result.navigation = navigation
        result.errors.extend(nav_issues)
        self._check_artefacts(documents)

        doc_template = self._template(DOC_TEMPLATE)
        error_template = self._template(ERROR_TEMPLATE)

        targets = {doc.path: doc.output_path for doc in documents}
        rendered: dict[str, RenderedDocument | BuildIssue] = {}
        for doc, outcome in zip(
            navigation.order,
            iter_in_threads(
                lambda item: self._render_body(item, targets),
                navigation.order,
                workers=self.workers,
            ),
            strict=False,
        ):
            rendered[doc.path] = outcome

        self._collect_body_issues(navigation.order, rendered, result)

        outputs: dict[str, bytes] = {}
        for doc in navigation.order:
            outcome = rendered[doc.path]
            if isinstance(outcome, BuildIssue):
                html = self._render_error_page(error_template, doc, outcome.message)
            else:
                try:
                    html = self._render_page(doc_template, outcome, navigation)
                except TemplateError as exc:
                    message = f"page template failed: {exc}"
                    logger.warning("%s: %s", doc.path, message)
                    result.errors.append(BuildIssue(doc.path, message))
                    html = self._render_error_page(error_template, doc, message)
                else:
                    result.documents[doc.slug] = outcome
            outputs[doc.output_path] = html.encode("utf-8")

        outputs[self.site.output.manifest] = _encode(self._manifest(navigation))
        outputs[self.site.output.search_index] = _encode(
            self._search_index(navigation, result)
        )
        self._write_outputs(outputs, result)

    def _check_artefacts(self, documents: typ.Iterable[Document]) -> None:
        """Reject artefact names that leave the output root or clash with a page.

        Raises
        ------
        BuildError
            Naming the artefact and the file it clashes with.
        """
        claimed = {doc.output_path: f"the page for {doc.path}" for doc in documents}
        claimed[BUILD_META_FILENAME] = "the build metadata file"
        for name in (self.site.output.manifest, self.site.output.search_index):
            path = PurePosixPath(name)
            if path.is_absolute() or ".." in path.parts or not path.name:
                msg = f"Artefact '{name}' must stay inside {self.output_dir}."
                raise BuildError(msg)
            key = path.as_posix()
            clashes = [claimed[key]] if key in claimed else []
            clashes.extend(
                claimed[parent.as_posix()]
                for parent in path.parents
                if parent.as_posix() in claimed
            )
            clashes.extend(
                owner for output, owner in claimed.items() if output.startswith(f"{key}/")
            )
            if clashes:
                msg = f"Artefact '{name}' clashes with {clashes[0]}."
                raise BuildError(msg)
            claimed[key] = f"the artefact '{name}'"

    def _template(self, name: str) -> Template:
        try:
            return self.env.get_template(name)
        except TemplateNotFound as exc:
            msg = f"Template '{name}' not found in {self.templates_dir}."
            raise BuildError(msg) from exc

    def _render_body(
        self, document: Document, targets: typ.Mapping[str, str]
    ) -> RenderedDocument | BuildIssue:
        """Render one body on a worker thread; failures become an issue."""
        resolver = DocumentLinkResolver(document.path, document.output_path, targets)
        try:
            return self.renderer.render_document(document, resolver)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Rendering %s failed", document.path, exc_info=True)
            return BuildIssue(document.path, f"rendering failed: {exc}")

    def _collect_body_issues(
        self,
        order: typ.Sequence[Document],
        rendered: typ.Mapping[str, RenderedDocument | BuildIssue],
        result: BuildResult,
    ) -> None:
        """Record renderer warnings and apply the broken-link policy.

        Raises
        ------
        BrokenLinkError
            If any link is broken and the policy is ``error``.
        """
        broken: list[BuildIssue] = []
        for doc in order:
            outcome = rendered[doc.path]
            if isinstance(outcome, BuildIssue):
                logger.warning("%s: %s", outcome.path, outcome.message)
                result.errors.append(outcome)
                continue
            for warning in outcome.warnings:
                logger.warning("%s: %s", doc.path, warning)
                result.errors.append(BuildIssue(doc.path, warning, "warning"))
            broken.extend(
                BuildIssue(doc.path, f"broken link to '{href}'", "warning")
                for href in outcome.broken_links
            )
        if not broken or self.site.on_broken_links == "ignore":
            return
        if self.site.on_broken_links == "error":
            raise BrokenLinkError(broken)
        for issue in broken:
            logger.warning("%s: %s", issue.path, issue.message)
        result.errors.extend(broken)

    def _render_page(
        self, template: Template, rendered: RenderedDocument, navigation: Navigation
    ) -> str:
        """Merge a rendered body into the page template."""
        doc = rendered.document
        links = navigation.pagination.get(doc.slug, PageLinks())
        context = {
            **self._base_context(doc),
            "document": doc,
            "body_html": rendered.html,
            "headings": rendered.headings,
            "show_title": not _has_level_one(rendered.headings),
            "navigation": navigation.root,
            "previous": links.previous,
            "next": links.next,
            "in_branch": lambda node: _contains(node, doc),
            "canonical_url": self.site.canonical_url(doc.slug),
            "edit_url": self.site.edit_link(doc.path),
            "pygments_css": self.renderer.stylesheet,
        }
        return template.render(**context)

    def _render_error_page(self, template: Template, document: Document, message: str) -> str:
        context = {**self._base_context(document), "document": document, "message": message}
        return template.render(**context)

    def _base_context(self, document: Document) -> dict[str, typ.Any]:
        """Return context shared by normal and placeholder pages."""
        page_dir = posixpath.dirname(document.output_path) or "."

        def url_for(target: Document) -> str:
            return posixpath.relpath(target.output_path, start=page_dir)

        def url_for_slug(slug: str) -> str:
            return posixpath.relpath(slug_to_output_path(slug), start=page_dir)

        return {
            "site": self.site,
            "theme": self.site.theme,
            "footer": self.site.footer,
            "html_title": f"{document.title} | {self.site.title}",
            "root": posixpath.relpath(".", start=page_dir),
            "url_for": url_for,
            "url_for_slug": url_for_slug,
        }

    def _manifest(self, navigation: Navigation) -> SidebarManifest:
        return SidebarManifest(
            title=self.site.title,
            items=[_manifest_node(child) for child in navigation.root.children],
            order=[doc.slug for doc in navigation.order],
        )

    @staticmethod
    def _search_index(navigation: Navigation, result: BuildResult) -> SearchIndex:
        entries: list[SearchEntry] = []
        for doc in navigation.order:
            rendered = result.documents.get(doc.slug)
            if rendered is None:
                continue
            entries.append(
                SearchEntry(
                    title=doc.title,
                    slug=doc.slug,
                    href=doc.output_path,
                    description=doc.description or "",
                    headings=[node.title for node in _walk_headings(rendered.headings)],
                    content=_plain_text(rendered.html),
                )
            )
        return SearchIndex(entries=entries)

    def _write_outputs(self, outputs: typ.Mapping[str, bytes], result: BuildResult) -> None:
        """Write changed files, then drop files the previous build left behind."""
        previous = self._read_metadata()
        metadata = BuildMetadata(
            files={path: _digest(outputs[path]) for path in sorted(outputs)}
        )
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for path in sorted(outputs):
            if self._write_if_changed(path, outputs[path]):
                result.written.append(path)
        for path in sorted(set(previous.files) - set(outputs)):
            if self._remove_stale(path):
                result.removed.append(path)
        self._write_if_changed(BUILD_META_FILENAME, _encode(metadata))
        logger.debug(
            "Wrote %d files and removed %d under %s",
            len(result.written),
            len(result.removed),
            self.output_dir,
        )

    def _read_metadata(self) -> BuildMetadata:
        path = self.output_dir / BUILD_META_FILENAME
        if not path.is_file():
            return BuildMetadata()
        try:
            return msgspec.json.decode(path.read_bytes(), type=BuildMetadata)
        except (OSError, msgspec.DecodeError) as exc:
            logger.warning("Ignoring unreadable build metadata %s: %s", path, exc)
            return BuildMetadata()

    def _write_if_changed(self, relative_path: str, content: bytes) -> bool:
        """Write ``content`` unless the file on disk already holds it."""
        target = self.output_dir / relative_path
        if target.is_file() and _digest(target.read_bytes()) == _digest(content):
            return False
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return True

    def _remove_stale(self, relative_path: str) -> bool:
        root = self.output_dir.resolve()
        target = (self.output_dir / relative_path).resolve()
        if not target.is_relative_to(root) or not target.is_file():
            return False
        target.unlink()
        parent = target.parent
        while parent != root and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent
        return True


def _encode(record: msgspec.Struct) -> bytes:
    return msgspec.json.format(msgspec.json.encode(record), indent=2) + b"\n"


def _digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def _manifest_node(node: NavigationNode) -> ManifestNode:
    if node.document is not None:
        return ManifestNode(
            label=node.label,
            kind="doc",
            slug=node.document.slug,
            href=node.document.output_path,
        )
    return ManifestNode(
        label=node.label,
        kind="category",
        collapsed=node.collapsed,
        children=[_manifest_node(child) for child in node.children],
    )


def _contains(node: NavigationNode, document: Document) -> bool:
    return any(candidate is document for candidate in node.iter_documents())


def _walk_headings(nodes: typ.Iterable[HeadingNode]) -> typ.Iterator[HeadingNode]:
    for node in nodes:
        yield node
        yield from _walk_headings(node.children)


def _has_level_one(nodes: typ.Iterable[HeadingNode]) -> bool:
    return any(node.level == 1 for node in nodes)


def _plain_text(html: str) -> str:
    """Strip tags from rendered HTML for the search index."""
    return WHITESPACE_PATTERN.sub(" ", unescape(TAG_PATTERN.sub(" ", html))).strip()


__all__ = ["SiteBuilder"]
