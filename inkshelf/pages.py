"""Render the landing, folder and document pages for a staged site tree."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .config import SiteConfig
from .navigation import NavigationModel
from .sitetree import DocumentEntry, FolderEntry, SiteNode, SiteTreeDescriptor
from .staging import copy_static_tree
from .themes import ThemeLoader

logger = logging.getLogger(__name__)

ASSETS_DIRNAME = "assets"
INDEX_FILENAME = "index.html"


def relative_prefix(depth: int) -> str:
    """Return the link prefix leading from a page ``depth`` levels down back to the root."""
    return "./" if depth == 0 else "../" * depth


def node_depth(path: str) -> int:
    return len(path.split("/")) if path else 0


class SiteRenderer:
    """Builder hook that turns a site tree descriptor into static HTML.

    Every link is relative to the page that carries it, so the output can be
    served from any URL prefix or opened straight from disk.
    """

    def __init__(self, theme: ThemeLoader, site: SiteConfig | None = None) -> None:
        self._theme = theme
        self._site = site or SiteConfig()

    @property
    def theme(self) -> ThemeLoader:
        return self._theme

    def __call__(self, descriptor: SiteTreeDescriptor, output_root: Path) -> list[Path]:
        return self.render(descriptor, output_root)

    def render(self, descriptor: SiteTreeDescriptor, output_root: Path) -> list[Path]:
        navigation = NavigationModel(descriptor, root_label=self._site.root_label)
        written = copy_static_tree(self._theme.static_dirs(), output_root / ASSETS_DIRNAME)

        for node in descriptor.iter_nodes():
            if node is descriptor.root:
                html = self._render_index(navigation)
            elif isinstance(node, FolderEntry):
                html = self._render_folder(navigation, node)
            else:
                html = self._render_document(navigation, node)
            written.append(self._write(output_root, node.path, html))

        logger.info("Rendered %d page(s) with theme '%s'", len(written), self._theme.active_theme)
        return written

    def _render_index(self, navigation: NavigationModel) -> str:
        root = navigation.root
        home = self._root_document(root, self._site.home_document)
        logo = self._root_document(root, self._site.logo_document)
        special = {document.path for document in (home, logo) if document is not None}
        prefix = relative_prefix(0)

        context = self._base_context(
            navigation,
            depth=0,
            page_title=self._site.title,
            body_class="index-page",
        )
        context["gallery"] = [
            self._tile(child, prefix) for child in root.children() if child.path not in special
        ]
        context["home"] = self._document_context(navigation, home, prefix) if home else None
        return self._theme.render_page("index", context)

    def _render_folder(self, navigation: NavigationModel, folder: FolderEntry) -> str:
        depth = node_depth(folder.path)
        prefix = relative_prefix(depth)
        context = self._base_context(
            navigation,
            depth=depth,
            page_title=f"{folder.name} | {self._site.title}",
            body_class="folder-page",
            current=folder,
        )
        context["folder"] = {"name": folder.name, "path": folder.path}
        context["gallery"] = [self._tile(child, prefix) for child in folder.children()]
        return self._theme.render_page("folder", context)

    def _render_document(self, navigation: NavigationModel, document: DocumentEntry) -> str:
        depth = node_depth(document.path)
        prefix = relative_prefix(depth)
        context = self._base_context(
            navigation,
            depth=depth,
            page_title=f"{document.name} | {self._site.title}",
            body_class="document-page",
            current=document,
        )
        context["document"] = self._document_context(navigation, document, prefix)
        return self._theme.render_page("document", context)

    def _base_context(
        self,
        navigation: NavigationModel,
        *,
        depth: int,
        page_title: str,
        body_class: str,
        current: SiteNode | None = None,
    ) -> dict[str, Any]:
        prefix = relative_prefix(depth)
        logo = self._root_document(navigation.root, self._site.logo_document)

        breadcrumbs: list[dict[str, Any]] = []
        back_href: str | None = None
        if current is not None:
            crumbs = navigation.breadcrumbs(current.path)
            breadcrumbs = [
                {"name": crumb.name, "href": _href(prefix, crumb.path), "current": crumb.path == current.path}
                for crumb in crumbs
            ]
            back_href = _href(prefix, crumbs[-2].path)

        return {
            "site": {
                "title": self._site.title,
                "home_href": prefix,
                "logo": _href(prefix, logo.thumbnail, directory=False) if logo else None,
            },
            "page": {
                "title": page_title,
                "body_class": body_class,
                "relative_root": prefix,
                "styles": [
                    _href(prefix, f"{ASSETS_DIRNAME}/{style}", directory=False)
                    for style in self._theme.assets.styles
                ],
            },
            "breadcrumbs": breadcrumbs,
            "back_href": back_href,
        }

    def _document_context(self, navigation: NavigationModel, document: DocumentEntry, prefix: str) -> dict[str, Any]:
        pages = []
        for page in document.pages:
            cursor = navigation.page_cursor(document.path, page.number)
            pages.append(
                {
                    "number": page.number,
                    "anchor": _anchor(page.number),
                    "src": _href(prefix, page.path, directory=False),
                    "previous": _anchor(cursor.previous) if cursor.previous is not None else None,
                    "next": _anchor(cursor.next) if cursor.next is not None else None,
                    "total": cursor.total_pages,
                }
            )
        return {
            "name": document.name,
            "path": document.path,
            "page_count": document.page_count,
            "show_rail": document.page_count > 1,
            "pages": pages,
        }

    def _tile(self, node: SiteNode, prefix: str) -> dict[str, Any]:
        tile: dict[str, Any] = {
            "name": node.name,
            "kind": node.kind,
            "href": _href(prefix, node.path),
            "thumbnail": _href(prefix, node.thumbnail, directory=False) if node.thumbnail else None,
        }
        if isinstance(node, DocumentEntry):
            tile["page_count"] = node.page_count
        else:
            tile["item_count"] = len(node.children())
        return tile

    @staticmethod
    def _root_document(root: FolderEntry, name: str | None) -> DocumentEntry | None:
        if not name:
            return None
        return next((document for document in root.documents if document.name == name), None)

    @staticmethod
    def _write(output_root: Path, relative_path: str, html: str) -> Path:
        destination = output_root / relative_path / INDEX_FILENAME if relative_path else output_root / INDEX_FILENAME
        destination.parent.mkdir(parents=True, exist_ok=True)
        with destination.open("w", encoding="utf-8", newline="\n") as handle:
            handle.write(html)
        return destination


def _href(prefix: str, path: str, *, directory: bool = True) -> str:
    if not path:
        return prefix
    return f"{prefix}{path}/" if directory else f"{prefix}{path}"


def _anchor(number: int) -> str:
    return f"page-{number}"
