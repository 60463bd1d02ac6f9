"""Breadcrumb, sibling and page navigation over a staged site tree."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import NodeNotFoundError, PageOutOfRangeError
from .sitetree import DocumentEntry, FolderEntry, SiteNode, SiteTreeDescriptor


@dataclass(frozen=True, slots=True)
class Breadcrumb:
    name: str
    path: str


@dataclass(frozen=True, slots=True)
class PageCursor:
    """Position within a document's page sequence."""

    current: int
    previous: int | None
    next: int | None
    total_pages: int

    @property
    def is_first(self) -> bool:
        return self.previous is None

    @property
    def is_last(self) -> bool:
        return self.next is None


def normalize_path(path: str) -> str:
    """Strip surrounding slashes so ``/a/b/`` and ``a/b`` name the same node."""
    return path.strip("/")


class NavigationModel:
    """Answer navigation queries for nodes addressed by their resolved path.

    The model indexes the descriptor once at construction; every query after
    that is a dictionary lookup plus a walk up the parent chain.
    """

    def __init__(self, descriptor: SiteTreeDescriptor, *, root_label: str = "Home") -> None:
        self._descriptor = descriptor
        self._root_label = root_label
        self._nodes: dict[str, SiteNode] = {}
        self._parents: dict[str, FolderEntry | None] = {}
        self._index()

    @property
    def descriptor(self) -> SiteTreeDescriptor:
        return self._descriptor

    @property
    def root(self) -> FolderEntry:
        return self._descriptor.root

    def node(self, path: str) -> SiteNode:
        key = normalize_path(path)
        try:
            return self._nodes[key]
        except KeyError:
            raise NodeNotFoundError(key) from None

    def document(self, path: str) -> DocumentEntry:
        node = self.node(path)
        if not isinstance(node, DocumentEntry):
            raise NodeNotFoundError(node.path, f"Path '{node.path}' names a folder, not a document")
        return node

    def parent(self, path: str) -> FolderEntry | None:
        key = normalize_path(path)
        if key not in self._parents:
            raise NodeNotFoundError(key)
        return self._parents[key]

    def depth(self, path: str) -> int:
        return len(self.breadcrumbs(path)) - 1

    def breadcrumbs(self, path: str) -> list[Breadcrumb]:
        """Return the crumbs from the root down to the node itself."""
        current: SiteNode | None = self.node(path)
        crumbs: list[Breadcrumb] = []
        while current is not None:
            crumbs.append(Breadcrumb(name=self._label(current), path=current.path))
            current = self._parents[current.path]
        crumbs.reverse()
        return crumbs

    def siblings(self, path: str) -> list[SiteNode]:
        node = self.node(path)
        parent = self._parents[node.path]
        if parent is None:
            return []
        return [child for child in parent.children() if child.path != node.path]

    def page_cursor(self, path: str, page_index: int) -> PageCursor:
        document = self.document(path)
        total = document.page_count
        if page_index < 1 or page_index > total:
            raise PageOutOfRangeError(document.path, page_index, total)
        return PageCursor(
            current=page_index,
            previous=page_index - 1 if page_index > 1 else None,
            next=page_index + 1 if page_index < total else None,
            total_pages=total,
        )

    def _label(self, node: SiteNode) -> str:
        if node is self._descriptor.root:
            return self._root_label
        return node.name or self._root_label

    def _index(self) -> None:
        root = self._descriptor.root
        self._nodes[root.path] = root
        self._parents[root.path] = None
        stack: list[FolderEntry] = [root]
        while stack:
            folder = stack.pop()
            for child in folder.children():
                self._nodes[child.path] = child
                self._parents[child.path] = folder
                if isinstance(child, FolderEntry):
                    stack.append(child)
