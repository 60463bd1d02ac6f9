"""In-memory folder/document hierarchy described by a manifest."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping

NodePath = tuple[str, ...]


class NodeKind(str, Enum):
    """Tag distinguishing the two node variants."""

    FOLDER = "folder"
    DOCUMENT = "document"


@dataclass(frozen=True, slots=True)
class Document:
    """A named leaf referencing one packaged bundle."""

    name: str
    identifier: str
    kind: NodeKind = field(default=NodeKind.DOCUMENT, init=False)


@dataclass(frozen=True, slots=True)
class Folder:
    """A named container of documents and sub-folders. The root has no name."""

    name: str | None
    documents: Mapping[str, Document] = field(default_factory=dict)
    folders: Mapping[str, "Folder"] = field(default_factory=dict)
    kind: NodeKind = field(default=NodeKind.FOLDER, init=False)


Node = Folder | Document


def children(folder: Folder) -> list[tuple[str, Node]]:
    """Return the folder's children, documents first, each in manifest order."""
    items: list[tuple[str, Node]] = list(folder.documents.items())
    items.extend(folder.folders.items())
    return items


def is_document(node: Node) -> bool:
    return node.kind is NodeKind.DOCUMENT


def identifier(document: Document) -> str:
    return document.identifier


def walk(folder: Folder, chain: NodePath = ()) -> Iterator[tuple[NodePath, Node]]:
    """Yield every node in pre-order, starting with ``folder`` itself."""
    yield chain, folder
    for name, child in children(folder):
        child_chain = (*chain, name)
        if child.kind is NodeKind.FOLDER:
            yield from walk(child, child_chain)
        else:
            yield child_chain, child


def iter_documents(folder: Folder) -> Iterator[tuple[NodePath, Document]]:
    for chain, node in walk(folder):
        if node.kind is NodeKind.DOCUMENT:
            yield chain, node


def count_documents(folder: Folder) -> int:
    return sum(1 for _ in iter_documents(folder))
