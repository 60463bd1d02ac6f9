"""Manifest data structures and helpers."""

from .models import (
    Document,
    Folder,
    Node,
    NodeKind,
    NodePath,
    children,
    count_documents,
    identifier,
    is_document,
    iter_documents,
    walk,
)
from .parser import load_manifest, parse_manifest

__all__ = [
    "Document",
    "Folder",
    "Node",
    "NodeKind",
    "NodePath",
    "children",
    "count_documents",
    "identifier",
    "is_document",
    "iter_documents",
    "load_manifest",
    "parse_manifest",
    "walk",
]
