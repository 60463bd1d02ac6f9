"""Site tree descriptor structures and persistence."""

from .models import (
    DESCRIPTOR_VERSION,
    DocumentEntry,
    FolderEntry,
    PageEntry,
    SiteNode,
    SiteTreeDescriptor,
    SkippedDocument,
)
from .writer import DESCRIPTOR_FILENAME, load_descriptor, write_descriptor

__all__ = [
    "DESCRIPTOR_FILENAME",
    "DESCRIPTOR_VERSION",
    "DocumentEntry",
    "FolderEntry",
    "PageEntry",
    "SiteNode",
    "SiteTreeDescriptor",
    "SkippedDocument",
    "load_descriptor",
    "write_descriptor",
]
