"""Exception hierarchy shared by the manifest, bundle, path, build and navigation layers."""

from __future__ import annotations

from typing import Sequence


def format_chain(chain: Sequence[str]) -> str:
    """Render a root-relative chain of display names for error messages."""
    if not chain:
        return "<root>"
    return " / ".join(chain)


class InkshelfError(RuntimeError):
    """Base class for every error raised by inkshelf."""


class ManifestError(InkshelfError):
    """Raised when the manifest cannot be turned into a folder tree."""


class MalformedManifestError(ManifestError):
    """Raised when the manifest is not a well-formed folder/document description."""

    def __init__(self, message: str, *, pointer: str | None = None) -> None:
        if pointer:
            message = f"{message} (at {pointer})"
        super().__init__(message)
        self.pointer = pointer


class DuplicateNameError(ManifestError):
    """Raised when two children of one folder share a display name."""

    def __init__(self, parent: Sequence[str], name: str) -> None:
        super().__init__(f"Duplicate name '{name}' in folder {format_chain(parent)}")
        self.parent = tuple(parent)
        self.name = name


class BundleError(InkshelfError):
    """Raised when a bundle cannot be resolved from the store."""

    def __init__(self, message: str, *, identifier: str) -> None:
        super().__init__(message)
        self.identifier = identifier


class BundleNotFoundError(BundleError):
    """Raised when no packaged bundle exists for an identifier."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"No bundle found for identifier '{identifier}'", identifier=identifier)


class BundleCorruptError(BundleError):
    """Raised when a bundle exists but does not unpack into a valid page sequence."""

    def __init__(self, identifier: str, reason: str) -> None:
        super().__init__(f"Bundle '{identifier}' is corrupt: {reason}", identifier=identifier)
        self.reason = reason


class UnresolvablePathError(InkshelfError):
    """Raised when a node's resolved path exceeds the configured maximum length."""

    def __init__(self, chain: Sequence[str], path: str, limit: int) -> None:
        super().__init__(
            f"Path for {format_chain(chain)} is {len(path)} characters long "
            f"(limit {limit}): {path}"
        )
        self.chain = tuple(chain)
        self.path = path
        self.limit = limit


class DocumentResolutionError(InkshelfError):
    """Raised when a document's bundle cannot be resolved during a build."""

    def __init__(self, identifier: str, chain: Sequence[str], cause: BaseException) -> None:
        super().__init__(
            f"Unable to resolve document {format_chain(chain)} ({identifier}): {cause}"
        )
        self.identifier = identifier
        self.chain = tuple(chain)
        self.cause = cause


class BuildCancelledError(InkshelfError):
    """Raised when a build observes its cancellation signal."""


class OutputDirectoryError(InkshelfError):
    """Raised when the output directory cannot be claimed by the builder."""


class NodeNotFoundError(InkshelfError, KeyError):
    """Raised when a navigation lookup names a path absent from the site tree."""

    def __init__(self, path: str, message: str | None = None) -> None:
        super().__init__(message or f"No node at path '{path}'")
        self.path = path

    def __str__(self) -> str:
        return str(self.args[0])


class PageOutOfRangeError(InkshelfError, IndexError):
    """Raised when a page index falls outside ``[1, total_pages]``."""

    def __init__(self, path: str, page_index: int, total_pages: int) -> None:
        super().__init__(
            f"Page {page_index} is out of range for '{path}' (1..{total_pages})"
        )
        self.path = path
        self.page_index = page_index
        self.total_pages = total_pages
