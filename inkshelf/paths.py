"""Map manifest nodes to collision-free, filesystem-safe relative paths."""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping

from .errors import UnresolvablePathError
from .manifest import Folder, NodeKind, NodePath, children

if TYPE_CHECKING:
    from .config import PathConfig

logger = logging.getLogger(__name__)

UNSAFE_RUN_PATTERN = re.compile(r"[^A-Za-z0-9_]+")
DEFAULT_SEGMENT = "untitled"
DEFAULT_MAX_PATH_LENGTH = 200
DEFAULT_MAX_SEGMENT_LENGTH = 80
DEFAULT_RESERVED_ROOT_SEGMENTS = ("assets",)


def sanitize_segment(name: str, *, max_length: int = DEFAULT_MAX_SEGMENT_LENGTH) -> str:
    """Convert a display name into a single path segment.

    Non-ASCII characters are transliterated where NFKD allows and dropped
    otherwise; every run of characters outside ``[A-Za-z0-9_]`` collapses into
    one hyphen. Case is preserved.

    >>> sanitize_segment("Boxes + Arrows")
    'Boxes-Arrows'
    >>> sanitize_segment("  Café/Notes ")
    'Cafe-Notes'
    >>> sanitize_segment("日本")
    'untitled'
    """
    text = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    text = UNSAFE_RUN_PATTERN.sub("-", text).strip("-")
    text = text[:max_length].rstrip("-")
    return text or DEFAULT_SEGMENT


@dataclass(frozen=True, slots=True)
class ResolvedPath:
    """Physical location assigned to one node, next to its untouched display name."""

    chain: NodePath
    display_name: str | None
    segment: str
    path: str
    disambiguated: bool = False

    @property
    def depth(self) -> int:
        return len(self.chain)


class ResolvedPaths(Mapping[NodePath, ResolvedPath]):
    """Read-only mapping from a node's root-relative chain to its resolved path."""

    def __init__(self, entries: Mapping[NodePath, ResolvedPath]) -> None:
        self._entries = dict(entries)

    def __getitem__(self, chain: NodePath) -> ResolvedPath:
        return self._entries[tuple(chain)]

    def __iter__(self) -> Iterator[NodePath]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def for_chain(self, chain: Iterable[str]) -> ResolvedPath:
        return self._entries[tuple(chain)]

    def paths(self) -> list[str]:
        return [entry.path for entry in self._entries.values()]

    def disambiguated(self) -> list[ResolvedPath]:
        return [entry for entry in self._entries.values() if entry.disambiguated]


class PathResolver:
    """Assign deterministic paths to every node of a manifest tree.

    Siblings claim segments in encounter order (documents first, then
    folders). A segment already claimed within the same parent, compared
    case-insensitively, receives the smallest free ``-2``, ``-3``... suffix.
    """

    def __init__(
        self,
        *,
        max_path_length: int = DEFAULT_MAX_PATH_LENGTH,
        max_segment_length: int = DEFAULT_MAX_SEGMENT_LENGTH,
        reserved_root_segments: Iterable[str] = DEFAULT_RESERVED_ROOT_SEGMENTS,
    ) -> None:
        if max_path_length <= 0:
            raise ValueError("max_path_length must be positive")
        if max_segment_length <= 0:
            raise ValueError("max_segment_length must be positive")
        self.max_path_length = max_path_length
        self.max_segment_length = max_segment_length
        self.reserved_root_segments = tuple(reserved_root_segments)

    @classmethod
    def from_config(cls, config: "PathConfig") -> "PathResolver":
        return cls(
            max_path_length=config.max_path_length,
            max_segment_length=config.max_segment_length,
            reserved_root_segments=config.reserved_root_segments,
        )

    def assign(self, tree: Folder) -> ResolvedPaths:
        resolved: dict[NodePath, ResolvedPath] = {
            (): ResolvedPath(chain=(), display_name=None, segment="", path=""),
        }
        self._assign_children(tree, (), "", resolved)
        return ResolvedPaths(resolved)

    def _assign_children(
        self,
        folder: Folder,
        chain: NodePath,
        parent_path: str,
        resolved: dict[NodePath, ResolvedPath],
    ) -> None:
        claimed: set[str] = set()
        if not chain:
            claimed.update(segment.casefold() for segment in self.reserved_root_segments)

        for name, child in children(folder):
            base = sanitize_segment(name, max_length=self.max_segment_length)
            segment = base
            suffix = 1
            while segment.casefold() in claimed:
                suffix += 1
                tail = f"-{suffix}"
                segment = base[: self.max_segment_length - len(tail)].rstrip("-") + tail
            claimed.add(segment.casefold())

            child_chain = (*chain, name)
            path = f"{parent_path}/{segment}" if parent_path else segment
            if len(path) > self.max_path_length:
                raise UnresolvablePathError(child_chain, path, self.max_path_length)
            if segment != base:
                logger.debug("Disambiguated '%s' to %s", name, path)

            resolved[child_chain] = ResolvedPath(
                chain=child_chain,
                display_name=name,
                segment=segment,
                path=path,
                disambiguated=segment != base,
            )
            if child.kind is NodeKind.FOLDER:
                self._assign_children(child, child_chain, path, resolved)
