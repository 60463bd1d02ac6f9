"""Utilities for preparing and populating the output directory."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .bundles import Bundle
from .errors import OutputDirectoryError
from .sitetree import DESCRIPTOR_FILENAME, DocumentEntry, PageEntry

INCOMPLETE_MARKER = ".inkshelf-incomplete"
INCOMPLETE_NOTICE = (
    "This directory holds an incomplete inkshelf build. "
    "Run a full rebuild; partial builds are never valid.\n"
)
PAGES_DIRNAME = "pages"
THUMBNAIL_STEM = "thumbnail"


@dataclass
class StagedDocument:
    """Files written for one document and the descriptor entry describing them."""

    entry: DocumentEntry
    written: list[Path] = field(default_factory=list)


def reset_directory(path: Path) -> None:
    """Remove a directory and recreate it empty."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def claim_output_directory(output_root: Path, *, force: bool = False) -> Path:
    """Clear ``output_root`` and mark it as holding an in-progress build.

    A non-empty directory is only cleared when it carries a descriptor or the
    incomplete marker from an earlier build, unless ``force`` is set.
    """
    if output_root.exists() and not output_root.is_dir():
        raise OutputDirectoryError(f"Output path {output_root} exists and is not a directory")
    if output_root.exists() and not force and not is_owned(output_root):
        raise OutputDirectoryError(
            f"Refusing to clear {output_root}: it is not empty and was not produced by inkshelf "
            "(pass force to override)"
        )
    reset_directory(output_root)
    marker = output_root / INCOMPLETE_MARKER
    marker.write_text(INCOMPLETE_NOTICE, encoding="utf-8")
    return marker


def is_owned(output_root: Path) -> bool:
    if not any(output_root.iterdir()):
        return True
    return (output_root / DESCRIPTOR_FILENAME).exists() or (output_root / INCOMPLETE_MARKER).exists()


def is_incomplete(output_root: Path) -> bool:
    return (output_root / INCOMPLETE_MARKER).exists()


def mark_complete(output_root: Path) -> None:
    (output_root / INCOMPLETE_MARKER).unlink(missing_ok=True)


def stage_bundle(
    bundle: Bundle,
    *,
    name: str,
    relative_path: str,
    output_root: Path,
) -> StagedDocument:
    """Write a bundle's pages and thumbnail below the document's resolved path."""
    document_dir = output_root / relative_path
    pages_dir = document_dir / PAGES_DIRNAME
    pages_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    pages: list[PageEntry] = []
    for page in bundle.pages:
        filename = f"{page.number}{page.image.suffix}"
        destination = pages_dir / filename
        destination.write_bytes(page.image.data)
        written.append(destination)
        pages.append(PageEntry(number=page.number, path=f"{relative_path}/{PAGES_DIRNAME}/{filename}"))

    thumbnail = bundle.thumbnail_image
    thumbnail_name = f"{THUMBNAIL_STEM}{thumbnail.suffix}"
    thumbnail_path = document_dir / thumbnail_name
    thumbnail_path.write_bytes(thumbnail.data)
    written.append(thumbnail_path)

    entry = DocumentEntry(
        name=name,
        identifier=bundle.identifier,
        path=relative_path,
        page_count=bundle.page_count,
        pages=pages,
        thumbnail=f"{relative_path}/{thumbnail_name}",
    )
    return StagedDocument(entry=entry, written=written)


def copy_static_tree(sources: Sequence[Path], destination: Path) -> list[Path]:
    """Publish static asset directories, later sources overriding earlier ones."""
    if destination.exists():
        shutil.rmtree(destination)
    for source in sources:
        if source.is_dir():
            shutil.copytree(source, destination, dirs_exist_ok=True)
    if not destination.exists():
        return []
    return sorted(path for path in destination.rglob("*") if path.is_file())


def remove_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
    else:
        path.unlink(missing_ok=True)
