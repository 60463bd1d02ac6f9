"""Read-only lookup of packaged page bundles keyed by content identifier."""

from __future__ import annotations

import logging
import re
import zipfile
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path, PurePosixPath
from typing import Iterable, Protocol
from xml.etree import ElementTree

from PIL import Image, UnidentifiedImageError

from .errors import BundleCorruptError, BundleNotFoundError

logger = logging.getLogger(__name__)

VECTOR_SUFFIXES = {".svg"}
RASTER_SUFFIXES = {".png", ".jpg", ".jpeg", ".webp"}
PAGE_SUFFIXES = VECTOR_SUFFIXES | RASTER_SUFFIXES
THUMBNAIL_STEM = "thumbnail"
PAGE_STEM_PATTERN = re.compile(r"[0-9]+")


@dataclass(frozen=True, slots=True)
class BundleImage:
    """Raw bytes of one renderable image plus its file suffix."""

    suffix: str
    data: bytes


@dataclass(frozen=True, slots=True)
class Page:
    number: int
    image: BundleImage


@dataclass(frozen=True, slots=True)
class Bundle:
    """Ordered page sequence of one document, with an optional designated thumbnail."""

    identifier: str
    pages: tuple[Page, ...]
    thumbnail: BundleImage | None = None

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def thumbnail_image(self) -> BundleImage:
        """The designated thumbnail, or the first page when none was packaged."""
        if self.thumbnail is not None:
            return self.thumbnail
        return self.pages[0].image


class BundleStore(Protocol):
    def resolve(self, identifier: str) -> Bundle:
        ...


class DirectoryBundleStore:
    """Bundle store backed by a directory of ``<id>.zip`` archives or ``<id>/`` folders."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def resolve(self, identifier: str) -> Bundle:
        if not _is_safe_identifier(identifier):
            raise BundleNotFoundError(identifier)

        archive = self.root / f"{identifier}.zip"
        if archive.is_file():
            logger.debug("Reading bundle %s from %s", identifier, archive)
            return _bundle_from_entries(identifier, _zip_entries(identifier, archive))

        directory = self.root / identifier
        if directory.is_dir():
            logger.debug("Reading bundle %s from %s", identifier, directory)
            return _bundle_from_entries(identifier, _directory_entries(directory))

        raise BundleNotFoundError(identifier)


def _is_safe_identifier(identifier: str) -> bool:
    if not identifier or identifier != identifier.strip():
        return False
    if identifier.startswith("."):
        return False
    return not any(char in identifier for char in ("/", "\\", "\x00"))


def _zip_entries(identifier: str, archive: Path) -> list[tuple[str, bytes]]:
    try:
        with zipfile.ZipFile(archive) as bundle_zip:
            return [
                (info.filename, bundle_zip.read(info))
                for info in bundle_zip.infolist()
                if not info.is_dir()
            ]
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as exc:
        raise BundleCorruptError(identifier, f"unreadable archive {archive.name}: {exc}") from exc


def _directory_entries(directory: Path) -> list[tuple[str, bytes]]:
    entries: list[tuple[str, bytes]] = []
    for path in sorted(directory.rglob("*")):
        if path.is_file():
            entries.append((path.relative_to(directory).as_posix(), path.read_bytes()))
    return entries


def _bundle_from_entries(identifier: str, entries: Iterable[tuple[str, bytes]]) -> Bundle:
    numbered: dict[int, BundleImage] = {}
    thumbnail: BundleImage | None = None

    for name, data in entries:
        entry = PurePosixPath(name)
        suffix = entry.suffix.lower()
        if suffix not in PAGE_SUFFIXES:
            logger.debug("Ignoring non-image entry %s in bundle %s", name, identifier)
            continue

        image = BundleImage(suffix=suffix, data=data)
        if entry.stem.lower() == THUMBNAIL_STEM:
            if thumbnail is not None:
                raise BundleCorruptError(identifier, "more than one thumbnail image")
            _ensure_decodes(identifier, name, image)
            thumbnail = image
            continue

        if not PAGE_STEM_PATTERN.fullmatch(entry.stem):
            logger.debug("Ignoring unnumbered image %s in bundle %s", name, identifier)
            continue

        number = int(entry.stem)
        if number in numbered:
            raise BundleCorruptError(identifier, f"page number {number} appears twice")
        _ensure_decodes(identifier, name, image)
        numbered[number] = image

    if not numbered:
        raise BundleCorruptError(identifier, "bundle contains no pages")

    # Exports may number pages from 0; positions are renumbered from 1.
    pages = tuple(
        Page(number=position, image=numbered[key])
        for position, key in enumerate(sorted(numbered), start=1)
    )
    return Bundle(identifier=identifier, pages=pages, thumbnail=thumbnail)


def _ensure_decodes(identifier: str, name: str, image: BundleImage) -> None:
    if image.suffix in VECTOR_SUFFIXES:
        try:
            root = ElementTree.fromstring(image.data)
        except ElementTree.ParseError as exc:
            raise BundleCorruptError(identifier, f"{name} is not valid SVG: {exc}") from exc
        if root.tag.rsplit("}", 1)[-1] != "svg":
            raise BundleCorruptError(identifier, f"{name} has root element <{root.tag}>, expected <svg>")
        return

    try:
        with Image.open(BytesIO(image.data)) as handle:
            handle.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
        raise BundleCorruptError(identifier, f"{name} failed to decode: {exc}") from exc
