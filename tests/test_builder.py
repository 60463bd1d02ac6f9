from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Callable

import pytest

from inkshelf.builder import SiteBuilder
from inkshelf.bundles import DirectoryBundleStore
from inkshelf.errors import (
    BuildCancelledError,
    BundleNotFoundError,
    DocumentResolutionError,
    OutputDirectoryError,
    UnresolvablePathError,
)
from inkshelf.manifest import parse_manifest
from inkshelf.paths import PathResolver
from inkshelf.sitetree import DESCRIPTOR_FILENAME, FolderEntry, load_descriptor
from inkshelf.staging import INCOMPLETE_MARKER


def _build(manifest: dict, bundle_root: Path, output_root: Path, **kwargs):
    builder_options = {key: kwargs.pop(key) for key in ("max_workers", "best_effort", "renderer") if key in kwargs}
    return SiteBuilder(**builder_options).build(
        parse_manifest(json.dumps(manifest)),
        DirectoryBundleStore(bundle_root),
        PathResolver(),
        output_root,
        **kwargs,
    )


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def test_starter_site_is_staged(tmp_path: Path, starter_manifest: dict, starter_bundles: Path) -> None:
    output = tmp_path / "site"

    result = _build(starter_manifest, starter_bundles, output)

    assert result.document_count == 4
    assert result.page_count == 2 + 3 + 1 + 2
    assert result.skipped == []
    assert not (output / INCOMPLETE_MARKER).exists()
    assert (output / DESCRIPTOR_FILENAME).is_file()

    assert (output / "Home" / "pages" / "1.svg").is_file()
    assert (output / "Home" / "pages" / "2.svg").is_file()
    assert (output / "Home" / "thumbnail.png").is_file()
    assert (output / "Posts" / "Sample-Notebook" / "pages" / "3.svg").is_file()
    assert (output / "Posts" / "Folders-Work-Too" / "Boxes-Arrows" / "pages" / "1.svg").is_file()
    # No designated thumbnail: the first page is used.
    assert (output / "Posts" / "Folders-Work-Too" / "Pythagorean-Theorem" / "thumbnail.svg").is_file()


def test_descriptor_mirrors_manifest_with_display_names(
    tmp_path: Path, starter_manifest: dict, starter_bundles: Path
) -> None:
    result = _build(starter_manifest, starter_bundles, tmp_path / "site")
    root = result.descriptor.root

    assert root.name is None
    assert root.path == ""
    assert [document.name for document in root.documents] == ["Home"]
    posts = root.folders[0]
    assert posts.name == "Posts"
    assert posts.path == "Posts"
    nested = posts.folders[0]
    assert nested.name == "Folders Work Too"
    assert [document.name for document in nested.documents] == ["Boxes + Arrows", "Pythagorean Theorem"]
    assert [document.path for document in nested.documents] == [
        "Posts/Folders-Work-Too/Boxes-Arrows",
        "Posts/Folders-Work-Too/Pythagorean-Theorem",
    ]
    sample = posts.documents[0]
    assert sample.identifier == "doc-b"
    assert [page.path for page in sample.pages] == [
        "Posts/Sample-Notebook/pages/1.svg",
        "Posts/Sample-Notebook/pages/2.svg",
        "Posts/Sample-Notebook/pages/3.svg",
    ]


def test_folder_thumbnails_come_from_first_document(
    tmp_path: Path, starter_manifest: dict, starter_bundles: Path
) -> None:
    result = _build(starter_manifest, starter_bundles, tmp_path / "site")
    posts = result.descriptor.root.folders[0]

    assert posts.thumbnail == "Posts/Sample-Notebook/thumbnail.png"
    assert posts.folders[0].thumbnail == "Posts/Folders-Work-Too/Boxes-Arrows/thumbnail.png"
    assert result.descriptor.root.thumbnail == "Home/thumbnail.png"


def test_descriptor_round_trips(tmp_path: Path, starter_manifest: dict, starter_bundles: Path) -> None:
    output = tmp_path / "site"
    result = _build(starter_manifest, starter_bundles, output)

    assert load_descriptor(output) == result.descriptor
    assert load_descriptor(result.descriptor_path) == result.descriptor


def test_rebuild_is_byte_identical(tmp_path: Path, starter_manifest: dict, starter_bundles: Path) -> None:
    output = tmp_path / "site"

    _build(starter_manifest, starter_bundles, output, max_workers=4)
    first = _snapshot(output)
    _build(starter_manifest, starter_bundles, output, max_workers=1)

    assert _snapshot(output) == first


def test_rebuild_clears_orphaned_files(tmp_path: Path, starter_manifest: dict, starter_bundles: Path) -> None:
    output = tmp_path / "site"
    _build(starter_manifest, starter_bundles, output)
    stray = output / "Posts" / "old-document" / "pages" / "1.svg"
    stray.parent.mkdir(parents=True)
    stray.write_text("<svg/>", encoding="utf-8")

    _build(starter_manifest, starter_bundles, output)

    assert not stray.exists()
    assert not (output / "Posts" / "old-document").exists()


def test_colliding_names_keep_display_names(tmp_path: Path, make_bundle: Callable[..., Path], bundle_root: Path) -> None:
    make_bundle("first")
    make_bundle("second")
    manifest = {"documents": {"Notes": "first", "Notes!": "second"}}

    result = _build(manifest, bundle_root, tmp_path / "site")
    documents = result.descriptor.root.documents

    assert [document.path for document in documents] == ["Notes", "Notes-2"]
    assert [document.name for document in documents] == ["Notes", "Notes!"]


def test_missing_bundle_fails_and_leaves_incomplete_state(
    tmp_path: Path, starter_manifest: dict, starter_bundles: Path
) -> None:
    starter_manifest["folders"]["Posts"]["documents"]["Lost"] = "doc-missing"
    output = tmp_path / "site"

    with pytest.raises(DocumentResolutionError) as excinfo:
        _build(starter_manifest, starter_bundles, output)

    assert excinfo.value.identifier == "doc-missing"
    assert excinfo.value.chain == ("Posts", "Lost")
    assert isinstance(excinfo.value.cause, BundleNotFoundError)
    assert (output / INCOMPLETE_MARKER).exists()
    assert not (output / DESCRIPTOR_FILENAME).exists()


def test_best_effort_skips_unresolvable_documents(
    tmp_path: Path, starter_manifest: dict, starter_bundles: Path
) -> None:
    starter_manifest["folders"]["Posts"]["documents"]["Lost"] = "doc-missing"
    (starter_bundles / "doc-bad.zip").write_bytes(b"garbage")
    starter_manifest["documents"]["Broken"] = "doc-bad"
    output = tmp_path / "site"

    result = _build(starter_manifest, starter_bundles, output, best_effort=True)

    assert [skipped.identifier for skipped in result.skipped] == ["doc-bad", "doc-missing"]
    assert result.descriptor.skipped == result.skipped
    assert result.document_count == 4
    assert not (output / "Posts" / "Lost").exists()
    assert not (output / "Broken").exists()
    assert not (output / INCOMPLETE_MARKER).exists()


def test_cancelled_build_raises_and_stays_incomplete(
    tmp_path: Path, starter_manifest: dict, starter_bundles: Path
) -> None:
    cancel = threading.Event()
    cancel.set()
    output = tmp_path / "site"

    with pytest.raises(BuildCancelledError):
        _build(starter_manifest, starter_bundles, output, cancel=cancel)

    assert (output / INCOMPLETE_MARKER).exists()
    assert not (output / DESCRIPTOR_FILENAME).exists()


def test_foreign_output_directory_requires_force(
    tmp_path: Path, starter_manifest: dict, starter_bundles: Path
) -> None:
    output = tmp_path / "site"
    output.mkdir()
    keep = output / "keep.txt"
    keep.write_text("mine", encoding="utf-8")

    with pytest.raises(OutputDirectoryError):
        _build(starter_manifest, starter_bundles, output)
    assert keep.exists()

    _build(starter_manifest, starter_bundles, output, force=True)
    assert not keep.exists()


def test_path_errors_surface_before_output_is_touched(
    tmp_path: Path, make_bundle: Callable[..., Path], bundle_root: Path
) -> None:
    make_bundle("x")
    output = tmp_path / "site"
    tree = parse_manifest('{"folders": {"A very long folder name": {"documents": {"Long name": "x"}}}}')

    with pytest.raises(UnresolvablePathError):
        SiteBuilder().build(tree, DirectoryBundleStore(bundle_root), PathResolver(max_path_length=20), output)

    assert not output.exists()


def test_empty_folders_are_created(tmp_path: Path, bundle_root: Path) -> None:
    output = tmp_path / "site"

    result = _build({"folders": {"Drafts": None}}, bundle_root, output)

    assert (output / "Drafts").is_dir()
    drafts = result.descriptor.root.folders[0]
    assert isinstance(drafts, FolderEntry)
    assert drafts.thumbnail is None
    assert result.document_count == 0


def test_renderer_receives_descriptor_before_completion(
    tmp_path: Path, starter_manifest: dict, starter_bundles: Path
) -> None:
    output = tmp_path / "site"
    seen: list[bool] = []

    def renderer(descriptor, output_root: Path) -> list[Path]:
        seen.append((output_root / INCOMPLETE_MARKER).exists())
        page = output_root / "index.html"
        page.write_text(str(descriptor.document_count), encoding="utf-8")
        return [page]

    result = _build(starter_manifest, starter_bundles, output, renderer=renderer)

    assert seen == [True]
    assert result.rendered_files == [output / "index.html"]
    assert not (output / INCOMPLETE_MARKER).exists()


def test_invalid_worker_count() -> None:
    with pytest.raises(ValueError):
        SiteBuilder(max_workers=0)


def test_cancel_during_resolution_stops_remaining_documents(
    tmp_path: Path, starter_manifest: dict, starter_bundles: Path
) -> None:
    cancel = threading.Event()
    store = DirectoryBundleStore(starter_bundles)
    resolved: list[str] = []

    class InterruptingStore:
        def resolve(self, identifier: str):
            resolved.append(identifier)
            cancel.set()
            return store.resolve(identifier)

    output = tmp_path / "site"

    with pytest.raises(BuildCancelledError):
        SiteBuilder(max_workers=1).build(
            parse_manifest(json.dumps(starter_manifest)),
            InterruptingStore(),
            PathResolver(),
            output,
            cancel=cancel,
        )

    assert resolved == ["doc-a"]
    assert not (output / "Home" / "pages").exists()
    assert (output / INCOMPLETE_MARKER).exists()
    assert not (output / DESCRIPTOR_FILENAME).exists()
