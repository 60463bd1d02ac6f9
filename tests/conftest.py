from __future__ import annotations

import json
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Any, Callable

import pytest
from PIL import Image


def svg_page(label: str) -> bytes:
    return (
        '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="140">'
        f"<text x=\"10\" y=\"20\">{label}</text></svg>"
    ).encode("utf-8")


def png_image(color: str = "white") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def bundle_root(tmp_path: Path) -> Path:
    root = tmp_path / "bundles"
    root.mkdir()
    return root


@pytest.fixture
def make_bundle(bundle_root: Path) -> Callable[..., Path]:
    """Write an exported bundle: numbered SVG pages plus a PNG thumbnail."""

    def _make(
        identifier: str,
        pages: int = 1,
        *,
        archive: bool = True,
        thumbnail: bool = True,
        first_page: int = 0,
    ) -> Path:
        entries: dict[str, bytes] = {
            f"{identifier}/{first_page + index}.svg": svg_page(f"{identifier} page {index + 1}")
            for index in range(pages)
        }
        if thumbnail:
            entries["thumbnail.png"] = png_image()

        if archive:
            target = bundle_root / f"{identifier}.zip"
            with zipfile.ZipFile(target, "w") as bundle_zip:
                for name, data in entries.items():
                    bundle_zip.writestr(zipfile.ZipInfo(name, date_time=(2024, 1, 1, 0, 0, 0)), data)
            return target

        target = bundle_root / identifier
        for name, data in entries.items():
            destination = target / name
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(data)
        return target

    return _make


@pytest.fixture
def write_manifest(tmp_path: Path) -> Callable[..., Path]:
    def _write(data: dict[str, Any], name: str = "manifest.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def starter_manifest() -> dict[str, Any]:
    return {
        "documents": {"Home": {"id": "doc-a"}},
        "folders": {
            "Posts": {
                "documents": {"Sample Notebook": "doc-b"},
                "folders": {
                    "Folders Work Too": {
                        "documents": {
                            "Boxes + Arrows": "doc-c",
                            "Pythagorean Theorem": "doc-d",
                        }
                    }
                },
            }
        },
    }


@pytest.fixture
def starter_bundles(make_bundle: Callable[..., Path], bundle_root: Path) -> Path:
    make_bundle("doc-a", pages=2)
    make_bundle("doc-b", pages=3)
    make_bundle("doc-c", pages=1, archive=False)
    make_bundle("doc-d", pages=2, thumbnail=False)
    return bundle_root
