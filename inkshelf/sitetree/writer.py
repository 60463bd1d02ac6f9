"""Persistence helpers for the site tree descriptor."""

from __future__ import annotations

import json
from pathlib import Path

from .models import SiteTreeDescriptor

DESCRIPTOR_FILENAME = "site-tree.json"


def write_descriptor(descriptor: SiteTreeDescriptor, output_root: Path) -> Path:
    """Serialize the descriptor as ``site-tree.json`` in the output root."""
    path = output_root / DESCRIPTOR_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="\n") as handle:
        json.dump(descriptor.model_dump(mode="json"), handle, ensure_ascii=False, indent=2)
        handle.write("\n")
    return path


def load_descriptor(path: Path) -> SiteTreeDescriptor:
    """Read a descriptor back, accepting either the file or its output root."""
    target = path / DESCRIPTOR_FILENAME if path.is_dir() else path
    return SiteTreeDescriptor.model_validate_json(target.read_text(encoding="utf-8"))
