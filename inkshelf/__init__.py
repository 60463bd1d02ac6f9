"""Publish an exported notebook tree as a browsable static site."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as load_pkg_version
from pathlib import Path
import tomllib

from .pipeline import build_site

__all__ = ["__version__", "build_site"]


def _read_local_project_version() -> str:
    """Fall back to pyproject.toml when running from an uninstalled checkout."""
    pyproject = Path(__file__).resolve().parent.parent / "pyproject.toml"
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return "0.0.0"
    return data.get("project", {}).get("version", "0.0.0")


try:
    __version__ = load_pkg_version("inkshelf")
except PackageNotFoundError:
    __version__ = _read_local_project_version()
