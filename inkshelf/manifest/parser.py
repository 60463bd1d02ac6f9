"""Parse JSON or YAML manifests into a validated folder tree."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Literal, Mapping

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from ..errors import DuplicateNameError, MalformedManifestError
from .models import Document, Folder, NodePath

logger = logging.getLogger(__name__)

SCHEMA_PACKAGE = "inkshelf.schemas"
MANIFEST_SCHEMA_NAME = "manifest.schema.json"

ManifestSyntax = Literal["json", "yaml"]

SUFFIX_SYNTAX: dict[str, ManifestSyntax] = {
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
}


class _NameMap(dict):
    """Mapping that remembers keys which appeared more than once in the source."""

    def __init__(self, pairs: Iterable[tuple[str, Any]] = ()) -> None:
        super().__init__()
        self.duplicates: list[str] = []
        for key, value in pairs:
            if key in self:
                self.duplicates.append(key)
            self[key] = value


class _ManifestLoader(yaml.SafeLoader):
    """Safe YAML loader that keeps duplicate keys visible and keys as written."""


def _construct_mapping(loader: _ManifestLoader, node: yaml.MappingNode) -> _NameMap:
    loader.flatten_mapping(node)
    pairs: list[tuple[str, Any]] = []
    for key_node, value_node in node.value:
        if not isinstance(key_node, yaml.ScalarNode):
            raise MalformedManifestError(
                "Mapping keys must be plain names",
                pointer=f"line {key_node.start_mark.line + 1}",
            )
        # Keep the literal text so names like "2024" or "1.10" survive untouched.
        pairs.append((key_node.value, loader.construct_object(value_node, deep=True)))
    return _NameMap(pairs)


_ManifestLoader.add_constructor(yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_mapping)


def load_manifest(path: str | Path) -> Folder:
    """Read a manifest file, choosing JSON or YAML from its suffix."""
    manifest_path = Path(path)
    syntax = SUFFIX_SYNTAX.get(manifest_path.suffix.lower())
    if syntax is None:
        raise MalformedManifestError(
            f"Unsupported manifest format '{manifest_path.suffix}' for {manifest_path}; "
            "use .json, .yml or .yaml"
        )
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MalformedManifestError(f"Unable to read manifest {manifest_path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise MalformedManifestError(f"Manifest {manifest_path} is not valid UTF-8: {exc.reason}") from exc
    logger.debug("Parsing %s manifest %s", syntax, manifest_path)
    return parse_manifest(text, syntax=syntax)


def parse_manifest(source: str | bytes, *, syntax: ManifestSyntax = "json") -> Folder:
    """Parse manifest text into the root folder of the hierarchy."""
    data = _load_raw(source, syntax)
    if data is None:
        raise MalformedManifestError("Manifest is empty")
    if not isinstance(data, dict):
        raise MalformedManifestError(
            f"Manifest root must be a mapping of 'documents' and 'folders', "
            f"received {type(data).__name__}"
        )

    error = best_match(_get_manifest_validator().iter_errors(data))
    if error is not None:
        pointer = "/".join(str(part) for part in error.absolute_path)
        raise MalformedManifestError(error.message, pointer=pointer or None)

    return _build_folder(None, data, ())


def _load_raw(source: str | bytes, syntax: ManifestSyntax) -> Any:
    if syntax == "json":
        try:
            return json.loads(source, object_pairs_hook=_NameMap)
        except json.JSONDecodeError as exc:
            raise MalformedManifestError(
                f"Invalid JSON: {exc.msg}", pointer=f"line {exc.lineno}, column {exc.colno}"
            ) from exc
        except UnicodeDecodeError as exc:
            raise MalformedManifestError(f"Manifest is not valid UTF-8: {exc.reason}") from exc
    if syntax == "yaml":
        try:
            return yaml.load(source, Loader=_ManifestLoader)
        except yaml.YAMLError as exc:
            raise MalformedManifestError(f"Invalid YAML: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise MalformedManifestError(f"Manifest is not valid UTF-8: {exc.reason}") from exc
    raise MalformedManifestError(f"Unknown manifest syntax '{syntax}'")


@lru_cache(maxsize=1)
def _get_manifest_validator() -> Draft202012Validator:
    schema_text = resources.files(SCHEMA_PACKAGE).joinpath(MANIFEST_SCHEMA_NAME).read_text(encoding="utf-8")
    return Draft202012Validator(json.loads(schema_text))


def _build_folder(name: str | None, data: Mapping[str, Any] | None, chain: NodePath) -> Folder:
    data = data or {}
    pointer = _pointer(chain)
    _reject_repeated_keys(data, pointer)

    raw_documents: Mapping[str, Any] = data.get("documents") or {}
    raw_folders: Mapping[str, Any] = data.get("folders") or {}
    _reject_duplicate_names(raw_documents, chain)
    _reject_duplicate_names(raw_folders, chain)

    documents: dict[str, Document] = {}
    for doc_name, spec in raw_documents.items():
        documents[doc_name] = Document(name=doc_name, identifier=_document_identifier(spec, chain, doc_name))

    folders: dict[str, Folder] = {}
    for folder_name, spec in raw_folders.items():
        if folder_name in documents:
            # Folders and documents share one namespace per parent.
            raise DuplicateNameError(chain, folder_name)
        folders[folder_name] = _build_folder(folder_name, spec, (*chain, folder_name))

    return Folder(name=name, documents=documents, folders=folders)


def _document_identifier(spec: Any, chain: NodePath, name: str) -> str:
    if isinstance(spec, str):
        return spec.strip()
    _reject_repeated_keys(spec, f"{_pointer(chain)}/documents/{name}".lstrip("/"))
    return str(spec["id"]).strip()


def _reject_duplicate_names(mapping: Mapping[str, Any], chain: NodePath) -> None:
    duplicates = getattr(mapping, "duplicates", ())
    if duplicates:
        raise DuplicateNameError(chain, duplicates[0])


def _reject_repeated_keys(mapping: Mapping[str, Any], pointer: str) -> None:
    duplicates = getattr(mapping, "duplicates", ())
    if duplicates:
        raise MalformedManifestError(f"Key '{duplicates[0]}' is repeated", pointer=pointer or None)


def _pointer(chain: NodePath) -> str:
    return "/".join(f"folders/{name}" for name in chain)
