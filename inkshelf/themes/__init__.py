"""Theme discovery and Jinja rendering for the generated HTML pages."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import InkshelfError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "theme.json"
DEFAULT_THEME_NAME = "default"
STATIC_DIRNAME = "static"
REQUIRED_ENTRYPOINTS = ("index", "folder", "document")


class ThemeError(InkshelfError):
    """Raised when a theme cannot be loaded or a page cannot be rendered."""


class ThemeAssets(BaseModel):
    """Stylesheets the page shell links, relative to the published assets directory."""

    styles: list[str] = Field(default_factory=list)

    def merge_with(self, fallback: "ThemeAssets | None") -> "ThemeAssets":
        if fallback is None or self.styles:
            return ThemeAssets(styles=list(self.styles))
        return ThemeAssets(styles=list(fallback.styles))


class ThemeManifest(BaseModel):
    """Parsed ``theme.json``."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(default="Unnamed Theme")
    version: str | None = Field(default=None)
    entrypoints: dict[str, str] = Field(default_factory=dict)
    assets: ThemeAssets = Field(default_factory=ThemeAssets)

    def merge_with(self, fallback: "ThemeManifest | None") -> "ThemeManifest":
        if fallback is None:
            return self
        return ThemeManifest(
            name=self.name or fallback.name,
            version=self.version or fallback.version,
            entrypoints={**fallback.entrypoints, **self.entrypoints},
            assets=self.assets.merge_with(fallback.assets),
        )

    def to_template_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version}


class ThemeLoader:
    """Load a theme manifest, falling back to a second theme for anything it omits."""

    def __init__(
        self,
        *,
        themes_root: Path,
        active_theme: str = DEFAULT_THEME_NAME,
        fallback_theme: str = DEFAULT_THEME_NAME,
    ) -> None:
        self._themes_root = themes_root
        self._active_theme = active_theme or DEFAULT_THEME_NAME
        self._fallback_theme = fallback_theme or DEFAULT_THEME_NAME
        self._environment: Environment | None = None
        self._manifest: ThemeManifest | None = None
        self._search_paths: list[Path] = []
        self._load()

    @property
    def manifest(self) -> ThemeManifest:
        assert self._manifest is not None
        return self._manifest

    @property
    def assets(self) -> ThemeAssets:
        return self.manifest.assets

    @property
    def environment(self) -> Environment:
        assert self._environment is not None
        return self._environment

    @property
    def themes_root(self) -> Path:
        return self._themes_root

    @property
    def active_theme(self) -> str:
        return self._active_theme

    def static_dirs(self) -> list[Path]:
        """Static directories to publish, fallback first so the active theme wins."""
        return [path / STATIC_DIRNAME for path in reversed(self._search_paths) if (path / STATIC_DIRNAME).is_dir()]

    def render_page(self, key: str, context: dict[str, Any]) -> str:
        template_path = self.manifest.entrypoints.get(key)
        if not template_path:
            raise ThemeError(f"Theme '{self._active_theme}' does not define an entrypoint named '{key}'.")
        try:
            template = self.environment.get_template(template_path)
        except TemplateNotFound as exc:
            raise ThemeError(f"Template '{template_path}' for theme '{self._active_theme}' not found.") from exc
        return str(template.render(**context))

    def ensure_templates(self, keys: Sequence[str]) -> None:
        for key in keys:
            template_path = self.manifest.entrypoints.get(key)
            if not template_path:
                raise ThemeError(f"Theme '{self._active_theme}' is missing the '{key}' entrypoint.")
            try:
                self.environment.get_template(template_path)
            except TemplateNotFound as exc:
                raise ThemeError(
                    f"Required template '{template_path}' not found while loading theme '{self._active_theme}'."
                ) from exc

    def _load(self) -> None:
        if not self._themes_root.is_dir():
            raise ThemeError(f"Themes root '{self._themes_root}' does not exist.")

        fallback_manifest = self._load_manifest(self._fallback_theme)
        if self._active_theme == self._fallback_theme:
            active_manifest = fallback_manifest
        else:
            active_manifest = self._load_manifest(self._active_theme)

        if active_manifest is None and fallback_manifest is None:
            raise ThemeError(
                f"Neither active theme '{self._active_theme}' nor fallback '{self._fallback_theme}' could be loaded."
            )

        if active_manifest is None:
            logger.warning(
                "Active theme '%s' not available. Falling back to '%s'.",
                self._active_theme,
                self._fallback_theme,
            )
            assert fallback_manifest is not None
            manifest = fallback_manifest
            search_paths = [self._theme_dir(self._fallback_theme)]
        else:
            separate_fallback = fallback_manifest if fallback_manifest is not active_manifest else None
            manifest = active_manifest.merge_with(separate_fallback)
            search_paths = [self._theme_dir(self._active_theme)]
            if separate_fallback is not None:
                search_paths.append(self._theme_dir(self._fallback_theme))

        environment = Environment(
            loader=FileSystemLoader([str(path) for path in search_paths]),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        environment.globals["theme"] = manifest.to_template_dict()

        self._environment = environment
        self._manifest = manifest
        self._search_paths = search_paths
        self.ensure_templates(REQUIRED_ENTRYPOINTS)

    def _load_manifest(self, theme_name: str) -> ThemeManifest | None:
        manifest_path = self._theme_dir(theme_name) / MANIFEST_FILENAME
        if not manifest_path.exists():
            logger.debug("Theme manifest not found at %s", manifest_path)
            return None
        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ThemeError(f"Failed to load theme manifest at {manifest_path}: {exc}") from exc
        try:
            return ThemeManifest.model_validate(data)
        except ValidationError as exc:
            raise ThemeError(f"Theme manifest validation failed for {manifest_path}: {exc}") from exc

    def _theme_dir(self, theme_name: str) -> Path:
        return self._themes_root / theme_name


def build_theme_loader(
    *,
    themes_root: Path,
    active_theme: str = DEFAULT_THEME_NAME,
    fallback_theme: str = DEFAULT_THEME_NAME,
) -> ThemeLoader:
    """Construct a ThemeLoader, reporting template syntax problems as ThemeError."""
    try:
        return ThemeLoader(
            themes_root=themes_root,
            active_theme=active_theme,
            fallback_theme=fallback_theme,
        )
    except ThemeError:
        raise
    except Exception as exc:  # pragma: no cover - jinja syntax errors and the like
        raise ThemeError(f"Unexpected error loading theme '{active_theme}': {exc}") from exc
