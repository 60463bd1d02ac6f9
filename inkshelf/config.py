from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "inkshelf.yml"


class SiteConfig(BaseModel):
    """Presentation settings consumed by the page renderer."""

    title: str = Field(default="Notebook", description="Site title shown in the header.")
    root_label: str = Field(default="Home", description="Breadcrumb label used for the site root.")
    home_document: str | None = Field(
        default="Home",
        description="Root-level document whose pages are shown on the landing page.",
    )
    logo_document: str | None = Field(
        default=None,
        description="Root-level document whose thumbnail is used as the site logo.",
    )

    @field_validator("home_document", "logo_document", mode="before")
    def _blank_to_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value)
        return text if text.strip() else None


class PathConfig(BaseModel):
    """Limits applied while turning display names into output paths."""

    max_path_length: int = Field(
        default=200,
        ge=16,
        description="Maximum length of any node's path relative to the output directory.",
    )
    max_segment_length: int = Field(
        default=80,
        ge=8,
        description="Sanitized names longer than this are truncated.",
    )
    reserved_root_segments: list[str] = Field(
        default_factory=lambda: ["assets"],
        description="Top-level names kept free for theme assets.",
    )


class BuildOptions(BaseModel):
    """Execution settings for the site builder."""

    jobs: int = Field(default=4, ge=1, le=64, description="Documents staged in parallel.")
    best_effort: bool = Field(
        default=False,
        description="Skip documents whose bundle cannot be resolved instead of failing the build.",
    )


class Config(BaseModel):
    project_name: str = Field(default="inkshelf site")
    manifest_path: Path = Field(default=Path("manifest.json"))
    bundle_dir: Path = Field(default=Path("bundles"))
    output_dir: Path = Field(default=Path("site"))
    themes_dir: Path | None = Field(
        default=None,
        description="Directory holding theme folders; defaults to the themes shipped with inkshelf.",
    )
    theme_name: str = Field(default="default")
    site: SiteConfig = Field(default_factory=SiteConfig)
    paths: PathConfig = Field(default_factory=PathConfig)
    build: BuildOptions = Field(default_factory=BuildOptions)

    @field_validator("manifest_path", "bundle_dir", "output_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("themes_dir", mode="before")
    def _ensure_optional_path(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        return Path(value)

    @property
    def themes_root(self) -> Path:
        if self.themes_dir is not None:
            return self.themes_dir
        return Path(__file__).resolve().parent / "themes"


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    ``path`` may name the YAML file itself or a directory containing
    ``inkshelf.yml``. A directory without that file yields the defaults,
    anchored to the directory.
    """
    candidate = Path(path)
    data: dict[str, Any] = {}
    if candidate.is_dir():
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            data = _read_yaml(config_file)
        base_dir = candidate.resolve()
    else:
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        data = _read_yaml(candidate)
        base_dir = candidate.parent.resolve()

    cfg = Config(**data)

    def _abs_required(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    cfg.manifest_path = _abs_required(cfg.manifest_path)
    cfg.bundle_dir = _abs_required(cfg.bundle_dir)
    cfg.output_dir = _abs_required(cfg.output_dir)
    if cfg.themes_dir is not None:
        cfg.themes_dir = _abs_required(cfg.themes_dir)

    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration {path} must define a mapping at the top level.")
    return data
