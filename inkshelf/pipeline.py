"""Wire configuration, manifest, bundle store, theme and builder together."""

from __future__ import annotations

import logging
import threading

from .builder import BuildResult, SiteBuilder
from .bundles import DirectoryBundleStore
from .config import Config
from .manifest import load_manifest
from .pages import SiteRenderer
from .paths import PathResolver
from .themes import build_theme_loader

logger = logging.getLogger(__name__)


def build_site(
    config: Config,
    *,
    cancel: threading.Event | None = None,
    force: bool = False,
) -> BuildResult:
    """Run a full build described by ``config``.

    The manifest, theme and path limits are all checked before the output
    directory is touched, so configuration mistakes never leave a
    half-cleared site behind.
    """
    tree = load_manifest(config.manifest_path)
    logger.debug("Loaded manifest from %s", config.manifest_path)

    theme = build_theme_loader(themes_root=config.themes_root, active_theme=config.theme_name)
    renderer = SiteRenderer(theme, config.site)

    builder = SiteBuilder(
        max_workers=config.build.jobs,
        best_effort=config.build.best_effort,
        renderer=renderer,
    )
    return builder.build(
        tree,
        DirectoryBundleStore(config.bundle_dir),
        PathResolver.from_config(config.paths),
        config.output_dir,
        cancel=cancel,
        force=force,
    )
