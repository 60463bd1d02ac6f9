"""CLI entrypoints for inkshelf."""

import logging
import shutil
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.tree import Tree

from .builder import BuildResult
from .config import CONFIG_FILENAME, Config, load_config
from .errors import InkshelfError
from .manifest import Folder, NodeKind, children, load_manifest
from .paths import PathResolver, ResolvedPaths
from .pipeline import build_site
from .staging import is_incomplete, is_owned

console = Console()
app = typer.Typer(help="Publish a notebook export as a browsable static site.")

ConfigPathOption = Annotated[
    str,
    typer.Option("--config", "-c", help="Path to configuration file."),
]
ForceFlag = Annotated[
    bool,
    typer.Option("--force", "-f", help="Clear the output directory even if inkshelf did not create it."),
]
VerboseFlag = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Log progress while building."),
]


@app.command()
def build(
    config_path: ConfigPathOption = CONFIG_FILENAME,
    jobs: Annotated[
        int | None,
        typer.Option("--jobs", "-j", min=1, max=64, help="Documents staged in parallel."),
    ] = None,
    best_effort: Annotated[
        bool,
        typer.Option("--best-effort", help="Skip documents whose bundle cannot be resolved."),
    ] = False,
    force: ForceFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Run a full rebuild of the site."""
    _configure_logging(verbose)
    config: Config = _load(config_path)

    updates: dict[str, object] = {}
    if jobs is not None:
        updates["jobs"] = jobs
    if best_effort:
        updates["best_effort"] = True
    if updates:
        config.build = config.build.model_copy(update=updates)

    try:
        result = build_site(config, force=force)
    except InkshelfError as exc:
        console.print(f"[bold red]Build failed[/]: {escape(str(exc))}")
        if config.output_dir.is_dir() and is_incomplete(config.output_dir):
            console.print(f"[yellow]{_display_path(config.output_dir)} was left in an incomplete state.[/]")
        raise typer.Exit(code=1) from exc

    _print_build_summary(result)


@app.command()
def tree(config_path: ConfigPathOption = CONFIG_FILENAME) -> None:
    """Show the manifest as a tree of display names and the paths they publish to."""
    config: Config = _load(config_path)
    try:
        manifest = load_manifest(config.manifest_path)
        resolved = PathResolver.from_config(config.paths).assign(manifest)
    except InkshelfError as exc:
        console.print(f"[bold red]Cannot resolve manifest[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    root = Tree(f"[bold]{escape(config.site.root_label)}[/] -> {_display_path(config.output_dir)}")
    _add_branches(root, manifest, (), resolved)
    console.print(root)


@app.command()
def clean(
    config_path: ConfigPathOption = CONFIG_FILENAME,
    force: ForceFlag = False,
) -> None:
    """Remove the generated site."""
    config: Config = _load(config_path)
    output_dir = config.output_dir
    if not output_dir.exists():
        console.print(f"[yellow]Nothing to clean[/]: {_display_path(output_dir)} does not exist.")
        return
    if not output_dir.is_dir() or (not force and not is_owned(output_dir)):
        console.print(
            f"[bold red]Refusing to remove[/] {_display_path(output_dir)}: "
            "it was not produced by inkshelf (use --force to override)."
        )
        raise typer.Exit(code=1)
    shutil.rmtree(output_dir)
    console.print(f"[green]Removed[/] {_display_path(output_dir)}")


def _add_branches(branch: Tree, folder: Folder, chain: tuple[str, ...], resolved: ResolvedPaths) -> None:
    for name, node in children(folder):
        child_chain = (*chain, name)
        entry = resolved[child_chain]
        marker = " [yellow](renamed)[/]" if entry.disambiguated else ""
        if node.kind is NodeKind.FOLDER:
            label = f"[bold blue]{escape(name)}/[/] -> {escape(entry.path)}/{marker}"
            _add_branches(branch.add(label), node, child_chain, resolved)
        else:
            branch.add(f"{escape(name)} [dim]({escape(node.identifier)})[/] -> {escape(entry.path)}/{marker}")


def _print_build_summary(result: BuildResult) -> None:
    console.print(
        f"[bold green]Build complete[/]: {result.document_count} document(s), "
        f"{result.page_count} page(s) written to {_display_path(result.output_root)}"
    )
    console.print(
        f"[green]Staged[/] {len(result.staged_files)} image(s); "
        f"rendered {len(result.rendered_files)} file(s)."
    )
    if result.skipped:
        console.print(f"[yellow]Skipped {len(result.skipped)} document(s)[/]:")
        for skipped in result.skipped:
            console.print(f"  - {escape(skipped.name)} ({escape(skipped.identifier)}): {escape(skipped.reason)}")


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _display_path(path: Path) -> str:
    try:
        return path.relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


def _load(path: str) -> Config:
    try:
        return load_config(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
