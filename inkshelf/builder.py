"""Stage resolved bundles into the output tree and describe the result."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Sequence

from .bundles import BundleStore
from .errors import BuildCancelledError, BundleError, DocumentResolutionError, format_chain
from .manifest import Document, Folder, NodeKind, NodePath, iter_documents, walk
from .paths import PathResolver, ResolvedPath, ResolvedPaths
from .sitetree import DocumentEntry, FolderEntry, SiteTreeDescriptor, SkippedDocument, write_descriptor
from .staging import StagedDocument, claim_output_directory, mark_complete, remove_path, stage_bundle

logger = logging.getLogger(__name__)

SiteRendererHook = Callable[[SiteTreeDescriptor, Path], Sequence[Path] | None]


@dataclass
class BuildResult:
    """Outcome of a successful build."""

    descriptor: SiteTreeDescriptor
    output_root: Path
    descriptor_path: Path
    staged_files: list[Path] = field(default_factory=list)
    rendered_files: list[Path] = field(default_factory=list)
    skipped: list[SkippedDocument] = field(default_factory=list)

    @property
    def document_count(self) -> int:
        return self.descriptor.document_count

    @property
    def page_count(self) -> int:
        return self.descriptor.page_count


@dataclass(frozen=True, slots=True)
class _DocumentJob:
    chain: NodePath
    document: Document
    resolved: ResolvedPath


class SiteBuilder:
    """Walk a manifest tree, stage every document's bundle and emit the site descriptor.

    Documents are staged in parallel by a bounded thread pool; each touches
    only its own output subtree. In strict mode the first unresolvable
    document aborts the build. With ``best_effort`` it is skipped and
    recorded in the descriptor instead.

    Until a build finishes, the output root carries an incomplete marker and
    no ``site-tree.json``. A failed or cancelled build leaves it that way.
    """

    def __init__(
        self,
        *,
        max_workers: int = 4,
        best_effort: bool = False,
        renderer: SiteRendererHook | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.best_effort = best_effort
        self.renderer = renderer

    def build(
        self,
        tree: Folder,
        bundle_store: BundleStore,
        path_resolver: PathResolver,
        output_root: Path,
        *,
        cancel: threading.Event | None = None,
        force: bool = False,
    ) -> BuildResult:
        # Path errors surface before the output directory is touched.
        resolved = path_resolver.assign(tree)
        cancel = cancel if cancel is not None else threading.Event()
        output_root = Path(output_root)

        claim_output_directory(output_root, force=force)
        logger.info("Building site into %s", output_root)
        self._create_folders(tree, resolved, output_root)

        jobs = [
            _DocumentJob(chain=chain, document=document, resolved=resolved[chain])
            for chain, document in iter_documents(tree)
        ]
        staged, staged_files, skipped = self._stage_documents(jobs, bundle_store, output_root, cancel)

        descriptor = SiteTreeDescriptor(
            root=_assemble_folder(tree, (), resolved, staged),
            skipped=skipped,
        )

        rendered: list[Path] = []
        if self.renderer is not None:
            _raise_if_cancelled(cancel, "before rendering")
            rendered = list(self.renderer(descriptor, output_root) or [])

        _raise_if_cancelled(cancel, "before writing the site descriptor")
        descriptor_path = write_descriptor(descriptor, output_root)
        mark_complete(output_root)
        logger.info(
            "Built %d document(s) with %d page(s); %d skipped",
            descriptor.document_count,
            descriptor.page_count,
            len(skipped),
        )

        return BuildResult(
            descriptor=descriptor,
            output_root=output_root,
            descriptor_path=descriptor_path,
            staged_files=staged_files,
            rendered_files=rendered,
            skipped=skipped,
        )

    def _create_folders(self, tree: Folder, resolved: ResolvedPaths, output_root: Path) -> None:
        for chain, node in walk(tree):
            if node.kind is NodeKind.FOLDER and chain:
                (output_root / resolved[chain].path).mkdir(parents=True, exist_ok=True)

    def _stage_documents(
        self,
        jobs: Sequence[_DocumentJob],
        bundle_store: BundleStore,
        output_root: Path,
        cancel: threading.Event,
    ) -> tuple[dict[NodePath, DocumentEntry], list[Path], list[SkippedDocument]]:
        staged: dict[NodePath, DocumentEntry] = {}
        staged_files: list[Path] = []
        skipped: list[SkippedDocument] = []

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="inkshelf-stage") as executor:
            futures: list[tuple[_DocumentJob, Future[StagedDocument]]] = [
                (job, executor.submit(self._stage_one, job, bundle_store, output_root, cancel))
                for job in jobs
            ]
            try:
                # Collected in walk order so the reported failure is deterministic.
                for job, future in futures:
                    try:
                        result = future.result()
                    except DocumentResolutionError as exc:
                        if not self.best_effort:
                            raise
                        skipped.append(self._skip(job, exc, output_root))
                        continue
                    staged[job.chain] = result.entry
                    staged_files.extend(result.written)
            except KeyboardInterrupt as exc:
                _abort(cancel, futures)
                raise BuildCancelledError("Build interrupted") from exc
            except BaseException:
                _abort(cancel, futures)
                raise

        _raise_if_cancelled(cancel, "after staging documents")
        return staged, staged_files, skipped

    def _stage_one(
        self,
        job: _DocumentJob,
        bundle_store: BundleStore,
        output_root: Path,
        cancel: threading.Event,
    ) -> StagedDocument:
        _raise_if_cancelled(cancel, f"before staging {format_chain(job.chain)}")
        identifier = job.document.identifier
        try:
            bundle = bundle_store.resolve(identifier)
        except BundleError as exc:
            raise DocumentResolutionError(identifier, job.chain, exc) from exc

        _raise_if_cancelled(cancel, f"while staging {format_chain(job.chain)}")
        result = stage_bundle(
            bundle,
            name=job.document.name,
            relative_path=job.resolved.path,
            output_root=output_root,
        )
        logger.info(
            "Staged %s (%d page(s)) at %s",
            format_chain(job.chain),
            bundle.page_count,
            job.resolved.path,
        )
        return result

    def _skip(self, job: _DocumentJob, error: DocumentResolutionError, output_root: Path) -> SkippedDocument:
        partial = output_root / job.resolved.path
        if partial.exists():
            remove_path(partial)
        logger.warning("Skipping %s: %s", format_chain(job.chain), error.cause)
        return SkippedDocument(
            name=job.document.name,
            identifier=job.document.identifier,
            path=job.resolved.path,
            reason=str(error.cause),
        )


def _assemble_folder(
    folder: Folder,
    chain: NodePath,
    resolved: ResolvedPaths,
    staged: Mapping[NodePath, DocumentEntry],
) -> FolderEntry:
    documents: list[DocumentEntry] = []
    for name in folder.documents:
        entry = staged.get((*chain, name))
        if entry is not None:
            documents.append(entry)

    folders = [
        _assemble_folder(child, (*chain, name), resolved, staged)
        for name, child in folder.folders.items()
    ]

    thumbnail: str | None = None
    if documents:
        thumbnail = documents[0].thumbnail
    else:
        thumbnail = next((child.thumbnail for child in folders if child.thumbnail), None)

    return FolderEntry(
        name=folder.name,
        path=resolved[chain].path,
        thumbnail=thumbnail,
        documents=documents,
        folders=folders,
    )


def _raise_if_cancelled(cancel: threading.Event, stage: str) -> None:
    if cancel.is_set():
        raise BuildCancelledError(f"Build cancelled {stage}")


def _abort(cancel: threading.Event, futures: Sequence[tuple[_DocumentJob, Future[StagedDocument]]]) -> None:
    cancel.set()
    for _, future in futures:
        future.cancel()
