"""Pydantic models describing the staged site tree handed to renderers."""

from __future__ import annotations

from typing import Iterator, Literal, Union

from pydantic import BaseModel, Field, model_validator

DESCRIPTOR_VERSION = 1


class PageEntry(BaseModel):
    """One staged page image."""

    number: int = Field(ge=1, description="1-based position within the document.")
    path: str = Field(description="Path of the page image relative to the output root.")


class DocumentEntry(BaseModel):
    """Staged document with its page sequence and thumbnail."""

    kind: Literal["document"] = "document"
    name: str = Field(description="Display name exactly as written in the manifest.")
    identifier: str = Field(description="Bundle identifier the pages were staged from.")
    path: str = Field(description="Document directory relative to the output root.")
    page_count: int = Field(ge=1)
    pages: list[PageEntry] = Field(default_factory=list)
    thumbnail: str = Field(description="Thumbnail image relative to the output root.")

    @model_validator(mode="after")
    def _check_pages(self) -> "DocumentEntry":
        if self.page_count != len(self.pages):
            raise ValueError(
                f"page_count {self.page_count} does not match {len(self.pages)} staged page(s)"
            )
        numbers = [page.number for page in self.pages]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError("pages must be numbered consecutively from 1")
        return self


class FolderEntry(BaseModel):
    """Staged folder; the root entry has no name and an empty path."""

    kind: Literal["folder"] = "folder"
    name: str | None = Field(default=None)
    path: str = Field(default="")
    thumbnail: str | None = Field(
        default=None,
        description="First document thumbnail found depth-first, used for gallery tiles.",
    )
    documents: list[DocumentEntry] = Field(default_factory=list)
    folders: list[FolderEntry] = Field(default_factory=list)

    def children(self) -> list[SiteNode]:
        return [*self.documents, *self.folders]

    def iter_documents(self) -> Iterator[DocumentEntry]:
        yield from self.documents
        for folder in self.folders:
            yield from folder.iter_documents()


SiteNode = Union[FolderEntry, DocumentEntry]


class SkippedDocument(BaseModel):
    """Document left out of a best-effort build."""

    name: str
    identifier: str
    path: str
    reason: str


class SiteTreeDescriptor(BaseModel):
    """Renderer-facing description of everything staged under the output root."""

    version: int = Field(default=DESCRIPTOR_VERSION)
    root: FolderEntry = Field(default_factory=FolderEntry)
    skipped: list[SkippedDocument] = Field(default_factory=list)

    def iter_nodes(self) -> Iterator[SiteNode]:
        """Yield every entry in pre-order, root first."""
        stack: list[SiteNode] = [self.root]
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, FolderEntry):
                stack.extend(reversed(node.children()))

    def iter_documents(self) -> Iterator[DocumentEntry]:
        return self.root.iter_documents()

    @property
    def document_count(self) -> int:
        return sum(1 for _ in self.iter_documents())

    @property
    def page_count(self) -> int:
        return sum(document.page_count for document in self.iter_documents())


FolderEntry.model_rebuild()
