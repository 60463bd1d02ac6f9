from __future__ import annotations

import pytest

from inkshelf.errors import NodeNotFoundError, PageOutOfRangeError
from inkshelf.navigation import Breadcrumb, NavigationModel, PageCursor
from inkshelf.sitetree import DocumentEntry, FolderEntry, PageEntry, SiteTreeDescriptor


def _document(name: str, path: str, pages: int) -> DocumentEntry:
    return DocumentEntry(
        name=name,
        identifier=f"id-{path}",
        path=path,
        page_count=pages,
        pages=[PageEntry(number=number, path=f"{path}/pages/{number}.svg") for number in range(1, pages + 1)],
        thumbnail=f"{path}/thumbnail.png",
    )


@pytest.fixture
def navigation() -> NavigationModel:
    nested = FolderEntry(
        name="Folders Work Too",
        path="Posts/Folders-Work-Too",
        documents=[
            _document("Boxes + Arrows", "Posts/Folders-Work-Too/Boxes-Arrows", 1),
            _document("Pythagorean Theorem", "Posts/Folders-Work-Too/Pythagorean-Theorem", 2),
        ],
    )
    posts = FolderEntry(
        name="Posts",
        path="Posts",
        documents=[_document("Sample Notebook", "Posts/Sample-Notebook", 3)],
        folders=[nested],
    )
    root = FolderEntry(documents=[_document("Home", "Home", 2)], folders=[posts])
    return NavigationModel(SiteTreeDescriptor(root=root), root_label="Start")


def test_node_lookup_accepts_surrounding_slashes(navigation: NavigationModel) -> None:
    assert navigation.node("/Posts/Sample-Notebook/").name == "Sample Notebook"
    assert navigation.node("") is navigation.root


def test_unknown_path_raises(navigation: NavigationModel) -> None:
    with pytest.raises(NodeNotFoundError) as excinfo:
        navigation.node("Posts/Nope")

    assert excinfo.value.path == "Posts/Nope"
    assert "Posts/Nope" in str(excinfo.value)


def test_parent(navigation: NavigationModel) -> None:
    assert navigation.parent("") is None
    assert navigation.parent("Home") is navigation.root
    parent = navigation.parent("Posts/Folders-Work-Too/Boxes-Arrows")
    assert parent is not None
    assert parent.path == "Posts/Folders-Work-Too"


@pytest.mark.parametrize(
    ("path", "depth"),
    [
        ("", 0),
        ("Home", 1),
        ("Posts", 1),
        ("Posts/Sample-Notebook", 2),
        ("Posts/Folders-Work-Too/Pythagorean-Theorem", 3),
    ],
)
def test_breadcrumb_length_is_depth_plus_one(navigation: NavigationModel, path: str, depth: int) -> None:
    crumbs = navigation.breadcrumbs(path)

    assert len(crumbs) == depth + 1
    assert navigation.depth(path) == depth
    assert crumbs[0] == Breadcrumb(name="Start", path="")
    assert crumbs[-1].path == path


def test_breadcrumbs_use_display_names(navigation: NavigationModel) -> None:
    crumbs = navigation.breadcrumbs("Posts/Folders-Work-Too/Boxes-Arrows")

    assert [crumb.name for crumb in crumbs] == ["Start", "Posts", "Folders Work Too", "Boxes + Arrows"]


def test_siblings_exclude_the_node(navigation: NavigationModel) -> None:
    assert navigation.siblings("") == []
    assert [node.name for node in navigation.siblings("Home")] == ["Posts"]
    assert [node.name for node in navigation.siblings("Posts/Sample-Notebook")] == ["Folders Work Too"]
    assert [node.name for node in navigation.siblings("Posts/Folders-Work-Too/Boxes-Arrows")] == [
        "Pythagorean Theorem"
    ]


def test_page_cursor_boundaries(navigation: NavigationModel) -> None:
    path = "Posts/Sample-Notebook"

    assert navigation.page_cursor(path, 1) == PageCursor(current=1, previous=None, next=2, total_pages=3)
    assert navigation.page_cursor(path, 2) == PageCursor(current=2, previous=1, next=3, total_pages=3)
    last = navigation.page_cursor(path, 3)
    assert last == PageCursor(current=3, previous=2, next=None, total_pages=3)
    assert last.is_last and not last.is_first


def test_single_page_cursor_has_no_neighbours(navigation: NavigationModel) -> None:
    cursor = navigation.page_cursor("Posts/Folders-Work-Too/Boxes-Arrows", 1)

    assert cursor.is_first and cursor.is_last


@pytest.mark.parametrize("page_index", [0, -1, 4])
def test_page_cursor_out_of_range(navigation: NavigationModel, page_index: int) -> None:
    with pytest.raises(PageOutOfRangeError) as excinfo:
        navigation.page_cursor("Posts/Sample-Notebook", page_index)

    assert excinfo.value.total_pages == 3
    assert excinfo.value.page_index == page_index


def test_page_cursor_requires_a_document(navigation: NavigationModel) -> None:
    with pytest.raises(NodeNotFoundError):
        navigation.page_cursor("Posts", 1)
    with pytest.raises(NodeNotFoundError):
        navigation.page_cursor("Missing", 1)
