from __future__ import annotations

import uuid

import pytest

from core.config import settings
from exceptions.exceptions import (
    ConflictException,
    NotFoundException,
    ReferenceException,
    ValidationException,
)
from models.file import File
from models.folder import Folder
from services.file_service import FileService
from services.folder_service import FolderService


@pytest.fixture
def folders(db, store) -> FolderService:
    return FolderService(db, store)


@pytest.fixture
def files(db, store) -> FileService:
    return FileService(db, store)


def test_register_creates_single_root(folders, user, db):
    """Registration should leave exactly one root folder named after the setting."""
    roots = db.query(Folder).filter(Folder.user_id == user.id, Folder.is_root.is_(True)).all()

    assert len(roots) == 1
    assert roots[0].parent_folder_id is None
    assert roots[0].path == f"/{settings.ROOT_FOLDER_NAME}"
    assert folders.get_root_folder(user.id).id == roots[0].id


def test_create_folder_defaults_to_root(folders, user):
    """A folder without a parent goes under the root."""
    folder = folders.create_folder(user.id, "Documents")
    root = folders.get_root_folder(user.id)

    assert folder.parent_folder_id == root.id
    assert folder.path == "/My Drive/Documents"
    assert folder.is_root is False


def test_create_nested_folder_path(folders, user):
    """Paths are parent path plus "/" plus name."""
    docs = folders.create_folder(user.id, "Documents")
    projects = folders.create_folder(user.id, "Projects", docs.id)

    assert projects.path == "/My Drive/Documents/Projects"


def test_create_folder_strips_name(folders, user):
    folder = folders.create_folder(user.id, "  Music  ")
    assert folder.name == "Music"


@pytest.mark.parametrize("name", ["", "   ", "a/b", "x" * 256, "bad\r\nname", "tab\tname", "nul\x00"])
def test_create_folder_rejects_bad_names(folders, user, name):
    with pytest.raises(ValidationException):
        folders.create_folder(user.id, name)


def test_create_duplicate_sibling_conflicts(folders, user):
    """Two siblings cannot share a name."""
    folders.create_folder(user.id, "Documents")

    with pytest.raises(ConflictException):
        folders.create_folder(user.id, "Documents")


def test_same_name_allowed_under_different_parents(folders, user):
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B")

    first = folders.create_folder(user.id, "Shared", a.id)
    second = folders.create_folder(user.id, "Shared", b.id)

    assert first.path != second.path


def test_create_under_foreign_parent_not_found(folders, user, other_user):
    """Another owner's folder looks exactly like a missing one."""
    foreign = folders.create_folder(other_user.id, "Private")

    with pytest.raises(NotFoundException):
        folders.create_folder(user.id, "Sneaky", foreign.id)


def test_create_under_missing_parent_not_found(folders, user):
    with pytest.raises(NotFoundException):
        folders.create_folder(user.id, "Orphan", uuid.uuid4())


def test_rename_cascades_paths(folders, user):
    """Renaming a folder rewrites the paths of everything below it."""
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B", a.id)
    c = folders.create_folder(user.id, "C", b.id)

    folders.rename_folder(a.id, user.id, "Archive")

    assert folders.get_folder_by_id(a.id, user.id).path == "/My Drive/Archive"
    assert folders.get_folder_by_id(b.id, user.id).path == "/My Drive/Archive/B"
    assert folders.get_folder_by_id(c.id, user.id).path == "/My Drive/Archive/B/C"


def test_rename_to_sibling_name_conflicts(folders, user):
    folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B")

    with pytest.raises(ConflictException):
        folders.rename_folder(b.id, user.id, "A")


def test_rename_to_same_name_is_allowed(folders, user):
    a = folders.create_folder(user.id, "A")

    renamed = folders.rename_folder(a.id, user.id, "A")

    assert renamed.name == "A"


def test_move_updates_parent_and_paths(folders, user):
    """Moving a folder re-roots the paths of the folder and its descendants."""
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B")
    child = folders.create_folder(user.id, "Child", a.id)
    grandchild = folders.create_folder(user.id, "Grandchild", child.id)

    moved = folders.move_folder(a.id, user.id, b.id)

    assert moved.parent_folder_id == b.id
    assert moved.path == "/My Drive/B/A"
    assert folders.get_folder_by_id(child.id, user.id).path == "/My Drive/B/A/Child"
    assert folders.get_folder_by_id(grandchild.id, user.id).path == "/My Drive/B/A/Child/Grandchild"


def test_move_into_itself_rejected(folders, user):
    a = folders.create_folder(user.id, "A")

    with pytest.raises(ValidationException):
        folders.move_folder(a.id, user.id, a.id)


def test_move_into_descendant_rejected(folders, user):
    """Cycles are refused and the tree is left untouched."""
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B", a.id)
    c = folders.create_folder(user.id, "C", b.id)

    with pytest.raises(ValidationException):
        folders.move_folder(a.id, user.id, c.id)

    assert folders.get_folder_by_id(a.id, user.id).parent_folder_id == folders.get_root_folder(user.id).id
    assert folders.get_folder_by_id(c.id, user.id).path == "/My Drive/A/B/C"


def test_move_without_destination_rejected(folders, user):
    a = folders.create_folder(user.id, "A")

    with pytest.raises(ValidationException):
        folders.move_folder(a.id, user.id, None)


def test_move_to_missing_destination_not_found(folders, user):
    a = folders.create_folder(user.id, "A")

    with pytest.raises(NotFoundException):
        folders.move_folder(a.id, user.id, uuid.uuid4())


def test_move_into_foreign_folder_not_found(folders, user, other_user):
    a = folders.create_folder(user.id, "A")
    foreign = folders.create_folder(other_user.id, "Theirs")

    with pytest.raises(NotFoundException):
        folders.move_folder(a.id, user.id, foreign.id)


def test_move_name_clash_in_destination_conflicts(folders, user):
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B")
    folders.create_folder(user.id, "Same", b.id)
    same = folders.create_folder(user.id, "Same", a.id)

    with pytest.raises(ConflictException):
        folders.move_folder(same.id, user.id, b.id)


def test_get_all_descendants(folders, user):
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B", a.id)
    c = folders.create_folder(user.id, "C", b.id)
    d = folders.create_folder(user.id, "D", a.id)

    descendants = folders.get_all_descendants(a)

    assert {folder.id for folder in descendants} == {b.id, c.id, d.id}


def test_descendant_walk_is_bounded(folders, user, monkeypatch):
    a = folders.create_folder(user.id, "A")
    for index in range(3):
        folders.create_folder(user.id, f"Sub {index}", a.id)
    monkeypatch.setattr(settings, "MAX_TREE_NODES", 2)

    with pytest.raises(ValidationException):
        folders.get_all_descendants(a)


def test_delete_root_rejected(folders, user):
    root = folders.get_root_folder(user.id)

    with pytest.raises(ValidationException):
        folders.delete_folder(root.id, user.id)


def test_delete_cascades_folders_files_and_content(folders, files, user, db, store):
    """Deleting a folder removes every descendant folder, file record and blob."""
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B", a.id)
    outside = folders.create_folder(user.id, "Outside")
    inner = files.upload_file(user.id, b"inner", "inner.txt", "text/plain", b.id)
    top = files.upload_file(user.id, b"top", "top.txt", "text/plain", a.id)
    kept = files.upload_file(user.id, b"kept", "kept.txt", "text/plain", outside.id)
    inner_key, top_key = inner.storage_key, top.storage_key

    counts = folders.delete_folder(a.id, user.id)

    assert counts == {"folders": 2, "files": 2}
    assert db.query(Folder).filter(Folder.id.in_([a.id, b.id])).count() == 0
    assert db.query(File).filter(File.user_id == user.id).all() == [kept]
    assert store.delete(inner_key) is False
    assert store.delete(top_key) is False
    assert b"".join(store.open(kept.storage_key)) == b"kept"


def test_delete_tolerates_missing_content(folders, files, user, store):
    """A blob that is already gone does not stop the delete."""
    a = folders.create_folder(user.id, "A")
    record = files.upload_file(user.id, b"data", "data.txt", "text/plain", a.id)
    store.delete(record.storage_key)

    counts = folders.delete_folder(a.id, user.id)

    assert counts == {"folders": 1, "files": 1}


def test_delete_foreign_folder_not_found(folders, user, other_user):
    foreign = folders.create_folder(other_user.id, "Theirs")

    with pytest.raises(NotFoundException):
        folders.delete_folder(foreign.id, user.id)


def test_breadcrumbs_root_first(folders, user):
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B", a.id)

    crumbs = folders.get_breadcrumbs(user.id, b.id)

    assert [crumb["name"] for crumb in crumbs] == ["My Drive", "A", "B"]
    assert crumbs[-1]["path"] == "/My Drive/A/B"


def test_breadcrumbs_default_to_root(folders, user):
    crumbs = folders.get_breadcrumbs(user.id)

    assert len(crumbs) == 1
    assert crumbs[0]["name"] == "My Drive"


def test_breadcrumbs_stop_at_dangling_parent(folders, user, db):
    """A parent link that no longer resolves truncates the trail."""
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B", a.id)
    b.parent_folder_id = uuid.uuid4()
    db.commit()

    crumbs = folders.get_breadcrumbs(user.id, b.id)

    assert [crumb["name"] for crumb in crumbs] == ["B"]


def test_breadcrumbs_cycle_raises_reference_error(folders, user, db):
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B", a.id)
    a.parent_folder_id = b.id
    db.commit()

    with pytest.raises(ReferenceException):
        folders.get_breadcrumbs(user.id, b.id)


def test_build_path_with_missing_parent_raises_reference_error(folders, user):
    orphan = Folder(user_id=user.id, name="Orphan", parent_folder_id=uuid.uuid4(), is_root=False)

    with pytest.raises(ReferenceException):
        folders._build_path(orphan)


def test_folder_tree_nested_with_counts(folders, files, user):
    a = folders.create_folder(user.id, "A")
    folders.create_folder(user.id, "Zeta", a.id)
    beta = folders.create_folder(user.id, "Beta", a.id)
    files.upload_file(user.id, b"1", "one.txt", "text/plain", beta.id)
    files.upload_file(user.id, b"2", "two.txt", "text/plain", beta.id)

    tree = folders.get_folder_tree(user.id)

    assert len(tree) == 1
    root = tree[0]
    assert root["is_root"] is True
    assert [child["name"] for child in root["children"]] == ["A"]
    node_a = root["children"][0]
    assert [child["name"] for child in node_a["children"]] == ["Beta", "Zeta"]
    assert node_a["children"][0]["files_count"] == 2
    assert node_a["children"][1]["files_count"] == 0


def test_folder_tree_from_subfolder(folders, user):
    a = folders.create_folder(user.id, "A")
    folders.create_folder(user.id, "B", a.id)

    tree = folders.get_folder_tree(user.id, a.id)

    assert tree[0]["id"] == a.id
    assert [child["name"] for child in tree[0]["children"]] == ["B"]


def test_folder_contents(folders, files, user):
    root = folders.get_root_folder(user.id)
    folders.create_folder(user.id, "B")
    folders.create_folder(user.id, "A")
    files.upload_file(user.id, b"x", "x.txt", "text/plain")

    contents = folders.get_folder_contents(user.id)

    assert contents["current_folder"].id == root.id
    assert [folder.name for folder in contents["folders"]] == ["A", "B"]
    assert [file.name for file in contents["files"]] == ["x.txt"]


def test_children_derived_from_parent_links(folders, user, db):
    a = folders.create_folder(user.id, "A")
    b = folders.create_folder(user.id, "B", a.id)
    c = folders.create_folder(user.id, "C", a.id)
    db.expire_all()

    assert set(folders.get_folder_by_id(a.id, user.id).children_ids) == {b.id, c.id}
