"""Project catalog: creation, storage roots, rename stability, deletion."""

import pytest

from backend.storage import NotFound, OwnerNotFound, StorageError
from backend.storage.files import COLLECTIONS
from storied.models import Chapter, Project, Tag


def test_create_assigns_id_and_path(storage):
    project = storage.create_project(Project(name="The Iron Coast"))
    assert project.id == 1
    assert project.path == "the-iron-coast"
    assert project.creation_date == project.last_modified


def test_create_provisions_empty_collections(storage):
    project = storage.create_project(Project(name="Atlas"))
    root = storage.resolve_storage_root(project.id)
    assert root == storage.data_dir / "projects" / "atlas"
    for directory, filename in COLLECTIONS.values():
        assert (root / directory / filename).read_text(encoding="utf-8") == "[]"


def test_create_dedupes_path(storage):
    first = storage.create_project(Project(name="Atlas"))
    second = storage.create_project(Project(name="Atlas"))
    third = storage.create_project(Project(name="atlas!"))
    assert (first.path, second.path, third.path) == ("atlas", "atlas-2", "atlas-3")
    assert [p.id for p in storage.list_projects()] == [1, 2, 3]


def test_ids_follow_highest_remaining(storage):
    storage.create_project(Project(name="A"))
    second = storage.create_project(Project(name="B"))
    storage.delete_project(second.id)
    assert storage.create_project(Project(name="C")).id == 2
    storage.delete_project(1)
    assert storage.create_project(Project(name="D")).id == 3


def test_get_unknown_project(storage):
    with pytest.raises(NotFound):
        storage.get_project(42)


def test_rename_keeps_storage_root(storage):
    project = storage.create_project(Project(name="Atlas"))
    renamed = storage.update_project(
        Project(id=project.id, name="Atlas Reborn", description="new")
    )
    assert renamed.name == "Atlas Reborn"
    assert renamed.path == "atlas"
    assert renamed.creation_date == project.creation_date
    assert storage.resolve_storage_root(project.id).name == "atlas"


def test_update_unknown_project(storage):
    with pytest.raises(NotFound):
        storage.update_project(Project(id=9, name="Ghost"))


def test_delete_removes_storage_root(storage):
    project = storage.create_project(Project(name="Atlas"))
    root = storage.resolve_storage_root(project.id)
    assert storage.delete_project(project.id) is True
    assert not root.exists()
    assert storage.list_projects() == []


def test_delete_unknown_project_is_noop(storage):
    assert storage.delete_project(5) is False


def test_mutation_on_unknown_project(storage):
    with pytest.raises(OwnerNotFound):
        storage.insert_chapter(Chapter(project_id=7, name="Nowhere"))


def test_mutation_touches_last_modified(storage):
    project = storage.create_project(Project(name="Atlas"))
    storage.insert_chapter(Chapter(project_id=project.id, name="Arrival"))
    assert storage.get_project(project.id).last_modified > project.last_modified


def test_project_tags(storage):
    project = storage.create_project(Project(name="Atlas", tags=[Tag(name="sci-fi")]))
    assert [t.name for t in project.tags] == ["sci-fi"]
    assert [t.name for t in storage.get_project(project.id).tags] == ["sci-fi"]
    storage.delete_project(project.id)
    assert storage.get_tags_for_entity("project", project.id, project.id) == []


def test_closed_storage_refuses_calls(storage):
    storage.close()
    with pytest.raises(StorageError):
        storage.list_projects()


def test_no_lock_for_unknown_project(storage):
    with pytest.raises(OwnerNotFound):
        storage.list_chapters(99)
    assert 99 not in storage._project_locks


def test_delete_drops_project_lock(storage):
    project = storage.create_project(Project(name="Atlas"))
    storage.list_chapters(project.id)
    assert project.id in storage._project_locks
    storage.delete_project(project.id)
    assert project.id not in storage._project_locks


def test_noop_delete_leaves_last_modified(storage):
    project = storage.create_project(Project(name="Atlas"))
    before = storage.get_project(project.id).last_modified
    assert storage.delete_chapter(project.id, 42).value is False
    assert storage.delete_scene(project.id, 42).value is False
    assert storage.delete_relationship(project.id, 42) is False
    assert storage.get_project(project.id).last_modified == before


def test_delete_touches_last_modified(storage):
    project = storage.create_project(Project(name="Atlas"))
    chapter = storage.insert_chapter(Chapter(project_id=project.id, name="Arrival")).value
    before = storage.get_project(project.id).last_modified
    assert storage.delete_chapter(project.id, chapter.id).value is True
    assert storage.get_project(project.id).last_modified > before
