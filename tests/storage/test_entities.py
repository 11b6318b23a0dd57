"""Entity collections: metadata records kept in step with Markdown bodies."""

import json

import pytest

from backend.storage import FilenameConflict, NotFound
from storied.models import Chapter, Character, Location, Project, Trait


def _collection(storage, project_id, directory, filename):
    root = storage.resolve_storage_root(project_id)
    return json.loads((root / directory / filename).read_text(encoding="utf-8"))


def _body(storage, project_id, directory, filename):
    return (storage.resolve_storage_root(project_id) / directory / filename).read_text(
        encoding="utf-8"
    )


# ── Chapters: insert & get ──────────────────────────────────


def test_insert_chapter_writes_body_and_record(storage, project):
    outcome = storage.insert_chapter(
        Chapter(project_id=project.id, name="Arrival", text="# Arrival\n")
    )
    chapter = outcome.value
    assert outcome.warnings == []
    assert chapter.id == 1
    assert chapter.filename == "CHAPTER_1_Arrival.md"
    assert _body(storage, project.id, "Chapters", chapter.filename) == "# Arrival\n"

    records = _collection(storage, project.id, "Chapters", "chapters.json")
    assert len(records) == 1
    assert records[0]["filename"] == "CHAPTER_1_Arrival.md"
    assert "text" not in records[0]
    assert "tags" not in records[0]


def test_insert_ignores_payload_id_and_filename(storage, project):
    chapter = storage.insert_chapter(
        Chapter(project_id=project.id, id=99, name="Arrival", filename="evil.md")
    ).value
    assert chapter.id == 1
    assert chapter.filename == "CHAPTER_1_Arrival.md"


def test_get_chapter_reads_body(storage, project):
    storage.insert_chapter(Chapter(project_id=project.id, name="Arrival", text="Hello"))
    chapter = storage.get_chapter(project.id, 1)
    assert chapter.text == "Hello"


def test_get_chapter_without_body_file_reads_empty(storage, project):
    chapter = storage.insert_chapter(Chapter(project_id=project.id, name="Arrival")).value
    (storage.resolve_storage_root(project.id) / "Chapters" / chapter.filename).unlink()
    assert storage.get_chapter(project.id, chapter.id).text == ""


def test_get_unknown_chapter(storage, project):
    with pytest.raises(NotFound):
        storage.get_chapter(project.id, 3)


def test_list_chapters_is_metadata_only_and_sorted(storage, project):
    storage.insert_chapter(Chapter(project_id=project.id, name="Second", position=2, text="b"))
    storage.insert_chapter(Chapter(project_id=project.id, name="First", position=1, text="a"))
    chapters = storage.list_chapters(project.id)
    assert [c.name for c in chapters] == ["First", "Second"]
    assert all(c.text is None for c in chapters)


def test_default_status_from_config(storage, project):
    storage.update_config({"default_status": "outlined"})
    chapter = storage.insert_chapter(Chapter(project_id=project.id, name="Arrival")).value
    assert chapter.status == "outlined"
    explicit = storage.insert_chapter(
        Chapter(project_id=project.id, name="Later", position=2, status="writing")
    ).value
    assert explicit.status == "writing"


# ── Chapters: update ────────────────────────────────────────


def test_update_renames_body(storage, project):
    chapter = storage.insert_chapter(
        Chapter(project_id=project.id, name="Arrival", text="body")
    ).value
    chapter.name = "Landfall"
    chapter.text = None
    outcome = storage.update_chapter(chapter)
    assert outcome.value.filename == "CHAPTER_1_Landfall.md"
    assert outcome.value.text == "body"
    root = storage.resolve_storage_root(project.id) / "Chapters"
    assert not (root / "CHAPTER_1_Arrival.md").exists()
    assert (root / "CHAPTER_1_Landfall.md").read_text(encoding="utf-8") == "body"


def test_update_replaces_text(storage, project):
    chapter = storage.insert_chapter(Chapter(project_id=project.id, name="Arrival")).value
    chapter.text = "new body"
    storage.update_chapter(chapter)
    assert storage.get_chapter(project.id, chapter.id).text == "new body"


def test_update_keeps_creation_date(storage, project):
    chapter = storage.insert_chapter(Chapter(project_id=project.id, name="Arrival")).value
    updated = storage.update_chapter(chapter.model_copy(update={"description": "x"})).value
    assert updated.creation_date == chapter.creation_date
    assert updated.last_modified >= chapter.last_modified


def test_update_unknown_chapter(storage, project):
    with pytest.raises(NotFound):
        storage.update_chapter(Chapter(project_id=project.id, id=4, name="Ghost"))


def test_update_into_taken_filename_conflicts(storage, project):
    storage.insert_chapter(Chapter(project_id=project.id, name="Arrival"))
    other = storage.insert_chapter(
        Chapter(project_id=project.id, name="Departure", position=2)
    ).value
    other.name = "Arrival"
    other.position = 1
    with pytest.raises(FilenameConflict):
        storage.update_chapter(other)


def test_insert_into_taken_filename_conflicts(storage, project):
    storage.insert_chapter(Chapter(project_id=project.id, name="Arrival"))
    with pytest.raises(FilenameConflict):
        storage.insert_chapter(Chapter(project_id=project.id, name="Arrival"))
    assert len(storage.list_chapters(project.id)) == 1


# ── Chapters: delete ────────────────────────────────────────


def test_delete_chapter_removes_body(storage, project):
    chapter = storage.insert_chapter(Chapter(project_id=project.id, name="Arrival")).value
    outcome = storage.delete_chapter(project.id, chapter.id)
    assert outcome.value is True
    assert outcome.warnings == []
    assert storage.list_chapters(project.id) == []
    assert not (storage.resolve_storage_root(project.id) / "Chapters" / chapter.filename).exists()


def test_delete_with_missing_body_warns(storage, project):
    chapter = storage.insert_chapter(Chapter(project_id=project.id, name="Arrival")).value
    (storage.resolve_storage_root(project.id) / "Chapters" / chapter.filename).unlink()
    outcome = storage.delete_chapter(project.id, chapter.id)
    assert outcome.value is True
    assert len(outcome.warnings) == 1
    assert chapter.filename in outcome.warnings[0]


def test_delete_unknown_chapter_is_noop(storage, project):
    assert storage.delete_chapter(project.id, 8).value is False


# ── Characters & locations ──────────────────────────────────


def test_character_roundtrip(storage, project):
    character = storage.insert_character(Character(
        project_id=project.id, name="Mara Okafor", role="Captain",
        traits=[Trait(icon="⚓", trait="Stubborn")], text="Born on Ceres.",
    )).value
    assert character.filename == "Mara_Okafor.md"
    loaded = storage.get_character(project.id, character.id)
    assert loaded.text == "Born on Ceres."
    assert loaded.traits[0].trait == "Stubborn"
    assert loaded.relationships == []
    assert loaded.events == []


def test_character_collection_omits_views(storage, project):
    storage.insert_character(Character(project_id=project.id, name="Mara"))
    record = _collection(storage, project.id, "Characters", "characters.json")[0]
    assert "relationships" not in record
    assert "events" not in record


def test_location_parent_must_exist(storage, project):
    with pytest.raises(NotFound):
        storage.insert_location(
            Location(project_id=project.id, name="Dock", parent_location_id=5)
        )


def test_location_with_parent(storage, project):
    station = storage.insert_location(Location(project_id=project.id, name="Atlas")).value
    dock = storage.insert_location(
        Location(project_id=project.id, name="Dock", parent_location_id=station.id)
    ).value
    assert storage.get_location(project.id, dock.id).parent_location_id == station.id


def test_collections_are_partitioned_by_project(storage, project):
    other = storage.create_project(Project(name="Elsewhere"))
    storage.insert_character(Character(project_id=project.id, name="Mara"))
    assert storage.list_characters(other.id) == []
    with pytest.raises(NotFound):
        storage.get_character(other.id, 1)
