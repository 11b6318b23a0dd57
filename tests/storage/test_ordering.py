"""Sibling reordering of chapters and scenes."""

import pytest

from backend.storage import FilenameConflict, NotFound, ReorderItem
from storied.models import Chapter, Scene


@pytest.fixture
def chapters(storage, project):
    names = ["Arrival", "Middle", "Departure"]
    return [
        storage.insert_chapter(
            Chapter(project_id=project.id, name=name, position=i, text=f"body of {name}")
        ).value
        for i, name in enumerate(names, start=1)
    ]


def _chapter_dir(storage, project):
    return storage.resolve_storage_root(project.id) / "Chapters"


class TestReorderChapters:
    def test_positions_follow_sequence(self, storage, project, chapters):
        arrival, middle, departure = chapters
        outcome = storage.reorder_chapters(
            project.id, [ReorderItem(id=departure.id), ReorderItem(id=arrival.id), ReorderItem(id=middle.id)]
        )
        assert outcome.warnings == []
        assert [(c.name, c.position) for c in outcome.value] == [
            ("Departure", 1), ("Arrival", 2), ("Middle", 3),
        ]
        assert [c.name for c in storage.list_chapters(project.id)] == [
            "Departure", "Arrival", "Middle",
        ]

    def test_bodies_follow_their_chapters(self, storage, project, chapters):
        arrival, _, departure = chapters
        storage.reorder_chapters(project.id, [departure.id, arrival.id])
        assert storage.get_chapter(project.id, departure.id).text == "body of Departure"
        assert storage.get_chapter(project.id, arrival.id).text == "body of Arrival"
        files = sorted(p.name for p in _chapter_dir(storage, project).glob("*.md"))
        assert files == [
            "CHAPTER_1_Departure.md", "CHAPTER_2_Arrival.md", "CHAPTER_3_Middle.md",
        ]

    def test_swap_with_same_names_does_not_overwrite(self, storage, project):
        first = storage.insert_chapter(
            Chapter(project_id=project.id, name="Untitled", position=1, text="one")
        ).value
        second = storage.insert_chapter(
            Chapter(project_id=project.id, name="Untitled", position=2, text="two")
        ).value
        storage.reorder_chapters(project.id, [second.id, first.id])
        assert storage.get_chapter(project.id, second.id).text == "two"
        assert storage.get_chapter(project.id, first.id).text == "one"
        assert not list(_chapter_dir(storage, project).glob(".*.reorder"))

    def test_omitted_siblings_are_appended(self, storage, project, chapters):
        arrival, middle, departure = chapters
        outcome = storage.reorder_chapters(project.id, [middle.id])
        assert [c.id for c in outcome.value] == [middle.id, arrival.id, departure.id]
        assert [c.position for c in outcome.value] == [1, 2, 3]

    def test_unknown_and_duplicate_ids_warn(self, storage, project, chapters):
        arrival, middle, departure = chapters
        outcome = storage.reorder_chapters(
            project.id, [departure.id, 99, departure.id, arrival.id, middle.id]
        )
        assert len(outcome.warnings) == 2
        assert [c.id for c in outcome.value] == [departure.id, arrival.id, middle.id]

    def test_rename_during_reorder(self, storage, project, chapters):
        arrival = chapters[0]
        outcome = storage.reorder_chapters(project.id, [ReorderItem(id=arrival.id, name="Landfall")])
        renamed = outcome.value[0]
        assert renamed.name == "Landfall"
        assert renamed.filename == "CHAPTER_1_Landfall.md"
        assert storage.get_chapter(project.id, arrival.id).text == "body of Arrival"

    def test_missing_body_is_a_warning(self, storage, project, chapters):
        arrival, _, departure = chapters
        (_chapter_dir(storage, project) / arrival.filename).unlink()
        outcome = storage.reorder_chapters(project.id, [departure.id, arrival.id])
        assert len(outcome.warnings) == 1
        assert [c.id for c in storage.list_chapters(project.id)][:2] == [departure.id, arrival.id]

    def test_scene_filenames_follow_chapter(self, storage, project, chapters):
        arrival, _, departure = chapters
        scene = storage.insert_scene(
            Scene(project_id=project.id, chapter_id=arrival.id, name="Docking", text="dock")
        ).value
        assert scene.filename == "CHAPTER_1_SCENE_1_Docking.md"
        storage.reorder_chapters(project.id, [departure.id, arrival.id])
        moved = storage.get_scene(project.id, scene.id)
        assert moved.filename == "CHAPTER_2_SCENE_1_Docking.md"
        assert moved.text == "dock"


class TestReorderScenes:
    @pytest.fixture
    def scenes(self, storage, project, chapters):
        arrival = chapters[0]
        return [
            storage.insert_scene(Scene(
                project_id=project.id, chapter_id=arrival.id, name=name, position=i, text=name,
            )).value
            for i, name in enumerate(["Docking", "First Light", "Alarm"], start=1)
        ]

    def test_positions_follow_sequence(self, storage, project, chapters, scenes):
        docking, light, alarm = scenes
        outcome = storage.reorder_scenes(
            project.id, chapters[0].id, [alarm.id, docking.id, light.id]
        )
        assert [(s.name, s.position) for s in outcome.value] == [
            ("Alarm", 1), ("Docking", 2), ("First Light", 3),
        ]
        assert outcome.value[0].filename == "CHAPTER_1_SCENE_1_Alarm.md"
        assert storage.get_scene(project.id, alarm.id).text == "Alarm"

    def test_scene_from_other_chapter_is_skipped(self, storage, project, chapters, scenes):
        stray = storage.insert_scene(
            Scene(project_id=project.id, chapter_id=chapters[1].id, name="Stray")
        ).value
        outcome = storage.reorder_scenes(project.id, chapters[0].id, [stray.id, scenes[2].id])
        assert len(outcome.warnings) == 1
        assert [s.id for s in outcome.value] == [scenes[2].id, scenes[0].id, scenes[1].id]
        assert storage.get_scene(project.id, stray.id).chapter_id == chapters[1].id

    def test_unknown_chapter(self, storage, project, chapters):
        with pytest.raises(NotFound):
            storage.reorder_scenes(project.id, 77, [1])


def _scene_dir(storage, project):
    return storage.resolve_storage_root(project.id) / "Scenes"


class TestFilenameCollisions:
    @pytest.fixture
    def pair(self, storage, project):
        """Two chapters, each with a scene called Open at position 1."""
        opening = storage.insert_chapter(
            Chapter(project_id=project.id, name="Opening", position=1)
        ).value
        closing = storage.insert_chapter(
            Chapter(project_id=project.id, name="Closing", position=2)
        ).value
        scenes = [
            storage.insert_scene(Scene(
                project_id=project.id, chapter_id=chapter.id, name="Open", position=1,
                text=f"from {chapter.name}",
            )).value
            for chapter in (opening, closing)
        ]
        return opening, closing, scenes

    def test_chapter_move_onto_taken_scene_files_refused(self, storage, project, pair):
        _, closing, (first, second) = pair
        assert first.filename == "CHAPTER_1_SCENE_1_Open.md"
        with pytest.raises(FilenameConflict):
            storage.update_chapter(
                Chapter(id=closing.id, project_id=project.id, name="Closing", position=1)
            )
        assert storage.get_chapter(project.id, closing.id).position == 2
        assert storage.get_scene(project.id, first.id).text == "from Opening"
        assert storage.get_scene(project.id, second.id).text == "from Closing"
        assert storage.get_scene(project.id, second.id).filename == "CHAPTER_2_SCENE_1_Open.md"

    def test_chapter_move_to_free_position_renames_scenes(self, storage, project, pair):
        _, closing, (_, second) = pair
        storage.update_chapter(
            Chapter(id=closing.id, project_id=project.id, name="Closing", position=3)
        )
        moved = storage.get_scene(project.id, second.id)
        assert moved.filename == "CHAPTER_3_SCENE_1_Open.md"
        assert moved.text == "from Closing"

    def test_chapter_move_onto_stray_scene_file_refused(self, storage, project, pair):
        _, closing, (_, second) = pair
        stray = _scene_dir(storage, project) / "CHAPTER_5_SCENE_1_Open.md"
        stray.write_text("not ours", encoding="utf-8")
        with pytest.raises(FilenameConflict):
            storage.update_chapter(
                Chapter(id=closing.id, project_id=project.id, name="Closing", position=5)
            )
        assert stray.read_text(encoding="utf-8") == "not ours"
        assert storage.get_scene(project.id, second.id).text == "from Closing"

    def test_reorder_onto_stray_chapter_file_refused(self, storage, project, chapters):
        arrival, _, departure = chapters
        stray = _chapter_dir(storage, project) / "CHAPTER_1_Departure.md"
        stray.write_text("not ours", encoding="utf-8")
        with pytest.raises(FilenameConflict):
            storage.reorder_chapters(project.id, [departure.id, arrival.id])
        assert stray.read_text(encoding="utf-8") == "not ours"
        assert [c.id for c in storage.list_chapters(project.id)] == [c.id for c in chapters]
        assert storage.get_chapter(project.id, arrival.id).text == "body of Arrival"

    def test_scene_reorder_across_shared_chapter_position_refused(self, storage, project):
        first = storage.insert_chapter(
            Chapter(project_id=project.id, name="Opening", position=1)
        ).value
        second = storage.insert_chapter(
            Chapter(project_id=project.id, name="Also Opening", position=1)
        ).value
        kept = storage.insert_scene(Scene(
            project_id=project.id, chapter_id=first.id, name="Open", position=1, text="kept",
        )).value
        other = storage.insert_scene(Scene(
            project_id=project.id, chapter_id=second.id, name="Other", position=1, text="other",
        )).value
        mover = storage.insert_scene(Scene(
            project_id=project.id, chapter_id=second.id, name="Open", position=2, text="mover",
        )).value
        assert mover.filename == "CHAPTER_1_SCENE_2_Open.md"

        with pytest.raises(FilenameConflict):
            storage.reorder_scenes(project.id, second.id, [mover.id, other.id])
        assert storage.get_scene(project.id, kept.id).text == "kept"
        assert storage.get_scene(project.id, mover.id).text == "mover"
        assert storage.get_scene(project.id, mover.id).position == 2
