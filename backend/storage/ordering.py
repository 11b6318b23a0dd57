"""Sibling ordering for chapters (per project) and scenes (per chapter).

A reorder receives the caller's desired sequence and assigns positions
1..n. Ids missing from the collection are skipped with a warning; siblings
the caller left out keep their relative order after the given ones, so the
positions stay contiguous either way.

Bodies are renamed in two phases (old → temporary → new) so that two
siblings swapping filenames never overwrite each other. A batch that would
leave two records sharing a filename, or move a body onto a file no record
is giving up, raises FilenameConflict before anything is written. A failed
rename is a warning; the positions are persisted regardless.
"""

import logging
from typing import Any, Iterable, Sequence

from pydantic import BaseModel

from storied.models import BaseEntity, Chapter, Scene, utcnow

from .entities import ChapterStore, EntityStore, Outcome, SceneStore, soft_fail
from .errors import FilenameConflict
from .files import ProjectFiles

logger = logging.getLogger(__name__)


class ReorderItem(BaseModel):
    """One element of a reorder sequence. Extra fields (full entities) are ignored."""

    id: int
    name: str | None = None


def _item_fields(item: Any) -> tuple[int, str | None]:
    if isinstance(item, int):
        return item, None
    return item.id, getattr(item, "name", None)


def arrange(
    siblings: list[BaseEntity], sequence: Iterable[Any], warnings: list[str], scope: str
) -> list[tuple[BaseEntity, str | None]]:
    """Pair each sibling with its requested name, in the requested order."""
    by_id = {s.id: s for s in siblings}
    seen: set[int] = set()
    ordered: list[tuple[BaseEntity, str | None]] = []
    for item in sequence:
        item_id, name = _item_fields(item)
        if item_id not in by_id:
            soft_fail(warnings, f"Skipping {item_id}: not found in {scope}")
            continue
        if item_id in seen:
            soft_fail(warnings, f"Skipping duplicate {item_id} in {scope}")
            continue
        seen.add(item_id)
        ordered.append((by_id[item_id], name))
    for sibling in sorted(siblings, key=lambda s: (s.position, s.id)):
        if sibling.id not in seen:
            logger.debug("%s: %d missing from sequence, appended", scope, sibling.id)
            ordered.append((sibling, None))
    return ordered


def check_targets(
    store: EntityStore, files: ProjectFiles, records: list[BaseEntity], targets: dict[int, str]
) -> None:
    """Refuse a batch of renames (record id → new filename) over ``records``.

    Raises FilenameConflict if two records would end up with the same
    filename, or if a target already exists on disk and is not the current
    file of a record that is moving away.
    """
    owners: dict[str, int] = {}
    for record in records:
        filename = targets.get(record.id, record.filename)
        if filename in owners and (record.id in targets or owners[filename] in targets):
            raise FilenameConflict(
                f"{store.kind} {record.id} and {owners[filename]} would both use {filename}"
            )
        owners[filename] = record.id

    released = {r.filename for r in records if targets.get(r.id, r.filename) != r.filename}
    for record in records:
        target = targets.get(record.id)
        if target is None or target == record.filename or target in released:
            continue
        if files.has_text(store.kind, target):
            raise FilenameConflict(
                f"{store.kind} {record.id} cannot take over existing file {target}"
            )


def rename_bodies(
    store: EntityStore, files: ProjectFiles, renames: list[tuple[str, str]], warnings: list[str]
) -> None:
    staged: list[tuple[str, str]] = []
    for old, new in renames:
        temp = f".{new}.reorder"
        try:
            files.rename_text(store.kind, old, temp)
        except OSError as e:
            soft_fail(warnings, f"Error renaming {store.kind} file {old} to {new}: {e}")
            continue
        staged.append((temp, new))
    for temp, new in staged:
        try:
            files.rename_text(store.kind, temp, new)
        except OSError as e:
            soft_fail(warnings, f"Error renaming {store.kind} file {temp} to {new}: {e}")


class OrderingCoordinator:
    def __init__(self, chapters: ChapterStore, scenes: SceneStore) -> None:
        self.chapters = chapters
        self.scenes = scenes

    def reorder_chapters(self, project_id: int, sequence: Sequence[Any]) -> Outcome[list[Chapter]]:
        files = self.chapters.files(project_id)
        chapters = self.chapters.load(project_id)
        warnings: list[str] = []
        targets: dict[int, str] = {}
        now = utcnow()

        ordered = arrange(chapters, sequence, warnings, f"chapters of project {project_id}")
        for position, (chapter, name) in enumerate(ordered, start=1):
            if name is not None and name != chapter.name:
                chapter.name = name
                chapter.last_modified = now
            if chapter.position != position:
                chapter.position = position
                chapter.last_modified = now
            filename = self.chapters.filename_for(chapter)
            if filename != chapter.filename:
                targets[chapter.id] = filename

        check_targets(self.chapters, files, chapters, targets)
        self.check_scene_filenames(project_id, {c.id: c.position for c in chapters})

        renames = self._retarget(chapters, targets)
        rename_bodies(self.chapters, files, renames, warnings)
        self.chapters.save(project_id, [chapter for chapter, _ in ordered])
        self.sync_scene_filenames(project_id, warnings)
        return Outcome(value=self.chapters.list(project_id), warnings=warnings)

    def reorder_scenes(
        self, project_id: int, chapter_id: int, sequence: Sequence[Any]
    ) -> Outcome[list[Scene]]:
        chapter_position = self.scenes.chapter_position(project_id, chapter_id)
        files = self.scenes.files(project_id)
        scenes = self.scenes.load(project_id)
        siblings = [s for s in scenes if s.chapter_id == chapter_id]
        warnings: list[str] = []
        targets: dict[int, str] = {}
        now = utcnow()

        ordered = arrange(siblings, sequence, warnings, f"scenes of chapter {chapter_id}")
        for position, (scene, name) in enumerate(ordered, start=1):
            if name is not None and name != scene.name:
                scene.name = name
                scene.last_modified = now
            if scene.position != position:
                scene.position = position
                scene.last_modified = now
            filename = self.scenes.filename_for(scene, chapter_position=chapter_position)
            if filename != scene.filename:
                targets[scene.id] = filename

        # Other chapters may share this chapter's position, so check every scene.
        check_targets(self.scenes, files, scenes, targets)

        renames = self._retarget(scenes, targets)
        rename_bodies(self.scenes, files, renames, warnings)
        self.scenes.save(project_id, scenes)
        return Outcome(value=self.scenes.list(project_id, chapter_id), warnings=warnings)

    @staticmethod
    def _retarget(records: list[BaseEntity], targets: dict[int, str]) -> list[tuple[str, str]]:
        """Point records at their new filenames; returns the (old, new) pairs."""
        renames: list[tuple[str, str]] = []
        for record in records:
            if record.id in targets:
                renames.append((record.filename, targets[record.id]))
                record.filename = targets[record.id]
        return renames

    def _scene_targets(self, scenes: list[Scene], positions: dict[int, int]) -> dict[int, str]:
        targets: dict[int, str] = {}
        for scene in scenes:
            if scene.chapter_id not in positions:
                continue
            filename = self.scenes.filename_for(scene, chapter_position=positions[scene.chapter_id])
            if filename != scene.filename:
                targets[scene.id] = filename
        return targets

    def check_scene_filenames(self, project_id: int, positions: dict[int, int]) -> None:
        """Raise FilenameConflict if moving chapters to ``positions`` (chapter id →
        position) would make scene bodies collide. Nothing is written."""
        current = {c.id: c.position for c in self.chapters.load(project_id)}
        current.update(positions)
        scenes = self.scenes.load(project_id)
        check_targets(
            self.scenes, self.scenes.files(project_id), scenes, self._scene_targets(scenes, current)
        )

    def sync_scene_filenames(self, project_id: int, warnings: list[str]) -> int:
        """Re-derive scene filenames against current chapter positions.

        Called after chapter positions change. Returns the number renamed.
        """
        positions = {c.id: c.position for c in self.chapters.load(project_id)}
        files = self.scenes.files(project_id)
        scenes = self.scenes.load(project_id)
        targets = self._scene_targets(scenes, positions)
        if not targets:
            return 0
        check_targets(self.scenes, files, scenes, targets)
        rename_bodies(self.scenes, files, self._retarget(scenes, targets), warnings)
        self.scenes.save(project_id, scenes)
        return len(targets)
