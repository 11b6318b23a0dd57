"""Entity collections: metadata records kept in lockstep with Markdown bodies.

Each collection is one JSON array per project. Every mutation loads the
whole array, changes it in memory, and writes the whole array back.

Write order keeps the metadata the source of truth:
  insert/update  body first, then the collection
  delete         collection first, then the body
Removing or renaming a body is best-effort; a failure becomes a warning on
the returned Outcome instead of an exception.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel, Field

from storied.models import BaseEntity, Chapter, Scene, utcnow

from .core import derive_filename, next_id
from .errors import FilenameConflict, NotFound
from .files import ProjectFiles

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=BaseEntity)


class Outcome(BaseModel, Generic[T]):
    """Result of a mutating operation plus any non-fatal warnings."""

    value: T | None = None
    warnings: list[str] = Field(default_factory=list)


def soft_fail(warnings: list[str], message: str) -> None:
    logger.warning("%s", message)
    warnings.append(message)


class EntityStore(Generic[E]):
    """CRUD over one entity collection, partitioned by project."""

    def __init__(self, model: type[E], files_for: Callable[[int], ProjectFiles]) -> None:
        self.model = model
        self.kind = model.entity_type
        self._files_for = files_for

    # ------------------------------------------------------------------
    # Collection access
    # ------------------------------------------------------------------

    def files(self, project_id: int) -> ProjectFiles:
        return self._files_for(project_id)

    def load(self, project_id: int) -> list[E]:
        """All metadata records of the project, in stored order."""
        records = self.files(project_id).read_collection(self.kind)
        return [self.model.model_validate(r) for r in records]

    def save(self, project_id: int, entities: list[E]) -> None:
        self.files(project_id).write_collection(self.kind, [e.to_record() for e in entities])

    @staticmethod
    def find(entities: list[E], entity_id: int) -> int | None:
        for i, entity in enumerate(entities):
            if entity.id == entity_id:
                return i
        return None

    def filename_for(self, entity: E) -> str:
        return derive_filename(self.kind, entity.name)

    def _check_conflict(self, entities: list[E], filename: str, entity_id: int) -> None:
        for other in entities:
            if other.id != entity_id and other.filename == filename:
                raise FilenameConflict(
                    f"{self.kind} {other.id} ({other.name!r}) already uses {filename}"
                )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def list(self, project_id: int) -> list[E]:
        """Metadata-only records; ``text`` is left unset."""
        return self.load(project_id)

    def get(self, project_id: int, entity_id: int) -> E:
        files = self.files(project_id)
        entities = self.load(project_id)
        index = self.find(entities, entity_id)
        if index is None:
            raise NotFound(f"{self.kind} {entity_id} not found in project {project_id}")
        entity = entities[index]
        entity.text = files.read_text(self.kind, entity.filename)
        return entity

    def insert(self, entity: E) -> Outcome[E]:
        """Store a new entity. Any id or filename on the payload is replaced."""
        files = self.files(entity.project_id)
        entities = self.load(entity.project_id)
        now = utcnow()
        new = entity.model_copy(
            update={
                "id": next_id(entities),
                "text": entity.text or "",
                "creation_date": now,
                "last_modified": now,
            }
        )
        new.filename = self.filename_for(new)
        self._check_conflict(entities, new.filename, new.id)

        files.write_text(self.kind, new.filename, new.text)
        entities.append(new)
        self.save(entity.project_id, entities)
        logger.debug("inserted %s %d as %s", self.kind, new.id, new.filename)
        return Outcome(value=new)

    def update(self, entity: E) -> Outcome[E]:
        """Replace a stored entity, renaming its body if the filename changed.

        ``text=None`` keeps the current body.
        """
        files = self.files(entity.project_id)
        entities = self.load(entity.project_id)
        index = self.find(entities, entity.id)
        if index is None:
            raise NotFound(f"{self.kind} {entity.id} not found in project {entity.project_id}")
        old = entities[index]

        filename = self.filename_for(entity)
        self._check_conflict(entities, filename, entity.id)
        text = entity.text
        if text is None:
            text = files.read_text(self.kind, old.filename)
        updated = entity.model_copy(
            update={
                "filename": filename,
                "text": text,
                "creation_date": old.creation_date,
                "last_modified": utcnow(),
            }
        )

        warnings: list[str] = []
        files.write_text(self.kind, filename, text)
        entities[index] = updated
        self.save(entity.project_id, entities)
        if old.filename != filename:
            self.remove_text(files, old.filename, warnings)
        return Outcome(value=updated, warnings=warnings)

    def delete(self, project_id: int, entity_id: int) -> Outcome[bool]:
        """Remove an entity. Unknown ids are a no-op (value False)."""
        entities = self.load(project_id)
        index = self.find(entities, entity_id)
        if index is None:
            return Outcome(value=False)
        removed = entities.pop(index)
        self.save(project_id, entities)
        warnings: list[str] = []
        self.remove_text(self.files(project_id), removed.filename, warnings)
        return Outcome(value=True, warnings=warnings)

    def remove_text(self, files: ProjectFiles, filename: str, warnings: list[str]) -> None:
        try:
            files.delete_text(self.kind, filename)
        except OSError as e:
            soft_fail(warnings, f"Error deleting {self.kind} file {filename}: {e}")

    def patch_records(self, project_id: int, change: Callable[[E], bool]) -> int:
        """Apply ``change`` to every record; persist if any reported a change.

        Used by cascades that rewrite foreign keys without touching bodies.
        """
        entities = self.load(project_id)
        changed = sum(1 for entity in entities if change(entity))
        if changed:
            self.save(project_id, entities)
        return changed


class ChapterStore(EntityStore[Chapter]):
    def __init__(self, files_for: Callable[[int], ProjectFiles]) -> None:
        super().__init__(Chapter, files_for)

    def filename_for(self, entity: Chapter) -> str:
        return derive_filename("chapter", entity.name, position=entity.position)

    def list(self, project_id: int) -> list[Chapter]:
        return sorted(self.load(project_id), key=lambda c: (c.position, c.id))


class SceneStore(EntityStore[Scene]):
    """Scenes of a project. The filename embeds the parent chapter's position,
    read fresh from the chapter collection every time it is derived."""

    def __init__(self, files_for: Callable[[int], ProjectFiles], chapters: ChapterStore) -> None:
        super().__init__(Scene, files_for)
        self.chapters = chapters

    def chapter_position(self, project_id: int, chapter_id: int) -> int:
        chapters = self.chapters.load(project_id)
        index = self.chapters.find(chapters, chapter_id)
        if index is None:
            raise NotFound(f"chapter {chapter_id} not found in project {project_id}")
        return chapters[index].position

    def filename_for(self, entity: Scene, chapter_position: int | None = None) -> str:
        if chapter_position is None:
            chapter_position = self.chapter_position(entity.project_id, entity.chapter_id)
        return derive_filename(
            "scene", entity.name, position=entity.position, chapter_position=chapter_position
        )

    def list(self, project_id: int, chapter_id: int | None = None) -> list[Scene]:
        scenes = self.load(project_id)
        if chapter_id is not None:
            scenes = [s for s in scenes if s.chapter_id == chapter_id]
        return sorted(scenes, key=lambda s: (s.chapter_id, s.position, s.id))

    def get(self, project_id: int, entity_id: int, chapter_id: int | None = None) -> Scene:
        scene = super().get(project_id, entity_id)
        if chapter_id is not None and scene.chapter_id != chapter_id:
            raise NotFound(f"scene {entity_id} not found in chapter {chapter_id}")
        return scene
