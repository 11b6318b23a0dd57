"""The storage engine: one explicitly constructed instance per data directory.

``Storage`` composes the registry, the entity stores, the link stores, the
ordering coordinator and the reference resolver, and is the only object the
API layer talks to. It adds three things the components do not do alone:

  locking   one re-entrant lock per project root (plus one for the catalog
            and one for tags) serialises read-modify-write cycles inside
            this process. Other processes are not locked out; the last full
            collection write wins.
  cascades  deleting an entity removes the links, child records and files
            that would otherwise dangle.
  tags      payload tags are synced into the tag joins on insert/update and
            attached again on read.

Lock order is always project → catalog → tags.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

from storied.models import (
    BaseEntity,
    Chapter,
    Character,
    Event,
    Location,
    Project,
    Relationship,
    RelationshipView,
    Scene,
    Tag,
)

from . import config as app_config
from .entities import ChapterStore, EntityStore, Outcome, SceneStore
from .errors import NotFound, OwnerNotFound, StorageError
from .files import ProjectFiles
from .links import EventLinks, RelationshipStore
from .ordering import OrderingCoordinator
from .references import ReferenceResolver
from .registry import ProjectRegistry
from .tags import TagCatalog, check_entity_type

logger = logging.getLogger(__name__)


class Storage:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.registry = ProjectRegistry(self.data_dir)
        self.tags = TagCatalog(self.data_dir)

        files_for = self._files_for
        self.chapters = ChapterStore(files_for)
        self.scenes = SceneStore(files_for, self.chapters)
        self.characters: EntityStore[Character] = EntityStore(Character, files_for)
        self.locations: EntityStore[Location] = EntityStore(Location, files_for)
        self.events: EntityStore[Event] = EntityStore(Event, files_for)
        self.relationships = RelationshipStore(files_for)
        self.event_links = EventLinks(files_for)
        self.ordering = OrderingCoordinator(self.chapters, self.scenes)
        self.resolver = ReferenceResolver(
            self.characters,
            self.locations,
            self.events,
            self.relationships,
            self.event_links,
            self.tags,
        )

        self._catalog_lock = threading.RLock()
        self._tags_lock = threading.RLock()
        self._project_locks: dict[int, threading.RLock] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle and locking
    # ------------------------------------------------------------------

    def close(self) -> None:
        with self._catalog_lock:
            self._closed = True
        logger.debug("storage at %s closed", self.data_dir)

    def __enter__(self) -> Storage:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _files_for(self, project_id: int) -> ProjectFiles:
        with self._catalog_lock:
            return self.registry.files_for(project_id)

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError(f"Storage at {self.data_dir} is closed")

    @contextmanager
    def _catalog(self) -> Iterator[None]:
        with self._catalog_lock:
            self._check_open()
            yield

    @contextmanager
    def _project(self, project_id: int) -> Iterator[None]:
        with self._catalog_lock:
            self._check_open()
            lock = self._project_locks.get(project_id)
            if lock is None:
                # Only known projects get a lock.
                self.registry.resolve_storage_root(project_id)
                lock = self._project_locks[project_id] = threading.RLock()
        with lock:
            self._check_open()
            yield

    def _touch(self, project_id: int) -> None:
        with self._catalog_lock:
            self.registry.touch(project_id)

    @contextmanager
    def _mutating(self, project_id: int) -> Iterator[None]:
        """Project lock for a mutation; touches the project afterwards."""
        with self._project(project_id):
            yield
            self._touch(project_id)

    def _sync_tags(self, entity_type: str, entity: Any, tags: list[Tag]) -> None:
        with self._tags_lock:
            entity.tags = self.tags.set_tags(entity_type, entity.project_id, entity.id, tags)

    def _check_tags(self, tags: list[Tag]) -> None:
        with self._tags_lock:
            self.tags.resolve(tags)

    def _purge_tags(self, entity_type: str, project_id: int, entity_id: int) -> None:
        with self._tags_lock:
            self.tags.purge_entity(entity_type, project_id, entity_id)

    def _require(self, store: EntityStore, project_id: int, ids: Sequence[int]) -> None:
        known = {e.id for e in store.load(project_id)}
        missing = [i for i in ids if i not in known]
        if missing:
            raise NotFound(f"{store.kind} {missing[0]} not found in project {project_id}")

    def _apply_default_status(self, entity: BaseEntity) -> None:
        if "status" not in entity.model_fields_set:
            entity.status = app_config.get_config(self.data_dir)["default_status"]

    def _insert(self, store: EntityStore, entity: BaseEntity) -> Outcome:
        self._check_tags(entity.tags)
        self._apply_default_status(entity)
        outcome = store.insert(entity)
        self._sync_tags(store.kind, outcome.value, entity.tags)
        return outcome

    def _update(self, store: EntityStore, entity: BaseEntity) -> Outcome:
        self._check_tags(entity.tags)
        outcome = store.update(entity)
        self._sync_tags(store.kind, outcome.value, entity.tags)
        return outcome

    def _delete(self, store: EntityStore, project_id: int, entity_id: int) -> Outcome[bool]:
        outcome = store.delete(project_id, entity_id)
        if outcome.value:
            self._purge_tags(store.kind, project_id, entity_id)
        return outcome

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, project: Project) -> Project:
        self._check_tags(project.tags)
        with self._catalog():
            new = self.registry.create(project)
        with self._tags_lock:
            new.tags = self.tags.set_tags("project", new.id, new.id, project.tags)
        return new

    def list_projects(self) -> list[Project]:
        with self._catalog():
            projects = self.registry.list()
        return [self.resolver.project_view(p) for p in projects]

    def get_project(self, project_id: int) -> Project:
        with self._catalog():
            project = self.registry.get(project_id)
        return self.resolver.project_view(project)

    def update_project(self, project: Project) -> Project:
        self._check_tags(project.tags)
        with self._catalog():
            updated = self.registry.update(project)
        with self._tags_lock:
            updated.tags = self.tags.set_tags("project", updated.id, updated.id, project.tags)
        return updated

    def delete_project(self, project_id: int) -> bool:
        try:
            with self._project(project_id), self._catalog_lock:
                deleted = self.registry.delete(project_id)
                if deleted:
                    self._project_locks.pop(project_id, None)
        except OwnerNotFound:
            return False
        if deleted:
            with self._tags_lock:
                self.tags.purge_project(project_id)
        return deleted

    def resolve_storage_root(self, project_id: int) -> Path:
        with self._catalog():
            return self.registry.resolve_storage_root(project_id)

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------

    def list_chapters(self, project_id: int) -> list[Chapter]:
        with self._project(project_id):
            chapters = self.chapters.list(project_id)
        return self.resolver.with_tags_all("chapter", project_id, chapters)

    def get_chapter(self, project_id: int, chapter_id: int) -> Chapter:
        with self._project(project_id):
            chapter = self.chapters.get(project_id, chapter_id)
        return self.resolver.with_tags(chapter)

    def insert_chapter(self, chapter: Chapter) -> Outcome[Chapter]:
        with self._mutating(chapter.project_id):
            return self._insert(self.chapters, chapter)

    def update_chapter(self, chapter: Chapter) -> Outcome[Chapter]:
        with self._mutating(chapter.project_id):
            # A position change renames every scene of the chapter.
            self.ordering.check_scene_filenames(
                chapter.project_id, {chapter.id: chapter.position}
            )
            outcome = self._update(self.chapters, chapter)
            self.ordering.sync_scene_filenames(chapter.project_id, outcome.warnings)
        return outcome

    def delete_chapter(self, project_id: int, chapter_id: int) -> Outcome[bool]:
        """Delete a chapter together with its scenes."""
        with self._project(project_id):
            outcome = self._delete(self.chapters, project_id, chapter_id)
            if outcome.value:
                for scene in self.scenes.list(project_id, chapter_id):
                    outcome.warnings.extend(self._delete(self.scenes, project_id, scene.id).warnings)
                self._touch(project_id)
        return outcome

    def reorder_chapters(self, project_id: int, sequence: Sequence[Any]) -> Outcome[list[Chapter]]:
        with self._mutating(project_id):
            return self.ordering.reorder_chapters(project_id, sequence)

    # ------------------------------------------------------------------
    # Scenes
    # ------------------------------------------------------------------

    def list_scenes(self, project_id: int, chapter_id: int | None = None) -> list[Scene]:
        with self._project(project_id):
            scenes = self.scenes.list(project_id, chapter_id)
            return self.resolver.scene_views(project_id, scenes)

    def get_scene(self, project_id: int, scene_id: int, chapter_id: int | None = None) -> Scene:
        with self._project(project_id):
            scene = self.scenes.get(project_id, scene_id, chapter_id)
            return self.resolver.scene_view(project_id, scene)

    def _check_scene_refs(self, scene: Scene) -> None:
        self._require(self.characters, scene.project_id, scene.character_ids)
        self._require(self.locations, scene.project_id, scene.location_ids)

    def insert_scene(self, scene: Scene) -> Outcome[Scene]:
        with self._mutating(scene.project_id):
            self._check_scene_refs(scene)
            outcome = self._insert(self.scenes, scene)
            self.resolver.scene_view(scene.project_id, outcome.value)
        return outcome

    def update_scene(self, scene: Scene) -> Outcome[Scene]:
        with self._mutating(scene.project_id):
            self._check_scene_refs(scene)
            outcome = self._update(self.scenes, scene)
            self.resolver.scene_view(scene.project_id, outcome.value)
        return outcome

    def delete_scene(
        self, project_id: int, scene_id: int, chapter_id: int | None = None
    ) -> Outcome[bool]:
        """Delete a scene. With ``chapter_id`` only a scene of that chapter matches."""
        with self._project(project_id):
            if chapter_id is not None:
                siblings = self.scenes.list(project_id, chapter_id)
                if all(s.id != scene_id for s in siblings):
                    return Outcome(value=False)
            outcome = self._delete(self.scenes, project_id, scene_id)
            if outcome.value:
                self._touch(project_id)
        return outcome

    def reorder_scenes(
        self, project_id: int, chapter_id: int, sequence: Sequence[Any]
    ) -> Outcome[list[Scene]]:
        with self._mutating(project_id):
            return self.ordering.reorder_scenes(project_id, chapter_id, sequence)

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------

    def list_characters(self, project_id: int) -> list[Character]:
        with self._project(project_id):
            characters = self.characters.list(project_id)
        return self.resolver.with_tags_all("character", project_id, characters)

    def get_character(self, project_id: int, character_id: int) -> Character:
        with self._project(project_id):
            return self.resolver.character_detail(project_id, character_id)

    def insert_character(self, character: Character) -> Outcome[Character]:
        with self._mutating(character.project_id):
            outcome = self._insert(self.characters, character)
            outcome.value = self.resolver.character_detail(character.project_id, outcome.value.id)
        return outcome

    def update_character(self, character: Character) -> Outcome[Character]:
        with self._mutating(character.project_id):
            outcome = self._update(self.characters, character)
            outcome.value = self.resolver.character_detail(character.project_id, character.id)
        return outcome

    def delete_character(self, project_id: int, character_id: int) -> Outcome[bool]:
        """Delete a character, its relationships, and every link pointing at it."""
        with self._project(project_id):
            outcome = self._delete(self.characters, project_id, character_id)
            if outcome.value:
                for relationship_id in self.relationships.purge_character(project_id, character_id):
                    self._purge_tags("relationship", project_id, relationship_id)
                self.event_links.purge(project_id, "character", character_id)
                self.scenes.patch_records(
                    project_id, lambda s: _drop_id(s.character_ids, character_id)
                )
                self._touch(project_id)
        return outcome

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def list_locations(self, project_id: int) -> list[Location]:
        with self._project(project_id):
            locations = self.locations.list(project_id)
        return self.resolver.with_tags_all("location", project_id, locations)

    def get_location(self, project_id: int, location_id: int) -> Location:
        with self._project(project_id):
            location = self.locations.get(project_id, location_id)
        return self.resolver.with_tags(location)

    def _check_parent(self, location: Location) -> None:
        # Parent cycles are not checked.
        if location.parent_location_id is not None:
            self._require(self.locations, location.project_id, [location.parent_location_id])

    def insert_location(self, location: Location) -> Outcome[Location]:
        with self._mutating(location.project_id):
            self._check_parent(location)
            return self._insert(self.locations, location)

    def update_location(self, location: Location) -> Outcome[Location]:
        with self._mutating(location.project_id):
            self._check_parent(location)
            return self._update(self.locations, location)

    def delete_location(self, project_id: int, location_id: int) -> Outcome[bool]:
        """Delete a location; children are detached and links dropped."""
        with self._project(project_id):
            outcome = self._delete(self.locations, project_id, location_id)
            if outcome.value:
                self.event_links.purge(project_id, "location", location_id)
                self.scenes.patch_records(
                    project_id, lambda s: _drop_id(s.location_ids, location_id)
                )
                self.locations.patch_records(
                    project_id, lambda loc: _detach_parent(loc, location_id)
                )
                self._touch(project_id)
        return outcome

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def list_events(self, project_id: int) -> list[Event]:
        with self._project(project_id):
            return self.resolver.event_views(project_id, self.events.list(project_id))

    def get_event(self, project_id: int, event_id: int) -> Event:
        with self._project(project_id):
            return self.resolver.event_view(project_id, self.events.get(project_id, event_id))

    def _write_event(self, event: Event, inserting: bool) -> Outcome[Event]:
        with self._mutating(event.project_id):
            self._require(self.characters, event.project_id, event.character_ids)
            self._require(self.locations, event.project_id, event.location_ids)
            if inserting:
                outcome = self._insert(self.events, event)
            else:
                outcome = self._update(self.events, event)
            self.event_links.set_links(
                event.project_id, outcome.value.id, event.character_ids, event.location_ids
            )
            self.resolver.event_view(event.project_id, outcome.value)
        return outcome

    def insert_event(self, event: Event) -> Outcome[Event]:
        return self._write_event(event, inserting=True)

    def update_event(self, event: Event) -> Outcome[Event]:
        return self._write_event(event, inserting=False)

    def delete_event(self, project_id: int, event_id: int) -> Outcome[bool]:
        with self._project(project_id):
            outcome = self._delete(self.events, project_id, event_id)
            if outcome.value:
                self.event_links.purge(project_id, "event", event_id)
                self.events.patch_records(project_id, lambda e: _unchain_event(e, event_id))
                self._touch(project_id)
        return outcome

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def list_relationships(self, project_id: int) -> list[RelationshipView]:
        with self._project(project_id):
            return self.resolver.relationship_views(
                project_id, self.relationships.load(project_id)
            )

    def get_relationship(self, project_id: int, relationship_id: int) -> RelationshipView:
        with self._project(project_id):
            relationship = self.relationships.get(project_id, relationship_id)
            views = self.resolver.relationship_views(project_id, [relationship])
        if not views:
            raise NotFound(f"relationship {relationship_id} has a missing endpoint")
        return views[0]

    def _write_relationship(self, relationship: Relationship, inserting: bool) -> Relationship:
        with self._mutating(relationship.project_id):
            self._require(
                self.characters,
                relationship.project_id,
                [relationship.character_id, relationship.target_id],
            )
            self._check_tags(relationship.tags)
            if inserting:
                stored = self.relationships.insert(relationship)
            else:
                stored = self.relationships.update(relationship)
            self._sync_tags("relationship", stored, relationship.tags)
        return stored

    def insert_relationship(self, relationship: Relationship) -> Relationship:
        return self._write_relationship(relationship, inserting=True)

    def update_relationship(self, relationship: Relationship) -> Relationship:
        return self._write_relationship(relationship, inserting=False)

    def delete_relationship(self, project_id: int, relationship_id: int) -> bool:
        with self._project(project_id):
            deleted = self.relationships.delete(project_id, relationship_id)
            if deleted:
                self._purge_tags("relationship", project_id, relationship_id)
                self._touch(project_id)
        return deleted

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def list_tags(self) -> list[Tag]:
        with self._tags_lock:
            return self.tags.list_tags()

    def get_tag(self, tag_id: int) -> Tag:
        with self._tags_lock:
            return self.tags.get_tag(tag_id)

    def insert_tag(self, name: str, icon: str = "") -> Tag:
        with self._tags_lock:
            return self.tags.insert_tag(name, icon)

    def update_tag(self, tag_id: int, name: str, icon: str = "") -> Tag:
        with self._tags_lock:
            return self.tags.update_tag(tag_id, name, icon)

    def delete_tag(self, tag_id: int) -> bool:
        with self._tags_lock:
            return self.tags.delete_tag(tag_id)

    def _require_taggable(self, entity_type: str, project_id: int, entity_id: int) -> None:
        check_entity_type(entity_type)
        if entity_type == "project":
            if entity_id != project_id:
                raise NotFound(f"project {entity_id} does not match {project_id}")
            self.registry.resolve_storage_root(project_id)
        elif entity_type == "relationship":
            self.relationships.get(project_id, entity_id)
        else:
            store = {
                "chapter": self.chapters,
                "scene": self.scenes,
                "character": self.characters,
                "location": self.locations,
                "event": self.events,
            }[entity_type]
            self._require(store, project_id, [entity_id])

    def get_tags_for_entity(self, entity_type: str, project_id: int, entity_id: int) -> list[Tag]:
        check_entity_type(entity_type)
        with self._tags_lock:
            return self.tags.get_tags_for_entity(entity_type, project_id, entity_id)

    def add_tag_to_entity(
        self, entity_type: str, project_id: int, entity_id: int, tag_id: int
    ) -> bool:
        with self._project(project_id):
            self._require_taggable(entity_type, project_id, entity_id)
            with self._tags_lock:
                return self.tags.add_tag_to_entity(entity_type, project_id, entity_id, tag_id)

    def remove_tag_from_entity(
        self, entity_type: str, project_id: int, entity_id: int, tag_id: int
    ) -> bool:
        check_entity_type(entity_type)
        with self._tags_lock:
            return self.tags.remove_tag_from_entity(entity_type, project_id, entity_id, tag_id)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_config(self) -> dict[str, Any]:
        with self._catalog():
            return app_config.get_config(self.data_dir)

    def update_config(self, fields: dict[str, Any]) -> dict[str, Any]:
        with self._catalog():
            return app_config.update_config(self.data_dir, fields)


def _drop_id(ids: list[int], target: int) -> bool:
    if target not in ids:
        return False
    ids[:] = [i for i in ids if i != target]
    return True


def _detach_parent(location: Location, parent_id: int) -> bool:
    if location.parent_location_id != parent_id:
        return False
    location.parent_location_id = None
    return True


def _unchain_event(event: Event, event_id: int) -> bool:
    changed = _drop_id(event.previous_event_ids, event_id)
    return _drop_id(event.next_event_ids, event_id) or changed
