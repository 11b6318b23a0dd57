"""Relationship records and event join records.

These collections only hold foreign keys and their own metadata; they never
own a Markdown body. Callers check that referenced characters, locations and
events exist before writing.
"""

import logging
from typing import Callable

from storied.models import Relationship, utcnow

from .core import next_id
from .errors import NotFound
from .files import ProjectFiles

logger = logging.getLogger(__name__)


class RelationshipStore:
    """Character-to-character relationships, keyed as (character_id, target_id)."""

    kind = "relationship"

    def __init__(self, files_for: Callable[[int], ProjectFiles]) -> None:
        self._files_for = files_for

    def load(self, project_id: int) -> list[Relationship]:
        records = self._files_for(project_id).read_collection(self.kind)
        return [Relationship.model_validate(r) for r in records]

    def save(self, project_id: int, relationships: list[Relationship]) -> None:
        self._files_for(project_id).write_collection(
            self.kind, [r.to_record() for r in relationships]
        )

    def get(self, project_id: int, relationship_id: int) -> Relationship:
        for rel in self.load(project_id):
            if rel.id == relationship_id:
                return rel
        raise NotFound(f"relationship {relationship_id} not found in project {project_id}")

    def for_character(self, project_id: int, character_id: int) -> list[Relationship]:
        """Relationships where the character is either endpoint."""
        return [r for r in self.load(project_id) if r.involves(character_id)]

    def insert(self, relationship: Relationship) -> Relationship:
        relationships = self.load(relationship.project_id)
        now = utcnow()
        new = relationship.model_copy(
            update={"id": next_id(relationships), "creation_date": now, "last_modified": now}
        )
        relationships.append(new)
        self.save(relationship.project_id, relationships)
        return new

    def update(self, relationship: Relationship) -> Relationship:
        relationships = self.load(relationship.project_id)
        for i, old in enumerate(relationships):
            if old.id == relationship.id:
                updated = relationship.model_copy(
                    update={"creation_date": old.creation_date, "last_modified": utcnow()}
                )
                relationships[i] = updated
                self.save(relationship.project_id, relationships)
                return updated
        raise NotFound(
            f"relationship {relationship.id} not found in project {relationship.project_id}"
        )

    def delete(self, project_id: int, relationship_id: int) -> bool:
        relationships = self.load(project_id)
        remaining = [r for r in relationships if r.id != relationship_id]
        if len(remaining) == len(relationships):
            return False
        self.save(project_id, remaining)
        return True

    def purge_character(self, project_id: int, character_id: int) -> list[int]:
        """Drop every relationship touching the character. Returns the dropped ids."""
        relationships = self.load(project_id)
        dropped = [r.id for r in relationships if r.involves(character_id)]
        if dropped:
            self.save(project_id, [r for r in relationships if not r.involves(character_id)])
            logger.info("dropped %d relationships of character %d", len(dropped), character_id)
        return dropped


class EventLinks:
    """Join records event↔character and event↔location."""

    def __init__(self, files_for: Callable[[int], ProjectFiles]) -> None:
        self._files_for = files_for

    def _load(self, project_id: int, target: str) -> list[dict[str, int]]:
        return self._files_for(project_id).read_collection(f"event_{target}")

    def _save(self, project_id: int, target: str, rows: list[dict[str, int]]) -> None:
        self._files_for(project_id).write_collection(f"event_{target}", rows)

    def linked(self, project_id: int, event_id: int, target: str) -> list[int]:
        key = f"{target}_id"
        return [row[key] for row in self._load(project_id, target) if row["event_id"] == event_id]

    def by_event(self, project_id: int, target: str) -> dict[int, list[int]]:
        key = f"{target}_id"
        grouped: dict[int, list[int]] = {}
        for row in self._load(project_id, target):
            grouped.setdefault(row["event_id"], []).append(row[key])
        return grouped

    def events_for(self, project_id: int, target: str, target_id: int) -> list[int]:
        key = f"{target}_id"
        event_ids: list[int] = []
        for row in self._load(project_id, target):
            if row[key] == target_id and row["event_id"] not in event_ids:
                event_ids.append(row["event_id"])
        return event_ids

    def set_links(
        self, project_id: int, event_id: int, character_ids: list[int], location_ids: list[int]
    ) -> None:
        """Replace the event's links with the given ids (duplicates collapse)."""
        for target, ids in (("character", character_ids), ("location", location_ids)):
            key = f"{target}_id"
            rows = [row for row in self._load(project_id, target) if row["event_id"] != event_id]
            for target_id in dict.fromkeys(ids):
                rows.append({"event_id": event_id, key: target_id})
            self._save(project_id, target, rows)

    def purge(self, project_id: int, target: str, target_id: int) -> int:
        """Drop links pointing at a deleted character, location, or (target="event") event."""
        key = "event_id" if target == "event" else f"{target}_id"
        targets = ("character", "location") if target == "event" else (target,)
        dropped = 0
        for table in targets:
            rows = self._load(project_id, table)
            kept = [row for row in rows if row[key] != target_id]
            if len(kept) != len(rows):
                dropped += len(rows) - len(kept)
                self._save(project_id, table, kept)
        return dropped
