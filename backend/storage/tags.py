"""Tag catalog and per-entity-type tag joins.

The catalog is global (``tags/tags.json``). Each entity type has its own
join relation (``tags/{type}_tags.json``) of ``{project_id, entity_id,
tag_id}`` rows; project tags use ``entity_id == project_id``.
"""

import logging
from pathlib import Path

from storied.models import Tag

from .core import next_id, read_json, write_json
from .errors import EntityValidationError, NotFound

logger = logging.getLogger(__name__)

TAG_ENTITY_TYPES = ("project", "chapter", "scene", "character", "location", "event", "relationship")


def check_entity_type(entity_type: str) -> str:
    if entity_type not in TAG_ENTITY_TYPES:
        raise EntityValidationError(f"Invalid entity type: {entity_type}")
    return entity_type


class TagCatalog:
    def __init__(self, data_dir: Path) -> None:
        self.dir = data_dir / "tags"
        self.dir.mkdir(parents=True, exist_ok=True)

    def _catalog_path(self) -> Path:
        return self.dir / "tags.json"

    def _links_path(self, entity_type: str) -> Path:
        return self.dir / f"{check_entity_type(entity_type)}_tags.json"

    def _load_links(self, entity_type: str) -> list[dict[str, int]]:
        return read_json(self._links_path(entity_type), default=[])

    def _save_links(self, entity_type: str, rows: list[dict[str, int]]) -> None:
        write_json(self._links_path(entity_type), rows)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_tags(self) -> list[Tag]:
        return [Tag.model_validate(t) for t in read_json(self._catalog_path(), default=[])]

    def _save_tags(self, tags: list[Tag]) -> None:
        write_json(self._catalog_path(), [t.model_dump() for t in tags])

    def get_tag(self, tag_id: int) -> Tag:
        for tag in self.list_tags():
            if tag.id == tag_id:
                return tag
        raise NotFound(f"tag {tag_id} not found")

    def insert_tag(self, name: str, icon: str = "") -> Tag:
        tags = self.list_tags()
        tag = Tag(id=next_id(tags), name=name, icon=icon)
        tags.append(tag)
        self._save_tags(tags)
        return tag

    def update_tag(self, tag_id: int, name: str, icon: str = "") -> Tag:
        tags = self.list_tags()
        for i, tag in enumerate(tags):
            if tag.id == tag_id:
                tags[i] = Tag(id=tag_id, name=name, icon=icon)
                self._save_tags(tags)
                return tags[i]
        raise NotFound(f"tag {tag_id} not found")

    def delete_tag(self, tag_id: int) -> bool:
        """Remove a tag and every link to it. Unknown ids are a no-op."""
        tags = self.list_tags()
        remaining = [t for t in tags if t.id != tag_id]
        if len(remaining) == len(tags):
            return False
        self._save_tags(remaining)
        for entity_type in TAG_ENTITY_TYPES:
            rows = self._load_links(entity_type)
            kept = [r for r in rows if r["tag_id"] != tag_id]
            if len(kept) != len(rows):
                self._save_links(entity_type, kept)
        return True

    def resolve(self, tags: list[Tag]) -> list[Tag]:
        """Map payload tags onto catalog tags without writing anything.

        Tags with an id must exist; tags without one (id 0) are matched by
        name and returned unsaved when new.
        """
        catalog = {t.id: t for t in self.list_tags()}
        by_name = {t.name: t for t in catalog.values()}
        resolved: list[Tag] = []
        for tag in tags:
            if tag.id:
                if tag.id not in catalog:
                    raise NotFound(f"tag {tag.id} not found")
                resolved.append(catalog[tag.id])
            else:
                resolved.append(by_name.get(tag.name, tag))
        return resolved

    # ------------------------------------------------------------------
    # Entity links
    # ------------------------------------------------------------------

    def get_tags_for_entity(self, entity_type: str, project_id: int, entity_id: int) -> list[Tag]:
        return self.tags_by_entity(entity_type, project_id).get(entity_id, [])

    def tags_by_entity(self, entity_type: str, project_id: int) -> dict[int, list[Tag]]:
        catalog = {t.id: t for t in self.list_tags()}
        grouped: dict[int, list[Tag]] = {}
        for row in self._load_links(entity_type):
            if row["project_id"] == project_id and row["tag_id"] in catalog:
                grouped.setdefault(row["entity_id"], []).append(catalog[row["tag_id"]])
        return grouped

    def add_tag_to_entity(self, entity_type: str, project_id: int, entity_id: int, tag_id: int) -> bool:
        """Link a tag. Returns False if the link already existed."""
        self.get_tag(tag_id)
        rows = self._load_links(entity_type)
        row = {"project_id": project_id, "entity_id": entity_id, "tag_id": tag_id}
        if row in rows:
            return False
        rows.append(row)
        self._save_links(entity_type, rows)
        return True

    def remove_tag_from_entity(
        self, entity_type: str, project_id: int, entity_id: int, tag_id: int
    ) -> bool:
        rows = self._load_links(entity_type)
        row = {"project_id": project_id, "entity_id": entity_id, "tag_id": tag_id}
        if row not in rows:
            return False
        rows.remove(row)
        self._save_links(entity_type, rows)
        return True

    def set_tags(self, entity_type: str, project_id: int, entity_id: int, tags: list[Tag]) -> list[Tag]:
        """Replace an entity's tag set, adding unknown names to the catalog."""
        resolved = self.resolve(tags)
        linked: list[Tag] = []
        created: dict[str, Tag] = {}
        for tag in resolved:
            if not tag.id:
                if tag.name not in created:
                    created[tag.name] = self.insert_tag(tag.name, tag.icon)
                tag = created[tag.name]
            if all(t.id != tag.id for t in linked):
                linked.append(tag)
        rows = [
            r for r in self._load_links(entity_type)
            if not (r["project_id"] == project_id and r["entity_id"] == entity_id)
        ]
        rows.extend(
            {"project_id": project_id, "entity_id": entity_id, "tag_id": t.id} for t in linked
        )
        self._save_links(entity_type, rows)
        return linked

    def purge_entity(self, entity_type: str, project_id: int, entity_id: int) -> None:
        rows = self._load_links(entity_type)
        kept = [
            r for r in rows
            if not (r["project_id"] == project_id and r["entity_id"] == entity_id)
        ]
        if len(kept) != len(rows):
            self._save_links(entity_type, kept)

    def purge_project(self, project_id: int) -> None:
        for entity_type in TAG_ENTITY_TYPES:
            rows = self._load_links(entity_type)
            kept = [r for r in rows if r["project_id"] != project_id]
            if len(kept) != len(rows):
                self._save_links(entity_type, kept)
        logger.debug("dropped tag links of project %d", project_id)
