"""Read-side expansion of foreign keys into denormalized views.

This is the only place that joins across collections. Views are built
fresh on every call and never written back. Ids that no longer resolve are
dropped from the views rather than reported.
"""

from storied.models import (
    BaseEntity,
    Character,
    CharacterSummary,
    Event,
    LocationSummary,
    Project,
    Relationship,
    RelationshipView,
    Scene,
)

from .entities import EntityStore
from .links import EventLinks, RelationshipStore
from .tags import TagCatalog


class ReferenceResolver:
    def __init__(
        self,
        characters: EntityStore,
        locations: EntityStore,
        events: EntityStore,
        relationships: RelationshipStore,
        event_links: EventLinks,
        tags: TagCatalog,
    ) -> None:
        self.characters = characters
        self.locations = locations
        self.events = events
        self.relationships = relationships
        self.event_links = event_links
        self.tags = tags

    def character_summaries(self, project_id: int) -> dict[int, CharacterSummary]:
        return {c.id: c.summary() for c in self.characters.load(project_id)}

    def location_summaries(self, project_id: int) -> dict[int, LocationSummary]:
        return {loc.id: loc.summary() for loc in self.locations.load(project_id)}

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def with_tags(self, entity: BaseEntity) -> BaseEntity:
        entity.tags = self.tags.get_tags_for_entity(entity.entity_type, entity.project_id, entity.id)
        return entity

    def with_tags_all(self, entity_type: str, project_id: int, entities: list) -> list:
        by_entity = self.tags.tags_by_entity(entity_type, project_id)
        for entity in entities:
            entity.tags = by_entity.get(entity.id, [])
        return entities

    def project_view(self, project: Project) -> Project:
        project.tags = self.tags.get_tags_for_entity("project", project.id, project.id)
        return project

    # ------------------------------------------------------------------
    # Scenes and events
    # ------------------------------------------------------------------

    def scene_views(self, project_id: int, scenes: list[Scene]) -> list[Scene]:
        characters = self.character_summaries(project_id)
        locations = self.location_summaries(project_id)
        for scene in scenes:
            scene.characters = [characters[i] for i in scene.character_ids if i in characters]
            scene.locations = [locations[i] for i in scene.location_ids if i in locations]
        return self.with_tags_all("scene", project_id, scenes)

    def scene_view(self, project_id: int, scene: Scene) -> Scene:
        return self.scene_views(project_id, [scene])[0]

    def event_views(self, project_id: int, events: list[Event]) -> list[Event]:
        characters = self.character_summaries(project_id)
        locations = self.location_summaries(project_id)
        character_links = self.event_links.by_event(project_id, "character")
        location_links = self.event_links.by_event(project_id, "location")
        for event in events:
            event.character_ids = character_links.get(event.id, [])
            event.location_ids = location_links.get(event.id, [])
            event.characters = [characters[i] for i in event.character_ids if i in characters]
            event.locations = [locations[i] for i in event.location_ids if i in locations]
        return self.with_tags_all("event", project_id, events)

    def event_view(self, project_id: int, event: Event) -> Event:
        return self.event_views(project_id, [event])[0]

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------

    def relationship_views(
        self, project_id: int, relationships: list[Relationship]
    ) -> list[RelationshipView]:
        characters = self.character_summaries(project_id)
        tags = self.tags.tags_by_entity("relationship", project_id)
        views = []
        for rel in relationships:
            if rel.character_id not in characters or rel.target_id not in characters:
                continue
            views.append(
                RelationshipView(
                    **rel.model_dump(exclude={"tags"}),
                    tags=tags.get(rel.id, []),
                    character=characters[rel.character_id],
                    target=characters[rel.target_id],
                )
            )
        return views

    def character_events(self, project_id: int, character_id: int) -> list[Event]:
        event_ids = set(self.event_links.events_for(project_id, "character", character_id))
        events = [e for e in self.events.load(project_id) if e.id in event_ids]
        return self.event_views(project_id, events)

    def character_detail(self, project_id: int, character_id: int) -> Character:
        """Character with body, tags, relationships (either endpoint) and events.

        Raises NotFound if the character does not exist.
        """
        character = self.characters.get(project_id, character_id)
        self.with_tags(character)
        character.relationships = self.relationship_views(
            project_id, self.relationships.for_character(project_id, character_id)
        )
        character.events = self.character_events(project_id, character_id)
        return character
