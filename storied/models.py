"""Core domain models.

Every storage component and API endpoint operates on these types.
Pydantic is used for validation and serialisation at every data boundary.

Metadata records on disk are ``model_dump(mode="json")`` of these models
minus the fields listed in ``transient_fields()``: the Markdown body lives in
its own file, tags live in join records, and the embedded summaries are
resolved on read.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Literal

from pydantic import BaseModel, Field

Status = Literal["concept", "outlined", "writing", "editing", "finished"]

EntityType = Literal["chapter", "scene", "character", "location", "event"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tag(BaseModel):
    id: int = 0
    icon: str = ""
    name: str


class CharacterSummary(BaseModel):
    """Display summary of a character embedded in other views."""

    id: int
    name: str
    icon: str | None = None
    role: str = ""


class LocationSummary(BaseModel):
    """Display summary of a location embedded in other views."""

    id: int
    name: str
    icon: str | None = None
    description: str = ""


class Project(BaseModel):
    """A top-level project (a story world). ``path`` names its storage root."""

    id: int = 0
    name: str
    description: str = ""
    icon: str | None = None
    path: str = ""
    creation_date: datetime = Field(default_factory=utcnow)
    last_modified: datetime = Field(default_factory=utcnow)
    tags: list[Tag] = Field(default_factory=list)


class BaseEntity(BaseModel):
    """Shape shared by every entity that owns a Markdown body.

    ``id == 0`` marks an entity that has not been inserted yet.
    """

    entity_type: ClassVar[EntityType]
    view_fields: ClassVar[frozenset[str]] = frozenset()

    project_id: int
    id: int = 0
    name: str
    description: str = ""
    icon: str | None = None
    text: str | None = None
    filename: str = ""
    status: Status = "concept"
    creation_date: datetime = Field(default_factory=utcnow)
    last_modified: datetime = Field(default_factory=utcnow)
    tags: list[Tag] = Field(default_factory=list)

    @classmethod
    def transient_fields(cls) -> set[str]:
        """Fields never written to the metadata collection."""
        return {"text", "tags"} | set(cls.view_fields)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", exclude=self.transient_fields())


class Chapter(BaseEntity):
    entity_type: ClassVar[EntityType] = "chapter"

    story_id: int | None = None
    position: int = 1


class Scene(BaseEntity):
    entity_type: ClassVar[EntityType] = "scene"
    view_fields: ClassVar[frozenset[str]] = frozenset({"characters", "locations"})

    chapter_id: int
    position: int = 1
    character_ids: list[int] = Field(default_factory=list)
    location_ids: list[int] = Field(default_factory=list)
    characters: list[CharacterSummary] = Field(default_factory=list)
    locations: list[LocationSummary] = Field(default_factory=list)


class Location(BaseEntity):
    entity_type: ClassVar[EntityType] = "location"

    parent_location_id: int | None = None

    def summary(self) -> LocationSummary:
        return LocationSummary(
            id=self.id, name=self.name, icon=self.icon, description=self.description
        )


class Trait(BaseModel):
    icon: str = ""
    trait: str


class Relationship(BaseModel):
    """A link between two characters, stored as (character_id, target_id)."""

    project_id: int
    id: int = 0
    character_id: int
    target_id: int
    name: str = ""
    description: str = ""
    icon: str | None = None
    text: str | None = None
    creation_date: datetime = Field(default_factory=utcnow)
    last_modified: datetime = Field(default_factory=utcnow)
    tags: list[Tag] = Field(default_factory=list)

    def involves(self, character_id: int) -> bool:
        return character_id in (self.character_id, self.target_id)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", exclude={"tags"})


class RelationshipView(Relationship):
    """Relationship with both endpoint summaries resolved for display."""

    character: CharacterSummary
    target: CharacterSummary


class Event(BaseEntity):
    entity_type: ClassVar[EntityType] = "event"
    view_fields: ClassVar[frozenset[str]] = frozenset(
        {"characters", "locations", "character_ids", "location_ids"}
    )

    # Links are persisted as join records, not on the event itself.
    character_ids: list[int] = Field(default_factory=list)
    location_ids: list[int] = Field(default_factory=list)
    previous_event_ids: list[int] = Field(default_factory=list)
    next_event_ids: list[int] = Field(default_factory=list)
    characters: list[CharacterSummary] = Field(default_factory=list)
    locations: list[LocationSummary] = Field(default_factory=list)


class Character(BaseEntity):
    entity_type: ClassVar[EntityType] = "character"
    view_fields: ClassVar[frozenset[str]] = frozenset({"relationships", "events"})

    role: str = ""
    traits: list[Trait] = Field(default_factory=list)
    relationships: list[RelationshipView] = Field(default_factory=list)
    events: list[Event] = Field(default_factory=list)

    def summary(self) -> CharacterSummary:
        return CharacterSummary(id=self.id, name=self.name, icon=self.icon, role=self.role)


ENTITY_MODELS: dict[str, type[BaseEntity]] = {
    "chapter": Chapter,
    "scene": Scene,
    "character": Character,
    "location": Location,
    "event": Event,
}
