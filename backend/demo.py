"""Create a demo project for development/testing."""

import logging

from backend.storage import Storage
from storied.models import (
    Chapter,
    Character,
    Event,
    Location,
    Project,
    Relationship,
    Scene,
    Tag,
    Trait,
)

logger = logging.getLogger(__name__)

DEMO_CHAPTERS = [
    {
        "name": "Arrival",
        "description": "The survey ship reaches the derelict station Atlas.",
        "scenes": [
            ("Docking", "The airlock cycles for the first time in forty years."),
            ("First Light", "Emergency lamps wake one corridor at a time."),
        ],
    },
    {
        "name": "Departure",
        "description": "Whatever lives on Atlas does not want them to leave.",
        "scenes": [
            ("Sealed Bulkheads", "Every exit reports the same fault code."),
        ],
    },
]


def create_demo_data(storage: Storage) -> Project:
    """Remove any existing "Atlas" project and create a fresh one."""
    for project in storage.list_projects():
        if project.name == "Atlas":
            storage.delete_project(project.id)

    project = storage.create_project(Project(
        name="Atlas",
        description="A salvage crew boards a station that was never abandoned.",
        icon="🛰️",
        tags=[Tag(name="science fiction")],
    ))
    pid = project.id

    station = storage.insert_location(Location(
        project_id=pid, name="Atlas Station", icon="🛰️",
        description="A ring station in a decaying orbit.",
        text="# Atlas Station\n\nThree rings, one still spinning.",
    )).value
    dock = storage.insert_location(Location(
        project_id=pid, name="Docking Ring", parent_location_id=station.id,
        description="The outermost ring.",
    )).value

    mara = storage.insert_character(Character(
        project_id=pid, name="Mara Okafor", role="Captain", icon="🧭",
        traits=[Trait(icon="⚓", trait="Stubborn"), Trait(trait="Loyal to her crew")],
        tags=[Tag(name="crew")],
    )).value
    ilya = storage.insert_character(Character(
        project_id=pid, name="Ilya Brandt", role="Engineer",
        traits=[Trait(trait="Curious")],
        tags=[Tag(name="crew")],
    )).value
    storage.insert_relationship(Relationship(
        project_id=pid, character_id=mara.id, target_id=ilya.id,
        name="Old shipmates", description="Served together on the Kestrel.",
    ))

    for position, spec in enumerate(DEMO_CHAPTERS, start=1):
        chapter = storage.insert_chapter(Chapter(
            project_id=pid, name=spec["name"], description=spec["description"],
            position=position,
        )).value
        for scene_position, (name, text) in enumerate(spec["scenes"], start=1):
            storage.insert_scene(Scene(
                project_id=pid, chapter_id=chapter.id, name=name, position=scene_position,
                text=text, character_ids=[mara.id, ilya.id], location_ids=[dock.id],
            ))

    storage.insert_event(Event(
        project_id=pid, name="The Kestrel incident",
        description="The accident that ended Mara's first command.",
        character_ids=[mara.id, ilya.id],
    ))

    logger.info("Created demo project %s at %s", pid, project.path)
    return project
