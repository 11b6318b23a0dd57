"""File-based storage: JSON metadata collections plus one Markdown file per entity.

Data layout:
  data/
    projects.json                 Project catalog (id, name, path, timestamps)
    config.json                   App settings (display, fonts, autosave)
    tags/
      tags.json                   Global tag catalog
      <type>_tags.json            Tag joins {project_id, entity_id, tag_id}
    projects/<path>/              One storage root per project:
      Chapters/chapters.json      Chapter records + CHAPTER_<pos>_<name>.md
      Scenes/scenes.json          Scene records + CHAPTER_<cpos>_SCENE_<pos>_<name>.md
      Characters/characters.json  Character records + <name>.md
      Locations/locations.json    Location records + <name>.md
      Events/events.json          Event records + <name>.md
      Events/event_characters.json, Events/event_locations.json   Event joins
      Relationships/relationships.json

Ids: highest id in the collection + 1, starting at 1. Ids freed by a delete
are only reused if they were the highest.

Filenames: display names are reduced to [A-Za-z0-9_] (whitespace runs → "_")
and recomputed on every write; a changed filename renames the body.

Concurrency: every mutation rewrites the full collection file. Storage
serialises mutations per project root within one process only.
"""

# Re-export the public surface so callers import from `backend.storage` only.

from .core import (  # noqa: F401
    FIRST_ID,
    derive_filename,
    next_id,
    sanitize_name,
    slugify,
)

from .errors import (  # noqa: F401
    EntityValidationError,
    FilenameConflict,
    NotFound,
    OwnerNotFound,
    StorageError,
    StorageIOError,
)

from .entities import (  # noqa: F401
    ChapterStore,
    EntityStore,
    Outcome,
    SceneStore,
)

from .ordering import (  # noqa: F401
    OrderingCoordinator,
    ReorderItem,
)

from .tags import (  # noqa: F401
    TAG_ENTITY_TYPES,
)

from .engine import (  # noqa: F401
    Storage,
)
