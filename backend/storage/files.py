"""Per-project file backend: JSON collections plus Markdown bodies.

One sub-directory per collection holds a single JSON array of metadata
records and, for entity collections, one Markdown file per record. Link
collections (relationships, event links) are JSON-only and share the
directory of the entity they hang off.

Collection reads/writes raise StorageIOError. Text renames and deletes raise
plain OSError so callers can downgrade them to warnings.
"""

from pathlib import Path
from typing import Any

from .core import read_json, write_json
from .errors import EntityValidationError, StorageIOError

# collection key → (directory, json filename)
COLLECTIONS: dict[str, tuple[str, str]] = {
    "chapter": ("Chapters", "chapters.json"),
    "scene": ("Scenes", "scenes.json"),
    "character": ("Characters", "characters.json"),
    "location": ("Locations", "locations.json"),
    "event": ("Events", "events.json"),
    "event_character": ("Events", "event_characters.json"),
    "event_location": ("Events", "event_locations.json"),
    "relationship": ("Relationships", "relationships.json"),
}


class ProjectFiles:
    """File access rooted at one project's storage directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _collection(self, kind: str) -> tuple[Path, str]:
        try:
            directory, filename = COLLECTIONS[kind]
        except KeyError:
            raise EntityValidationError(f"Unknown collection: {kind}") from None
        return self.root / directory, filename

    def directory(self, kind: str) -> Path:
        return self._collection(kind)[0]

    def provision(self) -> None:
        """Create the root, every collection directory, and empty collections."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            for kind in COLLECTIONS:
                directory, filename = self._collection(kind)
                directory.mkdir(exist_ok=True)
                if not (directory / filename).exists():
                    write_json(directory / filename, [])
        except OSError as e:
            raise StorageIOError(f"Cannot provision {self.root}: {e}") from e

    # ------------------------------------------------------------------
    # Metadata collections
    # ------------------------------------------------------------------

    def read_collection(self, kind: str) -> list[dict[str, Any]]:
        directory, filename = self._collection(kind)
        data = read_json(directory / filename, default=[])
        if not isinstance(data, list):
            raise StorageIOError(f"{directory / filename} does not hold a JSON array")
        return data

    def write_collection(self, kind: str, records: list[dict[str, Any]]) -> None:
        directory, filename = self._collection(kind)
        if not directory.is_dir():
            raise StorageIOError(f"Missing collection directory {directory}")
        write_json(directory / filename, records)

    # ------------------------------------------------------------------
    # Markdown bodies
    # ------------------------------------------------------------------

    def read_text(self, kind: str, filename: str) -> str:
        """Read a body. A missing file reads as the empty body."""
        path = self.directory(kind) / filename
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as e:
            raise StorageIOError(f"Cannot read {path}: {e}") from e

    def write_text(self, kind: str, filename: str, text: str | None) -> None:
        path = self.directory(kind) / filename
        try:
            path.write_text(text or "", encoding="utf-8")
        except OSError as e:
            raise StorageIOError(f"Cannot write {path}: {e}") from e

    def has_text(self, kind: str, filename: str) -> bool:
        return (self.directory(kind) / filename).is_file()

    def rename_text(self, kind: str, old: str, new: str) -> None:
        directory = self.directory(kind)
        (directory / old).rename(directory / new)

    def delete_text(self, kind: str, filename: str) -> None:
        (self.directory(kind) / filename).unlink()
