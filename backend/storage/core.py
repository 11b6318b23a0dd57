"""Id allocation, filename derivation, slug utilities, and JSON file helpers."""

import json
import re
import unicodedata
from pathlib import Path
from typing import Any, Iterable

from .errors import EntityValidationError, StorageIOError

FIRST_ID = 1


def slugify(title: str) -> str:
    """Convert a title to a filesystem-safe slug.

    "The Iron Coast" → "the-iron-coast"
    """
    text = unicodedata.normalize("NFKD", title)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"['\"]", "", text)  # strip apostrophes/quotes before hyphenation
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = text.strip("-")
    return text or "untitled"


def sanitize_name(name: str) -> str:
    """Reduce a display name to the ``[A-Za-z0-9_]`` alphabet used in filenames.

    "Dock 7: Arrival" → "Dock_7_Arrival"
    """
    text = unicodedata.normalize("NFKD", name)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"\s+", "_", text.strip())
    text = re.sub(r"[^A-Za-z0-9_]", "", text)
    return text or "untitled"


def derive_filename(
    entity_type: str,
    name: str,
    position: int | None = None,
    chapter_position: int | None = None,
) -> str:
    """Canonical Markdown filename for an entity.

    chapter   CHAPTER_{position}_{name}.md
    scene     CHAPTER_{chapter_position}_SCENE_{position}_{name}.md
    others    {name}.md
    """
    safe = sanitize_name(name)
    if entity_type == "chapter":
        if position is None:
            raise EntityValidationError("Chapter filenames need a position")
        return f"CHAPTER_{position}_{safe}.md"
    if entity_type == "scene":
        if position is None or chapter_position is None:
            raise EntityValidationError("Scene filenames need a position and a chapter position")
        return f"CHAPTER_{chapter_position}_SCENE_{position}_{safe}.md"
    if entity_type in ("character", "location", "event"):
        return f"{safe}.md"
    raise EntityValidationError(f"Invalid entity type: {entity_type}")


def next_id(records: Iterable[Any]) -> int:
    """Next id for a collection: highest existing id + 1, or FIRST_ID when empty.

    Accepts models or plain dicts.
    """
    ids = [r["id"] if isinstance(r, dict) else r.id for r in records]
    return max(ids) + 1 if ids else FIRST_ID


def read_json(path: Path, default: Any = None) -> Any:
    """Load a JSON file. A missing file yields ``default``; anything else unreadable raises."""
    if not path.is_file():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise StorageIOError(f"Cannot read {path}: {e}") from e


def write_json(path: Path, data: Any) -> None:
    try:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    except OSError as e:
        raise StorageIOError(f"Cannot write {path}: {e}") from e
