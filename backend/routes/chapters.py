"""Chapter and scene endpoints, including reordering."""

from typing import Any

from fastapi import APIRouter, Depends

from backend.storage import ReorderItem, Storage
from storied.models import Chapter, Scene

from .models import bind, get_storage

router = APIRouter()


# ── Chapters ─────────────────────────────────────────────


@router.get("/projects/{project_id}/chapters")
async def list_chapters(project_id: int, storage: Storage = Depends(get_storage)):
    """List a project's chapters by position (metadata only)."""
    return storage.list_chapters(project_id)


@router.post("/projects/{project_id}/chapters", status_code=201)
async def insert_chapter(
    project_id: int, body: dict[str, Any], storage: Storage = Depends(get_storage)
):
    """Create a chapter."""
    chapter = bind(Chapter, body, project_id=project_id, id=0)
    return storage.insert_chapter(chapter)


@router.put("/projects/{project_id}/chapters/order")
async def reorder_chapters(
    project_id: int, body: list[ReorderItem], storage: Storage = Depends(get_storage)
):
    """Assign positions 1..n following the given sequence."""
    return storage.reorder_chapters(project_id, body)


@router.get("/projects/{project_id}/chapters/{chapter_id}")
async def get_chapter(project_id: int, chapter_id: int, storage: Storage = Depends(get_storage)):
    """Get a chapter with its text."""
    return storage.get_chapter(project_id, chapter_id)


@router.put("/projects/{project_id}/chapters/{chapter_id}")
async def update_chapter(
    project_id: int, chapter_id: int, body: dict[str, Any],
    storage: Storage = Depends(get_storage),
):
    """Replace a chapter; renames its file if name or position changed."""
    chapter = bind(Chapter, body, project_id=project_id, id=chapter_id)
    return storage.update_chapter(chapter)


@router.delete("/projects/{project_id}/chapters/{chapter_id}")
async def delete_chapter(project_id: int, chapter_id: int, storage: Storage = Depends(get_storage)):
    """Delete a chapter and its scenes. Unknown ids are a no-op."""
    return storage.delete_chapter(project_id, chapter_id)


# ── Scenes ───────────────────────────────────────────────


@router.get("/projects/{project_id}/scenes")
async def list_project_scenes(project_id: int, storage: Storage = Depends(get_storage)):
    """List every scene of a project."""
    return storage.list_scenes(project_id)


@router.get("/projects/{project_id}/chapters/{chapter_id}/scenes")
async def list_scenes(project_id: int, chapter_id: int, storage: Storage = Depends(get_storage)):
    """List a chapter's scenes by position, with character/location summaries."""
    return storage.list_scenes(project_id, chapter_id)


@router.post("/projects/{project_id}/chapters/{chapter_id}/scenes", status_code=201)
async def insert_scene(
    project_id: int, chapter_id: int, body: dict[str, Any],
    storage: Storage = Depends(get_storage),
):
    """Create a scene in a chapter."""
    scene = bind(Scene, body, project_id=project_id, chapter_id=chapter_id, id=0)
    return storage.insert_scene(scene)


@router.put("/projects/{project_id}/chapters/{chapter_id}/scenes/order")
async def reorder_scenes(
    project_id: int, chapter_id: int, body: list[ReorderItem],
    storage: Storage = Depends(get_storage),
):
    """Assign positions 1..n to a chapter's scenes following the given sequence."""
    return storage.reorder_scenes(project_id, chapter_id, body)


@router.get("/projects/{project_id}/chapters/{chapter_id}/scenes/{scene_id}")
async def get_scene(
    project_id: int, chapter_id: int, scene_id: int, storage: Storage = Depends(get_storage)
):
    """Get a scene with its text."""
    return storage.get_scene(project_id, scene_id, chapter_id)


@router.put("/projects/{project_id}/chapters/{chapter_id}/scenes/{scene_id}")
async def update_scene(
    project_id: int, chapter_id: int, scene_id: int, body: dict[str, Any],
    storage: Storage = Depends(get_storage),
):
    """Replace a scene. A ``chapter_id`` in the body moves it to that chapter."""
    scene = bind(Scene, {"chapter_id": chapter_id, **body}, project_id=project_id, id=scene_id)
    return storage.update_scene(scene)


@router.delete("/projects/{project_id}/chapters/{chapter_id}/scenes/{scene_id}")
async def delete_scene(
    project_id: int, chapter_id: int, scene_id: int, storage: Storage = Depends(get_storage)
):
    """Delete a scene. Unknown ids are a no-op."""
    return storage.delete_scene(project_id, scene_id, chapter_id)
