"""Character and relationship endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from backend.storage import Storage
from storied.models import Character, Relationship

from .models import bind, get_storage

router = APIRouter()


@router.get("/projects/{project_id}/characters")
async def list_characters(project_id: int, storage: Storage = Depends(get_storage)):
    """List all characters in a project (metadata only)."""
    return storage.list_characters(project_id)


@router.post("/projects/{project_id}/characters", status_code=201)
async def insert_character(
    project_id: int, body: dict[str, Any], storage: Storage = Depends(get_storage)
):
    """Create a character."""
    return storage.insert_character(bind(Character, body, project_id=project_id, id=0))


@router.get("/projects/{project_id}/characters/{character_id}")
async def get_character(project_id: int, character_id: int, storage: Storage = Depends(get_storage)):
    """Get a character with text, relationships and events."""
    return storage.get_character(project_id, character_id)


@router.put("/projects/{project_id}/characters/{character_id}")
async def update_character(
    project_id: int, character_id: int, body: dict[str, Any],
    storage: Storage = Depends(get_storage),
):
    """Replace a character."""
    character = bind(Character, body, project_id=project_id, id=character_id)
    return storage.update_character(character)


@router.delete("/projects/{project_id}/characters/{character_id}")
async def delete_character(
    project_id: int, character_id: int, storage: Storage = Depends(get_storage)
):
    """Delete a character along with its relationships and links."""
    return storage.delete_character(project_id, character_id)


# ── Relationships ────────────────────────────────────────


@router.get("/projects/{project_id}/relationships")
async def list_relationships(project_id: int, storage: Storage = Depends(get_storage)):
    """List relationships with both endpoint summaries."""
    return storage.list_relationships(project_id)


@router.post("/projects/{project_id}/relationships", status_code=201)
async def insert_relationship(
    project_id: int, body: dict[str, Any], storage: Storage = Depends(get_storage)
):
    """Create a relationship between two characters."""
    return storage.insert_relationship(bind(Relationship, body, project_id=project_id, id=0))


@router.get("/projects/{project_id}/relationships/{relationship_id}")
async def get_relationship(
    project_id: int, relationship_id: int, storage: Storage = Depends(get_storage)
):
    return storage.get_relationship(project_id, relationship_id)


@router.put("/projects/{project_id}/relationships/{relationship_id}")
async def update_relationship(
    project_id: int, relationship_id: int, body: dict[str, Any],
    storage: Storage = Depends(get_storage),
):
    relationship = bind(Relationship, body, project_id=project_id, id=relationship_id)
    return storage.update_relationship(relationship)


@router.delete("/projects/{project_id}/relationships/{relationship_id}")
async def delete_relationship(
    project_id: int, relationship_id: int, storage: Storage = Depends(get_storage)
):
    if not storage.delete_relationship(project_id, relationship_id):
        raise HTTPException(404, "Relationship not found")
    return {"ok": True}
