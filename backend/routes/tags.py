"""Tag catalog and entity tag link endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from backend.storage import Storage

from .models import TagBody, get_storage

router = APIRouter()


@router.get("/tags")
async def list_tags(storage: Storage = Depends(get_storage)):
    """List the tag catalog."""
    return storage.list_tags()


@router.post("/tags", status_code=201)
async def insert_tag(body: TagBody, storage: Storage = Depends(get_storage)):
    return storage.insert_tag(body.name, body.icon)


@router.get("/tags/{tag_id}")
async def get_tag(tag_id: int, storage: Storage = Depends(get_storage)):
    return storage.get_tag(tag_id)


@router.put("/tags/{tag_id}")
async def update_tag(tag_id: int, body: TagBody, storage: Storage = Depends(get_storage)):
    return storage.update_tag(tag_id, body.name, body.icon)


@router.delete("/tags/{tag_id}")
async def delete_tag(tag_id: int, storage: Storage = Depends(get_storage)):
    """Delete a tag and unlink it everywhere."""
    if not storage.delete_tag(tag_id):
        raise HTTPException(404, "Tag not found")
    return {"ok": True}


@router.get("/projects/{project_id}/tags/{entity_type}/{entity_id}")
async def get_entity_tags(
    project_id: int, entity_type: str, entity_id: int, storage: Storage = Depends(get_storage)
):
    """Tags linked to one entity (entity_type: project, chapter, scene, ...)."""
    return storage.get_tags_for_entity(entity_type, project_id, entity_id)


@router.put("/projects/{project_id}/tags/{entity_type}/{entity_id}/{tag_id}")
async def add_entity_tag(
    project_id: int, entity_type: str, entity_id: int, tag_id: int,
    storage: Storage = Depends(get_storage),
):
    """Link a tag to an entity."""
    added = storage.add_tag_to_entity(entity_type, project_id, entity_id, tag_id)
    return {"ok": True, "added": added}


@router.delete("/projects/{project_id}/tags/{entity_type}/{entity_id}/{tag_id}")
async def remove_entity_tag(
    project_id: int, entity_type: str, entity_id: int, tag_id: int,
    storage: Storage = Depends(get_storage),
):
    """Unlink a tag from an entity."""
    removed = storage.remove_tag_from_entity(entity_type, project_id, entity_id, tag_id)
    return {"ok": True, "removed": removed}
