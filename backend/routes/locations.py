"""Location and event endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from backend.storage import Storage
from storied.models import Event, Location

from .models import bind, get_storage

router = APIRouter()


@router.get("/projects/{project_id}/locations")
async def list_locations(project_id: int, storage: Storage = Depends(get_storage)):
    """List all locations in a project (metadata only)."""
    return storage.list_locations(project_id)


@router.post("/projects/{project_id}/locations", status_code=201)
async def insert_location(
    project_id: int, body: dict[str, Any], storage: Storage = Depends(get_storage)
):
    """Create a location, optionally nested under a parent location."""
    return storage.insert_location(bind(Location, body, project_id=project_id, id=0))


@router.get("/projects/{project_id}/locations/{location_id}")
async def get_location(project_id: int, location_id: int, storage: Storage = Depends(get_storage)):
    """Get a location with its text."""
    return storage.get_location(project_id, location_id)


@router.put("/projects/{project_id}/locations/{location_id}")
async def update_location(
    project_id: int, location_id: int, body: dict[str, Any],
    storage: Storage = Depends(get_storage),
):
    """Replace a location."""
    return storage.update_location(bind(Location, body, project_id=project_id, id=location_id))


@router.delete("/projects/{project_id}/locations/{location_id}")
async def delete_location(
    project_id: int, location_id: int, storage: Storage = Depends(get_storage)
):
    """Delete a location; child locations are detached."""
    return storage.delete_location(project_id, location_id)


# ── Events ───────────────────────────────────────────────


@router.get("/projects/{project_id}/events")
async def list_events(project_id: int, storage: Storage = Depends(get_storage)):
    """List events with their character and location summaries."""
    return storage.list_events(project_id)


@router.post("/projects/{project_id}/events", status_code=201)
async def insert_event(project_id: int, body: dict[str, Any], storage: Storage = Depends(get_storage)):
    """Create an event linked to ``character_ids`` and ``location_ids``."""
    return storage.insert_event(bind(Event, body, project_id=project_id, id=0))


@router.get("/projects/{project_id}/events/{event_id}")
async def get_event(project_id: int, event_id: int, storage: Storage = Depends(get_storage)):
    return storage.get_event(project_id, event_id)


@router.put("/projects/{project_id}/events/{event_id}")
async def update_event(
    project_id: int, event_id: int, body: dict[str, Any], storage: Storage = Depends(get_storage)
):
    """Replace an event and its links."""
    return storage.update_event(bind(Event, body, project_id=project_id, id=event_id))


@router.delete("/projects/{project_id}/events/{event_id}")
async def delete_event(project_id: int, event_id: int, storage: Storage = Depends(get_storage)):
    return storage.delete_event(project_id, event_id)
