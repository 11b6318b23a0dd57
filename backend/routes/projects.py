"""Project catalog endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from backend.storage import Storage
from storied.models import Project

from .models import CreateProject, UpdateProject, get_storage

router = APIRouter()


@router.get("/projects")
async def list_projects(storage: Storage = Depends(get_storage)):
    """List all projects."""
    return storage.list_projects()


@router.post("/projects", status_code=201)
async def create_project(body: CreateProject, storage: Storage = Depends(get_storage)):
    """Create a project and provision its storage."""
    return storage.create_project(Project(**body.model_dump()))


@router.get("/projects/{project_id}")
async def get_project(project_id: int, storage: Storage = Depends(get_storage)):
    """Get a single project."""
    return storage.get_project(project_id)


@router.put("/projects/{project_id}")
async def update_project(
    project_id: int, body: UpdateProject, storage: Storage = Depends(get_storage)
):
    """Rename or re-describe a project. Its storage path does not move."""
    return storage.update_project(Project(id=project_id, **body.model_dump()))


@router.delete("/projects/{project_id}")
async def delete_project(project_id: int, storage: Storage = Depends(get_storage)):
    """Delete a project and all its data."""
    if not storage.delete_project(project_id):
        raise HTTPException(404, "Project not found")
    return {"ok": True}
