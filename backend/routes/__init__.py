"""FastAPI API endpoints under /api.

Endpoint groups: health/settings, projects, chapters and scenes (with
reordering), characters and relationships, locations and events, tags.
Every project's collections are nested under /api/projects/{project_id}/;
scenes are additionally nested under their chapter.

Mutations return {"value": ..., "warnings": [...]} where warnings list
file renames or deletions that failed without failing the call.
"""

from fastapi import APIRouter

from .chapters import router as chapters_router
from .characters import router as characters_router
from .locations import router as locations_router
from .projects import router as projects_router
from .settings import router as settings_router
from .tags import router as tags_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(projects_router)
router.include_router(chapters_router)
router.include_router(characters_router)
router.include_router(locations_router)
router.include_router(tags_router)
