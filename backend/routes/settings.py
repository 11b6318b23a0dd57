"""Health check and settings endpoints."""

from fastapi import APIRouter, Depends

from backend.storage import Storage

from .models import get_storage

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(storage: Storage = Depends(get_storage)):
    """Get global app settings (display, fonts, autosave)."""
    return storage.get_config()


@router.patch("/settings")
async def update_settings(body: dict, storage: Storage = Depends(get_storage)):
    """Update global app settings (partial merge)."""
    return storage.update_config(body)
