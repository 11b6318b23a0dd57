"""Pydantic request models and payload binding for API endpoints."""

from typing import Any, TypeVar

from fastapi import Request
from pydantic import BaseModel, Field

from backend.storage import Storage
from storied.models import Tag

M = TypeVar("M", bound=BaseModel)


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def bind(model: type[M], body: dict[str, Any], **path_ids: int) -> M:
    """Validate a JSON body into a domain model; ids from the URL win over the body."""
    return model.model_validate({**body, **path_ids})


class CreateProject(BaseModel):
    name: str
    description: str = ""
    icon: str | None = None
    tags: list[Tag] = Field(default_factory=list)


class UpdateProject(BaseModel):
    name: str
    description: str = ""
    icon: str | None = None
    tags: list[Tag] = Field(default_factory=list)


class TagBody(BaseModel):
    name: str
    icon: str = ""
