"""Project catalog (``projects.json``) and storage-root resolution.

Each project's storage root is ``projects/<path>/`` where ``path`` is the
slugified name at creation time, suffixed ``-2``, ``-3``… on collision. The
path is stored on the catalog record and never changes, so renaming a
project does not move its files.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from storied.models import Project, utcnow

from .core import next_id, read_json, slugify, write_json
from .errors import NotFound, OwnerNotFound, StorageIOError
from .files import ProjectFiles

logger = logging.getLogger(__name__)


class ProjectRegistry:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.projects_dir = data_dir / "projects"
        self.projects_dir.mkdir(parents=True, exist_ok=True)

    def _catalog_path(self) -> Path:
        return self.data_dir / "projects.json"

    def _load(self) -> list[Project]:
        return [Project.model_validate(p) for p in read_json(self._catalog_path(), default=[])]

    def _save(self, projects: list[Project]) -> None:
        write_json(
            self._catalog_path(),
            [p.model_dump(mode="json", exclude={"tags"}) for p in projects],
        )

    def list(self) -> list[Project]:
        return self._load()

    def get(self, project_id: int) -> Project:
        for project in self._load():
            if project.id == project_id:
                return project
        raise NotFound(f"project {project_id} not found")

    def resolve_storage_root(self, project_id: int) -> Path:
        try:
            project = self.get(project_id)
        except NotFound:
            raise OwnerNotFound(f"project {project_id} does not exist") from None
        return self.projects_dir / project.path

    def files_for(self, project_id: int) -> ProjectFiles:
        return ProjectFiles(self.resolve_storage_root(project_id))

    def create(self, project: Project) -> Project:
        """Provision a storage root with empty collections, then catalog the project."""
        projects = self._load()
        taken = {p.path for p in projects}
        base_path = slugify(project.name)
        target = base_path
        counter = 2
        while target in taken or (self.projects_dir / target).exists():
            target = f"{base_path}-{counter}"
            counter += 1

        ProjectFiles(self.projects_dir / target).provision()
        now = utcnow()
        new = project.model_copy(
            update={
                "id": next_id(projects),
                "path": target,
                "creation_date": now,
                "last_modified": now,
            }
        )
        projects.append(new)
        self._save(projects)
        logger.info("created project %d at %s", new.id, target)
        return new

    def update(self, project: Project) -> Project:
        """Update name, description, and icon. The storage path is kept."""
        projects = self._load()
        for i, old in enumerate(projects):
            if old.id == project.id:
                projects[i] = old.model_copy(
                    update={
                        "name": project.name,
                        "description": project.description,
                        "icon": project.icon,
                        "last_modified": utcnow(),
                    }
                )
                self._save(projects)
                return projects[i]
        raise NotFound(f"project {project.id} not found")

    def touch(self, project_id: int) -> None:
        projects = self._load()
        for project in projects:
            if project.id == project_id:
                project.last_modified = utcnow()
                self._save(projects)
                return

    def delete(self, project_id: int) -> bool:
        """Remove a project and its storage root. Unknown ids are a no-op."""
        projects = self._load()
        doomed = [p for p in projects if p.id == project_id]
        if not doomed:
            return False
        self._save([p for p in projects if p.id != project_id])
        root = self.projects_dir / doomed[0].path
        if root.is_dir():
            try:
                shutil.rmtree(root)
            except OSError as e:
                raise StorageIOError(f"Cannot remove {root}: {e}") from e
        logger.info("deleted project %d", project_id)
        return True
