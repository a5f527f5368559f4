from typing import Optional

from itpm.logs import get_logger
from itpm.models import Project
from itpm.recovery import NotFoundError

log = get_logger("selection")

class ActiveSelection:
    """Tracks the single active project whose data every view shows."""

    def __init__(self, store, project_id: Optional[str] = None):
        self.store = store
        self._project_id = project_id

    @property
    def project_id(self) -> Optional[str]:
        return self._project_id

    @property
    def project(self) -> Optional[Project]:
        return self.store.get_project(self._project_id) if self._project_id else None

    def select(self, project_id: str) -> Project:
        project = self.store.require_project(project_id)
        self._project_id = project.id
        log.debug(f"Active project: {project.id}")
        return project

    def clear(self):
        self._project_id = None

    def reconcile(self) -> bool:
        """Drop the selection if its project no longer exists; True if dropped."""
        if self._project_id and self.store.get_project(self._project_id) is None:
            log.info(f"Active project {self._project_id} no longer exists, clearing selection")
            self._project_id = None
            return True
        return False
