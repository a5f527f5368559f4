"""
Workspace - the application context.

Constructed once at startup from the persistence adapter, it owns the store,
the active selection, the view projector and change propagation, and exposes
the user-level operations (drag handling, import/export, templates, reset).
"""
import io
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel

from itpm.config import Settings
from itpm.io import DATA_BYTES, DATA_TEXT, atomic_write
from itpm.logs import get_logger
from itpm.models import Milestone, Project
from itpm.persistence import PersistenceAdapter
from itpm.projector import CalendarDrag, KanbanDrop, Projections, ViewProjector
from itpm.recovery import StaleReferenceError
from itpm.selection import ActiveSelection
from itpm.serialization import parse_projects, projects_to_csv, projects_to_json, write_pdf
from itpm.store import EntityStore, Fields
from itpm.sync import ChangePropagator
from itpm.templates import apply_template

log = get_logger("workspace")

class DropResult(BaseModel):
    """Outcome of a view interaction; ``revert_to`` tells the view where the item goes back."""

    applied: bool
    revert_to: Optional[str] = None
    reason: Optional[str] = None

    @property
    def reverted(self) -> bool:
        return not self.applied

class Workspace:
    """Main context object wiring the core components together."""

    def __init__(self, settings: Optional[Settings] = None, adapter: Optional[PersistenceAdapter] = None):
        self.settings = settings or Settings.load()
        self.adapter = adapter or PersistenceAdapter(self.settings.data_dir, self.settings.slot)
        self.store = EntityStore(self.adapter.load())
        self.selection = ActiveSelection(self.store, self.adapter.load_selection())
        self.projector = ViewProjector(self.store, self.selection)
        self.propagator = ChangePropagator(self.store, self.selection, self.adapter, self.projector)
        self.store.on_change = self.propagator.propagate
        self.propagator.propagate(persist=False)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - detach renderers; every mutation is already saved."""
        self.propagator.detach_all()

    @property
    def projections(self) -> Projections:
        return self.propagator.latest

    @property
    def active_project(self) -> Optional[Project]:
        return self.selection.project

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_project(self, project_id: str) -> Project:
        project = self.selection.select(project_id)
        self.propagator.propagate()
        return project

    def clear_selection(self):
        self.selection.clear()
        self.propagator.propagate()

    def create_project(self, fields: Fields, activate: bool = True) -> Project:
        """Create a project and, like the project dialog does, make it active."""
        project = self.store.create_project(fields)
        if activate:
            self.select_project(project.id)
        return project

    # ------------------------------------------------------------------
    # View interactions
    # ------------------------------------------------------------------

    def handle_kanban_drop(self, drop: KanbanDrop) -> DropResult:
        try:
            applied = self.projector.translate_kanban_drop(drop)
        except StaleReferenceError as e:
            log.warning(f"Item not found in project data, moving back: {e}")
            return DropResult(applied=False, revert_to=drop.source, reason=str(e))
        if not applied:
            return DropResult(applied=False, revert_to=drop.source,
                              reason=f"Unknown column: {drop.target}")
        return DropResult(applied=True)

    def handle_calendar_drag(self, drag: CalendarDrag) -> DropResult:
        try:
            self.projector.translate_calendar_drag(drag)
        except StaleReferenceError as e:
            log.warning(f"Event not found in project data, moving back: {e}")
            return DropResult(applied=False, reason=str(e))
        return DropResult(applied=True)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def import_json(self, text: Union[str, bytes]) -> int:
        """
        Replace every project with the contents of a JSON document.

        Raises:
            SerializationError: nothing is imported
        """
        projects = parse_projects(text)
        self.store.replace_all(projects)
        log.info(f"Imported {len(projects)} project(s)")
        return len(projects)

    def export_json(self, target: Optional[Union[str, Path]] = None) -> str:
        """Pretty-printed JSON of every project, also written to ``target`` when given."""
        text = projects_to_json(self.store.projects)
        if target is not None:
            atomic_write(DATA_TEXT, target, text + "\n", create_dirs=True)
        return text

    def export_csv(self, target: Optional[Union[str, Path]] = None) -> str:
        text = projects_to_csv(self.store.projects)
        if target is not None:
            atomic_write(DATA_TEXT, target, text, create_dirs=True)
        return text

    def export_pdf(self, target: Union[str, Path]) -> int:
        """Write the PDF report to ``target``; returns the page count."""
        buffer = io.BytesIO()
        pages = write_pdf(self.store.projects, buffer)
        atomic_write(DATA_BYTES, target, buffer.getvalue(), create_dirs=True)
        return pages

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def apply_template(self, name: str, project_id: Optional[str] = None) -> List[Milestone]:
        project_id = project_id or self.selection.project_id
        return apply_template(self.store, project_id, name)

    def reset(self):
        """Clear all projects and the selection, removing the slot."""
        self.selection.clear()
        self.store.clear()
        self.adapter.clear()
        log.info("Workspace reset")
