"""
ITPM - IT project milestone tracker.

Projects own milestones and tasks; a single in-memory store feeds four
synchronized views: timeline, Gantt chart, Kanban board and calendar.
"""

from .version import VERSION
from .models import (
    Status,
    EntityKind,
    Project,
    Milestone,
    Task,
)
from .recovery import (
    ITPMError,
    ValidationError,
    NotFoundError,
    StaleReferenceError,
    SerializationError,
)
from .store import EntityStore
from .projector import ViewProjector, KanbanDrop, CalendarDrag
from .workspace import Workspace

__version__ = VERSION

__all__ = [
    "VERSION",
    "Status",
    "EntityKind",
    "Project",
    "Milestone",
    "Task",
    "ITPMError",
    "ValidationError",
    "NotFoundError",
    "StaleReferenceError",
    "SerializationError",
    "EntityStore",
    "ViewProjector",
    "KanbanDrop",
    "CalendarDrag",
    "Workspace",
]
