"""
Status model - maps the lifecycle Status onto each view's visual concept.

Kanban columns map 1:1 onto statuses, the timeline and Gantt views show a
completion percentage and a CSS class, and the calendar does not show status.
"""
from typing import Optional, Dict
from .models import Status

BACKLOG = "Backlog"

# Board order, left to right
KANBAN_COLUMNS = (Status.NOT_STARTED, Status.IN_PROGRESS, Status.COMPLETED)

_COLUMN_ALIASES: Dict[Status, str] = {
    Status.NOT_STARTED: BACKLOG,
}

PROGRESS: Dict[Status, int] = {
    Status.NOT_STARTED: 0,
    Status.IN_PROGRESS: 50,
    Status.COMPLETED: 100,
}

def column_label(status: Status) -> str:
    """Display label of the Kanban column holding ``status``."""
    return _COLUMN_ALIASES.get(status, status.value)

def status_for_column(column: str) -> Optional[Status]:
    """
    Resolve a Kanban column name back to a status.

    Accepts the display label (``Backlog``), the stored value and the enum
    name, case-insensitively. Returns None for an unrecognized column.
    """
    if not isinstance(column, str):
        return None
    key = column.strip().lower()
    for status, label in _COLUMN_ALIASES.items():
        if key == label.lower():
            return status
    return Status.parse(column)

def progress_for(status: Status) -> int:
    return PROGRESS[status]

def css_class(status: Status) -> str:
    """CSS-equivalent class, e.g. ``in-progress``."""
    return status.value.lower().replace(' ', '-')
