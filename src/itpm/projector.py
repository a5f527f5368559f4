"""
ViewProjector - derives the four view models from the store and the active
project, and translates view interactions back into store mutations.

Projections are recomputed from scratch every time; nothing here is
authoritative. View items are bound to entities through an explicit table
keyed by ``<kind>:<id>``, rebuilt on every projection.
"""
from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from itpm.logs import get_logger
from itpm.models import EntityKind, Milestone, Project, Status, Task
from itpm.recovery import StaleReferenceError
from itpm.status import KANBAN_COLUMNS, column_label, css_class, progress_for, status_for_column

log = get_logger("projector")

MILESTONE_ICON = "🚩"
TASK_ICON = "🗒️"

def item_key(kind: EntityKind, entity_id: str) -> str:
    return f"{kind.value}:{entity_id}"

class EntityRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    id: str

    @property
    def key(self) -> str:
        return item_key(self.kind, self.id)

class ItemBindings:
    """Bidirectional mapping between view item keys and entities."""

    def __init__(self):
        self._table: Dict[str, EntityRef] = {}

    def rebuild(self, project: Optional[Project]):
        self._table = {}
        if project is None:
            return
        for m in project.milestones:
            self._bind(EntityRef(kind=EntityKind.MILESTONE, id=m.id))
        for t in project.tasks:
            self._bind(EntityRef(kind=EntityKind.TASK, id=t.id))

    def _bind(self, ref: EntityRef):
        self._table[ref.key] = ref

    def resolve(self, key: str) -> EntityRef:
        ref = self._table.get(key)
        if ref is None:
            raise StaleReferenceError(f"No entity bound to view item {key}", key=key)
        return ref

    def key_for(self, kind: EntityKind, entity_id: str) -> Optional[str]:
        key = item_key(kind, entity_id)
        return key if key in self._table else None

    def __contains__(self, key: str) -> bool:
        return key in self._table

    def __len__(self) -> int:
        return len(self._table)

# ----------------------------------------------------------------------
# View models
# ----------------------------------------------------------------------

class ViewProjection(BaseModel):
    view: str
    project_id: Optional[str] = None
    placeholder: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.project_id is None

class TimelineGroup(BaseModel):
    id: str
    content: str

class TimelineItem(BaseModel):
    id: str
    content: str
    start: Optional[date] = None
    end: Optional[date] = None
    type: str = Field(description="'point' for milestones, 'range' for tasks")
    group: Optional[str] = None
    class_name: str

class TimelineProjection(ViewProjection):
    view: str = "timeline"
    groups: List[TimelineGroup] = Field(default_factory=list)
    items: List[TimelineItem] = Field(default_factory=list)

class GanttBar(BaseModel):
    id: str
    name: str
    start: Optional[date] = None
    end: Optional[date] = None
    progress: int
    custom_class: Optional[str] = None

class GanttProjection(ViewProjection):
    view: str = "gantt"
    bars: List[GanttBar] = Field(default_factory=list)

    def bar(self, key: str) -> Optional[GanttBar]:
        return next((b for b in self.bars if b.id == key), None)

class KanbanCard(BaseModel):
    key: str
    kind: EntityKind
    title: str
    due_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    color: str

class KanbanBucket(BaseModel):
    status: Status
    label: str
    milestones: List[KanbanCard] = Field(default_factory=list)
    tasks: List[KanbanCard] = Field(default_factory=list)

    @property
    def milestone_count(self) -> int:
        return len(self.milestones)

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    @property
    def keys(self) -> List[str]:
        return [c.key for c in self.milestones + self.tasks]

class KanbanProjection(ViewProjection):
    view: str = "kanban"
    buckets: List[KanbanBucket] = Field(default_factory=list)

    def bucket(self, status: Status) -> KanbanBucket:
        return next(b for b in self.buckets if b.status == status)

    def bucket_of(self, key: str) -> Optional[KanbanBucket]:
        return next((b for b in self.buckets if key in b.keys), None)

class CalendarEvent(BaseModel):
    id: str
    title: str
    start: Optional[date] = None
    end: Optional[date] = None
    all_day: bool = True

class CalendarProjection(ViewProjection):
    view: str = "calendar"
    events: List[CalendarEvent] = Field(default_factory=list)

    def event(self, key: str) -> Optional[CalendarEvent]:
        return next((e for e in self.events if e.id == key), None)

class Projections(BaseModel):
    timeline: TimelineProjection
    gantt: GanttProjection
    kanban: KanbanProjection
    calendar: CalendarProjection

# ----------------------------------------------------------------------
# View-originated interactions
# ----------------------------------------------------------------------

class KanbanDrop(BaseModel):
    """A card moved to another column on the board."""

    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    id: str
    target: str = Field(description="Label of the column the card was dropped into")
    source: Optional[str] = Field(default=None, description="Label of the column the card came from")

    @field_validator('kind', mode='before')
    @classmethod
    def parse_kind(cls, v):
        return EntityKind.parse(v) or v

class CalendarDrag(BaseModel):
    """An event dragged to new date(s) on the calendar."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    start: date
    end: Optional[date] = None

    @field_validator('start', 'end', mode='before')
    @classmethod
    def parse_date(cls, v):
        if isinstance(v, str):
            v = v.strip().split('T', 1)[0] or None
        return v

# ----------------------------------------------------------------------
# Projector
# ----------------------------------------------------------------------

def _placeholder(view: str) -> str:
    return f"Select a project to view its {view}."

class ViewProjector:
    """Derives the view models for the active project."""

    def __init__(self, store, selection):
        self.store = store
        self.selection = selection
        self.bindings = ItemBindings()

    def project(self) -> Projections:
        """Recompute every view and rebuild the binding table."""
        project = self.selection.project
        self.bindings.rebuild(project)
        return Projections(
            timeline=self.timeline(project),
            gantt=self.gantt(project),
            kanban=self.kanban(project),
            calendar=self.calendar(project),
        )

    def timeline(self, project: Optional[Project]) -> TimelineProjection:
        if project is None:
            return TimelineProjection(placeholder=_placeholder("timeline"))
        groups = [TimelineGroup(id=f"t_{t.id}", content=f"{TASK_ICON} {t.title}") for t in project.tasks]
        items = [
            TimelineItem(
                id=item_key(EntityKind.MILESTONE, m.id),
                content=f"{MILESTONE_ICON} {m.title}",
                start=m.due_date,
                type="point",
                class_name=f"milestone-flag {css_class(m.status)}",
            )
            for m in project.milestones
        ]
        items.extend(
            TimelineItem(
                id=item_key(EntityKind.TASK, t.id),
                content="",
                start=t.start_date,
                end=t.end_date,
                type="range",
                group=f"t_{t.id}",
                class_name=css_class(t.status),
            )
            for t in project.tasks
        )
        return TimelineProjection(project_id=project.id, groups=groups, items=items)

    def gantt(self, project: Optional[Project]) -> GanttProjection:
        if project is None:
            return GanttProjection(placeholder=_placeholder("Gantt chart"))
        bars = [
            GanttBar(
                id=item_key(EntityKind.MILESTONE, m.id),
                name=f"{MILESTONE_ICON} {m.title}",
                start=m.due_date or project.start_date,
                end=m.due_date or project.end_date,
                progress=progress_for(m.status),
                custom_class="milestone-bar",
            )
            for m in project.milestones
        ]
        bars.extend(
            GanttBar(
                id=item_key(EntityKind.TASK, t.id),
                name=f"{TASK_ICON} {t.title}",
                start=t.start_date,
                end=t.end_date,
                progress=progress_for(t.status),
            )
            for t in project.tasks
        )
        return GanttProjection(project_id=project.id, bars=bars)

    def kanban(self, project: Optional[Project]) -> KanbanProjection:
        buckets = [KanbanBucket(status=s, label=column_label(s)) for s in KANBAN_COLUMNS]
        if project is None:
            return KanbanProjection(placeholder=_placeholder("board"), buckets=buckets)
        by_status = {b.status: b for b in buckets}
        for m in project.milestones:
            by_status[m.status].milestones.append(self._card(EntityKind.MILESTONE, m))
        for t in project.tasks:
            by_status[t.status].tasks.append(self._card(EntityKind.TASK, t))
        return KanbanProjection(project_id=project.id, buckets=buckets)

    def calendar(self, project: Optional[Project]) -> CalendarProjection:
        if project is None:
            return CalendarProjection(placeholder=_placeholder("calendar"))
        events = [
            CalendarEvent(id=item_key(EntityKind.MILESTONE, m.id), title=f"📍 {m.title}", start=m.due_date)
            for m in project.milestones
        ]
        events.extend(
            CalendarEvent(id=item_key(EntityKind.TASK, t.id), title=f"{TASK_ICON} {t.title}",
                          start=t.start_date, end=t.end_date, all_day=t.start_date == t.end_date)
            for t in project.tasks
        )
        return CalendarProjection(project_id=project.id, events=events)

    @staticmethod
    def _card(kind: EntityKind, entity) -> KanbanCard:
        if isinstance(entity, Milestone):
            return KanbanCard(key=item_key(kind, entity.id), kind=kind, title=entity.title,
                              due_date=entity.due_date, color=entity.color)
        return KanbanCard(key=item_key(kind, entity.id), kind=kind, title=entity.title,
                          start_date=entity.start_date, end_date=entity.end_date, color=entity.color)

    # ------------------------------------------------------------------
    # Reverse translation
    # ------------------------------------------------------------------

    def translate_kanban_drop(self, drop: KanbanDrop) -> bool:
        """
        Apply a board drop as a status change.

        Returns False if the target column is not a known status (the drop is
        rejected).

        Raises:
            StaleReferenceError: the dropped card no longer maps to an entity
        """
        ref, project = self._resolve(item_key(drop.kind, drop.id))
        status = status_for_column(drop.target)
        if status is None:
            log.warning(f"Rejected drop of {ref.key} into unknown column {drop.target!r}")
            return False
        if not self.store.set_status(project.id, ref.kind, ref.id, status):
            raise StaleReferenceError(f"{ref.key} vanished before its drop was applied", key=ref.key)
        return True

    def translate_calendar_drag(self, drag: CalendarDrag) -> bool:
        """
        Apply a calendar drag as a date change.

        Milestones take the new start as their due date; tasks take the new
        start and, when reported, the new end.

        Raises:
            StaleReferenceError: the dragged event no longer maps to an entity
        """
        ref, project = self._resolve(drag.event_id)
        if ref.kind == EntityKind.MILESTONE:
            applied = self.store.update_milestone(project.id, ref.id, {'due_date': drag.start})
        else:
            fields = {'start_date': drag.start}
            if drag.end is not None:
                fields['end_date'] = drag.end
            applied = self.store.update_task(project.id, ref.id, fields)
        if not applied:
            raise StaleReferenceError(f"{ref.key} vanished before its drag was applied", key=ref.key)
        return True

    def _resolve(self, key: str):
        project = self.selection.project
        if project is None:
            raise StaleReferenceError(f"No active project for view item {key}", key=key)
        ref = self.bindings.resolve(key)
        if self.store.find_entity(project.id, ref.kind, ref.id) is None:
            raise StaleReferenceError(f"No entity bound to view item {key}", key=key)
        return ref, project
