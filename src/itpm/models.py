from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from enum import Enum
from typing import Optional, List, Dict, Any
import secrets
import time

def _compact(text: str) -> str:
    """Case-, space- and underscore-insensitive key, so 'NotStarted' matches 'Not Started'."""
    return text.strip().lower().replace('_', '').replace(' ', '')

class Status(Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"

    @classmethod
    def parse(cls, value) -> Optional['Status']:
        """Resolve a status from its stored value or enum name; None if unrecognized."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = _compact(value)
        return next((s for s in cls if key in (_compact(s.value), _compact(s.name))), None)

# Older records stored the Kanban column label instead of the status
LEGACY_STATUS_ALIASES = {
    "backlog": Status.NOT_STARTED,
}

class EntityKind(Enum):
    MILESTONE = "milestone"
    TASK = "task"

    @classmethod
    def parse(cls, value) -> Optional['EntityKind']:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        return next((k for k in cls if k.value == value.strip().lower()), None)

def generate_id() -> str:
    """Generate an opaque entity id in the ``id-<millis>-<random>`` format."""
    return f"id-{int(time.time() * 1000)}-{secrets.token_hex(4)}"

def _coerce_date(v):
    if v is None or isinstance(v, date):
        # datetime is a date subclass; keep only the calendar day
        return v.date() if isinstance(v, datetime) else v
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return None
        # Calendar surfaces may report full timestamps for all-day events
        return v.split('T', 1)[0]
    return v

def _coerce_status(v):
    if v is None or v == "":
        return Status.NOT_STARTED
    status = Status.parse(v)
    if status is None and isinstance(v, str):
        status = LEGACY_STATUS_ALIASES.get(v.strip().lower())
    if status is None:
        raise ValueError(f"Unknown status: {v!r}")
    return status

class BaseJSONModel(BaseModel):
    """Base for persisted models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True)

    @classmethod
    def field_name(cls, key: str) -> Optional[str]:
        """Map a wire alias or attribute name to the attribute name."""
        if key in cls.model_fields:
            return key
        return next((name for name, f in cls.model_fields.items() if f.alias == key), None)

    @classmethod
    def normalize_fields(cls, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Rekey an edit payload by attribute name, dropping unknown keys."""
        normalized = {}
        for key, value in (fields or {}).items():
            name = cls.field_name(key)
            if name is not None:
                normalized[name] = value
        return normalized

    def merged(self, fields: Dict[str, Any]):
        """Return a validated copy with ``fields`` applied; the id never changes."""
        data = self.model_dump()
        data.update(self.normalize_fields(fields))
        data['id'] = self.id
        return type(self).model_validate(data)

class Milestone(BaseJSONModel):
    id: str = Field(default_factory=generate_id, description="Unique identifier within the project")
    title: str = Field(default="", description="Human readable milestone title")
    description: str = Field(default="", description="Free-form description")
    due_date: Optional[date] = Field(default=None, description="Single point in time the milestone is due")
    status: Status = Field(default=Status.NOT_STARTED, description="Lifecycle status")
    color: str = Field(default="#007bff", description="Color/priority tag")

    @field_validator('id', mode='before')
    @classmethod
    def backfill_id(cls, v):
        return v or generate_id()

    @field_validator('title', 'description', 'color', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator('due_date', mode='before')
    @classmethod
    def parse_date(cls, v):
        return _coerce_date(v)

    @field_validator('status', mode='before')
    @classmethod
    def parse_status(cls, v):
        return _coerce_status(v)

class Task(BaseJSONModel):
    id: str = Field(default_factory=generate_id, description="Unique identifier within the project")
    title: str = Field(default="", description="Human readable task title")
    description: str = Field(default="", description="Free-form description")
    start_date: Optional[date] = Field(default=None, description="First day of the task")
    end_date: Optional[date] = Field(default=None, description="Last day of the task")
    status: Status = Field(default=Status.NOT_STARTED, description="Lifecycle status")
    color: str = Field(default="#28a745", description="Color/priority tag")

    @field_validator('id', mode='before')
    @classmethod
    def backfill_id(cls, v):
        return v or generate_id()

    @field_validator('title', 'description', 'color', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def parse_date(cls, v):
        return _coerce_date(v)

    @field_validator('status', mode='before')
    @classmethod
    def parse_status(cls, v):
        return _coerce_status(v)

class Project(BaseJSONModel):
    """A project owning its milestones and tasks."""

    id: str = Field(default_factory=generate_id, description="Unique identifier of the project")
    name: str = Field(default="", description="Human readable project name")
    description: str = Field(default="", description="Free-form description")
    team: List[str] = Field(default_factory=list, description="Ordered team member names")
    start_date: Optional[date] = Field(default=None, description="Project start")
    end_date: Optional[date] = Field(default=None, description="Project end")
    milestones: List[Milestone] = Field(default_factory=list, description="Milestones owned by the project")
    tasks: List[Task] = Field(default_factory=list, description="Tasks owned by the project")

    @field_validator('id', mode='before')
    @classmethod
    def backfill_id(cls, v):
        return v or generate_id()

    @field_validator('name', 'description', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator('team', mode='before')
    @classmethod
    def split_team(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [s.strip() for s in v.split(',') if s.strip()]
        return v

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def parse_date(cls, v):
        return _coerce_date(v)

    @field_validator('milestones', 'tasks', mode='before')
    @classmethod
    def backfill_collection(cls, v):
        # Legacy records predate the tasks collection
        return [] if v is None else v

    def collection(self, kind: EntityKind) -> List:
        return self.milestones if kind == EntityKind.MILESTONE else self.tasks

    def find_milestone(self, milestone_id: str) -> Optional[Milestone]:
        return next((m for m in self.milestones if m.id == milestone_id), None)

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def find(self, kind: EntityKind, entity_id: str):
        return next((e for e in self.collection(kind) if e.id == entity_id), None)

ENTITY_MODELS = {
    EntityKind.MILESTONE: Milestone,
    EntityKind.TASK: Task,
}
