"""
EntityStore - the canonical, in-memory projects collection.

All mutations go through this class. After every effective mutation the
store calls its ``on_change`` hook, which the workspace wires to change
propagation (persist, then re-project every view).
"""
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

import pydantic

from itpm.logs import get_logger
from itpm.models import (
    ENTITY_MODELS,
    EntityKind,
    Milestone,
    Project,
    Status,
    Task,
    generate_id,
)
from itpm.recovery import NotFoundError, ValidationError
from itpm.serialization import normalize_record

log = get_logger("store")

Fields = Dict[str, Any]

def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())

def _strip(fields: Fields, *names: str) -> Fields:
    for name in names:
        if isinstance(fields.get(name), str):
            fields[name] = fields[name].strip()
    return fields

def _validated(model_type, data: Fields):
    try:
        return model_type.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e

class EntityStore:
    """Owns the projects and their nested milestones and tasks."""

    def __init__(self, projects: Optional[Iterable[Union[Project, Fields]]] = None,
                 on_change: Optional[Callable[[], Any]] = None):
        self.on_change = on_change
        self._issued: Set[str] = set()
        self._batch_depth = 0
        self._dirty = False
        self._projects: List[Project] = []
        self._projects = self._normalize(projects or [])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def projects(self) -> List[Project]:
        return list(self._projects)

    def __len__(self) -> int:
        return len(self._projects)

    def get_project(self, project_id: Optional[str]) -> Optional[Project]:
        return next((p for p in self._projects if p.id == project_id), None)

    def require_project(self, project_id: Optional[str]) -> Project:
        project = self.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Unknown project: {project_id}")
        return project

    def find_milestone(self, project_id: str, milestone_id: str) -> Optional[Milestone]:
        project = self.get_project(project_id)
        return project.find_milestone(milestone_id) if project else None

    def find_task(self, project_id: str, task_id: str) -> Optional[Task]:
        project = self.get_project(project_id)
        return project.find_task(task_id) if project else None

    def find_entity(self, project_id: str, kind: Union[EntityKind, str], entity_id: str):
        kind = EntityKind.parse(kind)
        project = self.get_project(project_id)
        if project is None or kind is None:
            return None
        return project.find(kind, entity_id)

    def all_ids(self) -> Set[str]:
        ids = set()
        for p in self._projects:
            ids.add(p.id)
            ids.update(m.id for m in p.milestones)
            ids.update(t.id for t in p.tasks)
        return ids

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, fields: Fields) -> Project:
        fields = _strip(Project.normalize_fields(fields), 'name', 'description')
        if _is_blank(fields.get('name')):
            raise ValidationError("Project name is required.")
        fields.update(id=self._fresh_id(), milestones=[], tasks=[])
        project = _validated(Project, fields)
        self._projects.append(project)
        log.info(f"Created project {project.id} '{project.name}'")
        self._changed()
        return project

    def update_project(self, project_id: str, fields: Fields) -> bool:
        index = self._project_index(project_id)
        if index is None:
            log.debug(f"update_project ignored, no project {project_id}")
            return False
        fields = Project.normalize_fields(fields)
        # Owned collections are only changed through their own operations
        fields.pop('milestones', None)
        fields.pop('tasks', None)
        fields = _strip(fields, 'name', 'description')
        if 'name' in fields and _is_blank(fields['name']):
            raise ValidationError("Project name is required.")
        self._projects[index] = self._merge(self._projects[index], fields)
        self._changed()
        return True

    def delete_project(self, project_id: str) -> bool:
        index = self._project_index(project_id)
        if index is None:
            return False
        removed = self._projects.pop(index)
        log.info(f"Deleted project {removed.id} '{removed.name}'")
        self._changed()
        return True

    def replace_all(self, projects: Iterable[Union[Project, Fields]]):
        """Replace the whole collection, normalizing every incoming record."""
        self._projects = self._normalize(projects)
        log.info(f"Replaced collection with {len(self._projects)} project(s)")
        self._changed()

    def clear(self):
        self._projects = []
        log.info("Cleared all projects")
        self._changed()

    # ------------------------------------------------------------------
    # Milestones and tasks
    # ------------------------------------------------------------------

    def create_milestone(self, project_id: str, fields: Fields) -> Milestone:
        return self._create(project_id, EntityKind.MILESTONE, fields)

    def create_task(self, project_id: str, fields: Fields) -> Task:
        return self._create(project_id, EntityKind.TASK, fields)

    def update_milestone(self, project_id: str, milestone_id: str, fields: Fields) -> bool:
        return self._update(project_id, EntityKind.MILESTONE, milestone_id, fields)

    def update_task(self, project_id: str, task_id: str, fields: Fields) -> bool:
        return self._update(project_id, EntityKind.TASK, task_id, fields)

    def delete_milestone(self, project_id: str, milestone_id: str) -> bool:
        return self._delete(project_id, EntityKind.MILESTONE, milestone_id)

    def delete_task(self, project_id: str, task_id: str) -> bool:
        return self._delete(project_id, EntityKind.TASK, task_id)

    def set_status(self, project_id: str, kind: Union[EntityKind, str], entity_id: str,
                   new_status: Union[Status, str]) -> bool:
        """
        Change only the status of a milestone or task.

        Returns False, without touching the store, when the status is not
        recognized or the entity cannot be found.
        """
        status = Status.parse(new_status)
        kind = EntityKind.parse(kind)
        if status is None or kind is None:
            log.warning(f"set_status ignored, invalid status {new_status!r} or kind {kind!r}")
            return False
        project = self.get_project(project_id)
        entity = project.find(kind, entity_id) if project else None
        if entity is None:
            log.debug(f"set_status ignored, no {kind.value} {entity_id} in project {project_id}")
            return False
        if entity.status != status:
            log.info(f"{kind.value} {entity_id}: {entity.status.value} -> {status.value}")
            entity.status = status
            self._changed()
        return True

    @contextmanager
    def batch(self):
        """Group several mutations into a single change notification."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._dirty = False
                self._notify()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create(self, project_id: str, kind: EntityKind, fields: Fields):
        project = self.require_project(project_id)
        model_type = ENTITY_MODELS[kind]
        fields = _strip(model_type.normalize_fields(fields), 'title', 'description')
        self._check_required(kind, fields)
        fields['id'] = self._fresh_id()
        entity = _validated(model_type, fields)
        project.collection(kind).append(entity)
        log.info(f"Created {kind.value} {entity.id} '{entity.title}' in project {project_id}")
        self._changed()
        return entity

    def _update(self, project_id: str, kind: EntityKind, entity_id: str, fields: Fields) -> bool:
        project = self.get_project(project_id)
        collection = project.collection(kind) if project else []
        index = next((i for i, e in enumerate(collection) if e.id == entity_id), None)
        if index is None:
            log.debug(f"update ignored, no {kind.value} {entity_id} in project {project_id}")
            return False
        fields = _strip(ENTITY_MODELS[kind].normalize_fields(fields), 'title', 'description')
        merged = self._merge(collection[index], fields)
        self._check_required(kind, merged.model_dump())
        collection[index] = merged
        self._changed()
        return True

    def _delete(self, project_id: str, kind: EntityKind, entity_id: str) -> bool:
        project = self.get_project(project_id)
        if project is None:
            return False
        collection = project.collection(kind)
        remaining = [e for e in collection if e.id != entity_id]
        if len(remaining) == len(collection):
            return False
        collection[:] = remaining
        log.info(f"Deleted {kind.value} {entity_id} from project {project_id}")
        self._changed()
        return True

    @staticmethod
    def _check_required(kind: EntityKind, fields: Fields):
        if _is_blank(fields.get('title')):
            raise ValidationError(f"{kind.value.capitalize()} title is required.")
        if kind == EntityKind.TASK and (_is_blank(fields.get('start_date')) or _is_blank(fields.get('end_date'))):
            raise ValidationError("Title, Start Date, and End Date are required.")

    @staticmethod
    def _merge(entity, fields: Fields):
        try:
            return entity.merged(fields)
        except pydantic.ValidationError as e:
            raise ValidationError(str(e)) from e

    def _project_index(self, project_id: str) -> Optional[int]:
        return next((i for i, p in enumerate(self._projects) if p.id == project_id), None)

    def _fresh_id(self) -> str:
        taken = self.all_ids()
        new_id = generate_id()
        while new_id in self._issued or new_id in taken:
            new_id = generate_id()
        self._issued.add(new_id)
        return new_id

    def _normalize(self, projects: Iterable[Union[Project, Fields]]) -> List[Project]:
        """Validate incoming records and make ids unique within each collection."""
        normalized = []
        for record in projects:
            if isinstance(record, Project):
                project = record
            else:
                project = _validated(Project, normalize_record(record))
            normalized.append(project)

        self._dedupe(normalized, "project")
        for project in normalized:
            self._dedupe(project.milestones, f"milestone in {project.id}")
            self._dedupe(project.tasks, f"task in {project.id}")
        return normalized

    def _dedupe(self, collection: List, what: str):
        seen = set()
        for entity in collection:
            if entity.id in seen:
                new_id = self._fresh_id()
                log.warning(f"Duplicate {what} id {entity.id}, reassigned to {new_id}")
                entity.id = new_id
            seen.add(entity.id)
            self._issued.add(entity.id)

    def _changed(self):
        if self._batch_depth:
            self._dirty = True
            return
        self._notify()

    def _notify(self):
        if self.on_change is not None:
            self.on_change()
