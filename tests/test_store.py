"""Unit tests for EntityStore."""

import pytest
from datetime import date
from unittest.mock import MagicMock, patch

from itpm.models import EntityKind, Project, Status, Task
from itpm.recovery import NotFoundError, ValidationError
from itpm.store import EntityStore


@pytest.fixture
def on_change():
    return MagicMock()


@pytest.fixture
def tracked(on_change):
    return EntityStore(on_change=on_change)


class TestCreate:
    """Test entity creation."""

    def test_create_project(self, tracked, on_change):
        project = tracked.create_project({'name': '  Launch  ', 'team': 'Ana, Bo'})
        assert project.name == 'Launch'
        assert project.team == ['Ana', 'Bo']
        assert project.milestones == [] and project.tasks == []
        assert tracked.projects == [project]
        on_change.assert_called_once()

    def test_project_name_required(self, tracked, on_change):
        with pytest.raises(ValidationError, match="name is required"):
            tracked.create_project({'name': '   '})
        assert tracked.projects == []
        on_change.assert_not_called()

    def test_create_ignores_supplied_id_and_collections(self, tracked):
        project = tracked.create_project({'id': 'mine', 'name': 'P', 'tasks': [{'title': 'x'}]})
        assert project.id != 'mine'
        assert project.tasks == []

    def test_create_milestone(self, tracked):
        project = tracked.create_project({'name': 'P'})
        milestone = tracked.create_milestone(project.id, {'title': 'Beta', 'dueDate': '2024-02-01'})
        assert milestone.due_date == date(2024, 2, 1)
        assert tracked.find_milestone(project.id, milestone.id) is milestone

    def test_milestone_title_required(self, tracked):
        project = tracked.create_project({'name': 'P'})
        with pytest.raises(ValidationError):
            tracked.create_milestone(project.id, {'title': ''})

    def test_unknown_project(self, tracked):
        with pytest.raises(NotFoundError):
            tracked.create_task('nope', {'title': 'T', 'start_date': '2024-01-01', 'end_date': '2024-01-02'})
        with pytest.raises(NotFoundError):
            tracked.create_milestone('nope', {'title': 'M'})

    @pytest.mark.parametrize("fields", [
        {'start_date': '2024-01-01', 'end_date': '2024-01-02'},
        {'title': 'T', 'end_date': '2024-01-02'},
        {'title': 'T', 'start_date': '2024-01-01'},
        {'title': 'T', 'start_date': '', 'end_date': '2024-01-02'},
    ])
    def test_task_required_fields(self, tracked, fields):
        project = tracked.create_project({'name': 'P'})
        with pytest.raises(ValidationError):
            tracked.create_task(project.id, fields)
        assert project.tasks == []

    def test_unparsable_date(self, tracked):
        project = tracked.create_project({'name': 'P'})
        with pytest.raises(ValidationError):
            tracked.create_task(project.id, {'title': 'T', 'start_date': 'soon', 'end_date': '2024-01-02'})

    def test_ids_unique(self, tracked):
        """Every issued id is distinct from every other id in the run."""
        project = tracked.create_project({'name': 'P'})
        ids = [project.id]
        for i in range(30):
            ids.append(tracked.create_milestone(project.id, {'title': f'M{i}'}).id)
            ids.append(tracked.create_task(project.id, {
                'title': f'T{i}', 'start_date': '2024-01-01', 'end_date': '2024-01-02'}).id)
        assert len(set(ids)) == len(ids)

    def test_id_collision_regenerated(self, tracked):
        with patch('itpm.store.generate_id', side_effect=['id-1', 'id-1', 'id-2']):
            first = tracked.create_project({'name': 'A'})
            second = tracked.create_project({'name': 'B'})
        assert first.id == 'id-1'
        assert second.id == 'id-2'


class TestUpdate:
    """Test lenient edits."""

    def test_update_task(self, tracked):
        project = tracked.create_project({'name': 'P'})
        task = tracked.create_task(project.id, {'title': 'T', 'start_date': '2024-01-01', 'end_date': '2024-01-02'})
        assert tracked.update_task(project.id, task.id, {'title': 'Ship', 'status': 'In Progress'})
        updated = tracked.find_task(project.id, task.id)
        assert updated.id == task.id
        assert updated.title == 'Ship'
        assert updated.status == Status.IN_PROGRESS
        assert updated.start_date == date(2024, 1, 1)

    def test_update_absent_is_noop(self, tracked, on_change):
        project = tracked.create_project({'name': 'P'})
        on_change.reset_mock()
        assert not tracked.update_milestone(project.id, 'missing', {'title': 'x'})
        assert not tracked.update_task('no-project', 'missing', {'title': 'x'})
        assert not tracked.update_project('missing', {'name': 'x'})
        on_change.assert_not_called()

    def test_update_cannot_blank_required(self, tracked):
        project = tracked.create_project({'name': 'P'})
        task = tracked.create_task(project.id, {'title': 'T', 'start_date': '2024-01-01', 'end_date': '2024-01-02'})
        with pytest.raises(ValidationError):
            tracked.update_task(project.id, task.id, {'end_date': ''})
        assert tracked.find_task(project.id, task.id).end_date == date(2024, 1, 2)
        with pytest.raises(ValidationError):
            tracked.update_project(project.id, {'name': ''})

    def test_update_project_keeps_children(self, tracked):
        project = tracked.create_project({'name': 'P'})
        tracked.create_milestone(project.id, {'title': 'M'})
        assert tracked.update_project(project.id, {'name': 'Q', 'milestones': []})
        updated = tracked.get_project(project.id)
        assert updated.name == 'Q'
        assert len(updated.milestones) == 1


class TestDelete:
    """Test deletion."""

    def test_delete_idempotent(self, tracked, on_change):
        project = tracked.create_project({'name': 'P'})
        milestone = tracked.create_milestone(project.id, {'title': 'M'})
        on_change.reset_mock()
        assert tracked.delete_milestone(project.id, milestone.id)
        snapshot = [p.model_copy(deep=True) for p in tracked.projects]
        assert not tracked.delete_milestone(project.id, milestone.id)
        assert not tracked.delete_task(project.id, 'missing')
        assert not tracked.delete_task('missing', 'missing')
        assert tracked.projects == snapshot
        on_change.assert_called_once()

    def test_delete_project(self, tracked):
        project = tracked.create_project({'name': 'P'})
        assert tracked.delete_project(project.id)
        assert not tracked.delete_project(project.id)
        assert tracked.projects == []


class TestSetStatus:
    """Test the drag mutation path."""

    def test_set_status(self, tracked, on_change):
        project = tracked.create_project({'name': 'P'})
        task = tracked.create_task(project.id, {'title': 'T', 'start_date': '2024-01-01', 'end_date': '2024-01-02'})
        on_change.reset_mock()
        assert tracked.set_status(project.id, EntityKind.TASK, task.id, Status.COMPLETED)
        assert tracked.find_task(project.id, task.id).status == Status.COMPLETED
        on_change.assert_called_once()

    def test_invalid_status_is_noop(self, tracked, on_change):
        project = tracked.create_project({'name': 'P'})
        milestone = tracked.create_milestone(project.id, {'title': 'M'})
        on_change.reset_mock()
        snapshot = [p.model_copy(deep=True) for p in tracked.projects]
        assert not tracked.set_status(project.id, 'milestone', milestone.id, 'Archived')
        assert not tracked.set_status(project.id, 'epic', milestone.id, 'Completed')
        assert not tracked.set_status(project.id, 'task', milestone.id, 'Completed')
        assert tracked.projects == snapshot
        on_change.assert_not_called()

    def test_same_status_does_not_propagate(self, tracked, on_change):
        project = tracked.create_project({'name': 'P'})
        milestone = tracked.create_milestone(project.id, {'title': 'M'})
        on_change.reset_mock()
        assert tracked.set_status(project.id, 'milestone', milestone.id, 'Not Started')
        on_change.assert_not_called()


class TestReplaceAll:
    """Test bulk replacement."""

    def test_normalizes_records(self, tracked):
        tracked.replace_all([{'name': 'Imported'}, {'id': 'p2', 'name': 'Legacy', 'milestones': []}])
        assert len(tracked) == 2
        first, second = tracked.projects
        assert first.id.startswith('id-')
        assert first.milestones == [] and first.tasks == []
        assert second.id == 'p2'
        assert second.tasks == []

    def test_duplicate_ids_reassigned(self, tracked):
        tracked.replace_all([
            Project(id='p1', name='A', tasks=[Task(id='t1', title='x'), Task(id='t1', title='y')]),
            Project(id='p1', name='B'),
        ])
        a, b = tracked.projects
        assert a.id == 'p1' and b.id != 'p1'
        assert a.tasks[0].id == 't1' and a.tasks[1].id != 't1'

    def test_fresh_ids_avoid_loaded_ids(self):
        store = EntityStore([Project(id='id-1', name='Loaded')])
        with patch('itpm.store.generate_id', side_effect=['id-1', 'id-9']):
            created = store.create_project({'name': 'New'})
        assert created.id == 'id-9'

    def test_rejects_invalid_record(self, tracked):
        with pytest.raises(ValidationError):
            tracked.replace_all([{'name': 'x', 'tasks': [{'status': 'Weird'}]}])


class TestBatch:
    """Test grouping of change notifications."""

    def test_single_notification(self, tracked, on_change):
        project = tracked.create_project({'name': 'P'})
        on_change.reset_mock()
        with tracked.batch():
            tracked.create_milestone(project.id, {'title': 'A'})
            with tracked.batch():
                tracked.create_milestone(project.id, {'title': 'B'})
            on_change.assert_not_called()
        on_change.assert_called_once()

    def test_empty_batch_is_silent(self, tracked, on_change):
        with tracked.batch():
            tracked.delete_project('missing')
        on_change.assert_not_called()


class TestQueries:
    """Test lookups."""

    def test_find_entity(self, tracked):
        project = tracked.create_project({'name': 'P'})
        milestone = tracked.create_milestone(project.id, {'title': 'M'})
        assert tracked.find_entity(project.id, 'milestone', milestone.id) is milestone
        assert tracked.find_entity(project.id, EntityKind.TASK, milestone.id) is None
        assert tracked.find_entity(project.id, 'epic', milestone.id) is None
        assert tracked.find_entity('missing', 'milestone', milestone.id) is None


class TestCompactStatusNames:
    """Test statuses spelled without separators."""

    def test_create_and_set_status(self, tracked, on_change):
        project = tracked.create_project({'name': 'Launch'})
        task = tracked.create_task(project.id, {
            'title': 'Build', 'start_date': '2024-01-01', 'end_date': '2024-01-10', 'status': 'NotStarted'})
        assert task.status == Status.NOT_STARTED
        on_change.reset_mock()
        assert tracked.set_status(project.id, 'task', task.id, 'InProgress')
        assert tracked.find_task(project.id, task.id).status == Status.IN_PROGRESS
        on_change.assert_called_once()
