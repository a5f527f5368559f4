"""Unit tests for Pydantic models."""

import pytest
from datetime import date, datetime
from pydantic import ValidationError

from itpm.models import (
    Status, EntityKind, Project, Milestone, Task, generate_id
)


class TestStatus:
    """Test Status parsing."""

    def test_parse_values_and_names(self):
        """Stored values and enum names both resolve."""
        assert Status.parse("Not Started") == Status.NOT_STARTED
        assert Status.parse("in progress") == Status.IN_PROGRESS
        assert Status.parse("IN_PROGRESS") == Status.IN_PROGRESS
        assert Status.parse("completed") == Status.COMPLETED
        assert Status.parse(Status.COMPLETED) == Status.COMPLETED

    def test_parse_compact_names(self):
        """Spellings without separators resolve too."""
        assert Status.parse("NotStarted") == Status.NOT_STARTED
        assert Status.parse("InProgress") == Status.IN_PROGRESS
        assert Status.parse("notstarted") == Status.NOT_STARTED
        assert Status.parse("Not_Started") == Status.NOT_STARTED

    def test_parse_rejects_unknown(self):
        """Unknown values, the board alias and non-strings do not resolve."""
        assert Status.parse("Done") is None
        assert Status.parse("Backlog") is None
        assert Status.parse(None) is None
        assert Status.parse(3) is None


class TestEntityKind:
    """Test EntityKind parsing."""

    def test_parse(self):
        assert EntityKind.parse("task") == EntityKind.TASK
        assert EntityKind.parse(" Milestone ") == EntityKind.MILESTONE
        assert EntityKind.parse("project") is None


class TestGenerateId:
    """Test id generation."""

    def test_format(self):
        new_id = generate_id()
        prefix, millis, suffix = new_id.split("-")
        assert prefix == "id"
        assert millis.isdigit()
        assert len(suffix) == 8

    def test_distinct(self):
        assert len({generate_id() for _ in range(200)}) == 200


class TestMilestone:
    """Test Milestone model."""

    def test_defaults(self):
        """A bare milestone gets an id, default status and color."""
        milestone = Milestone(title="Beta")
        assert milestone.id.startswith("id-")
        assert milestone.status == Status.NOT_STARTED
        assert milestone.color == "#007bff"
        assert milestone.due_date is None

    def test_empty_due_date_is_unset(self):
        """Templates store an empty due date."""
        milestone = Milestone.model_validate({"title": "Design", "dueDate": ""})
        assert milestone.due_date is None

    def test_legacy_backlog_status(self):
        """The board alias found in old records is stored as Not Started."""
        milestone = Milestone.model_validate({"title": "Old", "status": "Backlog"})
        assert milestone.status == Status.NOT_STARTED

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError, match="Unknown status"):
            Milestone(title="x", status="Archived")


class TestTask:
    """Test Task model."""

    def test_camel_case_wire_format(self):
        """Tasks read and write camelCase date keys."""
        task = Task.model_validate({
            "id": "t1",
            "title": "Build",
            "startDate": "2024-01-01",
            "endDate": "2024-01-10",
            "status": "In Progress",
        })
        assert task.start_date == date(2024, 1, 1)
        assert task.end_date == date(2024, 1, 10)
        assert task.to_dict() == {
            "id": "t1",
            "title": "Build",
            "description": "",
            "startDate": "2024-01-01",
            "endDate": "2024-01-10",
            "status": "In Progress",
            "color": "#28a745",
        }

    def test_snake_case_accepted(self):
        task = Task(title="Build", start_date="2024-01-01", end_date="2024-01-02")
        assert task.start_date == date(2024, 1, 1)

    def test_timestamp_truncated_to_day(self):
        """Calendar surfaces may report full timestamps."""
        task = Task(title="Build", start_date="2024-01-05T00:00:00", end_date=datetime(2024, 1, 6, 12, 30))
        assert task.start_date == date(2024, 1, 5)
        assert task.end_date == date(2024, 1, 6)

    def test_end_before_start_allowed(self):
        """End before start is expected not to happen, but is not enforced."""
        task = Task(title="Oops", start_date="2024-02-01", end_date="2024-01-01")
        assert task.end_date < task.start_date

    def test_merged_keeps_id(self):
        """Edits never reassign an id."""
        task = Task(id="t1", title="Build", start_date="2024-01-01", end_date="2024-01-02")
        edited = task.merged({"id": "other", "title": "Ship", "endDate": "2024-01-09"})
        assert edited.id == "t1"
        assert edited.title == "Ship"
        assert edited.end_date == date(2024, 1, 9)
        assert task.title == "Build"

    def test_normalize_fields(self):
        """Aliases map to attribute names and unknown keys are dropped."""
        assert Task.normalize_fields({"startDate": "x", "title": "y", "bogus": 1}) == {
            "start_date": "x",
            "title": "y",
        }


class TestProject:
    """Test Project model."""

    def test_legacy_record_without_tasks(self):
        """Records saved before tasks existed get an empty task list."""
        project = Project.model_validate({"id": "p1", "name": "Old", "milestones": []})
        assert project.tasks == []

    def test_null_collections(self):
        project = Project.model_validate({"name": "Nulls", "milestones": None, "tasks": None})
        assert project.milestones == []
        assert project.tasks == []

    def test_id_backfilled(self):
        assert Project.model_validate({"id": "", "name": "x"}).id.startswith("id-")

    def test_team_from_string(self):
        project = Project(name="Team", team="Ana, Bo ,, Cy")
        assert project.team == ["Ana", "Bo", "Cy"]

    def test_find(self):
        project = Project(
            name="P",
            milestones=[Milestone(id="m1", title="M")],
            tasks=[Task(id="t1", title="T")],
        )
        assert project.find(EntityKind.MILESTONE, "m1").title == "M"
        assert project.find_task("t1").title == "T"
        assert project.find(EntityKind.TASK, "m1") is None
        assert project.find_milestone("missing") is None
