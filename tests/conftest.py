"""Shared fixtures for itpm tests."""

import pytest

from itpm.config import Settings
from itpm.persistence import PersistenceAdapter
from itpm.store import EntityStore
from itpm.workspace import Workspace


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data", slot="test_projects")


@pytest.fixture
def adapter(settings):
    return PersistenceAdapter(settings.data_dir, settings.slot)


@pytest.fixture
def workspace(settings):
    with Workspace(settings) as ws:
        yield ws


@pytest.fixture
def store():
    return EntityStore()


@pytest.fixture
def launch(workspace):
    """Active project 'Launch' with one milestone and one task."""
    project = workspace.create_project({
        'name': 'Launch',
        'start_date': '2024-01-01',
        'end_date': '2024-03-31',
    })
    milestone = workspace.store.create_milestone(project.id, {'title': 'Beta', 'due_date': '2024-02-15'})
    task = workspace.store.create_task(project.id, {
        'title': 'Build',
        'start_date': '2024-01-01',
        'end_date': '2024-01-10',
        'status': 'Not Started',
    })
    return project, milestone, task
