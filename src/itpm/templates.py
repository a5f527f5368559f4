"""Predefined milestone scaffolds that can be applied to a project."""
from typing import Dict, List

from itpm.models import Milestone, Status
from itpm.recovery import NotFoundError

TEMPLATE_COLOR = "#007bff"

TEMPLATES: Dict[str, List[str]] = {
    "Software Launch": [
        "Requirements Gathering",
        "Design Phase",
        "Development",
        "Testing",
        "Deployment",
        "Post-launch Review",
    ],
    "Website Redesign": [
        "Audit Current Site",
        "Wireframes",
        "Mockups",
        "Development",
        "Content Migration",
        "Launch",
    ],
}

def template_names() -> List[str]:
    return list(TEMPLATES)

def apply_template(store, project_id: str, name: str) -> List[Milestone]:
    """Append the template's milestones to a project in one change."""
    if name not in TEMPLATES:
        raise NotFoundError(f"Template not found: {name}")
    store.require_project(project_id)
    with store.batch():
        return [
            store.create_milestone(project_id, {
                'title': title,
                'description': '',
                'due_date': None,
                'status': Status.NOT_STARTED,
                'color': TEMPLATE_COLOR,
            })
            for title in TEMPLATES[name]
        ]
