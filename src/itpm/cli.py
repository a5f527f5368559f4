"""
Command Line Interface for the ITPM project milestone tracker.
"""

import functools
import json
from pathlib import Path

import click

from .config import Settings
from .logs import setup_logging
from .models import EntityKind
from .projector import CalendarDrag, KanbanDrop
from .recovery import ITPMError, ValidationError
from .render import render_calendar, render_gantt, render_kanban, render_timeline
from .templates import template_names
from .validate import document_schema
from .version import VERSION
from .workspace import Workspace

KINDS = click.Choice([k.value for k in EntityKind])


def handle_errors(f):
    """Report itpm errors as a one-line message and a non-zero exit code."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ValidationError as e:
            click.echo(f"❌ {e}", err=True)
            raise SystemExit(1)
        except ITPMError as e:
            click.echo(f"❌ Error: {e}", err=True)
            raise SystemExit(1)
    return wrapper


def _fields(**options):
    """Drop options the user did not pass."""
    return {k: v for k, v in options.items() if v is not None}


def _target_project(ws: Workspace, project_id):
    project_id = project_id or ws.selection.project_id
    if not project_id:
        raise click.UsageError("No active project. Use 'itpm project select' or pass --project.")
    return project_id


@click.group()
@click.version_option(version=VERSION, prog_name="itpm")
@click.option('--config', 'config_file', type=click.Path(dir_okay=False, path_type=Path), help='YAML config file')
@click.option('--data-dir', type=click.Path(file_okay=False, path_type=Path), help='Directory holding the data slot')
@click.option('--slot', help='Name of the persistence slot')
@click.pass_context
@handle_errors
def main(ctx, config_file, data_dir, slot):
    """
    ITPM - track projects, milestones and tasks across timeline, Gantt,
    Kanban and calendar views.
    """
    settings = Settings.load(config_file, data_dir=data_dir, slot=slot)
    if settings.log_dir:
        setup_logging(settings.log_dir)
    ctx.obj = ctx.with_resource(Workspace(settings))


# ----------------------------------------------------------------------
# Projects
# ----------------------------------------------------------------------

@main.group()
def project():
    """Manage projects."""
    pass


@project.command('create')
@click.argument('name')
@click.option('-d', '--description', default='', help='Project description')
@click.option('--team', default='', help='Comma-separated team member names')
@click.option('--start', help='Start date (YYYY-MM-DD)')
@click.option('--end', help='End date (YYYY-MM-DD)')
@click.option('--activate/--no-activate', default=True, help='Make the new project active')
@click.pass_obj
@handle_errors
def project_create(ws, name, description, team, start, end, activate):
    """Create a new project."""
    created = ws.create_project({
        'name': name,
        'description': description,
        'team': team,
        'start_date': start,
        'end_date': end,
    }, activate=activate)
    click.echo(f"✅ Created project '{created.name}' ({created.id})")


@project.command('list')
@click.pass_obj
def project_list(ws):
    """List all projects."""
    projects = ws.store.projects
    if not projects:
        click.echo("📭 No projects yet")
        click.echo("💡 Use 'itpm project create NAME' to add one")
        return
    for p in projects:
        marker = "▶" if p.id == ws.selection.project_id else " "
        click.echo(f"{marker} {p.name}  ({p.id})  🚩 {len(p.milestones)}  🗒️ {len(p.tasks)}")


@project.command('select')
@click.argument('project_id')
@click.pass_obj
@handle_errors
def project_select(ws, project_id):
    """Make a project the active one."""
    selected = ws.select_project(project_id)
    click.echo(f"📍 Active project: {selected.name}")


@project.command('edit')
@click.argument('project_id')
@click.option('--name')
@click.option('-d', '--description')
@click.option('--team', help='Comma-separated team member names')
@click.option('--start')
@click.option('--end')
@click.pass_obj
@handle_errors
def project_edit(ws, project_id, name, description, team, start, end):
    """Edit a project's fields."""
    if ws.store.update_project(project_id, _fields(name=name, description=description, team=team,
                                                   start_date=start, end_date=end)):
        click.echo("✅ Project updated")
    else:
        click.echo(f"⚠️  No project {project_id}")


@project.command('delete')
@click.argument('project_id')
@click.confirmation_option(prompt='Delete this project with all its milestones and tasks?')
@click.pass_obj
@handle_errors
def project_delete(ws, project_id):
    """Delete a project."""
    if ws.store.delete_project(project_id):
        click.echo("🗑️  Project deleted")
    else:
        click.echo(f"⚠️  No project {project_id}")


# ----------------------------------------------------------------------
# Milestones and tasks
# ----------------------------------------------------------------------

@main.group()
def milestone():
    """Manage milestones of the active project."""
    pass


@milestone.command('add')
@click.argument('title')
@click.option('-p', '--project', 'project_id', help='Project id (defaults to the active project)')
@click.option('-d', '--description', default='')
@click.option('--due', help='Due date (YYYY-MM-DD)')
@click.option('--status', default='Not Started')
@click.option('--color', default='#007bff', help='Color/priority tag')
@click.pass_obj
@handle_errors
def milestone_add(ws, title, project_id, description, due, status, color):
    """Add a milestone."""
    created = ws.store.create_milestone(_target_project(ws, project_id), {
        'title': title,
        'description': description,
        'due_date': due,
        'status': status,
        'color': color,
    })
    click.echo(f"🚩 Added milestone '{created.title}' ({created.id})")


@milestone.command('edit')
@click.argument('milestone_id')
@click.option('-p', '--project', 'project_id')
@click.option('--title')
@click.option('-d', '--description')
@click.option('--due')
@click.option('--status')
@click.option('--color')
@click.pass_obj
@handle_errors
def milestone_edit(ws, milestone_id, project_id, title, description, due, status, color):
    """Edit a milestone."""
    fields = _fields(title=title, description=description, due_date=due, status=status, color=color)
    if ws.store.update_milestone(_target_project(ws, project_id), milestone_id, fields):
        click.echo("✅ Milestone updated")
    else:
        click.echo(f"⚠️  No milestone {milestone_id}")


@milestone.command('delete')
@click.argument('milestone_id')
@click.option('-p', '--project', 'project_id')
@click.confirmation_option(prompt='Delete this milestone?')
@click.pass_obj
@handle_errors
def milestone_delete(ws, milestone_id, project_id):
    """Delete a milestone."""
    ws.store.delete_milestone(_target_project(ws, project_id), milestone_id)
    click.echo("🗑️  Milestone deleted")


@main.group()
def task():
    """Manage tasks of the active project."""
    pass


@task.command('add')
@click.argument('title')
@click.option('-p', '--project', 'project_id', help='Project id (defaults to the active project)')
@click.option('-d', '--description', default='')
@click.option('--start', help='Start date (YYYY-MM-DD)')
@click.option('--end', help='End date (YYYY-MM-DD)')
@click.option('--status', default='Not Started')
@click.option('--color', default='#28a745', help='Color/priority tag')
@click.pass_obj
@handle_errors
def task_add(ws, title, project_id, description, start, end, status, color):
    """Add a task."""
    created = ws.store.create_task(_target_project(ws, project_id), {
        'title': title,
        'description': description,
        'start_date': start,
        'end_date': end,
        'status': status,
        'color': color,
    })
    click.echo(f"🗒️  Added task '{created.title}' ({created.id})")


@task.command('edit')
@click.argument('task_id')
@click.option('-p', '--project', 'project_id')
@click.option('--title')
@click.option('-d', '--description')
@click.option('--start')
@click.option('--end')
@click.option('--status')
@click.option('--color')
@click.pass_obj
@handle_errors
def task_edit(ws, task_id, project_id, title, description, start, end, status, color):
    """Edit a task."""
    fields = _fields(title=title, description=description, start_date=start, end_date=end,
                     status=status, color=color)
    if ws.store.update_task(_target_project(ws, project_id), task_id, fields):
        click.echo("✅ Task updated")
    else:
        click.echo(f"⚠️  No task {task_id}")


@task.command('delete')
@click.argument('task_id')
@click.option('-p', '--project', 'project_id')
@click.confirmation_option(prompt='Delete this task?')
@click.pass_obj
@handle_errors
def task_delete(ws, task_id, project_id):
    """Delete a task."""
    ws.store.delete_task(_target_project(ws, project_id), task_id)
    click.echo("🗑️  Task deleted")


@main.command()
@click.argument('kind', type=KINDS)
@click.argument('entity_id')
@click.argument('new_status')
@click.option('-p', '--project', 'project_id')
@click.pass_obj
@handle_errors
def status(ws, kind, entity_id, new_status, project_id):
    """Set the status of a milestone or task."""
    if ws.store.set_status(_target_project(ws, project_id), kind, entity_id, new_status):
        click.echo(f"✅ {kind} {entity_id} is now {new_status}")
    else:
        click.echo(f"⚠️  Status unchanged (unknown status '{new_status}' or no {kind} {entity_id})")


# ----------------------------------------------------------------------
# Views
# ----------------------------------------------------------------------

@main.command()
@click.pass_obj
def timeline(ws):
    """Show the timeline of the active project."""
    click.echo(render_timeline(ws.projections.timeline))


@main.command()
@click.pass_obj
def gantt(ws):
    """Show the Gantt chart of the active project."""
    click.echo(render_gantt(ws.projections.gantt))


@main.group(invoke_without_command=True)
@click.pass_context
def board(ctx):
    """Show the Kanban board, or move cards on it."""
    if ctx.invoked_subcommand is None:
        click.echo(render_kanban(ctx.obj.projections.kanban))


@board.command('move')
@click.argument('kind', type=KINDS)
@click.argument('entity_id')
@click.argument('column')
@click.pass_obj
@handle_errors
def board_move(ws, kind, entity_id, column):
    """Drop a card into another column (Backlog, In Progress, Completed)."""
    bucket = ws.projections.kanban.bucket_of(f"{kind}:{entity_id}")
    drop = KanbanDrop(kind=kind, id=entity_id, target=column, source=bucket.label if bucket else None)
    result = ws.handle_kanban_drop(drop)
    if result.applied:
        click.echo(f"✅ Moved to {column}")
    else:
        where = f" to {result.revert_to}" if result.revert_to else ""
        click.echo(f"↩️  Moved back{where}: {result.reason}")


@main.group(invoke_without_command=True)
@click.pass_context
def calendar(ctx):
    """Show the calendar, or drag events to new dates."""
    if ctx.invoked_subcommand is None:
        click.echo(render_calendar(ctx.obj.projections.calendar))


@calendar.command('move')
@click.argument('event_id')
@click.argument('start')
@click.argument('end', required=False)
@click.pass_obj
@handle_errors
def calendar_move(ws, event_id, start, end):
    """Move an event (e.g. task:id-123) to new date(s)."""
    try:
        drag = CalendarDrag(event_id=event_id, start=start, end=end)
    except ValueError as e:
        raise click.BadParameter(str(e))
    result = ws.handle_calendar_drag(drag)
    if result.applied:
        click.echo(f"✅ Rescheduled {event_id}")
    else:
        click.echo(f"↩️  Moved back: {result.reason}")


# ----------------------------------------------------------------------
# Import / export
# ----------------------------------------------------------------------

@main.command('import')
@click.argument('source', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.confirmation_option(prompt='Importing replaces all current projects. Continue?')
@click.pass_obj
@handle_errors
def import_(ws, source):
    """Import projects from a JSON file (replaces everything)."""
    count = ws.import_json(source.read_bytes())
    click.echo(f"✅ Imported {count} project(s)")


@main.group()
def export():
    """Export all projects."""
    pass


@export.command('json')
@click.option('-o', '--output', type=click.Path(dir_okay=False, path_type=Path), help='Write to a file instead of stdout')
@click.pass_obj
@handle_errors
def export_json(ws, output):
    """Export as pretty-printed JSON."""
    text = ws.export_json(output)
    if output:
        click.echo(f"✅ Wrote {output}")
    else:
        click.echo(text)


@export.command('csv')
@click.option('-o', '--output', type=click.Path(dir_okay=False, path_type=Path), help='Write to a file instead of stdout')
@click.pass_obj
@handle_errors
def export_csv(ws, output):
    """Export one row per milestone/task as CSV."""
    text = ws.export_csv(output)
    if output:
        click.echo(f"✅ Wrote {output}")
    else:
        click.echo(text, nl=False)


@export.command('pdf')
@click.option('-o', '--output', type=click.Path(dir_okay=False, path_type=Path), default=Path('projects.pdf'))
@click.pass_obj
@handle_errors
def export_pdf(ws, output):
    """Export a PDF report."""
    pages = ws.export_pdf(output)
    click.echo(f"✅ Wrote {output} ({pages} page(s))")


@main.command()
def schema():
    """Print the JSON schema of the project document."""
    click.echo(json.dumps(document_schema(), indent=2))


# ----------------------------------------------------------------------
# Templates and reset
# ----------------------------------------------------------------------

@main.group()
def template():
    """Milestone templates."""
    pass


@template.command('list')
def template_list():
    """List available templates."""
    for name in template_names():
        click.echo(f"📋 {name}")


@template.command('apply')
@click.argument('name')
@click.option('-p', '--project', 'project_id')
@click.pass_obj
@handle_errors
def template_apply(ws, name, project_id):
    """Append a template's milestones to the active project."""
    created = ws.apply_template(name, _target_project(ws, project_id))
    click.echo(f"✅ Added {len(created)} milestone(s) from '{name}'")


@main.command()
@click.confirmation_option(prompt='Are you sure you want to clear all projects and milestones?')
@click.pass_obj
@handle_errors
def reset(ws):
    """Clear all projects and milestones."""
    ws.reset()
    click.echo("🧹 All data cleared")


if __name__ == "__main__":
    main()
