"""
Import and export of the projects collection.

JSON is the lossless interchange format (also used for the persistence slot);
CSV and PDF are one-way reports.
"""
import csv
import io
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import pydantic
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from itpm.logs import get_logger
from itpm.models import Project, generate_id
from itpm.recovery import SerializationError
from itpm.validate import validate_payload

log = get_logger("serialization")

CSV_HEADER = ["Project", "Type", "Title", "Description", "Start Date", "End Date", "Status", "Priority"]

def normalize_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Backfill a project record's id and its milestone/task collections."""
    record = dict(record)
    if not record.get('id'):
        record['id'] = generate_id()
    if record.get('milestones') is None:
        record['milestones'] = []
    if record.get('tasks') is None:
        record['tasks'] = []
    return record

def parse_projects(text: Union[str, bytes]) -> List[Project]:
    """
    Decode a JSON document into normalized projects.

    Raises:
        SerializationError: the text is not JSON, the root is not an array,
            or a record cannot be coerced into a project
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SerializationError(f"Error parsing JSON: {e}") from e

    records = validate_payload(data)
    try:
        return [Project.model_validate(normalize_record(r)) for r in records]
    except pydantic.ValidationError as e:
        raise SerializationError(f"Invalid project record: {e}") from e

def projects_to_data(projects: Iterable[Project]) -> List[Dict[str, Any]]:
    return [p.to_dict() for p in projects]

def projects_to_json(projects: Iterable[Project]) -> str:
    """Pretty-printed JSON array of the full projects collection."""
    return json.dumps(projects_to_data(projects), indent=2, ensure_ascii=False)

def _fmt(value) -> str:
    return "" if value is None else str(value)

def projects_to_csv(projects: Iterable[Project]) -> str:
    """One row per milestone/task across all projects."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for p in projects:
        for m in p.milestones:
            due = _fmt(m.due_date)
            writer.writerow([p.name, "Milestone", m.title, m.description, due, due, m.status.value, m.color])
        for t in p.tasks:
            writer.writerow([p.name, "Task", t.title, t.description, _fmt(t.start_date),
                             _fmt(t.end_date), t.status.value, t.color])
    return buffer.getvalue()

class _PdfWriter:
    """Writes lines top-down in millimetres, starting a new page when space runs out."""

    TOP = 10
    BOTTOM_LIMIT = 280

    def __init__(self, target):
        self.canvas = canvas.Canvas(target, pagesize=A4)
        self.page_height = A4[1]
        self.y = self.TOP
        self.pages = 1
        self.font_size = 12

    def set_font(self, size: int):
        self.font_size = size
        self.canvas.setFont('Helvetica', size)

    def text(self, line: str, x: int, advance: int):
        self.canvas.drawString(x * mm, self.page_height - self.y * mm, line)
        self.y += advance

    def skip(self, advance: int):
        self.y += advance

    def break_if_full(self):
        if self.y > self.BOTTOM_LIMIT:
            self.canvas.showPage()
            self.canvas.setFont('Helvetica', self.font_size)
            self.pages += 1
            self.y = self.TOP

    def save(self):
        self.canvas.save()

def write_pdf(projects: Iterable[Project], target: Union[str, Path, io.BytesIO]) -> int:
    """
    Render a PDF report with one section per project.

    Args:
        projects: projects to report on
        target: file path or binary buffer

    Returns:
        The number of pages written
    """
    if isinstance(target, Path):
        target = str(target)
    pdf = _PdfWriter(target)
    for p in projects:
        pdf.break_if_full()
        pdf.set_font(14)
        pdf.text(f"Project: {p.name}", 10, 8)
        pdf.set_font(12)
        pdf.break_if_full()
        pdf.text("Milestones:", 10, 6)
        for m in p.milestones:
            pdf.text(f"- {m.title} ({m.status.value}) Due: {_fmt(m.due_date)}", 12, 6)
            pdf.break_if_full()
        pdf.skip(4)
        pdf.break_if_full()
        pdf.text("Tasks:", 10, 6)
        for t in p.tasks:
            pdf.text(f"- {t.title} ({t.status.value}) {_fmt(t.start_date)} to {_fmt(t.end_date)}", 12, 6)
            pdf.break_if_full()
        pdf.skip(10)
        pdf.break_if_full()
    pdf.save()
    log.debug(f"PDF report written with {pdf.pages} page(s)")
    return pdf.pages
