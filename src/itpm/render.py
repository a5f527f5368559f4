"""Plain-text renderers for the four projections."""
from datetime import date
from typing import List, Optional

from itpm.projector import (
    CalendarProjection,
    GanttProjection,
    KanbanProjection,
    TimelineProjection,
)

BAR_WIDTH = 20

def _d(value: Optional[date]) -> str:
    return value.isoformat() if value else "--"

def render_timeline(projection: TimelineProjection) -> str:
    if projection.is_empty:
        return projection.placeholder
    lines = ["🕒 Timeline"]
    points = sorted((i for i in projection.items if i.type == "point"),
                    key=lambda i: (i.start is None, i.start or date.min))
    for item in points:
        lines.append(f"  {_d(item.start)}  {item.content}  [{item.class_name}]")
    lanes = {g.id: g.content for g in projection.groups}
    for item in (i for i in projection.items if i.type == "range"):
        lines.append(f"  {_d(item.start)} → {_d(item.end)}  {lanes.get(item.group, '')}  [{item.class_name}]")
    if len(lines) == 1:
        lines.append("  (nothing scheduled)")
    return "\n".join(lines)

def _progress_bar(progress: int) -> str:
    filled = BAR_WIDTH * progress // 100
    return "█" * filled + "░" * (BAR_WIDTH - filled)

def render_gantt(projection: GanttProjection) -> str:
    if projection.is_empty:
        return projection.placeholder
    lines = ["📊 Gantt"]
    for bar in projection.bars:
        lines.append(f"  {_progress_bar(bar.progress)} {bar.progress:>3}%  {bar.name}  ({_d(bar.start)} → {_d(bar.end)})")
    if len(lines) == 1:
        lines.append("  (no bars)")
    return "\n".join(lines)

def render_kanban(projection: KanbanProjection) -> str:
    lines: List[str] = []
    if projection.is_empty:
        lines.append(projection.placeholder)
    for bucket in projection.buckets:
        lines.append(f"▌{bucket.label}  (Milestones: {bucket.milestone_count}, Tasks: {bucket.task_count})")
        for card in bucket.milestones:
            due = f"  Due: {card.due_date}" if card.due_date else ""
            lines.append(f"    📍 {card.title}{due}  <{card.key}>")
        for card in bucket.tasks:
            lines.append(f"    🗒️ {card.title}  Start: {_d(card.start_date)} End: {_d(card.end_date)}  <{card.key}>")
    return "\n".join(lines)

def render_calendar(projection: CalendarProjection) -> str:
    if projection.is_empty:
        return projection.placeholder
    lines = ["📅 Calendar"]
    events = sorted(projection.events, key=lambda e: (e.start is None, e.start or date.min))
    for event in events:
        span = _d(event.start) if event.end is None or event.end == event.start else f"{_d(event.start)} → {_d(event.end)}"
        lines.append(f"  {span}  {event.title}  <{event.id}>")
    if len(lines) == 1:
        lines.append("  (no events)")
    return "\n".join(lines)
