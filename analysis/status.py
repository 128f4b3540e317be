"""Fortschrittsabfrage für externe Anzeigen (Dashboard, CLI)."""

from typing import Iterable

from pydantic import BaseModel

from models.course import CourseRecord
from models.schedule import ScheduleEntry


class ScheduleStatus(BaseModel):
    """Stand der Einplanung, gemessen in Sitzungsstunden."""

    total_active_courses: int
    total_active_sessions: int      # Summe der Sitzungsstunden aktiver Kurse
    scheduled_sessions: int         # davon eingeplant
    completion_percentage: float    # 0–100, eine Nachkommastelle


def schedule_status(courses: Iterable[CourseRecord],
                    entries: Iterable[ScheduleEntry]) -> ScheduleStatus:
    active = [c for c in courses if c.is_active]
    active_ids = {c.id for c in active}
    total = sum(c.required_hours for c in active)
    scheduled = sum(e.session_hours for e in entries if e.course_id in active_ids)
    scheduled = min(scheduled, total)
    return ScheduleStatus(
        total_active_courses=len(active),
        total_active_sessions=total,
        scheduled_sessions=scheduled,
        completion_percentage=round(scheduled / total * 100, 1) if total else 0.0,
    )
