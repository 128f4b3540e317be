"""ConstraintValidator: harte Constraints für eine einzelne Platzierung.

Prüft Verfügbarkeit (Lehrkraft, Raum) und Doppelbelegungen gegen die bereits
vorhandenen Einträge. Wirft nie; Ergebnis ist immer ein ValidationResult.
"""

import logging
from typing import Iterable, Optional

from pydantic import BaseModel

from models.classroom import ClassroomRecord
from models.course import CourseRecord
from models.schedule import ScheduleEntry
from models.teacher import TeacherRecord
from models.timeslot import time_to_minutes
from solver.errors import ValidationWarning

logger = logging.getLogger(__name__)


class ValidationResult(BaseModel):
    """Ergebnis einer Prüfung."""

    valid: bool = True
    errors: list[str] = []
    warnings: list[ValidationWarning] = []

    def fail(self, message: str) -> "ValidationResult":
        self.valid = False
        self.errors.append(message)
        return self

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        self.valid = self.valid and other.valid
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self


def _range_error(start: str, end: str) -> Optional[str]:
    """Fehlermeldung für einen unlesbaren oder leeren Zeitbereich, sonst None."""
    try:
        s, e = time_to_minutes(start), time_to_minutes(end)
    except ValueError as exc:
        return f"Ungültiger Zeitbereich {start}-{end}: {exc}"
    if e <= s:
        return f"Ungültiger Zeitbereich {start}-{end}: Ende nicht nach Beginn"
    return None


def room_suits_session(classroom: ClassroomRecord, session_type: str, students: int = 0) -> bool:
    """Raumtyp und Kapazität passen zur Sitzung."""
    return classroom.is_active and classroom.suits(session_type, students)


class ConstraintValidator:
    """Prüft Lehrkraft, Raum und Teilnehmergruppen gegen bestehende Einträge."""

    def __init__(self, courses: Iterable[CourseRecord]) -> None:
        self._courses: dict[str, CourseRecord] = {c.id: c for c in courses}

    def course(self, course_id: str) -> Optional[CourseRecord]:
        return self._courses.get(course_id)

    def teacher_of(self, course_id: str) -> Optional[str]:
        course = self._courses.get(course_id)
        return course.teacher_id if course else None

    # ─── Lehrkraft ───

    def validate_teacher(
        self,
        teacher: Optional[TeacherRecord],
        day: str,
        start: str,
        end: str,
        entries: Iterable[ScheduleEntry],
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        """Lehrkraft arbeitet zu dieser Zeit und hat keinen anderen Termin.

        Ohne Lehrkraft ist jede Zeit gültig.
        """
        result = ValidationResult()
        if teacher is None:
            return result
        error = _range_error(start, end)
        if error:
            return result.fail(error)

        hours = teacher.working_hours
        if hours is None:
            warning = ValidationWarning(
                source=f"Lehrkraft {teacher.id}",
                message="Keine Arbeitszeiten hinterlegt",
            )
            result.warnings.append(warning)
            return result.fail(f"Lehrkraft {teacher.id}: keine Arbeitszeiten hinterlegt")
        if hours.warning is not None:
            result.warnings.append(hours.warning)
            return result.fail(f"Lehrkraft {teacher.id}: Arbeitszeiten unlesbar")

        if not hours.covers(day, start, end):
            result.fail(f"Lehrkraft {teacher.id} arbeitet nicht {day} {start}-{end}")

        for entry in entries:
            if entry.id == exclude_id:
                continue
            if self.teacher_of(entry.course_id) != teacher.id:
                continue
            if entry.overlaps(day, start, end):
                result.fail(
                    f"Lehrkraft {teacher.id} hat bereits {entry.course_id} "
                    f"{entry.day} {entry.time_range}"
                )
                break
        return result

    # ─── Raum ───

    def validate_classroom(
        self,
        classroom: Optional[ClassroomRecord],
        day: str,
        start: str,
        end: str,
        entries: Iterable[ScheduleEntry],
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        """Raum existiert, ist aktiv, zu dieser Zeit geöffnet und frei."""
        result = ValidationResult()
        if classroom is None:
            return result.fail("Kein Raum angegeben")
        if not classroom.is_active:
            return result.fail(f"Raum {classroom.id} ist nicht aktiv")
        error = _range_error(start, end)
        if error:
            return result.fail(error)

        availability = classroom.availability
        if availability.warning is not None:
            result.warnings.append(availability.warning)
            return result.fail(f"Raum {classroom.id}: Verfügbarkeit unlesbar")
        if not availability.covers(day, start, end):
            result.fail(f"Raum {classroom.id} ist {day} {start}-{end} nicht verfügbar")

        for entry in entries:
            if entry.id == exclude_id or entry.classroom_id != classroom.id:
                continue
            if entry.overlaps(day, start, end):
                result.fail(
                    f"Raum {classroom.id} ist belegt durch {entry.course_id} "
                    f"{entry.day} {entry.time_range}"
                )
                break
        return result

    # ─── Teilnehmergruppen ───

    def validate_student_groups(
        self,
        course: CourseRecord,
        day: str,
        start: str,
        end: str,
        entries: Iterable[ScheduleEntry],
        exclude_id: Optional[str] = None,
        department_conflicts: bool = True,
    ) -> ValidationResult:
        """Keine parallelen Sitzungen desselben Kurses.

        Mit department_conflicts zusätzlich: Pflichtkurse, die sich eine
        Fachrichtung teilen und in Stufe und Semester übereinstimmen, dürfen
        sich nicht überschneiden.
        """
        result = ValidationResult()
        error = _range_error(start, end)
        if error:
            return result.fail(error)
        for entry in entries:
            if entry.id == exclude_id or not entry.overlaps(day, start, end):
                continue
            if entry.course_id == course.id:
                result.fail(f"Kurs {course.id} hat bereits {entry.day} {entry.time_range}")
                break
            if not department_conflicts or course.category != "compulsory":
                continue
            other = self._courses.get(entry.course_id)
            if other is None or other.category != "compulsory":
                continue
            if other.level != course.level or other.semester != course.semester:
                continue
            shared = course.department_names & other.department_names
            if shared:
                result.fail(
                    f"Pflichtkurs {other.id} derselben Fachrichtung "
                    f"({', '.join(sorted(shared))}) liegt {entry.day} {entry.time_range}"
                )
                break
        return result
