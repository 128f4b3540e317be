"""Datenmodell für eine Lehrkraft (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel

from models.availability import Availability
from models.course import CourseRecord


class TeacherRecord(BaseModel):
    """Lehrkraft-Sicht für die Verfügbarkeitsprüfung.

    working_hours=None bedeutet: keine Arbeitszeiten hinterlegt.
    """

    id: str
    name: str = ""
    working_hours: Optional[Availability] = None

    @classmethod
    def from_course(cls, course: CourseRecord) -> Optional["TeacherRecord"]:
        """Lehrkraft eines Kurses; None wenn der Kurs keine Lehrkraft hat."""
        if not course.teacher_id:
            return None
        return cls(
            id=course.teacher_id,
            name=course.teacher_name or "",
            working_hours=course.working_hours,
        )
