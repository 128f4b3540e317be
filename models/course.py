"""Datenmodell für einen Kurs mit Sitzungen, Fachrichtungen und Fixierungen (Pydantic v2)."""

import math
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from config.defaults import normalize_day
from models.availability import Availability, parse_availability
from models.timeslot import duration_hours, time_to_minutes

SessionType = Literal["theoretical", "lab", "combined"]


class Session(BaseModel):
    """Eine Lehreinheit eines Typs mit festem Wochenstunden-Bedarf."""

    session_type: SessionType = "theoretical"
    hours: int = Field(ge=1)


class DepartmentShare(BaseModel):
    """Anteil einer Fachrichtung an den Teilnehmern des Kurses."""

    department: str
    student_count: int = Field(0, ge=0)


class HardcodedPlacement(BaseModel):
    """Von der Verwaltung fest vorgegebener Termin (wird nie verschoben)."""

    session_type: SessionType = "theoretical"
    day: str
    start_time: str
    end_time: str
    classroom_id: Optional[str] = None

    @field_validator("day")
    @classmethod
    def _normalize_day(cls, v: str) -> str:
        return normalize_day(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        time_to_minutes(v)
        return v.strip()

    @property
    def hours(self) -> int:
        return duration_hours(self.start_time, self.end_time)


class CourseRecord(BaseModel):
    """Ein Kurs, wie ihn die Datenhaltung liefert."""

    id: str
    name: str = ""
    code: str = ""
    teacher_id: Optional[str] = None
    teacher_name: Optional[str] = None
    faculty: str = ""
    level: str = ""
    category: Literal["compulsory", "elective"] = "compulsory"
    semester: str = ""
    total_hours: int = Field(0, ge=0)
    capacity_margin: float = Field(0.0, ge=0, le=100)   # Prozent
    sessions: list[Session] = []
    departments: list[DepartmentShare] = []
    # Rohdaten (Mapping oder JSON-Text); None = keine Angabe
    teacher_working_hours: Any = Field(default_factory=dict)
    hardcoded_placements: list[HardcodedPlacement] = []
    is_active: bool = True

    _working_hours: Optional[Availability] = PrivateAttr(default=None)

    def model_post_init(self, __context) -> None:
        # Einmal an der Eingabegrenze parsen
        if self.teacher_working_hours is not None:
            self._working_hours = parse_availability(
                self.teacher_working_hours,
                source=f"Kurs {self.id}: Arbeitszeiten",
            )

    @property
    def working_hours(self) -> Optional[Availability]:
        """Geparste Arbeitszeiten der Lehrkraft; None wenn nicht angegeben."""
        return self._working_hours

    @property
    def student_count(self) -> int:
        return sum(d.student_count for d in self.departments)

    @property
    def adjusted_student_count(self) -> int:
        """Teilnehmer abzüglich Kapazitäts-Toleranz (aufgerundet)."""
        students = self.student_count
        if self.capacity_margin > 0:
            return math.ceil(students * (1 - self.capacity_margin / 100))
        return students

    @property
    def main_department(self) -> Optional[str]:
        return self.departments[0].department if self.departments else None

    @property
    def department_names(self) -> set[str]:
        return {d.department for d in self.departments}

    @property
    def required_hours(self) -> int:
        """Summe der Sitzungsstunden."""
        return sum(s.hours for s in self.sessions)

    @property
    def has_lab(self) -> bool:
        return any(s.session_type == "lab" for s in self.sessions)

    @property
    def label(self) -> str:
        return f"{self.code} {self.name}".strip() or self.id
