"""Datenmodell für einen Eintrag im fertigen Vorlesungsplan (Pydantic v2)."""

from pydantic import BaseModel, Field, field_validator

from config.defaults import normalize_day
from models.timeslot import ranges_overlap


class ScheduleEntry(BaseModel):
    """Eine eingeplante Sitzung: Kurs, Raum, Tag und Zeitbereich."""

    id: str
    course_id: str
    classroom_id: str
    day: str              # kanonisch, z.B. "monday"
    start_time: str       # "HH:MM"
    end_time: str         # "HH:MM"
    session_type: str = "theoretical"
    session_hours: int = Field(1, ge=0)
    is_hardcoded: bool = False

    @field_validator("day")
    @classmethod
    def _normalize_day(cls, v: str) -> str:
        return normalize_day(v)

    @property
    def time_range(self) -> str:
        return f"{self.start_time}-{self.end_time}"

    def overlaps(self, day: str, start: str, end: str) -> bool:
        """Gleicher Tag und überlappender Zeitbereich (halboffen)."""
        return (self.day == normalize_day(day)
                and ranges_overlap(self.start_time, self.end_time, start, end))

    def clashes_with(self, other: "ScheduleEntry") -> bool:
        return self.overlaps(other.day, other.start_time, other.end_time)
