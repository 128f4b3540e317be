"""PinManager – übernimmt feste Termine (HardcodedPlacement) vor der Suche.

Ein fester Termin wird unverändert als Eintrag übernommen und von der
lokalen Suche nie angefasst. Seine Stunden werden vom Bedarf des Kurses
abgezogen (zuerst vom gleichen Sitzungstyp, dann von den übrigen).
"""

import logging
from typing import Iterable, Optional

from models.classroom import ClassroomRecord
from models.course import CourseRecord, HardcodedPlacement, Session
from models.schedule import ScheduleEntry
from solver.errors import UnknownReferenceError

logger = logging.getLogger(__name__)


class PinManager:
    """Erzeugt die festen Einträge und den verbleibenden Stundenbedarf."""

    def __init__(self, classrooms: Iterable[ClassroomRecord]) -> None:
        self._classrooms = list(classrooms)
        self._by_id = {r.id: r for r in self._classrooms}
        self._entries: list[ScheduleEntry] = []
        self.warnings: list[str] = []

    def _resolve_room(self, course: CourseRecord,
                      pin: HardcodedPlacement) -> Optional[ClassroomRecord]:
        """Raum des Termins; ohne Angabe der erste passende aktive Raum."""
        if pin.classroom_id:
            room = self._by_id.get(pin.classroom_id)
            if room is None:
                raise UnknownReferenceError(
                    "Raum", pin.classroom_id,
                    f"fester Termin von Kurs {course.id} {pin.day} {pin.start_time}",
                )
            return room
        active = [r for r in self._classrooms if r.is_active]
        students = course.adjusted_student_count
        for room in active:
            if room.suits(pin.session_type, students):
                return room
        for room in active:
            if room.suits(pin.session_type):
                return room
        return None

    def seed(self, courses: Iterable[CourseRecord]) -> list[ScheduleEntry]:
        """Übernimmt alle festen Termine der aktiven Kurse als Einträge."""
        self._entries = []
        for course in courses:
            if not course.is_active:
                continue
            for i, pin in enumerate(course.hardcoded_placements, start=1):
                room = self._resolve_room(course, pin)
                if room is None:
                    msg = (f"Kurs {course.id}: kein passender Raum für festen Termin "
                           f"{pin.day} {pin.start_time}-{pin.end_time} – übersprungen")
                    logger.warning(msg)
                    self.warnings.append(msg)
                    continue
                entry = ScheduleEntry(
                    id=f"H-{course.id}-{i}",
                    course_id=course.id,
                    classroom_id=room.id,
                    day=pin.day,
                    start_time=pin.start_time,
                    end_time=pin.end_time,
                    session_type=pin.session_type,
                    session_hours=pin.hours,
                    is_hardcoded=True,
                )
                clash = next((e for e in self._entries
                              if e.classroom_id == entry.classroom_id
                              and e.clashes_with(entry)), None)
                if clash is not None:
                    msg = (f"Feste Termine {clash.id} und {entry.id} belegen Raum "
                           f"{room.id} gleichzeitig ({entry.day} {entry.time_range})")
                    logger.warning(msg)
                    self.warnings.append(msg)
                self._entries.append(entry)
        logger.info(f"{len(self._entries)} feste Termine übernommen")
        return list(self._entries)

    def get_pins(self) -> list[ScheduleEntry]:
        return list(self._entries)

    @staticmethod
    def remaining_sessions(course: CourseRecord,
                           pinned: Iterable[ScheduleEntry]) -> list[Session]:
        """Sitzungsbedarf des Kurses nach Abzug der festen Stunden."""
        remaining = [s.model_copy() for s in course.sessions]
        for entry in pinned:
            if entry.course_id != course.id:
                continue
            hours = entry.session_hours
            same_type = [s for s in remaining if s.session_type == entry.session_type]
            others = [s for s in remaining if s.session_type != entry.session_type]
            for session in same_type + others:
                if hours <= 0:
                    break
                take = min(hours, session.hours)
                session.hours -= take
                hours -= take
        return [s for s in remaining if s.hours > 0]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PinManager({len(self._entries)} pins)"
