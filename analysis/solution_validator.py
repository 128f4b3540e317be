"""Post-Solve Validierung fertiger Vorlesungspläne.

Prüft das Ergebnis auf Constraint-Verletzungen als Sicherheitsnetz
unabhängig von der Engine.
"""

from itertools import combinations
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel

from models.classroom import ClassroomRecord
from models.course import CourseRecord
from models.schedule import ScheduleEntry
from solver.pinning import PinManager

if TYPE_CHECKING:
    from solver.scheduler import SchedulerResult


class ValidationViolation(BaseModel):
    """Eine einzelne Constraint-Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "teacher_double_booking"
    description: str
    entity: str          # teacher_id / course_id / classroom_id


class ValidationReport(BaseModel):
    """Ergebnis der Post-Solve Validierung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        errors = [v for v in self.violations if v.severity == "error"]
        warnings = [v for v in self.violations if v.severity == "warning"]

        status = (
            "[bold green]✓ VALIDE[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(errors)} | Warnungen: {len(warnings)}"]
        console.print(Panel("\n".join(lines), title="Lösung-Validierung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Constraint", width=28)
        table.add_column("Entität", width=12)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


class SolutionValidator:
    """Prüft ein fertiges SchedulerResult auf Constraint-Verletzungen."""

    def validate(
        self,
        result: "SchedulerResult",
        courses: list[CourseRecord],
        classrooms: list[ClassroomRecord],
    ) -> ValidationReport:
        """Führt alle Validierungschecks durch und gibt einen ValidationReport zurück."""
        course_map = {c.id: c for c in courses}
        room_map = {r.id: r for r in classrooms}
        entries = result.schedule
        unscheduled = {u.id for u in result.unscheduled}

        violations: list[ValidationViolation] = []
        violations.extend(self._check_room_double_booking(entries))
        violations.extend(self._check_teacher_double_booking(entries, course_map))
        violations.extend(self._check_unknown_references(entries, course_map, room_map))
        violations.extend(self._check_hours(entries, courses, unscheduled))
        violations.extend(self._check_hardcoded(entries, courses))
        violations.extend(self._check_availability(entries, course_map, room_map))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_room_double_booking(
        self, entries: list[ScheduleEntry]
    ) -> list[ValidationViolation]:
        """Kein Raum darf zur selben Zeit zweimal belegt sein."""
        violations = []
        for a, b in combinations(entries, 2):
            if a.classroom_id == b.classroom_id and a.clashes_with(b):
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="room_double_booking",
                    entity=a.classroom_id,
                    description=(
                        f"{a.day} {a.time_range} / {b.time_range}: "
                        f"{a.course_id} und {b.course_id} gleichzeitig"
                    ),
                ))
        return violations

    def _check_teacher_double_booking(
        self, entries: list[ScheduleEntry], courses: dict[str, CourseRecord]
    ) -> list[ValidationViolation]:
        """Keine Lehrkraft darf zur selben Zeit zwei Sitzungen haben."""
        violations = []
        for a, b in combinations(entries, 2):
            ca, cb = courses.get(a.course_id), courses.get(b.course_id)
            if ca is None or cb is None or not ca.teacher_id:
                continue
            if ca.teacher_id == cb.teacher_id and a.clashes_with(b):
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="teacher_double_booking",
                    entity=ca.teacher_id,
                    description=(
                        f"{a.day} {a.time_range} / {b.time_range}: "
                        f"{a.course_id} und {b.course_id} gleichzeitig"
                    ),
                ))
        return violations

    def _check_unknown_references(
        self,
        entries: list[ScheduleEntry],
        courses: dict[str, CourseRecord],
        rooms: dict[str, ClassroomRecord],
    ) -> list[ValidationViolation]:
        violations = []
        for e in entries:
            if e.course_id not in courses:
                violations.append(ValidationViolation(
                    severity="error", constraint="unknown_course",
                    entity=e.course_id, description=f"Eintrag {e.id}: Kurs unbekannt",
                ))
            if e.classroom_id not in rooms:
                violations.append(ValidationViolation(
                    severity="error", constraint="unknown_classroom",
                    entity=e.classroom_id, description=f"Eintrag {e.id}: Raum unbekannt",
                ))
        return violations

    def _check_hours(
        self,
        entries: list[ScheduleEntry],
        courses: list[CourseRecord],
        unscheduled: set[str],
    ) -> list[ValidationViolation]:
        """Eingeplante Stunden = Bedarf (außer bei als offen gemeldeten Kursen)."""
        violations = []
        for course in courses:
            if not course.is_active or course.id in unscheduled:
                continue
            own = [e for e in entries if e.course_id == course.id]
            pinned = [e for e in own if e.is_hardcoded]
            expected = sum(s.hours for s in PinManager.remaining_sessions(course, pinned))
            placed = sum(e.session_hours for e in own if not e.is_hardcoded)
            if placed != expected:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="hours_mismatch",
                    entity=course.id,
                    description=f"{placed}h eingeplant, {expected}h benötigt",
                ))
        return violations

    def _check_hardcoded(
        self, entries: list[ScheduleEntry], courses: list[CourseRecord]
    ) -> list[ValidationViolation]:
        """Feste Termine stehen unverändert im Plan."""
        violations = []
        for course in courses:
            if not course.is_active:
                continue
            pinned = [e for e in entries if e.course_id == course.id and e.is_hardcoded]
            for hp in course.hardcoded_placements:
                found = any(
                    e.day == hp.day and e.start_time == hp.start_time
                    and e.end_time == hp.end_time
                    and (hp.classroom_id is None or e.classroom_id == hp.classroom_id)
                    for e in pinned
                )
                if not found:
                    violations.append(ValidationViolation(
                        severity="warning",
                        constraint="hardcoded_missing",
                        entity=course.id,
                        description=f"Fester Termin {hp.day} {hp.start_time}-{hp.end_time} fehlt",
                    ))
        return violations

    def _check_availability(
        self,
        entries: list[ScheduleEntry],
        courses: dict[str, CourseRecord],
        rooms: dict[str, ClassroomRecord],
    ) -> list[ValidationViolation]:
        """Eingeplante Sitzungen liegen in Arbeitszeit und Raumverfügbarkeit."""
        violations = []
        for e in entries:
            if e.is_hardcoded:
                continue
            course, room = courses.get(e.course_id), rooms.get(e.classroom_id)
            if course is not None and course.working_hours is not None \
                    and not course.working_hours.covers(e.day, e.start_time, e.end_time):
                violations.append(ValidationViolation(
                    severity="error", constraint="teacher_unavailable",
                    entity=course.teacher_id or course.id,
                    description=f"{e.course_id} {e.day} {e.time_range} außerhalb der Arbeitszeit",
                ))
            if room is not None and not room.availability.covers(e.day, e.start_time, e.end_time):
                violations.append(ValidationViolation(
                    severity="error", constraint="room_unavailable",
                    entity=room.id,
                    description=f"{e.course_id} {e.day} {e.time_range} außerhalb der Raumzeiten",
                ))
        return violations
