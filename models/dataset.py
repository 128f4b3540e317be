"""SchedulingDataset: Kurse, Räume und Einstellungen eines Planungslaufs + Machbarkeits-Check."""

from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from config.schema import SchedulerSettings
from models.classroom import ClassroomRecord
from models.course import CourseRecord


class FeasibilityReport(BaseModel):
    """Ergebnis des Machbarkeits-Checks."""

    is_feasible: bool
    errors: list[str]      # Kritische Probleme (Lösung unmöglich)
    warnings: list[str]    # Hinweise (Lösung schwierig aber möglich)

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel

        console = Console()
        if self.is_feasible:
            status = "[bold green]✓ LÖSBAR[/bold green]"
        else:
            status = "[bold red]✗ NICHT LÖSBAR[/bold red]"

        lines = [status]
        if self.errors:
            lines.append("\n[red bold]Fehler (kritisch):[/red bold]")
            for e in self.errors:
                lines.append(f"  [red]• {e}[/red]")
        if self.warnings:
            lines.append("\n[yellow bold]Warnungen:[/yellow bold]")
            for w in self.warnings:
                lines.append(f"  [yellow]• {w}[/yellow]")
        if not self.errors and not self.warnings:
            lines.append("[dim]Keine Probleme gefunden.[/dim]")

        console.print(Panel("\n".join(lines), title="Machbarkeits-Check", border_style="cyan"))


class SchedulingDataset(BaseModel):
    """Vollständiger Eingabedatensatz: Kurse, Räume und Engine-Einstellungen."""

    courses: list[CourseRecord]
    classrooms: list[ClassroomRecord]
    settings: SchedulerSettings = Field(default_factory=SchedulerSettings)
    created_at: Optional[datetime] = None
    data_version: str = "1.0"

    @property
    def active_courses(self) -> list[CourseRecord]:
        return [c for c in self.courses if c.is_active]

    @property
    def active_classrooms(self) -> list[ClassroomRecord]:
        return [r for r in self.classrooms if r.is_active]

    # ─── Übersicht ───

    def summary(self) -> str:
        """Kurze Übersicht über den Datensatz."""
        courses = self.active_courses
        rooms = self.active_classrooms
        total_hours = sum(c.required_hours for c in courses)
        teachers = {c.teacher_id for c in courses if c.teacher_id}
        labs = sum(1 for r in rooms if r.room_type in ("lab", "hybrid"))
        pinned = sum(len(c.hardcoded_placements) for c in courses)
        lines = [
            f"Kurse (aktiv): {len(courses)} von {len(self.courses)}",
            f"Sitzungsstunden gesamt: {total_hours}h/Woche",
            f"Lehrkräfte: {len(teachers)}",
            f"Räume (aktiv): {len(rooms)} ({labs} Labor/Hybrid)",
            f"Gesamtkapazität: {sum(r.capacity for r in rooms)} Plätze",
            f"Feste Termine: {pinned}" if pinned else "",
        ]
        return "\n".join(l for l in lines if l)

    # ─── Machbarkeits-Check ───

    def validate_feasibility(self) -> FeasibilityReport:
        """Prüft ob der Datensatz grundsätzlich lösbar ist.

        Prüfungen:
        1. Eindeutige IDs für Kurse und Räume
        2. Feste Termine verweisen auf existierende Räume
        3. Pro Sitzung: mindestens ein passender Raum (Typ + Kapazität)
        4. Gesamtbilanz: Stundenbedarf ≤ Raum-Slots der Woche
        5. Pro Lehrkraft: Stundenbedarf ≤ Slots der Woche
        6. Verfügbarkeitsdaten lesbar
        """
        from solver.time_grid import blocks_for_grid

        errors: list[str] = []
        warnings: list[str] = []

        courses = self.active_courses
        rooms = self.active_classrooms
        room_ids = {r.id for r in self.classrooms}

        # ── 1. Eindeutige IDs ───────────────────────────────────────────
        for label, ids in (("Kurs", [c.id for c in self.courses]),
                           ("Raum", [r.id for r in self.classrooms])):
            for dup, n in Counter(ids).items():
                if n > 1:
                    errors.append(f"{label}-ID '{dup}' ist {n}× vergeben.")

        if not courses:
            warnings.append("Keine aktiven Kurse – es gibt nichts einzuplanen.")
        if not rooms:
            errors.append("Keine aktiven Räume vorhanden.")

        # ── 2. Feste Termine ────────────────────────────────────────────
        for course in courses:
            for hp in course.hardcoded_placements:
                if hp.classroom_id and hp.classroom_id not in room_ids:
                    errors.append(
                        f"Kurs {course.id}: fester Termin {hp.day} {hp.start_time} "
                        f"verweist auf unbekannten Raum '{hp.classroom_id}'."
                    )

        # ── 3. Passender Raum je Sitzung ───────────────────────────────
        for course in courses:
            students = course.adjusted_student_count
            for session in course.sessions:
                if not any(r.suits(session.session_type, students) for r in rooms):
                    errors.append(
                        f"Kurs {course.id}: kein Raum für {session.session_type}-Sitzung "
                        f"mit {students} Teilnehmern."
                    )
            if course.working_hours is None and course.teacher_id:
                warnings.append(
                    f"Kurs {course.id}: keine Arbeitszeiten für Lehrkraft "
                    f"{course.teacher_id} hinterlegt – Kurs nicht einplanbar."
                )
            elif course.working_hours is not None and course.working_hours.warning:
                warnings.append(str(course.working_hours.warning))
            if course.total_hours and course.total_hours != course.required_hours:
                warnings.append(
                    f"Kurs {course.id}: total_hours ({course.total_hours}) ≠ "
                    f"Summe der Sitzungen ({course.required_hours})."
                )

        for room in rooms:
            if room.availability.warning:
                warnings.append(str(room.availability.warning))

        # ── 4. Gesamtbilanz ────────────────────────────────────────────
        grid = self.settings.time_grid
        hours_per_day = sum(b.minutes for b in blocks_for_grid(grid)) // 60
        week_hours = hours_per_day * len(grid.days)
        total_need = sum(c.required_hours for c in courses)
        room_capacity = week_hours * len(rooms)
        if total_need > room_capacity:
            errors.append(
                f"Gesamtbilanz: {total_need}h Bedarf, aber nur {room_capacity} Raum-Stunden "
                f"({len(rooms)} Räume × {week_hours}h)."
            )
        elif room_capacity and total_need > room_capacity * 0.85:
            warnings.append(
                f"Raumauslastung sehr hoch: {total_need}/{room_capacity}h "
                f"({total_need / room_capacity * 100:.0f}%)."
            )

        # ── 5. Pro Lehrkraft ───────────────────────────────────────────
        teacher_need: dict[str, int] = {}
        for course in courses:
            if course.teacher_id:
                teacher_need[course.teacher_id] = (
                    teacher_need.get(course.teacher_id, 0) + course.required_hours
                )
        for teacher_id, need in teacher_need.items():
            if need > week_hours:
                errors.append(
                    f"Lehrkraft {teacher_id}: {need}h Bedarf bei nur {week_hours} Wochenstunden im Raster."
                )

        return FeasibilityReport(
            is_feasible=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    # ─── Persistenz ────────────────────────────────────────────────────────

    def save_json(self, path: Path) -> None:
        """Speichert den kompletten Datensatz als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        updated = self.model_copy(update={
            "created_at": self.created_at or datetime.now(timezone.utc),
        })
        with open(path, "w", encoding="utf-8") as f:
            f.write(updated.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SchedulingDataset":
        """Lädt einen Datensatz aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
