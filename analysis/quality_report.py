"""Qualitätsbericht für fertige Vorlesungspläne.

Berechnet die Kennzahlen für das Lern-Log (Kapazitätsreserve, Verschwendung,
Lehrer-Lastverteilung) und einen ausführlichen Bericht pro Lehrkraft und Raum.
"""

import statistics
from collections import defaultdict
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from pydantic import BaseModel

from models.classroom import ClassroomRecord
from models.course import CourseRecord
from models.schedule import ScheduleEntry

if TYPE_CHECKING:
    from solver.scheduler import SchedulerResult


# ─── Metriken-Modelle ─────────────────────────────────────────────────────────

class ScheduleMetrics(BaseModel):
    """Kennzahlen eines Plans (auf eine Nachkommastelle gerundet)."""

    avg_capacity_margin: float = 0.0    # Ø freie Plätze in % der Raumkapazität
    max_capacity_waste: float = 0.0     # größter Leerstand in %
    teacher_load_stddev: float = 0.0    # Standardabweichung der Wochenstunden


class TeacherQualityMetrics(BaseModel):
    """Qualitäts-Metriken für eine einzelne Lehrkraft."""

    teacher_id: str
    courses: list[str]
    total_hours: int
    hours_per_day: dict[str, int]
    free_days: int


class RoomQualityMetrics(BaseModel):
    """Qualitäts-Metriken für einen einzelnen Raum."""

    classroom_id: str
    capacity: int
    sessions: int
    used_hours: int
    utilization: float        # belegte / verfügbare Rasterstunden (0.0–1.0)
    avg_fill_ratio: float     # Ø Teilnehmer / Kapazität


class ScheduleQualityReport(BaseModel):
    """Vollständiger Qualitätsbericht für ein SchedulerResult."""

    metrics: ScheduleMetrics
    teacher_metrics: list[TeacherQualityMetrics]
    room_metrics: list[RoomQualityMetrics]
    success_rate: float
    unscheduled_count: int
    score: float
    duration_ms: float


# ─── Kennzahlen ───────────────────────────────────────────────────────────────

def calculate_schedule_metrics(
    entries: Iterable[ScheduleEntry],
    courses: Mapping[str, CourseRecord],
    classrooms: Mapping[str, ClassroomRecord],
) -> ScheduleMetrics:
    """Kapazitätsreserve, maximale Verschwendung und Lehrer-Lastverteilung."""
    margins: list[float] = []
    max_waste = 0.0
    teacher_loads: dict[str, int] = defaultdict(int)

    for entry in entries:
        course = courses.get(entry.course_id)
        room = classrooms.get(entry.classroom_id)
        if course is None or room is None:
            continue
        students = course.adjusted_student_count
        margin = ((room.capacity - students) / room.capacity * 100
                  if room.capacity > 0 else 0.0)
        margins.append(margin)
        max_waste = max(max_waste, margin)
        if course.teacher_id:
            teacher_loads[course.teacher_id] += entry.session_hours

    loads = list(teacher_loads.values())
    stddev = statistics.pstdev(loads) if len(loads) > 1 else 0.0

    return ScheduleMetrics(
        avg_capacity_margin=round(statistics.fmean(margins), 1) if margins else 0.0,
        max_capacity_waste=round(max_waste, 1),
        teacher_load_stddev=round(stddev, 1),
    )


# ─── Analyzer ─────────────────────────────────────────────────────────────────

class QualityAnalyzer:
    """Berechnet Qualitätsmetriken für ein fertiges SchedulerResult."""

    def __init__(self, days: Optional[list[str]] = None,
                 hours_per_day: int = 9) -> None:
        self.days = days or ["monday", "tuesday", "wednesday", "thursday", "friday"]
        self.hours_per_day = hours_per_day

    def analyze(
        self,
        result: "SchedulerResult",
        courses: list[CourseRecord],
        classrooms: list[ClassroomRecord],
    ) -> ScheduleQualityReport:
        """Hauptmethode: berechnet alle Metriken und gibt einen Report zurück."""
        course_map = {c.id: c for c in courses}
        room_map = {r.id: r for r in classrooms}

        return ScheduleQualityReport(
            metrics=calculate_schedule_metrics(result.schedule, course_map, room_map),
            teacher_metrics=self._teacher_metrics(result.schedule, course_map),
            room_metrics=self._room_metrics(result.schedule, course_map, classrooms),
            success_rate=result.success_rate,
            unscheduled_count=result.unscheduled_count,
            score=round(result.score, 2),
            duration_ms=round(result.duration_ms, 1),
        )

    def print_rich(self, report: ScheduleQualityReport) -> None:
        """Gibt den Qualitätsbericht formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()

        rate_color = (
            "green" if report.success_rate >= 0.95
            else "yellow" if report.success_rate >= 0.80
            else "red"
        )
        m = report.metrics
        console.print(Panel(
            f"Erfolgsquote: [{rate_color}]{report.success_rate:.1%}[/{rate_color}] | "
            f"Nicht eingeplant: [bold]{report.unscheduled_count}[/bold]\n"
            f"Ø Kapazitätsreserve: [bold]{m.avg_capacity_margin:.1f}%[/bold] | "
            f"Max. Leerstand: [bold]{m.max_capacity_waste:.1f}%[/bold]\n"
            f"Lehrer-Last σ: [bold]{m.teacher_load_stddev:.1f}h[/bold] | "
            f"Score: {report.score:.1f} | Zeit: {report.duration_ms:.0f}ms",
            title="Qualitätsbericht – Übersicht",
            border_style="cyan",
        ))

        # Lehrer-Tabelle
        t_table = Table(title="Lehrer-Auslastung", box=box.ROUNDED, show_lines=False)
        t_table.add_column("ID", width=10)
        t_table.add_column("Kurse", width=30)
        t_table.add_column("Stunden", justify="right", width=8)
        for day in self.days:
            t_table.add_column(day[:2].capitalize(), justify="right", width=4)
        t_table.add_column("Freie Tage", justify="right", width=10)

        for tm in sorted(report.teacher_metrics, key=lambda x: x.teacher_id):
            t_table.add_row(
                tm.teacher_id, ", ".join(tm.courses), str(tm.total_hours),
                *[str(tm.hours_per_day.get(d, 0)) for d in self.days],
                str(tm.free_days),
            )
        console.print(t_table)

        # Raum-Tabelle
        r_table = Table(title="Raum-Auslastung", box=box.ROUNDED, show_lines=False)
        r_table.add_column("Raum", width=10)
        r_table.add_column("Kap.", justify="right", width=6)
        r_table.add_column("Sitzungen", justify="right", width=10)
        r_table.add_column("Stunden", justify="right", width=8)
        r_table.add_column("Belegung", justify="right", width=9)
        r_table.add_column("Ø Füllung", justify="right", width=10)

        for rm in sorted(report.room_metrics, key=lambda x: x.classroom_id):
            fill_color = (
                "green" if 0.7 <= rm.avg_fill_ratio <= 0.9
                else "yellow" if rm.avg_fill_ratio >= 0.4
                else "red"
            )
            r_table.add_row(
                rm.classroom_id, str(rm.capacity), str(rm.sessions),
                str(rm.used_hours), f"{rm.utilization:.0%}",
                f"[{fill_color}]{rm.avg_fill_ratio:.0%}[/{fill_color}]",
            )
        console.print(r_table)

    # ── Private Berechnungen ──────────────────────────────────────────────────

    def _teacher_metrics(
        self, entries: list[ScheduleEntry], courses: Mapping[str, CourseRecord]
    ) -> list[TeacherQualityMetrics]:
        loads: dict[str, dict[str, int]] = {}
        taught: dict[str, set[str]] = defaultdict(set)
        for e in entries:
            course = courses.get(e.course_id)
            if course is None or not course.teacher_id:
                continue
            per_day = loads.setdefault(course.teacher_id, {d: 0 for d in self.days})
            per_day[e.day] = per_day.get(e.day, 0) + e.session_hours
            taught[course.teacher_id].add(course.id)

        metrics = []
        for teacher_id, per_day in loads.items():
            metrics.append(TeacherQualityMetrics(
                teacher_id=teacher_id,
                courses=sorted(taught[teacher_id]),
                total_hours=sum(per_day.values()),
                hours_per_day=dict(per_day),
                free_days=sum(1 for d in self.days if per_day.get(d, 0) == 0),
            ))
        return metrics

    def _room_metrics(
        self,
        entries: list[ScheduleEntry],
        courses: Mapping[str, CourseRecord],
        classrooms: list[ClassroomRecord],
    ) -> list[RoomQualityMetrics]:
        week_hours = self.hours_per_day * len(self.days)
        metrics = []
        for room in classrooms:
            own = [e for e in entries if e.classroom_id == room.id]
            fills = [
                courses[e.course_id].adjusted_student_count / room.capacity
                for e in own if e.course_id in courses and room.capacity > 0
            ]
            used = sum(e.session_hours for e in own)
            metrics.append(RoomQualityMetrics(
                classroom_id=room.id,
                capacity=room.capacity,
                sessions=len(own),
                used_hours=used,
                utilization=round(used / week_hours, 3) if week_hours else 0.0,
                avg_fill_ratio=round(statistics.fmean(fills), 3) if fills else 0.0,
            ))
        return metrics
