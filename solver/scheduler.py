"""SchedulingEngine: erstellt einen Vorlesungsplan in vier Phasen.

Seeding     – feste Termine werden unverändert übernommen
Placing     – übrige Sitzungen greedy nach Schwierigkeit einplanen
Optimizing  – lokale Suche (Hill-Climbing / Simulated Annealing)
Done        – Ergebnis, Kennzahlen und Liste der offenen Kurse

Harte Constraints (immer erfüllt):
  H1  Kein Raum doppelt belegt
  H2  Keine Lehrkraft doppelt belegt
  H3  Lehrkraft nur innerhalb ihrer Arbeitszeiten
  H4  Raum nur innerhalb seiner Verfügbarkeit, Typ und Kapazität passend
  H5  Keine parallelen Sitzungen eines Kurses; Pflichtkurse einer
      Fachrichtung (gleiche Stufe + Semester) überschneiden sich nicht

Weiche Ziele (lokale Suche):
  S1  Raumauslastung nahe am Ideal
  S2  Gleichmäßige Tagesbelastung der Lehrkräfte
"""

import logging
import math
import random
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional

from pydantic import BaseModel

from analysis.quality_report import ScheduleMetrics, calculate_schedule_metrics
from config.schema import SchedulerSettings
from models.classroom import ClassroomRecord
from models.course import CourseRecord
from models.schedule import ScheduleEntry
from models.teacher import TeacherRecord
from solver.constraints import ConstraintValidator, room_suits_session
from solver.errors import FailureReason, PlacementFailure
from solver.local_search import LocalSearch
from solver.pinning import PinManager
from solver.scoring import capacity_fit_score, course_difficulty
from solver.time_grid import blocks_for_grid, consecutive_runs
from solver.timeout import TimeoutManager

logger = logging.getLogger(__name__)


# ─── Ergebnis-Modelle ─────────────────────────────────────────────────────────

class EngineState(str, Enum):
    SEEDING = "seeding"
    PLACING = "placing"
    OPTIMIZING = "optimizing"
    DONE = "done"


class UnscheduledCourse(BaseModel):
    """Ein Kurs, von dem mindestens eine Sitzung nicht eingeplant wurde."""

    id: str
    name: str
    code: str
    total_hours: int
    student_count: int
    reason: FailureReason
    failed_sessions: list[PlacementFailure]


class SchedulerResult(BaseModel):
    """Vollständiges Ergebnis eines Planungslaufs."""

    success: bool
    message: str
    scheduled_count: int
    unscheduled_count: int
    success_rate: float
    schedule: list[ScheduleEntry]
    unscheduled: list[UnscheduledCourse]
    perfect: bool
    metrics: ScheduleMetrics
    duration_ms: float
    timed_out: bool = False
    warnings: list[str] = []
    score: float = 0.0

    def get_course_schedule(self, course_id: str) -> list[ScheduleEntry]:
        """Alle Einträge eines Kurses."""
        return [e for e in self.schedule if e.course_id == course_id]

    def get_classroom_schedule(self, classroom_id: str) -> list[ScheduleEntry]:
        """Alle Einträge eines Raums."""
        return [e for e in self.schedule if e.classroom_id == classroom_id]

    def save_json(self, path: Path) -> None:
        """Speichert das Ergebnis als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SchedulerResult":
        """Lädt ein gespeichertes Ergebnis aus JSON."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Ergebnis nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())


# Fortschritt: (Phase, Prozent innerhalb der Phase, Meldung)
ProgressCallback = Callable[[EngineState, float, str], None]


@dataclass
class _Candidate:
    day: str
    start: str
    end: str
    room: ClassroomRecord


# ─── Engine ───────────────────────────────────────────────────────────────────

class SchedulingEngine:
    """Platzierung + lokale Suche für einen einzelnen Lauf.

    Verwendung:
        engine = SchedulingEngine(courses, classrooms, settings, seed=42)
        result = engine.run()
    """

    def __init__(
        self,
        courses: Iterable[CourseRecord],
        classrooms: Iterable[ClassroomRecord],
        settings: Optional[SchedulerSettings] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
        timeout: Optional[TimeoutManager] = None,
    ) -> None:
        self.courses = list(courses)
        self.classrooms = list(classrooms)
        self.settings = settings or SchedulerSettings()
        self.rng = rng or random.Random(seed)
        self.progress_callback = progress_callback

        self.course_map = {c.id: c for c in self.courses}
        self.room_map = {r.id: r for r in self.classrooms}
        self.active_courses = [c for c in self.courses if c.is_active]
        self.active_rooms = [r for r in self.classrooms if r.is_active]

        self.validator = ConstraintValidator(self.courses)
        self.blocks = blocks_for_grid(self.settings.time_grid)
        self.days = list(self.settings.time_grid.days)

        perf = self.settings.performance
        self._external_timeout = timeout is not None
        self.timeout = timeout or TimeoutManager(perf.timeout_ms, perf.timeout_check_interval_ms)

        self._teachers: dict[str, Optional[TeacherRecord]] = {}
        self._reset()

    # ─── Hauptmethode ───

    def run(self) -> SchedulerResult:
        """Führt alle Phasen aus. Wirft nur UnknownReferenceError.

        Jeder Aufruf beginnt mit leerem Plan.
        """
        started = time.monotonic()
        self._reset()
        if not self._external_timeout:
            self.timeout.reset()
        logger.info(
            f"Planungslauf: {len(self.active_courses)} aktive Kurse, "
            f"{len(self.active_rooms)} aktive Räume, {len(self.blocks)} Blöcke/Tag"
        )

        self.state = EngineState.SEEDING
        self._seed()

        self.state = EngineState.PLACING
        self._place_all()

        self.state = EngineState.OPTIMIZING
        score = self._optimize()

        self.state = EngineState.DONE
        duration_ms = (time.monotonic() - started) * 1000
        result = self._build_result(duration_ms, score)
        self._report(100.0, result.message)
        logger.info(result.message)
        return result

    def _reset(self) -> None:
        self.state = EngineState.SEEDING
        self._entries: list[ScheduleEntry] = []
        self._pinned: list[ScheduleEntry] = []
        self._failures: dict[str, list[PlacementFailure]] = {}
        self._teacher_load: dict[tuple[str, str], int] = {}
        self._warnings: list[str] = []
        self._timed_out = False
        self._counter = 0

    # ─── Phase 1: Seeding ───

    def _seed(self) -> None:
        pins = PinManager(self.classrooms)
        self._pinned = pins.seed(self.active_courses)
        self._warnings.extend(pins.warnings)
        for entry in self._pinned:
            self._add(entry)
        self._report(100.0, f"{len(self._pinned)} feste Termine übernommen")

    # ─── Phase 2: Placing ───

    def _ordered_courses(self) -> list[CourseRecord]:
        """Schwere Kurse zuerst; Gleichstand: geringere Lehrerlast zuerst."""
        weights = self.settings.difficulty

        def key(course: CourseRecord):
            students = course.adjusted_student_count
            suitable = sum(
                1 for r in self.active_rooms
                if any(room_suits_session(r, s.session_type, students) for s in course.sessions)
            )
            load = sum(v for (t, _), v in self._teacher_load.items() if t == course.teacher_id)
            return (-course_difficulty(course, suitable, weights), load, course.id)

        return sorted(self.active_courses, key=key)

    def _place_all(self) -> None:
        ordered = self._ordered_courses()
        for i, course in enumerate(ordered):
            self._place_course(course)
            self._report((i + 1) / len(ordered) * 100, f"Kurs {course.id} bearbeitet")
        placed = len(self._entries) - len(self._pinned)
        logger.info(
            f"Platzierung: {placed} Sitzungen eingeplant, "
            f"{sum(len(f) for f in self._failures.values())} offen"
        )

    def _place_course(self, course: CourseRecord) -> None:
        features = self.settings.features
        for session in PinManager.remaining_sessions(course, self._pinned):
            entry, reason = self._find_slot(course, session.session_type, session.hours)
            if entry is not None:
                continue
            if reason != "timeout":
                if features.enable_session_splitting and session.hours >= 2:
                    if self._try_split(course, session.session_type, session.hours):
                        continue
                if features.enable_backtracking:
                    if self._try_backtrack(course, session.session_type, session.hours):
                        continue
            self._fail(course, session.session_type, session.hours, reason)

    def _find_slot(
        self, course: CourseRecord, session_type: str, hours: int,
        day: Optional[str] = None,
    ) -> tuple[Optional[ScheduleEntry], Optional[FailureReason]]:
        """Sucht den besten freien Platz und trägt ihn ein."""
        if self._check_timeout():
            return None, "timeout"
        teacher = self._teacher(course)
        candidates, reason = self._candidates(course, teacher, session_type, hours, day)
        if not candidates:
            return None, reason

        max_attempts = self.settings.performance.max_placement_attempts
        for attempt, cand in enumerate(candidates):
            if attempt >= max_attempts:
                break
            if self._check_timeout():
                return None, "timeout"
            if self._is_free(course, teacher, cand):
                entry = self._new_entry(course, cand, session_type, hours)
                self._add(entry)
                return entry, None
        return None, "conflict"

    def _candidates(
        self, course: CourseRecord, teacher: Optional[TeacherRecord],
        session_type: str, hours: int, only_day: Optional[str] = None,
    ) -> tuple[list[_Candidate], Optional[FailureReason]]:
        """Alle (Tag, Blockfolge, Raum) nach Vorfiltern, sortiert nach Priorität.

        Reihenfolge: Kapazitäts-Passung ↓, Lehrerlast am Tag ↑,
        Vorrang-Fachrichtung, Theorie+Labor am selben Tag, Rasterposition.
        """
        students = course.adjusted_student_count
        type_rooms = [r for r in self.active_rooms if r.suits(session_type)]
        if not type_rooms:
            return [], "no_classroom"
        rooms = [r for r in type_rooms if r.capacity >= students]
        if not rooms:
            return [], "capacity"
        hours_map = teacher.working_hours if teacher is not None else None
        if teacher is not None and (hours_map is None or hours_map.warning is not None):
            return [], "no_teacher_slot"

        paired_days: set[str] = set()
        if self.settings.features.enable_combined_theory_lab and session_type != "combined":
            paired_days = {
                e.day for e in self._entries
                if e.course_id == course.id and e.session_type != session_type
            }

        capacity = self.settings.capacity
        days = [only_day] if only_day else self.days
        runs = consecutive_runs(self.blocks, hours)
        scored = []
        teacher_ok = False
        for d_idx, day in enumerate(days):
            load = self._teacher_load.get((teacher.id, day), 0) if teacher else 0
            for r_idx, run in enumerate(runs):
                start, end = run[0].start, run[-1].end
                if hours_map is not None and not hours_map.covers(day, start, end):
                    continue
                teacher_ok = True
                for room_idx, room in enumerate(rooms):
                    if not room.availability.covers(day, start, end):
                        continue
                    prio = room.priority_department
                    key = (
                        -capacity_fit_score(students, room.capacity, capacity),
                        load,
                        0 if prio and prio in course.department_names else 1,
                        0 if day in paired_days else 1,
                        d_idx, r_idx, room_idx,
                    )
                    scored.append((key, _Candidate(day, start, end, room)))

        if not scored:
            return [], ("no_classroom" if teacher_ok or not runs else "no_teacher_slot")
        scored.sort(key=lambda item: item[0])
        return [cand for _, cand in scored], None

    def _is_free(self, course: CourseRecord, teacher: Optional[TeacherRecord],
                 cand: _Candidate, entries: Optional[list[ScheduleEntry]] = None) -> bool:
        entries = self._entries if entries is None else entries
        args = (cand.day, cand.start, cand.end, entries)
        return (
            self.validator.validate_teacher(teacher, *args).valid
            and self.validator.validate_classroom(cand.room, *args).valid
            and self.validator.validate_student_groups(
                course, *args,
                department_conflicts=self.settings.features.enable_department_conflicts,
            ).valid
        )

    def _try_split(self, course: CourseRecord, session_type: str, hours: int) -> bool:
        """Teilt eine Sitzung in zwei Teile am selben Tag (ceil(h/2) + Rest)."""
        first = math.ceil(hours / 2)
        second = hours - first
        for day in self.days:
            part1, _ = self._find_slot(course, session_type, first, day=day)
            if part1 is None:
                continue
            part2, _ = self._find_slot(course, session_type, second, day=day)
            if part2 is not None:
                logger.debug(f"Kurs {course.id}: {hours}h aufgeteilt in {first}h + {second}h ({day})")
                return True
            self._remove(part1)
        return False

    def _try_backtrack(self, course: CourseRecord, session_type: str, hours: int) -> bool:
        """Verdrängt genau eine blockierende Sitzung und plant sie neu ein."""
        teacher = self._teacher(course)
        candidates, _ = self._candidates(course, teacher, session_type, hours)
        max_attempts = self.settings.performance.max_placement_attempts
        for cand in candidates[:max_attempts]:
            if self._check_timeout():
                return False
            blockers = [
                e for e in self._entries
                if e.overlaps(cand.day, cand.start, cand.end)
                and not self._is_free(course, teacher, cand, entries=[e])
            ]
            if len(blockers) != 1 or blockers[0].is_hardcoded:
                continue
            victim = blockers[0]
            self._remove(victim)
            if not self._is_free(course, teacher, cand):
                self._add(victim)
                continue
            entry = self._new_entry(course, cand, session_type, hours)
            self._add(entry)
            victim_course = self.course_map[victim.course_id]
            replacement, _ = self._find_slot(
                victim_course, victim.session_type, victim.session_hours
            )
            if replacement is not None:
                logger.debug(f"Backtracking: {victim.course_id} verdrängt für {course.id}")
                return True
            self._remove(entry)
            self._add(victim)
        return False

    # ─── Phase 3: Optimizing ───

    def _optimize(self) -> float:
        search = LocalSearch(
            courses=self.course_map,
            classrooms=self.classrooms,
            settings=self.settings,
            validator=self.validator,
            blocks=self.blocks,
            rng=self.rng,
            timeout=self.timeout,
            unscheduled_units=self._unscheduled_units(),
            on_iteration=self._on_iteration,
        )
        if self._timed_out or self.settings.hill_climbing.iterations == 0:
            return search.score(self._entries)
        result = search.run(self._entries)
        self._timed_out = self._timed_out or result.timed_out
        self._entries = result.entries
        return result.score

    def _on_iteration(self, step: int, steps: int, best: float) -> None:
        if step % 10 == 0 or step == steps:
            self._report(step / steps * 100, f"Iteration {step}/{steps}, Score {best:.1f}")

    # ─── Phase 4: Done ───

    def _build_result(self, duration_ms: float, score: float) -> SchedulerResult:
        day_order = {d: i for i, d in enumerate(self.days)}
        schedule = sorted(
            self._entries,
            key=lambda e: (day_order.get(e.day, len(day_order)), e.start_time, e.classroom_id),
        )

        unscheduled = []
        for course in self.active_courses:
            failures = self._failures.get(course.id)
            if not failures:
                continue
            unscheduled.append(UnscheduledCourse(
                id=course.id,
                name=course.name,
                code=course.code,
                total_hours=course.total_hours or course.required_hours,
                student_count=course.student_count,
                reason=failures[0].reason,
                failed_sessions=failures,
            ))

        total = len(self.active_courses)
        scheduled_count = total - len(unscheduled)
        success_rate = scheduled_count / total if total else 1.0
        perfect = not unscheduled

        if perfect:
            message = f"Alle {total} Kurse eingeplant ({len(schedule)} Einträge)"
        else:
            message = (f"{scheduled_count} von {total} Kursen vollständig eingeplant, "
                       f"{len(unscheduled)} offen")
        if self._timed_out:
            message += " – Zeitlimit erreicht, beste bisherige Lösung"

        return SchedulerResult(
            success=scheduled_count > 0 or total == 0,
            message=message,
            scheduled_count=scheduled_count,
            unscheduled_count=len(unscheduled),
            success_rate=success_rate,
            schedule=schedule,
            unscheduled=unscheduled,
            perfect=perfect,
            metrics=calculate_schedule_metrics(schedule, self.course_map, self.room_map),
            duration_ms=duration_ms,
            timed_out=self._timed_out,
            warnings=self._collect_warnings(),
            score=score,
        )

    def _collect_warnings(self) -> list[str]:
        warnings = list(self._warnings)
        for course in self.active_courses:
            hours = course.working_hours
            if hours is not None and hours.warning is not None:
                warnings.append(str(hours.warning))
            elif hours is None and course.teacher_id:
                warnings.append(f"Kurs {course.id}: keine Arbeitszeiten für {course.teacher_id}")
        for room in self.active_rooms:
            if room.availability.warning is not None:
                warnings.append(str(room.availability.warning))
        return list(dict.fromkeys(warnings))

    # ─── Hilfsfunktionen ───

    def _teacher(self, course: CourseRecord) -> Optional[TeacherRecord]:
        if course.id not in self._teachers:
            self._teachers[course.id] = TeacherRecord.from_course(course)
        return self._teachers[course.id]

    def _new_entry(self, course: CourseRecord, cand: _Candidate,
                   session_type: str, hours: int) -> ScheduleEntry:
        self._counter += 1
        return ScheduleEntry(
            id=f"E{self._counter:04d}",
            course_id=course.id,
            classroom_id=cand.room.id,
            day=cand.day,
            start_time=cand.start,
            end_time=cand.end,
            session_type=session_type,
            session_hours=hours,
        )

    def _add(self, entry: ScheduleEntry) -> None:
        self._entries.append(entry)
        teacher_id = self.validator.teacher_of(entry.course_id)
        if teacher_id:
            key = (teacher_id, entry.day)
            self._teacher_load[key] = self._teacher_load.get(key, 0) + entry.session_hours

    def _remove(self, entry: ScheduleEntry) -> None:
        self._entries = [e for e in self._entries if e.id != entry.id]
        teacher_id = self.validator.teacher_of(entry.course_id)
        if teacher_id:
            key = (teacher_id, entry.day)
            self._teacher_load[key] = self._teacher_load.get(key, 0) - entry.session_hours

    def _fail(self, course: CourseRecord, session_type: str, hours: int,
              reason: Optional[FailureReason]) -> None:
        failure = PlacementFailure(
            course_id=course.id,
            session_type=session_type,
            hours=hours,
            reason=reason or "conflict",
            detail=_REASON_TEXT.get(reason or "conflict", ""),
        )
        logger.warning(
            f"Kurs {course.id}: {session_type}-Sitzung ({hours}h) nicht einplanbar – "
            f"{failure.detail}"
        )
        self._failures.setdefault(course.id, []).append(failure)

    def _unscheduled_units(self) -> int:
        return sum(len(f) for f in self._failures.values())

    def _check_timeout(self) -> bool:
        if self.timeout.is_timed_out():
            if not self._timed_out:
                logger.info(f"Zeitlimit erreicht nach {self.timeout.get_elapsed_ms():.0f}ms")
            self._timed_out = True
        return self._timed_out

    def _report(self, percent: float, message: str) -> None:
        if self.progress_callback is None or not self.settings.features.enable_progress_reporting:
            return
        self.progress_callback(self.state, round(percent, 1), message)


_REASON_TEXT: dict[str, str] = {
    "no_teacher_slot": "Lehrkraft hat keine passende freie Zeit",
    "no_classroom": "Kein passender Raum verfügbar",
    "capacity": "Kein Raum mit ausreichender Kapazität",
    "conflict": "Alle Kandidaten kollidieren mit bestehenden Einträgen",
    "timeout": "Zeitlimit erreicht",
}
