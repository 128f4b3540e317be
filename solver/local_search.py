"""Lokale Suche: Hill-Climbing mit optionalem Simulated Annealing.

Pro Iteration wird genau ein zufälliger Zug gezogen (Stichprobe statt
vollständiger Nachbarschaft):
- Verschieben: ein Eintrag an einen anderen Tag/Beginn/Raum
- Tauschen: Zeitbereiche zweier gleich langer Einträge tauschen

Feste Einträge (is_hardcoded) werden nie bewegt. Ein Zug wird nur
angewendet, wenn der Plan danach alle harten Constraints erfüllt.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Optional

from config.schema import SchedulerSettings
from models.classroom import ClassroomRecord
from models.course import CourseRecord
from models.schedule import ScheduleEntry
from models.teacher import TeacherRecord
from models.timeslot import TimeBlock
from solver.constraints import ConstraintValidator, room_suits_session
from solver.scoring import schedule_score
from solver.time_grid import consecutive_runs
from solver.timeout import TimeoutManager

logger = logging.getLogger(__name__)

IterationCallback = Callable[[int, int, float], None]


@dataclass
class LocalSearchResult:
    entries: list[ScheduleEntry]
    score: float
    initial_score: float
    iterations: int = 0
    accepted_moves: int = 0
    improving_moves: int = 0
    timed_out: bool = False


def geometric_temperature(step: int, steps: int, t_start: float, t_end: float) -> float:
    """Geometrische Abkühlung: T = T_start · (T_end/T_start)^(step/(steps-1))."""
    if steps <= 1:
        return t_start
    frac = step / (steps - 1)
    return t_start * ((t_end / t_start) ** frac)


class LocalSearch:
    """Verbessert einen gültigen Plan durch zufällige Züge."""

    def __init__(
        self,
        courses: dict[str, CourseRecord],
        classrooms: list[ClassroomRecord],
        settings: SchedulerSettings,
        validator: ConstraintValidator,
        blocks: list[TimeBlock],
        rng: random.Random,
        timeout: TimeoutManager,
        unscheduled_units: int = 0,
        on_iteration: Optional[IterationCallback] = None,
    ) -> None:
        self.courses = courses
        self.classrooms = [r for r in classrooms if r.is_active]
        self.room_map = {r.id: r for r in classrooms}
        self.settings = settings
        self.validator = validator
        self.blocks = blocks
        self.rng = rng
        self.timeout = timeout
        self.unscheduled_units = unscheduled_units
        self.on_iteration = on_iteration
        self._teachers: dict[str, Optional[TeacherRecord]] = {}
        self._runs: dict[int, list[list[TimeBlock]]] = {}

    # ─── Bewertung ───

    def score(self, entries: list[ScheduleEntry]) -> float:
        return schedule_score(
            entries, self.courses, self.room_map,
            self.settings.capacity, self.settings.objective,
            self.settings.time_grid.days, self.unscheduled_units,
        )

    # ─── Hauptschleife ───

    def run(self, entries: list[ScheduleEntry]) -> LocalSearchResult:
        steps = self.settings.hill_climbing.iterations
        annealing = self.settings.annealing
        use_annealing = self.settings.features.enable_simulated_annealing

        current = list(entries)
        current_score = self.score(current)
        best, best_score = list(current), current_score
        result = LocalSearchResult(entries=best, score=best_score,
                                   initial_score=current_score)

        for step in range(steps):
            if self.timeout.is_timed_out():
                result.timed_out = True
                logger.info(f"Zeitlimit in Iteration {step} erreicht – beste Lösung wird übernommen")
                break
            result.iterations += 1

            candidate = self._propose(current)
            if candidate is not None:
                cand_score = self.score(candidate)
                delta = cand_score - current_score
                accept = delta > 0
                if not accept and use_annealing:
                    t = geometric_temperature(step, steps, annealing.initial_temperature,
                                              annealing.final_temperature)
                    accept = self.rng.random() < math.exp(delta / t)
                if accept:
                    result.accepted_moves += 1
                    if delta > 0:
                        result.improving_moves += 1
                    current, current_score = candidate, cand_score
                    if current_score > best_score:
                        best, best_score = list(current), current_score

            if self.on_iteration is not None:
                self.on_iteration(step + 1, steps, best_score)

        result.entries = best
        result.score = best_score
        logger.info(
            f"Lokale Suche: {result.iterations} Iterationen, "
            f"{result.accepted_moves} Züge angenommen, "
            f"Score {result.initial_score:.1f} → {best_score:.1f}"
        )
        return result

    # ─── Züge ───

    def _propose(self, entries: list[ScheduleEntry]) -> Optional[list[ScheduleEntry]]:
        movable = [i for i, e in enumerate(entries) if not e.is_hardcoded]
        if not movable:
            return None
        if self.rng.random() < self.settings.hill_climbing.relocate_probability:
            return self._relocate(entries, self.rng.choice(movable))
        return self._swap(entries, movable)

    def _relocate(self, entries: list[ScheduleEntry], idx: int) -> Optional[list[ScheduleEntry]]:
        entry = entries[idx]
        course = self.courses.get(entry.course_id)
        runs = self._runs_for(entry.session_hours)
        if course is None or not runs:
            return None
        rooms = [r for r in self.classrooms
                 if room_suits_session(r, entry.session_type, course.adjusted_student_count)]
        if not rooms:
            return None

        run = self.rng.choice(runs)
        moved = entry.model_copy(update={
            "day": self.rng.choice(self.settings.time_grid.days),
            "start_time": run[0].start,
            "end_time": run[-1].end,
            "classroom_id": self.rng.choice(rooms).id,
        })
        if (moved.day, moved.start_time, moved.classroom_id) == \
                (entry.day, entry.start_time, entry.classroom_id):
            return None

        candidate = list(entries)
        candidate[idx] = moved
        return candidate if self._is_valid(moved, candidate) else None

    def _swap(self, entries: list[ScheduleEntry], movable: list[int]) -> Optional[list[ScheduleEntry]]:
        i = self.rng.choice(movable)
        first = entries[i]
        partners = [j for j in movable
                    if j != i
                    and entries[j].session_hours == first.session_hours
                    and (entries[j].day, entries[j].start_time) != (first.day, first.start_time)]
        if not partners:
            return None
        j = self.rng.choice(partners)
        second = entries[j]

        a = first.model_copy(update={
            "day": second.day, "start_time": second.start_time, "end_time": second.end_time,
        })
        b = second.model_copy(update={
            "day": first.day, "start_time": first.start_time, "end_time": first.end_time,
        })
        candidate = list(entries)
        candidate[i], candidate[j] = a, b
        if self._is_valid(a, candidate) and self._is_valid(b, candidate):
            return candidate
        return None

    # ─── Hilfsfunktionen ───

    def _runs_for(self, hours: int) -> list[list[TimeBlock]]:
        if hours not in self._runs:
            self._runs[hours] = consecutive_runs(self.blocks, hours)
        return self._runs[hours]

    def _teacher(self, course: CourseRecord) -> Optional[TeacherRecord]:
        if course.id not in self._teachers:
            self._teachers[course.id] = TeacherRecord.from_course(course)
        return self._teachers[course.id]

    def _is_valid(self, entry: ScheduleEntry, entries: list[ScheduleEntry]) -> bool:
        """Harte Constraints für `entry` im Kontext des ganzen Kandidaten."""
        course = self.courses[entry.course_id]
        args = (entry.day, entry.start_time, entry.end_time, entries)
        if not self.validator.validate_teacher(
                self._teacher(course), *args, exclude_id=entry.id).valid:
            return False
        if not self.validator.validate_classroom(
                self.room_map.get(entry.classroom_id), *args, exclude_id=entry.id).valid:
            return False
        return self.validator.validate_student_groups(
            course, *args, exclude_id=entry.id,
            department_conflicts=self.settings.features.enable_department_conflicts,
        ).valid
