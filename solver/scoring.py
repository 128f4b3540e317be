"""Bewertungsfunktionen der Engine (rein, ohne Zustand).

capacity_fit_score      – Passung Teilnehmer ↔ Raumkapazität (höher = besser)
course_difficulty       – Reihenfolge der Einplanung (höher = früher)
teacher_load_variance   – Ungleichmäßigkeit der Lehrer-Tagesbelastung
schedule_score          – Zielfunktion der lokalen Suche
"""

import statistics
from typing import Iterable, Mapping

from config.schema import CapacitySettings, DifficultyWeights, ObjectiveWeights
from models.classroom import ClassroomRecord
from models.course import CourseRecord
from models.schedule import ScheduleEntry

# Wert für einen Raum, in den die Teilnehmer nicht passen
OVERFLOW_SCORE = -1000.0
# Knappheits-Term, wenn kein passender Raum existiert
NO_ROOM_SCARCITY = 100.0


def capacity_fit_score(students: int, capacity: int, settings: CapacitySettings) -> float:
    """Bewertet die Auslastung students/capacity.

    Ideale Auslastung → nahe 100, Überbelegung → OVERFLOW_SCORE,
    unterhalb penalty_threshold → stark abgewertet.
    """
    if capacity <= 0:
        return OVERFLOW_SCORE
    ratio = students / capacity
    lo, hi = settings.ideal_min_ratio, settings.ideal_max_ratio
    threshold = settings.penalty_threshold

    if ratio > 1:
        return OVERFLOW_SCORE
    if lo <= ratio <= hi:
        return 100 - abs(ratio - (lo + hi) / 2) * 100
    if ratio < threshold:
        return ratio * 50
    if ratio < lo:
        return 50 + (ratio - threshold) / (lo - threshold) * 40
    if hi >= 1:
        return 100.0
    return 100 - (ratio - hi) / (1 - hi) * 30


def course_difficulty(course: CourseRecord, suitable_rooms: int,
                      weights: DifficultyWeights) -> float:
    """Viele Teilnehmer, wenige passende Räume und lange Sitzungen → schwer."""
    scarcity = 1 / suitable_rooms if suitable_rooms > 0 else NO_ROOM_SCARCITY
    avg_hours = (course.required_hours / len(course.sessions)) if course.sessions else 0
    return (course.student_count * weights.student_weight_factor
            + scarcity * weights.classroom_scarcity_factor
            + avg_hours * weights.session_duration_factor)


def teacher_daily_loads(entries: Iterable[ScheduleEntry],
                        courses: Mapping[str, CourseRecord],
                        days: list[str]) -> dict[str, dict[str, int]]:
    """Lehrkraft → Tag → Stunden."""
    loads: dict[str, dict[str, int]] = {}
    for entry in entries:
        course = courses.get(entry.course_id)
        if course is None or not course.teacher_id:
            continue
        per_day = loads.setdefault(course.teacher_id, {d: 0 for d in days})
        per_day[entry.day] = per_day.get(entry.day, 0) + entry.session_hours
    return loads


def teacher_load_variance(entries: Iterable[ScheduleEntry],
                          courses: Mapping[str, CourseRecord],
                          days: list[str]) -> float:
    """Mittlere Varianz der Tagesbelastung über alle Lehrkräfte."""
    loads = teacher_daily_loads(entries, courses, days)
    if not loads:
        return 0.0
    return statistics.fmean(
        statistics.pvariance(list(per_day.values())) for per_day in loads.values()
    )


def schedule_score(entries: list[ScheduleEntry],
                   courses: Mapping[str, CourseRecord],
                   classrooms: Mapping[str, ClassroomRecord],
                   capacity: CapacitySettings,
                   objective: ObjectiveWeights,
                   days: list[str],
                   unscheduled_units: int = 0) -> float:
    """Zielfunktion: Kapazitäts-Passung − Lastvarianz − Strafe für Offenes."""
    fit = 0.0
    for entry in entries:
        course = courses.get(entry.course_id)
        room = classrooms.get(entry.classroom_id)
        if course is None or room is None:
            continue
        fit += capacity_fit_score(course.adjusted_student_count, room.capacity, capacity)
    variance = teacher_load_variance(entries, courses, days)
    return (objective.capacity_weight * fit
            - objective.load_balance_weight * variance
            - objective.unscheduled_penalty * unscheduled_units)
