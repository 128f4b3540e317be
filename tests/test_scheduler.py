"""Tests für die SchedulingEngine (Platzierung, feste Termine, Zeitlimit, lokale Suche)."""

import random
from itertools import combinations
from typing import Optional

import pytest

from config.manager import ConfigManager
from config.schema import SchedulerSettings
from models.classroom import ClassroomRecord
from models.course import CourseRecord, DepartmentShare, HardcodedPlacement, Session
from models.schedule import ScheduleEntry
from solver.constraints import ConstraintValidator
from solver.errors import UnknownReferenceError
from solver.local_search import LocalSearch
from solver.pinning import PinManager
from solver.scheduler import EngineState, SchedulerResult, SchedulingEngine
from solver.time_grid import blocks_for_grid
from solver.timeout import TimeoutManager


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def make_settings(**sections) -> SchedulerSettings:
    """Default-Einstellungen ohne Zeitlimit (deterministische Tests)."""
    patch = {"performance": {"timeout_ms": None}}
    for section, values in sections.items():
        patch.setdefault(section, {}).update(values)
    return ConfigManager().merge(patch)


def make_course(cid: str, hours: int = 4, students: int = 40, dept: Optional[str] = None,
                session_type: str = "theoretical", **kw) -> CourseRecord:
    return CourseRecord(
        id=cid,
        name=f"Kurs {cid}",
        code=cid,
        level="1",
        semester="fall",
        sessions=[Session(session_type=session_type, hours=hours)],
        departments=[DepartmentShare(department=dept or f"Fach-{cid}", student_count=students)],
        **kw,
    )


def make_room(rid: str = "A", capacity: int = 80, room_type: str = "theoretical",
              **kw) -> ClassroomRecord:
    return ClassroomRecord(id=rid, name=f"Raum {rid}", capacity=capacity,
                           room_type=room_type, **kw)


def assert_no_conflicts(result: SchedulerResult, courses: list[CourseRecord]) -> None:
    """Keine Raum-, Lehrer- oder Kurs-Doppelbelegung im Ergebnis."""
    teacher = {c.id: c.teacher_id for c in courses}
    for a, b in combinations(result.schedule, 2):
        if not a.clashes_with(b):
            continue
        assert a.classroom_id != b.classroom_id, f"Raum doppelt: {a} / {b}"
        assert a.course_id != b.course_id, f"Kurs parallel: {a} / {b}"
        if teacher[a.course_id]:
            assert teacher[a.course_id] != teacher[b.course_id], f"Lehrkraft doppelt: {a} / {b}"


def hours_of(result: SchedulerResult, course_id: str) -> int:
    return sum(e.session_hours for e in result.get_course_schedule(course_id))


# ─── PLATZIERUNG ──────────────────────────────────────────────────────────────

class TestPlacement:
    def test_two_courses_one_room(self):
        """2 Kurse à 4h, ein Raum mit 80 Plätzen → vollständig und konfliktfrei."""
        courses = [make_course("C1"), make_course("C2")]
        result = SchedulingEngine(courses, [make_room()], make_settings(), seed=1).run()
        assert result.success
        assert result.perfect
        assert result.success_rate == 1.0
        assert result.unscheduled == []
        assert hours_of(result, "C1") == 4
        assert hours_of(result, "C2") == 4
        assert_no_conflicts(result, courses)

    def test_no_courses(self):
        result = SchedulingEngine([], [make_room()], make_settings()).run()
        assert result.success
        assert result.perfect
        assert result.success_rate == 1.0
        assert result.schedule == []

    def test_capacity_failure(self):
        """Kein Raum groß genug → Kurs offen mit Grund 'capacity'."""
        courses = [make_course("C1", students=100)]
        result = SchedulingEngine(courses, [make_room(capacity=80)], make_settings()).run()
        assert not result.success
        assert not result.perfect
        assert result.unscheduled_count == 1
        assert result.unscheduled[0].reason == "capacity"
        assert result.unscheduled[0].student_count == 100

    def test_capacity_margin_allows_smaller_room(self):
        """Mit 25% Toleranz passen 100 Teilnehmer in einen Raum mit 80 Plätzen."""
        courses = [make_course("C1", students=100, capacity_margin=25)]
        result = SchedulingEngine(courses, [make_room(capacity=80)], make_settings()).run()
        assert result.perfect

    def test_lab_needs_lab_room(self):
        courses = [make_course("C1", hours=2, session_type="lab")]
        result = SchedulingEngine(courses, [make_room()], make_settings()).run()
        assert result.unscheduled[0].reason == "no_classroom"

    def test_lab_placed_in_lab(self):
        courses = [make_course("C1", hours=2, session_type="lab", students=20)]
        rooms = [make_room("A"), make_room("L", capacity=25, room_type="lab")]
        result = SchedulingEngine(courses, rooms, make_settings()).run()
        assert result.perfect
        assert {e.classroom_id for e in result.schedule} == {"L"}

    def test_inactive_records_skipped(self):
        courses = [make_course("C1"), make_course("C2", is_active=False)]
        rooms = [make_room("A"), make_room("B", capacity=45, is_active=False)]
        result = SchedulingEngine(courses, rooms, make_settings()).run()
        assert result.perfect
        assert result.get_course_schedule("C2") == []
        assert result.get_classroom_schedule("B") == []

    def test_teacher_working_hours_respected(self):
        courses = [make_course("C1", hours=2, teacher_id="T1",
                               teacher_working_hours={"tuesday": ["14:00-16:00"]})]
        result = SchedulingEngine(courses, [make_room()], make_settings()).run()
        assert result.perfect
        entry = result.schedule[0]
        assert (entry.day, entry.start_time, entry.end_time) == ("tuesday", "14:00", "16:00")

    def test_missing_teacher_hours(self):
        """Lehrkraft ohne Arbeitszeiten → nicht einplanbar, Warnung im Ergebnis."""
        courses = [make_course("C1", hours=2, teacher_id="T1", teacher_working_hours=None)]
        result = SchedulingEngine(courses, [make_room()], make_settings()).run()
        assert result.unscheduled[0].reason == "no_teacher_slot"
        assert any("T1" in w for w in result.warnings)

    def test_teacher_conflict(self):
        """Eine Lehrkraft mit nur einem 4h-Fenster kann nur einen 4h-Kurs halten."""
        hours = {"monday": ["08:00-12:00"]}
        courses = [
            make_course("C1", teacher_id="T1", teacher_working_hours=hours),
            make_course("C2", teacher_id="T1", teacher_working_hours=hours),
        ]
        rooms = [make_room("A"), make_room("B")]
        result = SchedulingEngine(courses, rooms, make_settings()).run()
        assert result.scheduled_count == 1
        assert result.unscheduled_count == 1
        assert result.unscheduled[0].reason == "conflict"
        assert result.success
        assert result.success_rate == pytest.approx(0.5)
        assert_no_conflicts(result, courses)

    def test_department_conflict(self):
        """Pflichtkurse derselben Fachrichtung laufen nicht parallel."""
        settings = make_settings(time_grid={"days": ["monday"], "day_end": "12:00"})
        rooms = [make_room("A"), make_room("B")]

        same = [make_course("C1", dept="Informatik"), make_course("C2", dept="Informatik")]
        result = SchedulingEngine(same, rooms, settings).run()
        assert result.scheduled_count == 1

        different = [make_course("C1", dept="Informatik"), make_course("C2", dept="Physik")]
        result = SchedulingEngine(different, rooms, settings).run()
        assert result.perfect

    def test_session_splitting(self):
        """Ohne durchgehenden 4h-Block wird die Sitzung am selben Tag geteilt."""
        settings = make_settings(time_grid={
            "days": ["monday"], "day_start": "10:00", "day_end": "15:00",
        })
        result = SchedulingEngine([make_course("C1")], [make_room()], settings).run()
        assert result.perfect
        assert sorted(e.time_range for e in result.schedule) == ["10:00-12:00", "13:00-15:00"]

    def test_splitting_disabled(self):
        settings = make_settings(
            time_grid={"days": ["monday"], "day_start": "10:00", "day_end": "15:00"},
            features={"enable_session_splitting": False},
        )
        result = SchedulingEngine([make_course("C1")], [make_room()], settings).run()
        assert not result.perfect

    def test_deterministic_with_seed(self):
        courses = [make_course(f"C{i}", hours=2, students=30 + i) for i in range(6)]
        rooms = [make_room("A", 40), make_room("B", 60)]
        a = SchedulingEngine(courses, rooms, make_settings(), seed=3).run()
        b = SchedulingEngine(courses, rooms, make_settings(), seed=3).run()
        key = lambda r: [(e.course_id, e.classroom_id, e.day, e.start_time) for e in r.schedule]
        assert key(a) == key(b)

    def test_progress_callback(self):
        calls = []
        engine = SchedulingEngine(
            [make_course("C1")], [make_room()], make_settings(),
            progress_callback=lambda state, pct, msg: calls.append((state, pct)),
        )
        engine.run()
        states = [s for s, _ in calls]
        assert EngineState.SEEDING in states
        assert EngineState.PLACING in states
        assert calls[-1] == (EngineState.DONE, 100.0)
        assert all(0 <= pct <= 100 for _, pct in calls)

    def test_run_twice_starts_fresh(self):
        """Ein zweiter run() dupliziert weder feste Termine noch Einträge."""
        course = make_course("C1", hardcoded_placements=[HardcodedPlacement(
            day="monday", start_time="09:00", end_time="10:00", classroom_id="A",
        )])
        engine = SchedulingEngine([course, make_course("C2")], [make_room("A")],
                                  make_settings(), seed=4)
        first = engine.run()
        second = engine.run()
        assert len(second.schedule) == len(first.schedule)
        assert sum(e.is_hardcoded for e in second.schedule) == 1
        assert second.perfect
        assert hours_of(second, "C1") == 4
        assert_no_conflicts(second, [course, make_course("C2")])


# ─── BACKTRACKING ─────────────────────────────────────────────────────────────

class TestBacktracking:
    """Ein Montag, ein Raum; C1 (schwer) belegt zuerst den einzigen Slot von C2."""

    def _courses(self) -> list[CourseRecord]:
        return [
            make_course("C1", hours=1, students=50, teacher_id="T1"),
            make_course("C2", hours=1, students=10, teacher_id="T2",
                        teacher_working_hours={"monday": ["08:00-09:00"]}),
        ]

    def _settings(self, day_end: str, backtracking: bool = True) -> SchedulerSettings:
        return make_settings(
            time_grid={"days": ["monday"], "day_start": "08:00", "day_end": day_end},
            features={"enable_backtracking": backtracking},
            hill_climbing={"iterations": 0},
        )

    def test_without_backtracking_second_course_fails(self):
        result = SchedulingEngine(self._courses(), [make_room("A", 60)],
                                  self._settings("10:00", backtracking=False)).run()
        assert [u.id for u in result.unscheduled] == ["C2"]
        assert result.unscheduled[0].reason == "conflict"

    def test_blocking_session_is_evicted_and_replaced(self):
        courses = self._courses()
        result = SchedulingEngine(courses, [make_room("A", 60)], self._settings("10:00")).run()
        assert result.perfect
        assert result.unscheduled == []
        assert_no_conflicts(result, courses)
        placed = sorted((e.start_time, e.course_id) for e in result.schedule)
        assert placed == [("08:00", "C2"), ("09:00", "C1")]

    def test_rollback_when_evicted_session_finds_no_slot(self):
        """Nur ein Block: die verdrängte Sitzung passt nirgends hin, alles bleibt wie vorher."""
        courses = self._courses()
        result = SchedulingEngine(courses, [make_room("A", 60)], self._settings("09:00")).run()
        assert [(e.course_id, e.start_time) for e in result.schedule] == [("C1", "08:00")]
        assert [u.id for u in result.unscheduled] == ["C2"]
        assert result.unscheduled[0].reason == "conflict"
        assert_no_conflicts(result, courses)


# ─── FESTE TERMINE ────────────────────────────────────────────────────────────

class TestHardcodedPlacements:
    def test_hardcoded_entry_unchanged(self):
        """Fester Termin Mo 09–10 in Raum A bleibt exakt erhalten, Rest wird ergänzt."""
        course = make_course("C1", hardcoded_placements=[HardcodedPlacement(
            day="monday", start_time="09:00", end_time="10:00", classroom_id="A",
        )])
        result = SchedulingEngine([course, make_course("C2")], [make_room("A")],
                                  make_settings(), seed=5).run()
        pinned = [e for e in result.schedule if e.is_hardcoded]
        assert len(pinned) == 1
        assert (pinned[0].day, pinned[0].start_time, pinned[0].end_time, pinned[0].classroom_id) \
            == ("monday", "09:00", "10:00", "A")
        assert hours_of(result, "C1") == 4
        assert result.perfect
        assert_no_conflicts(result, [course, make_course("C2")])

    def test_unknown_room_aborts(self):
        course = make_course("C1", hardcoded_placements=[HardcodedPlacement(
            day="monday", start_time="09:00", end_time="10:00", classroom_id="X",
        )])
        with pytest.raises(UnknownReferenceError) as exc:
            SchedulingEngine([course], [make_room("A")], make_settings()).run()
        assert exc.value.ref_id == "X"

    def test_hardcoded_without_room_resolved(self):
        course = make_course("C1", hours=2, hardcoded_placements=[HardcodedPlacement(
            day="friday", start_time="13:00", end_time="15:00",
        )])
        result = SchedulingEngine([course], [make_room("A")], make_settings()).run()
        assert len(result.schedule) == 1
        assert result.schedule[0].classroom_id == "A"
        assert result.schedule[0].is_hardcoded

    def test_remaining_sessions(self):
        course = CourseRecord(id="C1", sessions=[
            Session(session_type="theoretical", hours=3),
            Session(session_type="lab", hours=2),
        ], hardcoded_placements=[HardcodedPlacement(
            session_type="lab", day="monday", start_time="09:00", end_time="11:00",
        )])
        pins = PinManager([make_room("L", room_type="lab")]).seed([course])
        remaining = PinManager.remaining_sessions(course, pins)
        assert [(s.session_type, s.hours) for s in remaining] == [("theoretical", 3)]


# ─── ZEITLIMIT ────────────────────────────────────────────────────────────────

class TestTimeout:
    def test_expired_budget_returns_partial_result(self):
        """Abgelaufenes Zeitlimit → kein Abbruch, feste Termine bleiben, Rest offen."""
        clock = [0.0]
        timeout = TimeoutManager(1, clock=lambda: clock[0])
        clock[0] = 10.0
        course = make_course("C1", hardcoded_placements=[HardcodedPlacement(
            day="monday", start_time="09:00", end_time="10:00", classroom_id="A",
        )])
        result = SchedulingEngine([course], [make_room("A")], make_settings(),
                                  timeout=timeout).run()
        assert result.timed_out
        assert [e.is_hardcoded for e in result.schedule] == [True]
        assert result.unscheduled[0].reason == "timeout"
        assert "Zeitlimit" in result.message

    def test_zero_budget_stops_immediately(self):
        """timeout_ms=0 ist kein "unbegrenzt": es wird nichts mehr eingeplant."""
        settings = make_settings(performance={"timeout_ms": 0})
        result = SchedulingEngine([make_course("C1")], [make_room()], settings).run()
        assert result.timed_out
        assert result.schedule == []
        assert result.unscheduled[0].reason == "timeout"

    def test_result_json_roundtrip(self, tmp_path):
        result = SchedulingEngine([make_course("C1")], [make_room()], make_settings()).run()
        path = tmp_path / "schedule.json"
        result.save_json(path)
        loaded = SchedulerResult.load_json(path)
        assert loaded.schedule == result.schedule
        assert loaded.metrics == result.metrics


# ─── LOKALE SUCHE ─────────────────────────────────────────────────────────────

class TestLocalSearch:
    @pytest.mark.parametrize("annealing", [True, False])
    def test_search_keeps_schedule_valid(self, annealing):
        """Nach vielen Zügen sind weiterhin alle harten Constraints erfüllt."""
        courses = [
            make_course(f"C{i}", hours=2, students=20 + 5 * i,
                        teacher_id=f"T{i % 2}", dept="Informatik" if i < 3 else "Physik")
            for i in range(6)
        ]
        rooms = [make_room("A", 30), make_room("B", 50), make_room("C", 100)]
        settings = make_settings(
            hill_climbing={"iterations": 200},
            features={"enable_simulated_annealing": annealing},
        )
        result = SchedulingEngine(courses, rooms, settings, seed=11).run()
        assert result.perfect
        assert_no_conflicts(result, courses)
        for course in courses:
            assert hours_of(result, course.id) == 2
            for e in result.get_course_schedule(course.id):
                room = next(r for r in rooms if r.id == e.classroom_id)
                assert room.capacity >= course.student_count

    def test_zero_iterations(self):
        settings = make_settings(hill_climbing={"iterations": 0})
        result = SchedulingEngine([make_course("C1")], [make_room()], settings).run()
        assert result.perfect

    @pytest.mark.parametrize("annealing", [True, False])
    def test_search_never_returns_worse_than_start(self, annealing):
        """Schlechter Start (großer Saal) → bester Plan wird behalten, Score steigt."""
        course = make_course("C1", hours=2, students=20)
        rooms = [make_room("BIG", 200), make_room("S", 25)]
        settings = make_settings(
            hill_climbing={"iterations": 200},
            annealing={"initial_temperature": 100.0},
            features={"enable_simulated_annealing": annealing},
        )
        start = [ScheduleEntry(id="E1", course_id="C1", classroom_id="BIG", day="monday",
                               start_time="08:00", end_time="10:00", session_hours=2)]
        search = LocalSearch(
            courses={"C1": course},
            classrooms=rooms,
            settings=settings,
            validator=ConstraintValidator([course]),
            blocks=blocks_for_grid(settings.time_grid),
            rng=random.Random(7),
            timeout=TimeoutManager(None),
        )
        result = search.run(start)
        assert result.score > result.initial_score
        assert result.score == pytest.approx(search.score(result.entries))
        assert result.entries[0].classroom_id == "S"
        assert start[0].classroom_id == "BIG"
        if annealing:
            assert result.accepted_moves > result.improving_moves
