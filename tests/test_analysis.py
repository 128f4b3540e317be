"""Tests für Post-Solve Validierung, Qualitätsbericht und Fortschrittsabfrage."""

from typing import Optional

import pytest

from analysis.quality_report import QualityAnalyzer, ScheduleMetrics, calculate_schedule_metrics
from analysis.solution_validator import SolutionValidator
from analysis.status import schedule_status
from config.manager import ConfigManager
from models.classroom import ClassroomRecord
from models.course import CourseRecord, DepartmentShare, HardcodedPlacement, Session
from models.schedule import ScheduleEntry
from solver.scheduler import SchedulerResult, SchedulingEngine


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def _course(cid: str, students: int = 40, hours: int = 2, teacher_id: Optional[str] = None,
            **kw) -> CourseRecord:
    return CourseRecord(
        id=cid,
        teacher_id=teacher_id,
        sessions=[Session(hours=hours)],
        departments=[DepartmentShare(department=f"Fach-{cid}", student_count=students)],
        **kw,
    )


def _entry(eid: str, course_id: str, room: str = "A", day: str = "monday",
           start: str = "08:00", end: str = "10:00", hours: int = 2, **kw) -> ScheduleEntry:
    return ScheduleEntry(id=eid, course_id=course_id, classroom_id=room, day=day,
                         start_time=start, end_time=end, session_hours=hours, **kw)


def _result(entries: list[ScheduleEntry]) -> SchedulerResult:
    """Minimales SchedulerResult um einen vorgegebenen Plan."""
    return SchedulerResult(
        success=True,
        message="",
        scheduled_count=0,
        unscheduled_count=0,
        success_rate=1.0,
        schedule=entries,
        unscheduled=[],
        perfect=True,
        metrics=ScheduleMetrics(),
        duration_ms=0.0,
    )


@pytest.fixture
def mini_data():
    courses = [
        _course("C1", students=40, teacher_id="T1"),
        _course("C2", students=60, hours=4, teacher_id="T1"),
        _course("C3", students=20, teacher_id="T2"),
    ]
    rooms = [ClassroomRecord(id="A", capacity=80), ClassroomRecord(id="B", capacity=30)]
    return courses, rooms


@pytest.fixture
def mini_result(mini_data):
    courses, rooms = mini_data
    settings = ConfigManager().merge({"performance": {"timeout_ms": None}})
    return SchedulingEngine(courses, rooms, settings, seed=2).run()


# ─── POST-SOLVE VALIDIERUNG ───────────────────────────────────────────────────

class TestSolutionValidator:
    def test_engine_result_is_valid(self, mini_result, mini_data):
        courses, rooms = mini_data
        assert mini_result.perfect
        report = SolutionValidator().validate(mini_result, courses, rooms)
        assert report.is_valid, report.violations

    def test_room_double_booking(self, mini_data):
        courses, rooms = mini_data
        result = _result([
            _entry("E1", "C1"), _entry("E2", "C3", start="09:00", end="11:00"),
            _entry("E3", "C2", room="A", day="tuesday", start="08:00", end="12:00", hours=4),
        ])
        report = SolutionValidator().validate(result, courses, rooms)
        assert not report.is_valid
        assert any(v.constraint == "room_double_booking" for v in report.violations)

    def test_teacher_double_booking(self, mini_data):
        courses, rooms = mini_data
        result = _result([
            _entry("E1", "C1", room="A"),
            _entry("E2", "C2", room="B", start="08:00", end="12:00", hours=4),
            _entry("E3", "C3", room="B", day="friday"),
        ])
        report = SolutionValidator().validate(result, courses, rooms)
        teacher = [v for v in report.violations if v.constraint == "teacher_double_booking"]
        assert len(teacher) == 1
        assert teacher[0].entity == "T1"

    def test_hours_mismatch(self, mini_data):
        courses, rooms = mini_data
        result = _result([_entry("E1", "C1"), _entry("E3", "C3", room="B", day="friday")])
        report = SolutionValidator().validate(result, courses, rooms)
        mismatch = [v for v in report.violations if v.constraint == "hours_mismatch"]
        assert [v.entity for v in mismatch] == ["C2"]

    def test_unknown_references(self):
        result = _result([_entry("E1", "X1", room="Z")])
        report = SolutionValidator().validate(result, [], [])
        constraints = {v.constraint for v in report.violations}
        assert constraints == {"unknown_course", "unknown_classroom"}

    def test_missing_hardcoded_is_warning(self):
        course = _course("C1", hardcoded_placements=[HardcodedPlacement(
            day="monday", start_time="08:00", end_time="10:00")])
        rooms = [ClassroomRecord(id="A", capacity=80)]
        result = _result([_entry("E1", "C1", day="tuesday")])
        report = SolutionValidator().validate(result, [course], rooms)
        missing = [v for v in report.violations if v.constraint == "hardcoded_missing"]
        assert missing and missing[0].severity == "warning"

    def test_availability_violation(self):
        course = _course("C1", teacher_id="T1", teacher_working_hours={"monday": ["13:00-18:00"]})
        rooms = [ClassroomRecord(id="A", capacity=80)]
        report = SolutionValidator().validate(_result([_entry("E1", "C1")]), [course], rooms)
        assert any(v.constraint == "teacher_unavailable" for v in report.violations)

    def test_print_rich_runs(self, mini_result, mini_data):
        courses, rooms = mini_data
        SolutionValidator().validate(mini_result, courses, rooms).print_rich()


# ─── QUALITÄTSBERICHT ─────────────────────────────────────────────────────────

class TestQualityReport:
    def test_schedule_metrics(self):
        courses = {
            "C1": _course("C1", students=60, teacher_id="T1"),
            "C2": _course("C2", students=40, hours=4, teacher_id="T2"),
        }
        rooms = {"A": ClassroomRecord(id="A", capacity=100), "B": ClassroomRecord(id="B", capacity=50)}
        entries = [
            _entry("E1", "C1", room="A"),
            _entry("E2", "C2", room="B", start="10:00", end="14:00", hours=4),
        ]
        m = calculate_schedule_metrics(entries, courses, rooms)
        assert m.avg_capacity_margin == 30.0       # (40 % + 20 %) / 2
        assert m.max_capacity_waste == 40.0
        assert m.teacher_load_stddev == 1.0        # pstdev(2, 4)

    def test_metrics_empty(self):
        assert calculate_schedule_metrics([], {}, {}) == ScheduleMetrics()

    def test_single_teacher_stddev_zero(self):
        courses = {"C1": _course("C1", teacher_id="T1")}
        rooms = {"A": ClassroomRecord(id="A", capacity=80)}
        m = calculate_schedule_metrics([_entry("E1", "C1")], courses, rooms)
        assert m.teacher_load_stddev == 0.0

    def test_report_structure(self, mini_result, mini_data):
        courses, rooms = mini_data
        report = QualityAnalyzer().analyze(mini_result, courses, rooms)
        assert report.success_rate == 1.0
        assert {t.teacher_id for t in report.teacher_metrics} == {"T1", "T2"}
        t1 = next(t for t in report.teacher_metrics if t.teacher_id == "T1")
        assert t1.total_hours == 6
        assert t1.courses == ["C1", "C2"]
        assert 0 <= t1.free_days <= 5
        assert len(report.room_metrics) == 2
        for rm in report.room_metrics:
            assert 0.0 <= rm.utilization <= 1.0
            assert 0.0 <= rm.avg_fill_ratio <= 1.0

    def test_print_rich_runs(self, mini_result, mini_data):
        courses, rooms = mini_data
        analyzer = QualityAnalyzer()
        analyzer.print_rich(analyzer.analyze(mini_result, courses, rooms))


# ─── STATUS ───────────────────────────────────────────────────────────────────

class TestScheduleStatus:
    def test_percentage_in_hours(self):
        courses = [_course("C1", hours=4), _course("C2", hours=2)]
        entries = [_entry("E1", "C1"), _entry("E2", "C2", day="friday")]
        status = schedule_status(courses, entries)
        assert status.total_active_courses == 2
        assert status.total_active_sessions == 6
        assert status.scheduled_sessions == 4
        assert status.completion_percentage == 66.7

    def test_no_active_courses(self):
        status = schedule_status([_course("C1", is_active=False)], [])
        assert status.total_active_courses == 0
        assert status.completion_percentage == 0.0

    def test_inactive_entries_ignored_and_clamped(self):
        courses = [_course("C1", hours=2), _course("C2", is_active=False)]
        entries = [
            _entry("E1", "C1"), _entry("E2", "C1", day="tuesday"),
            _entry("E3", "C2", day="friday"),
        ]
        status = schedule_status(courses, entries)
        assert status.scheduled_sessions == 2
        assert status.completion_percentage == 100.0
