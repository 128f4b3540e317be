"""LearningStore: Protokoll vergangener Planungsläufe und daraus gelernte Parameter.

Der Speicher ist ein expliziter Handle (kein globaler Zustand) und nur
erweiterbar: Einträge werden angehängt, nie verändert. Alle Zugriffe sind
über ein Lock serialisiert.
"""

import logging
import statistics
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from analysis.quality_report import ScheduleMetrics
from config.schema import SchedulerSettings
from models.classroom import ClassroomRecord
from models.course import CourseRecord
from models.schedule import ScheduleEntry
from solver.errors import ImportFailure

logger = logging.getLogger(__name__)

# Mindestanzahl ähnlicher Läufe für eine Empfehlung
MIN_SIMILAR_RECORDS = 3
# Relative Toleranz für Kurs-/Raumanzahl, absolute für die Auslastung
SIMILARITY_TOLERANCE = 0.2
# Nur Läufe oberhalb dieser Erfolgsquote fließen in Empfehlungen ein
SUCCESS_THRESHOLD = 0.8


class ProblemCharacteristics(BaseModel):
    """Form der Eingabe, um ähnliche Probleme zu finden."""

    course_count: int
    classroom_count: int
    avg_students_per_course: float
    classroom_utilization: float     # Teilnehmer gesamt / Plätze gesamt
    has_lab_courses: bool

    @classmethod
    def from_input(cls, courses: list[CourseRecord],
                   classrooms: list[ClassroomRecord]) -> "ProblemCharacteristics":
        active_rooms = [r for r in classrooms if r.is_active]
        total_students = sum(c.student_count for c in courses)
        total_capacity = sum(r.capacity for r in active_rooms)
        return cls(
            course_count=len(courses),
            classroom_count=len(active_rooms),
            avg_students_per_course=total_students / len(courses) if courses else 0.0,
            classroom_utilization=total_students / total_capacity if total_capacity else 0.0,
            has_lab_courses=any(c.has_lab for c in courses),
        )

    @property
    def problem_hash(self) -> str:
        """Gruppierungsschlüssel, z.B. "c40_r12_u0.6_l1"."""
        utilization = int(self.classroom_utilization * 10) / 10
        return (f"c{self.course_count}_r{self.classroom_count}"
                f"_u{utilization}_l{1 if self.has_lab_courses else 0}")

    def is_similar(self, other: "ProblemCharacteristics",
                   tolerance: float = SIMILARITY_TOLERANCE) -> bool:
        def close(a: int, b: int) -> bool:
            top = max(a, b)
            return top == 0 or abs(a - b) / top < tolerance

        return (close(self.course_count, other.course_count)
                and close(self.classroom_count, other.classroom_count)
                and abs(self.classroom_utilization - other.classroom_utilization) < tolerance
                and self.has_lab_courses == other.has_lab_courses)


class RunResults(BaseModel):
    """Ergebnis-Kennzahlen eines Laufs."""

    success_rate: float
    scheduled_count: int
    total_courses: int
    duration_ms: float
    avg_capacity_margin: float
    max_capacity_waste: float
    teacher_load_stddev: float


class LearningRecord(BaseModel):
    """Ein protokollierter Planungslauf (nach dem Anhängen unveränderlich)."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    problem_hash: str
    config: SchedulerSettings
    characteristics: ProblemCharacteristics
    results: RunResults


class LearningStats(BaseModel):
    total_records: int = 0
    avg_success_rate: float = 0.0
    best_success_rate: float = 0.0
    avg_duration_ms: float = 0.0


_RECORDS = TypeAdapter(list[LearningRecord])


class LearningStore:
    """Nur erweiterbares Log vergangener Läufe."""

    def __init__(self, records: Optional[Iterable[LearningRecord]] = None,
                 min_similar_records: int = MIN_SIMILAR_RECORDS) -> None:
        self._lock = threading.Lock()
        self._records: list[LearningRecord] = list(records or [])
        self.min_similar_records = min_similar_records

    # ─── Aufzeichnen ───

    def record(
        self,
        settings: SchedulerSettings,
        courses: list[CourseRecord],
        classrooms: list[ClassroomRecord],
        schedule: list[ScheduleEntry],
        duration_ms: float,
        metrics: ScheduleMetrics,
    ) -> LearningRecord:
        """Hängt einen Lauf an. Erfolgsquote = Kurse mit mindestens einem Eintrag / Kurse."""
        active = [c for c in courses if c.is_active]
        active_ids = {c.id for c in active}
        scheduled = len({e.course_id for e in schedule if e.course_id in active_ids})
        characteristics = ProblemCharacteristics.from_input(active, classrooms)
        entry = LearningRecord(
            problem_hash=characteristics.problem_hash,
            config=settings.model_copy(deep=True),
            characteristics=characteristics,
            results=RunResults(
                success_rate=scheduled / len(active) if active else 0.0,
                scheduled_count=scheduled,
                total_courses=len(active),
                duration_ms=duration_ms,
                avg_capacity_margin=metrics.avg_capacity_margin,
                max_capacity_waste=metrics.max_capacity_waste,
                teacher_load_stddev=metrics.teacher_load_stddev,
            ),
        )
        with self._lock:
            self._records.append(entry)
        logger.info(
            f"Lauf protokolliert: {entry.problem_hash}, "
            f"Erfolgsquote {entry.results.success_rate:.1%}"
        )
        return entry

    # ─── Lesen ───

    @property
    def records(self) -> list[LearningRecord]:
        """Momentaufnahme aller Einträge."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def stats(self) -> LearningStats:
        records = self.records
        if not records:
            return LearningStats()
        rates = [r.results.success_rate for r in records]
        return LearningStats(
            total_records=len(records),
            avg_success_rate=statistics.fmean(rates),
            best_success_rate=max(rates),
            avg_duration_ms=statistics.fmean(r.results.duration_ms for r in records),
        )

    def similar_records(self, courses: list[CourseRecord],
                        classrooms: list[ClassroomRecord]) -> list[LearningRecord]:
        active = [c for c in courses if c.is_active]
        current = ProblemCharacteristics.from_input(active, classrooms)
        return [r for r in self.records if r.characteristics.is_similar(current)]

    def learn_optimal_parameters(
        self, courses: list[CourseRecord], classrooms: list[ClassroomRecord]
    ) -> Optional[dict]:
        """Teil-Konfiguration aus erfolgreichen ähnlichen Läufen, sonst None.

        Das Ergebnis ist direkt für ConfigManager.merge geeignet.
        """
        similar = self.similar_records(courses, classrooms)
        if len(similar) < self.min_similar_records:
            logger.info(
                f"Zu wenige ähnliche Läufe für eine Empfehlung "
                f"({len(similar)} von {self.min_similar_records})"
            )
            return None
        successful = [r for r in similar if r.results.success_rate > SUCCESS_THRESHOLD]
        if not successful:
            logger.info("Keine erfolgreichen ähnlichen Läufe gefunden")
            return None

        difficulty = {
            "student_weight_factor": statistics.fmean(
                r.config.difficulty.student_weight_factor for r in successful),
            "classroom_scarcity_factor": statistics.fmean(
                r.config.difficulty.classroom_scarcity_factor for r in successful),
            "session_duration_factor": statistics.fmean(
                r.config.difficulty.session_duration_factor for r in successful),
        }
        iterations = round(statistics.fmean(
            r.config.hill_climbing.iterations for r in successful))
        logger.info(f"Parameter aus {len(successful)} erfolgreichen Läufen gelernt")
        return {
            "difficulty": difficulty,
            "hill_climbing": {"iterations": iterations},
        }

    # ─── Export / Import ───

    def export_to_json(self) -> str:
        return _RECORDS.dump_json(self.records, indent=2).decode("utf-8")

    def import_from_json(self, text: str) -> int:
        """Ersetzt das Log durch den Inhalt von `text`.

        Bei ungültigen Daten wird ImportFailure geworfen und der Speicher
        bleibt unverändert.
        """
        try:
            imported = _RECORDS.validate_json(text)
        except ValidationError as e:
            raise ImportFailure(f"Lern-Log ungültig: {e.error_count()} Fehler") from e
        with self._lock:
            self._records = list(imported)
        logger.info(f"{len(imported)} Läufe importiert")
        return len(imported)

    def clear(self) -> None:
        with self._lock:
            self._records = []

    # ─── Persistenz ───

    def save(self, path: Path) -> None:
        """Speichert das Log als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.export_to_json())

    @classmethod
    def load(cls, path: Path) -> "LearningStore":
        """Lädt ein Log; eine fehlende Datei ergibt einen leeren Speicher."""
        path = Path(path)
        store = cls()
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                store.import_from_json(f.read())
        return store
