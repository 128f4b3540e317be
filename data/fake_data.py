"""Testdaten-Generator für den Vorlesungsplan-Generator.

Erzeugt reproduzierbare Kurse und Räume einer kleinen Hochschule.

Absichtliche Engpässe:
  1. Labor-Engpass: wenige Laborräume für alle Kurse mit Praktikum
  2. Großer Hörsaal: nur ein Raum für die großen Pflichtvorlesungen
  3. Eingeschränkte Lehrkräfte: einige arbeiten nur vormittags oder nicht freitags
  4. Fester Termin: ein Kurs hat einen von der Verwaltung vorgegebenen Termin
"""

import random
from typing import Optional

from config.schema import SchedulerSettings
from models.classroom import ClassroomRecord
from models.course import CourseRecord, DepartmentShare, HardcodedPlacement, Session
from models.dataset import SchedulingDataset

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_TITLES = ["Prof. Dr.", "Dr.", "Dipl.-Ing."]

_FIRST_NAMES = [
    "Andreas", "Birgit", "Christian", "Elif", "Emre", "Eva", "Hakan",
    "Iris", "Jürgen", "Kathrin", "Lena", "Markus", "Mehmet", "Olga",
    "Sandra", "Selin", "Stefan", "Tobias", "Ulrike", "Zeynep",
]

_LAST_NAMES = [
    "Arslan", "Becker", "Demir", "Fischer", "Hoffmann", "Kaya", "Koch",
    "Krüger", "Lehmann", "Meyer", "Neumann", "Öztürk", "Richter", "Schulz",
    "Şahin", "Wagner", "Weber", "Yılmaz", "Zimmermann",
]

# ─── Fachbereiche und Kursthemen ──────────────────────────────────────────────

# Fakultät → Fachrichtungen
_FACULTIES: dict[str, list[str]] = {
    "Ingenieurwissenschaften": ["Informatik", "Elektrotechnik", "Maschinenbau"],
    "Naturwissenschaften": ["Physik", "Chemie", "Biologie"],
}

# (Name, Kürzel, hat Praktikum)
_COURSE_TOPICS: list[tuple[str, str, bool]] = [
    ("Analysis", "MAT", False),
    ("Lineare Algebra", "MAT", False),
    ("Programmierung", "INF", True),
    ("Algorithmen und Datenstrukturen", "INF", False),
    ("Datenbanken", "INF", True),
    ("Grundlagen der Elektrotechnik", "ETE", True),
    ("Signale und Systeme", "ETE", False),
    ("Technische Mechanik", "MAS", False),
    ("Werkstoffkunde", "MAS", True),
    ("Experimentalphysik", "PHY", True),
    ("Allgemeine Chemie", "CHE", True),
    ("Organische Chemie", "CHE", True),
    ("Zellbiologie", "BIO", True),
    ("Statistik", "MAT", False),
    ("Technisches Englisch", "SPR", False),
    ("Projektmanagement", "WIW", False),
]

# Arbeitszeit-Profile der Lehrkräfte
_FULL_WEEK = {}
_MORNINGS_ONLY = {
    day: ["08:00-12:00"] for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
}
_NO_FRIDAY = {
    day: ["08:00-18:00"] for day in ("monday", "tuesday", "wednesday", "thursday")
}


class FakeDataGenerator:
    """Generiert einen vollständigen Datensatz (Kurse + Räume)."""

    def __init__(
        self,
        settings: Optional[SchedulerSettings] = None,
        seed: Optional[int] = None,
        num_courses: int = 24,
        num_teachers: int = 10,
    ) -> None:
        self.settings = settings or SchedulerSettings()
        self.rng = random.Random(seed)
        self.num_courses = num_courses
        self.num_teachers = num_teachers
        self._used_ids: set[str] = set()

    # ─── Räume ────────────────────────────────────────────────────────────────

    def _generate_classrooms(self) -> list[ClassroomRecord]:
        """Erzeugt Hörsäle, Seminarräume, Labore und einen Hybridraum."""
        rooms = [
            ClassroomRecord(id="A-001", name="Audimax", capacity=200,
                            room_type="theoretical"),
        ]
        for i in range(1, 5):
            rooms.append(ClassroomRecord(
                id=f"B-10{i}", name=f"Seminarraum {i}",
                capacity=self.rng.choice([40, 50, 60, 80]),
                room_type="theoretical",
            ))
        for i, dept in enumerate(["Informatik", "Chemie", "Physik"], start=1):
            rooms.append(ClassroomRecord(
                id=f"L-20{i}", name=f"Labor {dept}",
                capacity=self.rng.choice([25, 30, 40]),
                room_type="lab",
                priority_department=dept,
            ))
        rooms.append(ClassroomRecord(
            id="H-301", name="Hybridraum", capacity=60, room_type="hybrid",
            # Samstags geschlossen, freitags nur vormittags
            available_hours={
                "monday": ["08:00-18:00"], "tuesday": ["08:00-18:00"],
                "wednesday": ["08:00-18:00"], "thursday": ["08:00-18:00"],
                "friday": ["08:00-12:00"],
            },
        ))
        return rooms

    # ─── Lehrkräfte ───────────────────────────────────────────────────────────

    def _generate_teachers(self) -> list[tuple[str, str, dict]]:
        """Erzeugt (id, name, arbeitszeiten) je Lehrkraft."""
        teachers = []
        profiles = [_FULL_WEEK, _FULL_WEEK, _FULL_WEEK, _NO_FRIDAY, _MORNINGS_ONLY]
        for i in range(1, self.num_teachers + 1):
            name = (f"{self.rng.choice(_TITLES)} {self.rng.choice(_FIRST_NAMES)} "
                    f"{self.rng.choice(_LAST_NAMES)}")
            hours = self.rng.choice(profiles)
            teachers.append((f"T{i:02d}", name, {d: list(r) for d, r in hours.items()}))
        return teachers

    # ─── Kurse ────────────────────────────────────────────────────────────────

    def _course_id(self, prefix: str) -> str:
        while True:
            cid = f"{prefix}{self.rng.randint(100, 499)}"
            if cid not in self._used_ids:
                self._used_ids.add(cid)
                return cid

    def _departments(self) -> list[DepartmentShare]:
        faculty = self.rng.choice(list(_FACULTIES))
        names = self.rng.sample(_FACULTIES[faculty], k=self.rng.choice([1, 1, 2]))
        return [
            DepartmentShare(department=n, student_count=self.rng.randint(10, 35))
            for n in names
        ]

    def _generate_courses(self, teachers: list[tuple[str, str, dict]]) -> list[CourseRecord]:
        """Erzeugt Kurse mit Theorie- und ggf. Praktikumssitzungen."""
        courses = []
        for i in range(self.num_courses):
            name, prefix, has_lab = _COURSE_TOPICS[i % len(_COURSE_TOPICS)]
            if i >= len(_COURSE_TOPICS):
                name = f"{name} II"
            sessions = [Session(session_type="theoretical", hours=self.rng.choice([2, 2, 3]))]
            if has_lab:
                sessions.append(Session(session_type="lab", hours=2))

            departments = self._departments()
            teacher_id, teacher_name, hours = self.rng.choice(teachers)
            cid = self._course_id(prefix)
            courses.append(CourseRecord(
                id=cid,
                name=name,
                code=cid,
                teacher_id=teacher_id,
                teacher_name=teacher_name,
                faculty=next(f for f, d in _FACULTIES.items()
                             if departments[0].department in d),
                level=str(self.rng.randint(1, 4)),
                category="elective" if self.rng.random() < 0.25 else "compulsory",
                semester="fall",
                total_hours=sum(s.hours for s in sessions),
                capacity_margin=self.rng.choice([0, 0, 10]),
                sessions=sessions,
                departments=departments,
                teacher_working_hours=hours,
            ))

        # Engpass #4: ein fester Termin im Audimax
        if courses:
            first = courses[0]
            theory = next(s for s in first.sessions if s.session_type == "theoretical")
            first.hardcoded_placements = [HardcodedPlacement(
                session_type="theoretical",
                day="monday",
                start_time="09:00",
                end_time=f"{9 + theory.hours:02d}:00",
                classroom_id="A-001",
            )]
        return courses

    # ─── Vollständiger Datensatz ──────────────────────────────────────────────

    def generate(self) -> SchedulingDataset:
        """Erzeugt den vollständigen Datensatz."""
        classrooms = self._generate_classrooms()
        teachers = self._generate_teachers()
        courses = self._generate_courses(teachers)
        return SchedulingDataset(
            courses=courses,
            classrooms=classrooms,
            settings=self.settings.model_copy(deep=True),
        )

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, data: SchedulingDataset) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Erzeugte Testdaten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        labs = sum(1 for c in data.courses if c.has_lab)
        electives = sum(1 for c in data.courses if c.category == "elective")
        teachers = {c.teacher_id for c in data.courses if c.teacher_id}
        room_types = {}
        for r in data.classrooms:
            room_types[r.room_type] = room_types.get(r.room_type, 0) + 1
        table.add_row("Kurse", str(len(data.courses)),
                      f"{labs} mit Praktikum, {electives} Wahlfach")
        table.add_row("Lehrkräfte", str(len(teachers)), "")
        table.add_row("Räume", str(len(data.classrooms)),
                      ", ".join(f"{n}× {t}" for t, n in sorted(room_types.items())))
        table.add_row("Sitzungsstunden", str(sum(c.required_hours for c in data.courses)), "")

        console.print(table)
