"""Zeitwerte für das Wochenraster: Uhrzeit-Arithmetik und Zeitblöcke."""

import math
import re
from dataclasses import dataclass

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def time_to_minutes(time: str) -> int:
    """Wandelt "HH:MM" in Minuten seit Mitternacht um.

    Wirft ValueError bei ungültigem Format (z.B. "9 Uhr" oder "25:00").
    """
    match = _TIME_RE.match(str(time))
    if not match:
        raise ValueError(f"Ungültige Uhrzeit: {time!r} (erwartet HH:MM)")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 24 or minutes > 59 or (hours == 24 and minutes > 0):
        raise ValueError(f"Uhrzeit außerhalb des Tages: {time!r}")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Wandelt Minuten seit Mitternacht in "HH:MM" (zweistellig) um."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def ranges_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """Halboffene Überlappung: [s1, e1) ∩ [s2, e2) ≠ ∅.

    Aneinanderstoßende Bereiche (09:00-10:00 / 10:00-11:00) überlappen nicht.
    """
    s1, e1 = time_to_minutes(start1), time_to_minutes(end1)
    s2, e2 = time_to_minutes(start2), time_to_minutes(end2)
    return s1 < e2 and s2 < e1


def duration_hours(start: str, end: str) -> int:
    """Dauer in vollen Stunden; angefangene Stunden werden aufgerundet."""
    return math.ceil((time_to_minutes(end) - time_to_minutes(start)) / 60)


@dataclass(frozen=True)
class TimeBlock:
    """Ein Zeitblock im Tagesraster, z.B. 09:00–10:00.

    Immutable (frozen=True), nutzbar als Dict-Key / Set-Element.
    """

    # Beginn im Format "HH:MM"
    start: str
    # Ende im Format "HH:MM"
    end: str

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)

    @property
    def minutes(self) -> int:
        """Länge des Blocks in Minuten."""
        return self.end_minutes - self.start_minutes

    @property
    def time_range(self) -> str:
        """String-Darstellung "HH:MM-HH:MM"."""
        return f"{self.start}-{self.end}"

    def __repr__(self) -> str:
        return f"TimeBlock({self.start}-{self.end})"

    def __str__(self) -> str:
        return self.time_range
