"""Verfügbarkeiten (Arbeitszeiten / Raumzeiten) an der Eingabegrenze parsen.

Rohdaten kommen als Mapping oder JSON-Text, z.B.::

    {"Pazartesi": ["09:00-12:00", "14:00"], "tuesday": ["08:00-10:00"]}

Ein einzelner Beginn ("14:00") steht für einen 60-Minuten-Block. Das Parsen
wirft nie eine Exception: Fehler landen als ValidationWarning im Ergebnis.
"""

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from config.defaults import normalize_day
from models.timeslot import minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

# Dauer eines Eintrags ohne Endzeit
SINGLE_SLOT_MINUTES = 60


class ValidationWarning(BaseModel):
    """Fehlerhafte oder fehlende Verfügbarkeitsdaten (der Lauf geht weiter)."""

    source: str = ""    # z.B. "Kurs C1: Arbeitszeiten"
    message: str

    def __str__(self) -> str:
        return f"{self.source}: {self.message}" if self.source else self.message


class Availability(BaseModel):
    """Geparste Verfügbarkeit: Tag → sortierte, verschmolzene Intervalle [start, end).

    declared=False bedeutet: keine Angabe, also uneingeschränkt.
    Ist `warning` gesetzt, waren die Daten unbrauchbar und nichts ist verfügbar.
    """

    declared: bool = False
    days: dict[str, list[tuple[int, int]]] = Field(default_factory=dict)
    warning: Optional[ValidationWarning] = None

    @property
    def is_valid(self) -> bool:
        return self.warning is None

    @property
    def is_unrestricted(self) -> bool:
        """Keine Einschränkung: nichts angegeben oder nur leere Tage."""
        if self.warning is not None:
            return False
        return not self.declared or not any(self.days.values())

    def intervals(self, day: str) -> list[tuple[int, int]]:
        return list(self.days.get(normalize_day(day), []))

    def covers(self, day: str, start: str, end: str) -> bool:
        """True wenn [start, end) vollständig in der Verfügbarkeit des Tages liegt."""
        if self.warning is not None:
            return False
        if self.is_unrestricted:
            return True
        s, e = time_to_minutes(start), time_to_minutes(end)
        return any(a <= s and e <= b for a, b in self.intervals(day))

    def to_raw(self) -> dict[str, list[str]]:
        """Zurück in das Eingabeformat ("HH:MM-HH:MM")."""
        return {
            day: [f"{minutes_to_time(a)}-{minutes_to_time(b)}" for a, b in ranges]
            for day, ranges in self.days.items()
        }


def _merge(ranges: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Überlappende und aneinanderstoßende Intervalle verschmelzen."""
    merged: list[tuple[int, int]] = []
    for start, end in sorted(ranges):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def _parse_range(item: Any) -> tuple[int, int]:
    text = str(item).strip()
    if "-" in text:
        start_text, end_text = text.split("-", 1)
        start, end = time_to_minutes(start_text), time_to_minutes(end_text)
    else:
        start = time_to_minutes(text)
        end = start + SINGLE_SLOT_MINUTES
    if end <= start:
        raise ValueError(f"Leeres oder rückwärts laufendes Intervall: {text!r}")
    return start, end


def parse_availability(raw: Any, source: str = "") -> Availability:
    """Parst Rohdaten in ein Availability-Objekt. Wirft nie.

    - None → nicht angegeben (uneingeschränkt)
    - str → wird als JSON gelesen
    - dict → Tag → Liste von Bereichen
    """
    if raw is None:
        return Availability()
    if isinstance(raw, Availability):
        return raw

    def _invalid(message: str) -> Availability:
        warning = ValidationWarning(source=source, message=message)
        logger.warning(f"Verfügbarkeit unbrauchbar: {warning}")
        return Availability(declared=True, warning=warning)

    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError as e:
            return _invalid(f"Kein gültiges JSON: {e}")
    if not isinstance(data, dict):
        return _invalid(f"Erwartet Mapping Tag → Zeiten, erhalten: {type(data).__name__}")

    days: dict[str, list[tuple[int, int]]] = {}
    for day_key, items in data.items():
        day = normalize_day(day_key)
        if items is None:
            continue
        if isinstance(items, str):
            items = [items]
        if not isinstance(items, (list, tuple)):
            return _invalid(f"Tag '{day_key}': Liste von Zeiten erwartet")
        try:
            ranges = [_parse_range(item) for item in items]
        except ValueError as e:
            return _invalid(f"Tag '{day_key}': {e}")
        days[day] = _merge(days.get(day, []) + ranges)

    return Availability(declared=True, days=days)
