import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def _minutes(value: str) -> int:
    match = _HHMM.match(value)
    if not match or int(match.group(2)) > 59 or int(match.group(1)) > 24:
        raise ValueError(f"Ungültige Uhrzeit: {value!r} (erwartet HH:MM)")
    return int(match.group(1)) * 60 + int(match.group(2))


# ─── ZEITRASTER ───

class TimeGridConfig(BaseModel):
    """Konfigurierbares Wochenraster.

    Das Raster definiert:
    - An welchen Tagen unterrichtet wird
    - Die Blocklänge in Minuten
    - Tagesbeginn und -ende
    - Die Mittagspause (Blöcke, die sie berühren, entfallen)
    """
    # Unterrichtstage (kanonische, kleingeschriebene englische Namen)
    days: list[str] = Field(
        default=["monday", "tuesday", "wednesday", "thursday", "friday"],
        min_length=1,
        description="Unterrichtstage der Woche")
    # Länge eines Zeitblocks in Minuten
    slot_duration_minutes: int = Field(60, ge=15, le=240,
        description="Blocklänge in Minuten")
    # Tagesbeginn im Format "HH:MM"
    day_start: str = Field("08:00", description="Tagesbeginn")
    # Tagesende im Format "HH:MM"
    day_end: str = Field("18:00", description="Tagesende")
    # Beginn der Mittagspause
    lunch_start: str = Field("12:00", description="Beginn Mittagspause")
    # Ende der Mittagspause
    lunch_end: str = Field("13:00", description="Ende Mittagspause")

    @field_validator("day_start", "day_end", "lunch_start", "lunch_end")
    @classmethod
    def _check_time_format(cls, v: str) -> str:
        _minutes(v)
        return v

    @field_validator("days")
    @classmethod
    def _normalize_days(cls, v: list[str]) -> list[str]:
        return [d.strip().lower() for d in v]

    @model_validator(mode='after')
    def validate_bounds(self):
        """Tagesbeginn vor Tagesende, Mittagspause nicht rückwärts."""
        if _minutes(self.day_start) >= _minutes(self.day_end):
            raise ValueError(
                f"Tagesbeginn {self.day_start} liegt nicht vor Tagesende {self.day_end}")
        if _minutes(self.lunch_start) > _minutes(self.lunch_end):
            raise ValueError(
                f"Mittagspause {self.lunch_start}-{self.lunch_end} ist rückwärts definiert")
        return self


# ─── SCHWIERIGKEIT ───

class DifficultyWeights(BaseModel):
    """Gewichte der Kurs-Schwierigkeit (höher = früher einplanen)."""
    # Gewicht der Teilnehmerzahl
    student_weight_factor: float = Field(2.0, ge=0,
        description="Gewicht: Teilnehmerzahl")
    # Gewicht der Knappheit passender Räume
    classroom_scarcity_factor: float = Field(5.0, ge=0,
        description="Gewicht: Knappheit passender Räume")
    # Gewicht der durchschnittlichen Sitzungsdauer
    session_duration_factor: float = Field(1.0, ge=0,
        description="Gewicht: Sitzungsdauer")


# ─── KAPAZITÄT ───

class CapacitySettings(BaseModel):
    """Bevorzugte Raumauslastung (Anteil der Raumkapazität)."""
    # Untere Grenze der idealen Auslastung
    ideal_min_ratio: float = Field(0.7, ge=0.0, le=1.0,
        description="Ideale Auslastung – Untergrenze")
    # Obere Grenze der idealen Auslastung
    ideal_max_ratio: float = Field(0.9, ge=0.0, le=1.0,
        description="Ideale Auslastung – Obergrenze")
    # Unterhalb dieser Auslastung wird stark bestraft
    penalty_threshold: float = Field(0.4, ge=0.0, le=1.0,
        description="Schwelle für starke Abwertung")

    @model_validator(mode='after')
    def validate_ratio_order(self):
        """penalty_threshold ≤ ideal_min_ratio ≤ ideal_max_ratio."""
        if not (self.penalty_threshold <= self.ideal_min_ratio <= self.ideal_max_ratio):
            raise ValueError(
                f"Kapazitätsgrenzen inkonsistent: penalty={self.penalty_threshold}, "
                f"min={self.ideal_min_ratio}, max={self.ideal_max_ratio}")
        return self


# ─── ZIELFUNKTION ───

class ObjectiveWeights(BaseModel):
    """Gewichte der Zielfunktion der lokalen Suche."""
    # Gewicht der Kapazitäts-Passung
    capacity_weight: float = Field(1.0, ge=0,
        description="Gewicht: Kapazitäts-Passung")
    # Gewicht der Lehrer-Tagesbelastung (Varianz)
    load_balance_weight: float = Field(1.0, ge=0,
        description="Gewicht: gleichmäßige Lehrer-Tagesbelastung")
    # Strafe je nicht eingeplanter Sitzung
    unscheduled_penalty: float = Field(100.0, ge=0,
        description="Strafe je nicht eingeplanter Sitzung")


# ─── LOKALE SUCHE ───

class HillClimbingSettings(BaseModel):
    """Parameter des Hill-Climbing."""
    # Anzahl Verbesserungsiterationen
    iterations: int = Field(30, ge=0,
        description="Anzahl Verbesserungsiterationen")
    # Wahrscheinlichkeit für Verschieben statt Tauschen
    relocate_probability: float = Field(0.5, ge=0.0, le=1.0,
        description="Anteil Verschiebe-Züge (Rest: Tausch-Züge)")


class AnnealingSettings(BaseModel):
    """Temperaturverlauf des Simulated Annealing (geometrische Abkühlung)."""
    # Starttemperatur
    initial_temperature: float = Field(25.0, gt=0,
        description="Starttemperatur")
    # Endtemperatur (nahe 0, aber nicht 0)
    final_temperature: float = Field(0.1, gt=0,
        description="Endtemperatur")

    @model_validator(mode='after')
    def validate_cooling(self):
        """Die Temperatur darf nur fallen."""
        if self.final_temperature > self.initial_temperature:
            raise ValueError(
                f"Endtemperatur {self.final_temperature} > "
                f"Starttemperatur {self.initial_temperature}")
        return self


# ─── LEISTUNG ───

class PerformanceSettings(BaseModel):
    """Zeit- und Versuchsgrenzen."""
    # Globales Zeitlimit in Millisekunden (leer = kein Limit, 0 = sofort abgelaufen)
    timeout_ms: Optional[int] = Field(60000, ge=0,
        description="Zeitlimit (ms, None = kein Limit)")
    # Intervall, in dem die Uhr tatsächlich gelesen wird
    timeout_check_interval_ms: int = Field(10, ge=0,
        description="Prüfintervall des Zeitlimits (ms)")
    # Max. geprüfte Kandidaten pro Sitzung
    max_placement_attempts: int = Field(100, ge=1,
        description="Max. Platzierungsversuche pro Sitzung")


# ─── FEATURES ───

class FeatureFlags(BaseModel):
    """Schalter für optionale Heuristiken."""
    # Verschlechternde Züge mit Temperatur-Wahrscheinlichkeit annehmen
    enable_simulated_annealing: bool = Field(True,
        description="Simulated Annealing aktiv")
    # Blockierende Sitzung verdrängen und neu einplanen
    enable_backtracking: bool = Field(False,
        description="Backtracking (Verdrängen + Neu-Einplanen)")
    # Lange Sitzungen am selben Tag in Teile zerlegen
    enable_session_splitting: bool = Field(True,
        description="Aufteilen langer Sitzungen")
    # Theorie und Labor möglichst am selben Tag
    enable_combined_theory_lab: bool = Field(True,
        description="Theorie + Labor am selben Tag bevorzugen")
    # Pflichtkurse gleicher Fachrichtung/Stufe nicht parallel
    enable_department_conflicts: bool = Field(True,
        description="Überschneidung von Pflichtkursen einer Fachrichtung verbieten")
    # Fortschritts-Callback aufrufen
    enable_progress_reporting: bool = Field(True,
        description="Fortschrittsmeldungen")


# ─── GESAMT-CONFIG ───

class SchedulerSettings(BaseModel):
    """Gesamtkonfiguration der Planungs-Engine."""
    # Wochenraster
    time_grid: TimeGridConfig = Field(default_factory=TimeGridConfig)
    # Schwierigkeitsgewichte für die Einplanungsreihenfolge
    difficulty: DifficultyWeights = Field(default_factory=DifficultyWeights)
    # Bevorzugte Raumauslastung
    capacity: CapacitySettings = Field(default_factory=CapacitySettings)
    # Zielfunktion der lokalen Suche
    objective: ObjectiveWeights = Field(default_factory=ObjectiveWeights)
    # Hill-Climbing
    hill_climbing: HillClimbingSettings = Field(default_factory=HillClimbingSettings)
    # Simulated Annealing
    annealing: AnnealingSettings = Field(default_factory=AnnealingSettings)
    # Zeit- und Versuchsgrenzen
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings)
    # Feature-Schalter
    features: FeatureFlags = Field(default_factory=FeatureFlags)
