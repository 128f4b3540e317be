from config.schema import (
    AnnealingSettings,
    HillClimbingSettings,
    PerformanceSettings,
    SchedulerSettings,
    TimeGridConfig,
)


def default_time_grid() -> TimeGridConfig:
    """Standard-Wochenraster einer Hochschule.

    Blockraster (Mo–Fr):
    08:00 - 09:00
    09:00 - 10:00
    10:00 - 11:00
    11:00 - 12:00
       ── Mittagspause 12:00 - 13:00 ──
    13:00 - 14:00
    ...
    17:00 - 18:00

    → 9 Blöcke à 60 Minuten pro Tag.
    """
    return TimeGridConfig(
        days=["monday", "tuesday", "wednesday", "thursday", "friday"],
        slot_duration_minutes=60,
        day_start="08:00",
        day_end="18:00",
        lunch_start="12:00",
        lunch_end="13:00",
    )


def default_settings() -> SchedulerSettings:
    """Ausgewogen zwischen Laufzeit und Qualität."""
    return SchedulerSettings(time_grid=default_time_grid())


def fast_settings() -> SchedulerSettings:
    """Schnell statt gründlich: weniger Iterationen, kürzeres Zeitlimit."""
    return SchedulerSettings(
        time_grid=default_time_grid(),
        hill_climbing=HillClimbingSettings(iterations=10),
        annealing=AnnealingSettings(initial_temperature=10.0, final_temperature=0.1),
        performance=PerformanceSettings(
            timeout_ms=30000,
            max_placement_attempts=50,
        ),
    )


def quality_settings() -> SchedulerSettings:
    """Gründlich statt schnell: mehr Iterationen, längeres Zeitlimit."""
    return SchedulerSettings(
        time_grid=default_time_grid(),
        hill_climbing=HillClimbingSettings(iterations=100),
        annealing=AnnealingSettings(initial_temperature=40.0, final_temperature=0.05),
        performance=PerformanceSettings(
            timeout_ms=120000,
            max_placement_attempts=200,
        ),
    )


# ─── PRESETS ───
# Name → Konfiguration. Nie direkt herausgeben, nur über ConfigManager
# (liefert tiefe Kopien).

PRESETS: dict[str, SchedulerSettings] = {
    "default": default_settings(),
    "fast": fast_settings(),
    "quality": quality_settings(),
}


# ─── SITZUNGSTYPEN ───
# Sitzungstyp → Raumtypen, in denen er stattfinden darf.

SESSION_ROOM_TYPES: dict[str, set[str]] = {
    "theoretical": {"theoretical", "hybrid"},
    "lab":         {"lab", "hybrid"},
    "combined":    {"theoretical", "lab", "hybrid"},
}


# ─── WOCHENTAGE ───
# Alias (klein geschrieben) → kanonischer Tagesname.

DAY_ALIASES: dict[str, str] = {
    "monday": "monday", "mon": "monday", "mo": "monday", "pazartesi": "monday",
    "tuesday": "tuesday", "tue": "tuesday", "tu": "tuesday", "salı": "tuesday",
    "wednesday": "wednesday", "wed": "wednesday", "we": "wednesday",
    "çarşamba": "wednesday",
    "thursday": "thursday", "thu": "thursday", "th": "thursday",
    "perşembe": "thursday",
    "friday": "friday", "fri": "friday", "fr": "friday", "cuma": "friday",
    "saturday": "saturday", "sat": "saturday", "sa": "saturday",
    "cumartesi": "saturday",
    "sunday": "sunday", "sun": "sunday", "su": "sunday", "pazar": "sunday",
}


def normalize_day(day: str) -> str:
    """Kanonischer Tagesname; unbekannte Namen werden nur kleingeschrieben."""
    key = str(day).strip().lower()
    return DAY_ALIASES.get(key, key)
