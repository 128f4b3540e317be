"""Konfigurationsmanager: Presets, Zusammenführen, Laden und Speichern.

Presets werden nie direkt herausgegeben, sondern immer als tiefe Kopie.
Nutzt ruamel.yaml für YAML-Serialisierung mit Kommentaren.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ValidationError
from rich.console import Console
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.defaults import PRESETS
from config.schema import SchedulerSettings

logger = logging.getLogger(__name__)

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML-KOMMENTAR-AUFBAU ───

_YAML_HEADER = f"""\
# ============================================
# Vorlesungsplan-Generator: Engine-Konfiguration
# Erstellt: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "time_grid": (
        "Zeitraster",
        "Unterrichtstage, Blocklänge und Mittagspause.\n"
        "Blöcke, die die Mittagspause berühren, entfallen.",
    ),
    "difficulty": (
        "Schwierigkeit",
        "Schwere Kurse (viele Teilnehmer, wenige passende Räume) zuerst einplanen.",
    ),
    "capacity": (
        "Raumauslastung",
        "Anteil der Raumkapazität, den eine Sitzung idealerweise belegt.",
    ),
    "objective": (
        "Zielfunktion",
        "Gewichte: höher = stärker optimiert. 0 = deaktiviert.",
    ),
    "hill_climbing": (
        "Hill-Climbing",
        None,
    ),
    "annealing": (
        "Simulated Annealing",
        "Geometrische Abkühlung von initial_temperature auf final_temperature.",
    ),
    "performance": (
        "Leistung",
        None,
    ),
    "features": (
        "Features",
        None,
    ),
}

SettingsPatch = Union[dict, SchedulerSettings]


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "scheduler_config.yaml"

    # ─── Presets ───

    @staticmethod
    def list_presets() -> list[str]:
        """Namen aller verfügbaren Presets."""
        return list(PRESETS)

    def get_default(self) -> SchedulerSettings:
        """Tiefe Kopie des Standard-Presets."""
        return self.get_preset("default")

    def get_preset(self, name: str) -> SchedulerSettings:
        """Tiefe Kopie eines benannten Presets.

        Änderungen am Rückgabewert wirken sich nie auf das Preset aus.
        """
        key = name.strip().lower()
        if key not in PRESETS:
            raise ValueError(
                f"Unbekanntes Preset '{name}'. Verfügbar: {', '.join(PRESETS)}"
            )
        return PRESETS[key].model_copy(deep=True)

    # ─── Zusammenführen ───

    def merge(self, partial: Optional[SettingsPatch],
              base: Optional[SchedulerSettings] = None) -> SchedulerSettings:
        """Führt eine Teil-Konfiguration abschnittsweise über `base` zusammen.

        `base` ist standardmäßig das Default-Preset. Nur die in `partial`
        angegebenen Felder ändern sich, alle anderen behalten den Wert aus
        `base`. Das Ergebnis ist ein neues, validiertes Objekt.
        """
        merged = (base or self.get_default()).model_dump()
        if partial is None:
            return SchedulerSettings.model_validate(merged)
        if isinstance(partial, BaseModel):
            partial = partial.model_dump()

        sections = SchedulerSettings.model_fields
        for section, values in partial.items():
            if section not in sections:
                raise ValueError(
                    f"Unbekannter Konfigurationsabschnitt '{section}'. "
                    f"Erlaubt: {', '.join(sections)}"
                )
            if isinstance(values, BaseModel):
                values = values.model_dump()
            if not isinstance(values, dict):
                raise ValueError(
                    f"Abschnitt '{section}' muss ein Mapping sein, "
                    f"erhalten: {type(values).__name__}"
                )
            known = sections[section].annotation.model_fields
            for key, value in values.items():
                if key not in known:
                    raise ValueError(
                        f"Unbekanntes Feld '{section}.{key}'. "
                        f"Erlaubt: {', '.join(known)}"
                    )
                merged[section][key] = value

        try:
            return SchedulerSettings.model_validate(merged)
        except ValidationError as e:
            raise ValueError(f"Ungültige Konfiguration: {e}") from e

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> SchedulerSettings:
        """Lade Config aus YAML. Validiert automatisch via Pydantic."""
        target = Path(path) if path else self.DEFAULT_CONFIG
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'python main.py config init' aus, um eine anzulegen."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            config = self.merge(dict(raw or {}))
            logger.debug(f"Konfiguration geladen: {target}")
            return config
        except (ValueError, TypeError) as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Fehler: {e}"
            ) from e

    # ─── Speichern ───

    def save(self, config: SchedulerSettings, path: Optional[Path] = None) -> Path:
        """Speichere Config als YAML mit deutschen Kommentaren."""
        target = Path(path) if path else self.DEFAULT_CONFIG
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")
        return target

    def _build_commented_yaml(self, config: SchedulerSettings) -> CommentedMap:
        """Baut die YAML-Struktur mit Kommentaren auf."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        # Inline-Kommentar für das Zeitlimit
        perf_map = CommentedMap(cm["performance"])
        perf_map.yaml_add_eol_comment("leer = kein Limit", "timeout_ms")
        cm["performance"] = perf_map

        return cm
