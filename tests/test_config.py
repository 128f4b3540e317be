"""Tests für das Konfigurationssystem (Schema, Presets, Merge, YAML)."""

import pytest
from pydantic import ValidationError

from config.schema import (
    AnnealingSettings,
    CapacitySettings,
    SchedulerSettings,
    TimeGridConfig,
)
from config.defaults import (
    PRESETS,
    SESSION_ROOM_TYPES,
    default_time_grid,
    normalize_day,
)
from config.manager import ConfigManager


# ─── DEFAULT-KONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_default_time_grid_valid(self):
        """Default-Zeitraster: Mo–Fr, 08:00–18:00, Mittag 12–13."""
        tg = default_time_grid()
        assert tg.days == ["monday", "tuesday", "wednesday", "thursday", "friday"]
        assert tg.slot_duration_minutes == 60
        assert (tg.day_start, tg.day_end) == ("08:00", "18:00")
        assert (tg.lunch_start, tg.lunch_end) == ("12:00", "13:00")

    def test_default_settings_values(self):
        """Standardwerte der Engine-Einstellungen."""
        s = SchedulerSettings()
        assert s.difficulty.student_weight_factor == 2.0
        assert s.difficulty.classroom_scarcity_factor == 5.0
        assert s.capacity.ideal_min_ratio == 0.7
        assert s.capacity.ideal_max_ratio == 0.9
        assert s.hill_climbing.iterations == 30
        assert s.performance.timeout_ms == 60000
        assert s.features.enable_simulated_annealing is True
        assert s.features.enable_backtracking is False

    def test_presets_available(self):
        assert set(PRESETS) == {"default", "fast", "quality"}
        assert PRESETS["fast"].hill_climbing.iterations < PRESETS["quality"].hill_climbing.iterations

    def test_preset_ordering_against_default(self):
        """fast: weniger Iterationen, kürzeres Zeitlimit; quality: mehr und länger."""
        mgr = ConfigManager()
        default, fast, quality = (mgr.get_preset(n) for n in ("default", "fast", "quality"))
        assert fast.hill_climbing.iterations < default.hill_climbing.iterations
        assert fast.performance.timeout_ms < default.performance.timeout_ms
        assert quality.hill_climbing.iterations > default.hill_climbing.iterations
        assert quality.performance.timeout_ms > default.performance.timeout_ms

    def test_session_room_types(self):
        """Labor nie im Theorieraum, kombiniert überall."""
        assert "lab" not in SESSION_ROOM_TYPES["theoretical"]
        assert "theoretical" not in SESSION_ROOM_TYPES["lab"]
        assert SESSION_ROOM_TYPES["combined"] == {"theoretical", "lab", "hybrid"}

    @pytest.mark.parametrize("raw,expected", [
        ("Monday", "monday"),
        ("Fri", "friday"),
        ("Pazartesi", "monday"),
        ("Çarşamba", "wednesday"),
        ("  TUESDAY ", "tuesday"),
    ])
    def test_normalize_day(self, raw, expected):
        assert normalize_day(raw) == expected


# ─── SCHEMA-VALIDIERUNG ───────────────────────────────────────────────────────

class TestSchemaValidation:
    def test_day_start_after_end_rejected(self):
        with pytest.raises(ValidationError):
            TimeGridConfig(day_start="18:00", day_end="08:00")

    def test_invalid_time_format_rejected(self):
        with pytest.raises(ValidationError):
            TimeGridConfig(day_start="8 Uhr")

    def test_backwards_lunch_rejected(self):
        with pytest.raises(ValidationError):
            TimeGridConfig(lunch_start="13:00", lunch_end="12:00")

    def test_days_lowercased(self):
        tg = TimeGridConfig(days=["Monday", "TUESDAY"])
        assert tg.days == ["monday", "tuesday"]

    def test_capacity_order_enforced(self):
        """penalty_threshold ≤ ideal_min_ratio ≤ ideal_max_ratio."""
        with pytest.raises(ValidationError):
            CapacitySettings(ideal_min_ratio=0.9, ideal_max_ratio=0.7)

    def test_annealing_cannot_heat_up(self):
        with pytest.raises(ValidationError):
            AnnealingSettings(initial_temperature=1.0, final_temperature=5.0)


# ─── CONFIG-MANAGER ───────────────────────────────────────────────────────────

class TestConfigManager:
    def test_get_preset_returns_deep_copy(self):
        """Änderungen an einer Kopie wirken sich nicht auf das Preset aus."""
        mgr = ConfigManager()
        s = mgr.get_preset("default")
        s.hill_climbing.iterations = 999
        s.time_grid.days.append("saturday")
        fresh = mgr.get_preset("default")
        assert fresh.hill_climbing.iterations == 30
        assert "saturday" not in fresh.time_grid.days

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unbekanntes Preset"):
            ConfigManager().get_preset("turbo")

    def test_merge_partial_keeps_other_fields(self):
        """Nur angegebene Felder ändern sich."""
        merged = ConfigManager().merge({"hill_climbing": {"iterations": 5}})
        assert merged.hill_climbing.iterations == 5
        assert merged.hill_climbing.relocate_probability == 0.5
        assert merged.capacity.ideal_min_ratio == 0.7

    def test_merge_over_custom_base(self):
        mgr = ConfigManager()
        base = mgr.get_preset("fast")
        merged = mgr.merge({"annealing": {"final_temperature": 0.5}}, base=base)
        assert merged.hill_climbing.iterations == base.hill_climbing.iterations
        assert merged.annealing.final_temperature == 0.5

    def test_merge_none_returns_base(self):
        mgr = ConfigManager()
        assert mgr.merge(None) == mgr.get_default()

    def test_merge_unknown_section(self):
        with pytest.raises(ValueError, match="Unbekannter Konfigurationsabschnitt"):
            ConfigManager().merge({"solver": {"iterations": 5}})

    def test_merge_unknown_field(self):
        with pytest.raises(ValueError, match="Unbekanntes Feld"):
            ConfigManager().merge({"hill_climbing": {"iters": 5}})

    def test_merge_invalid_value(self):
        with pytest.raises(ValueError):
            ConfigManager().merge({"hill_climbing": {"iterations": -1}})

    def test_merge_section_must_be_mapping(self):
        with pytest.raises(ValueError, match="Mapping"):
            ConfigManager().merge({"features": True})

    def test_save_and_load_roundtrip(self, tmp_path):
        """Speichern als YAML und erneutes Laden ergibt dieselbe Konfiguration."""
        mgr = ConfigManager()
        settings = mgr.merge({
            "hill_climbing": {"iterations": 12},
            "time_grid": {"days": ["monday", "wednesday"], "day_start": "09:00"},
        })
        path = tmp_path / "scheduler_config.yaml"
        mgr.save(settings, path)
        assert path.exists()
        text = path.read_text(encoding="utf-8")
        assert "Zeitraster" in text
        assert mgr.load(path) == settings

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager().load(tmp_path / "fehlt.yaml")

    def test_load_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text("performance:\n  timeout_ms: 0\n", encoding="utf-8")
        settings = ConfigManager().load(path)
        assert settings.performance.timeout_ms == 0
        assert settings.hill_climbing.iterations == 30

    def test_load_empty_timeout_means_unlimited(self, tmp_path):
        path = tmp_path / "unlimited.yaml"
        path.write_text("performance:\n  timeout_ms:\n", encoding="utf-8")
        assert ConfigManager().load(path).performance.timeout_ms is None

    def test_load_invalid_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("capacity:\n  ideal_min_ratio: 2.5\n", encoding="utf-8")
        with pytest.raises(ValueError, match="ungültig"):
            ConfigManager().load(path)
